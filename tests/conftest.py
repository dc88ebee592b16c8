"""Shared fixtures: small edge-list files written under tmp_path."""

import pytest

from csc_pagerank.stage1_read import write_edge_list


@pytest.fixture
def write_graph(tmp_path):
    """Factory: write_graph(n, edges) -> path of a well-formed edge list."""
    counter = {"i": 0}

    def _write(n, edges, name=None):
        counter["i"] += 1
        path = tmp_path / (name or f"graph_{counter['i']}.txt")
        write_edge_list(path, n, edges)
        return str(path)

    return _write


@pytest.fixture
def write_text(tmp_path):
    """Factory: write_text(text) -> path of a raw (possibly malformed) file."""
    counter = {"i": 0}

    def _write(text):
        counter["i"] += 1
        path = tmp_path / f"raw_{counter['i']}.txt"
        path.write_text(text)
        return str(path)

    return _write


@pytest.fixture
def cycle3(write_graph):
    return write_graph(3, [(0, 1), (1, 2), (2, 0)])


@pytest.fixture
def dangling2(write_graph):
    return write_graph(2, [(0, 1)])


@pytest.fixture
def isolated(write_graph):
    # Node 3 never appears; node 1 has no out-edges.
    return write_graph(4, [(0, 1), (0, 2), (2, 0), (2, 1)])


@pytest.fixture
def sample_edges():
    return [
        (0, 1), (0, 4), (0, 6),
        (1, 2),
        (3, 0), (3, 3), (3, 9),
        (4, 5), (4, 5),
        (6, 8), (6, 2),
        (8, 7), (8, 0), (8, 9),
        (9, 4),
    ]


@pytest.fixture
def sample_graph(write_graph, sample_edges):
    # Nodes 2, 5 and 7 are dangling; node 5 receives a duplicate edge.
    return write_graph(10, sample_edges)
