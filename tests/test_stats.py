"""Tests for degree statistics and matrix info output."""

import numpy as np

from csc_pagerank.stage1_read import load_graph
from csc_pagerank.stage2_stats import compute_degree_stats, in_degree, print_matrix_info, run_stats


class TestDegrees:

    def test_in_degree_sequential(self, sample_graph):
        m = load_graph(sample_graph)
        assert in_degree(m).tolist() == [2, 1, 2, 1, 2, 2, 1, 1, 1, 2]

    def test_in_degree_partitioned(self, sample_graph):
        seq = in_degree(load_graph(sample_graph))
        assert np.array_equal(in_degree(load_graph(sample_graph, cores=3)), seq)

    def test_in_degree_sums_to_edges(self, sample_graph, sample_edges):
        assert in_degree(load_graph(sample_graph)).sum() == len(sample_edges)

    def test_compute_degree_stats(self):
        stats = compute_degree_stats([0, 1, 2, 3, 4])
        assert stats["Min"] == 0
        assert stats["Max"] == 4
        assert stats["Average"] == "2.00"
        assert stats["Zero-degree nodes"] == 1


class TestOutput:

    def test_run_stats(self, sample_graph, capsys):
        out_stats, in_stats = run_stats(load_graph(sample_graph, cores=2))
        assert out_stats["Zero-degree nodes"] == 3
        assert in_stats["Zero-degree nodes"] == 0
        assert "Edges per partition" in capsys.readouterr().out

    def test_print_matrix_info(self, cycle3, capsys):
        print_matrix_info(load_graph(cycle3), max_el=2)
        out = capsys.readouterr().out
        assert "Column pointer: 0 1 ..." in out
        assert "Row index:      1 2 ..." in out
