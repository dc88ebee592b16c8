import sys

from csc_pagerank.stage1_read import iter_edges, open_edge_stream, read_header


def display_edges(path, limit=20):
    """Print the header counts and the first few edges for a sanity check"""
    with open_edge_stream(path) as f:
        lines = iter(f)
        n, nnz = read_header(lines)
        print(f"Nodes: {n}  Edges: {nnz}")
        for i, (u, v) in enumerate(iter_edges(lines, n)):
            if i >= limit:
                break
            print(f"Edge {i}: {u} → {v}")


if __name__ == "__main__":
    display_edges(sys.argv[1])  # e.g. ./web-Google.txt
