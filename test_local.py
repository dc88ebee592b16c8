# test_local.py
#
# Project: CSC PageRank
#
# Description:
#   Local test runner — generates a random edge-list file (instead of
#   downloading one) and runs the full pipeline sequentially and with
#   row partitions, then validates against NetworkX. For development
#   and debugging; not collected by pytest.

import os
import tempfile

import numpy as np

from csc_pagerank.stage1_read import generate_random_edges, load_graph, write_edge_list
from csc_pagerank.stage2_stats import run_stats
from csc_pagerank.stage3_pagerank import page_rank
from csc_pagerank.stage4_validation import verify_with_networkx
from csc_pagerank.utils import print_project_banner, print_stage, print_step, print_success, print_summary_box, Timer


def generate_local_graph(path, n=20000, avg_degree=8.0, seed=528):
    """Write a random graph to `path` and return its edge count."""
    print_stage("Generate", "Write random edge list")

    with Timer("Generate"):
        edges = generate_random_edges(n, avg_degree=avg_degree, seed=seed)
        write_edge_list(path, n, edges, comment=f"Random directed graph (seed {seed})")
        print_summary_box("Generated Graph", {
            "File": path,
            "Nodes": n,
            "Edges": len(edges),
        })

    return len(edges)


if __name__ == "__main__":
    print_project_banner()

    with tempfile.TemporaryDirectory(prefix="pagerank_") as tmp_dir:
        path = os.path.join(tmp_dir, "random_graph.txt")
        generate_local_graph(path)

        matrix = load_graph(path)
        partitions = load_graph(path, cores=os.cpu_count() or 4)

    # Stage 2
    run_stats(matrix)

    # Stage 3 — both variants
    seq = page_rank(matrix)
    par = page_rank(partitions)

    diff = float(np.linalg.norm(seq - par))
    print_step(f"||sequential - partitioned||_2 = {diff:.2e}")
    if diff < 1e-9:
        print_success("Sequential and partitioned results agree")

    # Stage 4
    verify_with_networkx(matrix, seq)
