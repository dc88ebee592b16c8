import numpy as np

from csc_pagerank.utils import (
    print_stage, print_step, print_success, print_summary_box,
    print_side_by_side_boxes, Timer,
)


def as_partitions(graph):
    """Return `graph` as a list of matrices (a single matrix becomes [matrix])."""
    return list(graph) if isinstance(graph, (list, tuple)) else [graph]


def in_degree(graph):
    """
    Count incoming edges per node.

    Args:
        graph (CSCMatrix | list[CSCMatrix]): Loaded graph

    Returns:
        np.ndarray: int array of length n
    """
    partitions = as_partitions(graph)
    n = partitions[0].n
    counts = np.zeros(n, dtype=np.int64)
    for matrix in partitions:
        offset = matrix.row_offset
        counts[offset:offset + matrix.rows] += np.bincount(matrix.row_index, minlength=matrix.rows)
    return counts


def compute_degree_stats(degrees):
    """
    Summary statistics for a list of degrees.

    Args:
        degrees (array-like): Degree per node

    Returns:
        dict: Computed statistics
    """
    values = np.asarray(degrees)

    return {
        "Min": int(np.min(values)),
        "Max": int(np.max(values)),
        "Average": f"{np.mean(values):.2f}",
        "Median": f"{np.median(values):.2f}",
        "Q1 (20th)": f"{np.percentile(values, 20):.2f}",
        "Q2 (40th)": f"{np.percentile(values, 40):.2f}",
        "Q3 (60th)": f"{np.percentile(values, 60):.2f}",
        "Q4 (80th)": f"{np.percentile(values, 80):.2f}",
        "Zero-degree nodes": int(np.count_nonzero(values == 0)),
    }


def print_matrix_info(matrix, max_el=20):
    """
    Print node/edge counts and the leading entries of every CSC array.

    Args:
        matrix (CSCMatrix): Matrix or single partition to describe
        max_el (int): Max entries shown per array
    """
    def head(arr):
        shown = " ".join(str(x) for x in arr[:max_el])
        return shown + (" ..." if len(arr) > max_el else "")

    print_summary_box("Matrix Info", {
        "Nodes": matrix.n,
        "Rows": f"{matrix.rows} (offset {matrix.row_offset})",
        "Edges stored": matrix.nnz,
        "Null columns": len(matrix.null_columns),
    })
    print_step(f"Row index:      {head(matrix.row_index)}")
    print_step(f"Column pointer: {head(matrix.col_ptr)}")
    print_step(f"Out degree:     {head(matrix.out_degree)}")
    print_step(f"Null columns:   {head(matrix.null_columns)}")


def run_stats(graph):
    """
    Compute and display out-degree and in-degree statistics.

    Args:
        graph (CSCMatrix | list[CSCMatrix]): Loaded graph

    Returns:
        tuple: (out_stats dict, in_stats dict)
    """
    print_stage("Stats", "Computing degree statistics")

    with Timer("Total Stage 2"):
        partitions = as_partitions(graph)
        metadata = partitions[0].metadata

        print_step("Computing in-degree from row indices...")
        incoming = in_degree(partitions)

        out_stats = compute_degree_stats(metadata.out_degree)
        in_stats = compute_degree_stats(incoming)
        print_side_by_side_boxes("Out-degree", out_stats, "In-degree", in_stats)

        if len(partitions) > 1:
            sizes = ", ".join(str(m.nnz) for m in partitions)
            print_success(f"Edges per partition: {sizes}")

    return out_stats, in_stats
