# stage4_validation.py
#
# Project: CSC PageRank
#
# Description:
#   Stage 4 — Validate the CSC PageRank vector against NetworkX using
#   standard ranking metrics (Spearman's rho, Kendall's tau, MAE, top-5).
#
# References:
#   [1] Spearman, C. (1904).
#       "The Proof and Measurement of Association between Two Things."
#       American Journal of Psychology, 15(1), 72-101.
#
#   [2] Kendall, M. (1938).
#       "A New Measure of Rank Correlation."
#       Biometrika, 30(1/2), 81-93.
#
#   NetworkX (3-clause BSD) is called at runtime as the reference
#   implementation: https://github.com/networkx/networkx
#
# The reference graph is a MultiDiGraph with every node added explicitly,
# so parallel edges and isolated nodes are weighted exactly as in the CSC
# matrix (nx.pagerank sums parallel edge weights and spreads dangling
# mass uniformly, like the solver here).

import os

import numpy as np
from scipy.stats import spearmanr, kendalltau, rankdata
import matplotlib
matplotlib.use('Agg')  # non-interactive backend for saving to file
import matplotlib.pyplot as plt
import networkx as nx

from csc_pagerank.stage2_stats import as_partitions
from csc_pagerank.stage3_pagerank import DAMPING
from csc_pagerank.utils import (
    print_stage, print_step, print_success, print_warning, print_summary_box,
    print_side_by_side_boxes, Timer,
)


def to_networkx(graph):
    """
    Build an nx.MultiDiGraph with the same nodes and edges as `graph`.

    Args:
        graph (CSCMatrix | list[CSCMatrix]): Loaded graph

    Returns:
        nx.MultiDiGraph
    """
    partitions = as_partitions(graph)
    G = nx.MultiDiGraph()
    G.add_nodes_from(range(partitions[0].n))
    for matrix in partitions:
        sources = np.repeat(np.arange(matrix.n), np.diff(matrix.col_ptr))
        G.add_edges_from(zip(sources.tolist(), matrix.global_row_index().tolist()))
    return G


def _plot_validation(custom_scores, nx_scores, rho, tau, out_dir):
    """
    Save rank-vs-rank and score-vs-score scatter plots to `out_dir`.

    Points on the diagonal mean identical ranking / identical scores.
    """
    custom_ranks = rankdata(-custom_scores, method='ordinal')
    nx_ranks = rankdata(-nx_scores, method='ordinal')

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 6))

    ax1.scatter(nx_ranks, custom_ranks, s=1, alpha=0.3, c='steelblue')
    rank_max = max(custom_ranks.max(), nx_ranks.max())
    ax1.plot([1, rank_max], [1, rank_max], 'r--', linewidth=1, label='Perfect agreement')
    ax1.set_xlabel('NetworkX Rank')
    ax1.set_ylabel('CSC Rank')
    ax1.set_title(f'Rank vs Rank  (Spearman ρ = {rho:.6f})')
    ax1.legend(loc='upper left')
    ax1.set_aspect('equal')

    ax2.scatter(nx_scores, custom_scores, s=1, alpha=0.3, c='darkorange')
    score_min = min(nx_scores.min(), custom_scores.min())
    score_max = max(nx_scores.max(), custom_scores.max())
    ax2.plot([score_min, score_max], [score_min, score_max], 'r--', linewidth=1, label='y = x')
    ax2.set_xlabel('NetworkX PageRank Score')
    ax2.set_ylabel('CSC PageRank Score')
    ax2.set_title(f'Score vs Score  (Kendall τ = {tau:.6f})')
    ax2.legend(loc='upper left')
    ax2.set_aspect('equal')

    fig.suptitle('CSC PageRank vs NetworkX PageRank Validation', fontsize=14, fontweight='bold')
    fig.tight_layout()

    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, 'validation_rank_correlation.png')
    fig.savefig(path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return path


def verify_with_networkx(graph, ranks, damping=DAMPING, plot_dir=None, top_k=5):
    """
    Compare a PageRank vector with NetworkX's PageRank on the same graph.

    Args:
        graph (CSCMatrix | list[CSCMatrix]): Loaded graph
        ranks (np.ndarray): Scores returned by `page_rank`
        damping (float): Damping factor used for `ranks`
        plot_dir (str|None): Save scatter plots here when given
        top_k (int): Size of the top-k comparison

    Returns:
        dict: mae, max_error, spearman, kendall, top_k_overlap, top_k_positional
    """
    print_stage("Verify", "Comparing with NetworkX PageRank")

    with Timer("NetworkX verification"):
        print_step("Building NetworkX MultiDiGraph...")
        G = to_networkx(graph)
        print_success(f"Graph: {G.number_of_nodes()} nodes, {G.number_of_edges()} edges")

        print_step("Computing NetworkX PageRank...")
        nx_pr = nx.pagerank(G, alpha=damping, tol=1.0e-10, max_iter=1000)

        custom_scores = np.asarray(ranks, dtype=np.float64)
        nx_scores = np.array([nx_pr[i] for i in range(len(custom_scores))])

        # Score-level
        abs_errors = np.abs(custom_scores - nx_scores)
        mae = float(abs_errors.mean())
        max_err = float(abs_errors.max())
        max_err_node = int(abs_errors.argmax())

        # Rank-level; both are undefined when either vector is constant.
        if np.ptp(custom_scores) == 0 or np.ptp(nx_scores) == 0:
            print_warning("Constant score vector, rank correlations set to 1.0")
            rho = tau = 1.0
            rho_p = tau_p = 0.0
        else:
            rho, rho_p = spearmanr(custom_scores, nx_scores)
            tau, tau_p = kendalltau(custom_scores, nx_scores)

        print_summary_box("Validation Metrics", {
            "MAE (score)": f"{mae:.2e}",
            "Max error":   f"{max_err:.2e} (Node {max_err_node})",
            "Spearman rho [1]": f"{rho:.6f} (p={rho_p:.2e})",
            "Kendall tau  [2]": f"{tau:.6f} (p={tau_p:.2e})",
        })

        # Top-k side by side
        k = min(top_k, len(custom_scores))
        custom_top = np.argsort(-custom_scores, kind='stable')[:k].tolist()
        nx_top = np.argsort(-nx_scores, kind='stable')[:k].tolist()

        print_side_by_side_boxes(
            f"CSC Top {k}",
            {f"#{i+1} Node {p}": f"{custom_scores[p]:.8f}" for i, p in enumerate(custom_top)},
            f"NetworkX Top {k}",
            {f"#{i+1} Node {p}": f"{nx_scores[p]:.8f}" for i, p in enumerate(nx_top)},
        )

        rank_matches = sum(1 for a, b in zip(custom_top, nx_top) if a == b)
        overlap = set(custom_top) & set(nx_top)
        if rank_matches == k:
            print_success(f"Top {k} matches perfectly (same nodes, same order)")
        else:
            print_step(f"Top {k} positional match: {rank_matches}/{k}")
            print_step(f"Top {k} Precision@{k}:      {len(overlap)}/{k}")

        if plot_dir is not None:
            plot_path = _plot_validation(custom_scores, nx_scores, rho, tau, plot_dir)
            print_success(f"Scatter plots saved to {plot_path}")

    return {
        "mae": mae,
        "max_error": max_err,
        "spearman": float(rho),
        "kendall": float(tau),
        "top_k_overlap": len(overlap),
        "top_k_positional": rank_matches,
    }
