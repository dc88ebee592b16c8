# stage3_pagerank.py
#
# Project: CSC PageRank
#
# Description:
#   Stage 3 — PageRank via power iteration on the CSC transition matrix,
#   sequentially or over row partitions with a fixed worker pool.
#
# References:
#   [1] Page, L., Brin, S., Motwani, R., & Winograd, T. (1999).
#       "The PageRank Citation Ranking: Bringing Order to the Web."
#       http://ilpubs.stanford.edu:8090/422/1/1999-66.pdf
#
#   [2] Langville, A. & Meyer, C. (2004).
#       "A Survey of Eigenvector Methods of Web Information Retrieval."
#       http://citeseer.ist.psu.edu/713792.html
#
# Each iteration computes, for every node j:
#
#   v_next[j] = d * sum_{i -> j} v[i] / C(i)      (matrix-vector engine)
#             + d * sum_{k dangling} v[k] / N     (dangling redistribution)
#             + (1 - d) / N                        (teleportation)
#
# with d = 0.85. If v sums to 1, so does v_next. Iteration stops when
# the Euclidean norm of (v_next - v) drops below the tolerance.

import numpy as np

from csc_pagerank.csc_matrix import CSCMatrix
from csc_pagerank.errors import NumericNonConvergence
from csc_pagerank.partitioning import PartitionedEngine
from csc_pagerank.utils import print_stage, print_step, print_success, print_error, Timer

DAMPING = 0.85
TOLERANCE = 1.0e-6
MAX_ITERATIONS = 1000


def initial_vector(n, seed=None):
    """
    Starting rank vector that sums to 1.

    Uniform 1/n by default. With a seed, non-negative random weights
    normalized to 1, reproducible for a given seed.
    """
    if seed is None:
        return np.full(n, 1.0 / n, dtype=np.float64)
    rng = np.random.default_rng(seed)
    # Shift away from zero so the sum can never vanish.
    weights = rng.random(n) + 1.0e-3
    return weights / weights.sum()


def page_rank_iter(matrix, v, damping=DAMPING):
    """
    One sequential PageRank step.

    Args:
        matrix (CSCMatrix): Full (unpartitioned) adjacency matrix
        v (np.ndarray): Current rank vector, length n
        damping (float): Damping factor d

    Returns:
        np.ndarray: New rank vector; `v` is left untouched
    """
    shift = damping * matrix.metadata.dangling_sum(v) + (1.0 - damping) / matrix.n
    return damping * matrix.multiply(v) + shift


def power_iteration(step, v0, tol=TOLERANCE, max_iterations=MAX_ITERATIONS):
    """
    Apply `step` until successive iterates differ by less than `tol`.

    Args:
        step (callable): v -> v_next, must return a new array
        v0 (np.ndarray): Starting vector
        tol (float): Threshold on ||v_next - v||_2
        max_iterations (int): Upper bound on the number of steps

    Returns:
        tuple: (converged vector, iterations performed)

    Raises:
        NumericNonConvergence: `max_iterations` steps without convergence
    """
    v = v0
    norm = float("inf")
    for iteration in range(1, max_iterations + 1):
        v_next = step(v)
        norm = float(np.linalg.norm(v_next - v))
        v = v_next
        if norm < tol:
            return v, iteration
    raise NumericNonConvergence(max_iterations, norm, tol)


def page_rank(graph, cores=None, damping=DAMPING, tol=TOLERANCE,
              max_iterations=MAX_ITERATIONS, seed=None):
    """
    Compute PageRank of a loaded graph.

    Args:
        graph (CSCMatrix | list[CSCMatrix]): Output of `load_graph`;
            a list selects the partitioned (parallel) solver
        cores (int|None): Worker threads for the partitioned solver
            (defaults to one per partition); ignored for a single matrix
        damping (float): Damping factor d (default 0.85)
        tol (float): Convergence threshold on the L2 change
        max_iterations (int): Safety bound on the iteration count
        seed (int|None): Random starting vector seed (None = uniform)

    Returns:
        np.ndarray: PageRank scores, length n, summing to ~1
    """
    print_stage("PageRank", "Computing PageRank scores")

    with Timer("Total Stage 3"):
        try:
            if isinstance(graph, CSCMatrix):
                print_step(f"Sequential power iteration over {graph.n} nodes...")
                v0 = initial_vector(graph.n, seed)
                x, iterations = power_iteration(
                    lambda v: page_rank_iter(graph, v, damping), v0, tol, max_iterations,
                )
            else:
                with PartitionedEngine(graph, cores) as engine:
                    print_step(f"Partitioned power iteration over {engine.n} nodes...")
                    v0 = initial_vector(engine.n, seed)
                    x, iterations = power_iteration(
                        lambda v: engine.step(v, damping), v0, tol, max_iterations,
                    )
        except NumericNonConvergence as exc:
            print_error(str(exc))
            raise

        print_success(f"Converged after {iterations} iterations (tol={tol:.1e})")

    return x
