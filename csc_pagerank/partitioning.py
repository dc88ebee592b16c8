# partitioning.py
#
# Project: CSC PageRank
#
# Description:
#   Row partitioning for the parallel variant. Destination ids are split
#   into `cores` contiguous ranges; partition k owns rows
#   [k * width, k * width + rows_k), width = ceil(n / cores), and the last
#   partition owns whatever remains.
#
#   Each PageRank step fans out one matrix-vector product per partition
#   to a fixed thread pool. Workers read the same immutable rank vector
#   and write only into their own slice of the result, so the slices
#   never overlap and no lock is needed. The step returns only after
#   every worker has finished (join barrier).

from concurrent.futures import ThreadPoolExecutor

import numpy as np

from csc_pagerank.csc_matrix import CSCMatrix
from csc_pagerank.utils import print_step


def partition_width(n, cores):
    """
    Number of rows owned by every partition except possibly the last.

    Args:
        n (int): Number of nodes
        cores (int): Number of partitions

    Returns:
        int: ceil(n / cores)

    Raises:
        ValueError: cores < 1, or the full-width partitions would already
            overrun n (e.g. n=5, cores=4 -> width 2, and three full
            partitions cover 6 > 5 ids). A last partition with zero rows
            (n=6, cores=4) is allowed.
    """
    if cores < 1:
        raise ValueError(f"cores must be >= 1, got {cores}")
    width = -(-n // cores)
    if width * (cores - 1) > n:
        raise ValueError(f"cannot split {n} nodes into {cores} row partitions of width {width}")
    return width


def partition_bounds(n, cores):
    """
    Return [(row_offset, rows), ...] for every partition, in order.

    The ranges are disjoint and cover [0, n) exactly once.
    """
    width = partition_width(n, cores)
    bounds = [(k * width, width) for k in range(cores - 1)]
    bounds.append(((cores - 1) * width, n - (cores - 1) * width))
    return bounds


def check_partitions(matrices):
    """Raise ValueError unless `matrices` tile the rows of a single graph."""
    if not matrices:
        raise ValueError("at least one partition is required")
    metadata = matrices[0].metadata
    expected_offset = 0
    for k, matrix in enumerate(matrices):
        if matrix.metadata is not metadata:
            raise ValueError(f"partition {k} belongs to a different graph")
        if matrix.row_offset != expected_offset:
            raise ValueError(
                f"partition {k} starts at row {matrix.row_offset}, expected {expected_offset}"
            )
        expected_offset += matrix.rows
    if expected_offset != metadata.n:
        raise ValueError(f"partitions cover {expected_offset} rows, graph has {metadata.n}")


def _fill_slice(matrix, v, out, damping, shift):
    np.multiply(matrix.multiply(v), damping, out=out)
    out += shift


class PartitionedEngine:
    """
    Fixed-size worker pool that applies a row-partitioned matrix to a vector.

    Use as a context manager so the pool is shut down when the solve ends:

        with PartitionedEngine(matrices, cores) as engine:
            v = engine.step(v, damping)

    Args:
        matrices (list[CSCMatrix]): Partitions from the parallel loader
        cores (int|None): Worker count (defaults to len(matrices))
    """

    def __init__(self, matrices, cores=None):
        check_partitions(matrices)
        self.matrices = list(matrices)
        self.metadata = self.matrices[0].metadata
        self.n = self.metadata.n
        self.cores = len(self.matrices) if cores is None else cores
        if self.cores < 1:
            raise ValueError(f"cores must be >= 1, got {self.cores}")
        self._pool = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.close()

    def open(self):
        if self._pool is None:
            print_step(f"Starting {self.cores} workers for {len(self.matrices)} partitions...")
            self._pool = ThreadPoolExecutor(max_workers=self.cores)

    def close(self):
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def step(self, v, damping):
        """
        One damped PageRank step over all partitions.

        The dangling-mass scalar is computed once, before the fan-out, and
        added identically to every partition's slice.

        Args:
            v (np.ndarray): Current rank vector, length n (read-only here)
            damping (float): Damping factor d

        Returns:
            np.ndarray: d * (M v) + d * dangling_sum + (1 - d) / n
        """
        if self._pool is None:
            raise RuntimeError("engine is not open")
        shift = damping * self.metadata.dangling_sum(v) + (1.0 - damping) / self.n

        result = np.empty(self.n, dtype=np.float64)
        futures = [
            self._pool.submit(
                _fill_slice, matrix, v,
                result[matrix.row_offset:matrix.row_offset + matrix.rows],
                damping, shift,
            )
            for matrix in self.matrices
        ]
        # Barrier: every slice is written before the caller sees `result`.
        for future in futures:
            future.result()
        return result


def reassemble(matrices):
    """
    Merge row partitions back into one global CSCMatrix.

    Within a column, entries keep partition order (lower row ranges
    first), which can differ from stream order; compare columns as
    multisets.
    """
    check_partitions(matrices)
    metadata = matrices[0].metadata
    n = metadata.n

    cols, rows = [], []
    for matrix in matrices:
        cols.append(np.repeat(np.arange(n), np.diff(matrix.col_ptr)))
        rows.append(matrix.global_row_index())
    cols = np.concatenate(cols)
    rows = np.concatenate(rows)

    order = np.argsort(cols, kind="stable")
    col_ptr = np.zeros(n + 1, dtype=np.int64)
    np.cumsum(np.bincount(cols, minlength=n), out=col_ptr[1:])
    return CSCMatrix(rows[order], col_ptr, metadata)
