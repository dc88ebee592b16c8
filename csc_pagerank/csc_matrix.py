# csc_matrix.py
#
# Project: CSC PageRank
#
# Description:
#   Compressed Sparse Column adjacency storage and the stochastic
#   matrix-vector product used by every PageRank iteration.
#
#   Column i holds the destinations of node i's outgoing edges:
#       row_index[col_ptr[i]:col_ptr[i+1]]
#   Applying the matrix to a rank vector v computes, for every stored
#   entry (j, i),  result[j] += v[i] / out_degree[i], i.e. the
#   column-stochastic transition matrix of the graph times v.
#
# References:
#   [1] Saad, Y. (2003). "Iterative Methods for Sparse Linear Systems",
#       2nd ed., SIAM, §3.4, CSC / Harwell-Boeing storage.
#   [2] SciPy sparse CSC format
#       https://docs.scipy.org/doc/scipy/reference/generated/scipy.sparse.csc_matrix.html

import numpy as np
import scipy.sparse as sp


def _frozen(values, dtype=np.int64):
    """Copy `values` into a read-only numpy array."""
    arr = np.array(values, dtype=dtype)
    arr.flags.writeable = False
    return arr


class GraphMetadata:
    """
    Per-graph data shared by every partition of the same graph.

    Out-degree and the null (dangling) column set are computed once, from
    the unpartitioned edge stream, and every CSCMatrix of that graph holds
    a reference to the same instance.

    Args:
        n (int): Number of nodes in the graph
        out_degree (array-like): Out-degree of every node, length n
        null_columns (array-like|None): Nodes with zero out-degree.
            Derived from out_degree when not given.
    """

    def __init__(self, n, out_degree, null_columns=None):
        self.n = int(n)
        self.out_degree = _frozen(out_degree)
        if self.out_degree.shape != (self.n,):
            raise ValueError(f"out_degree has length {len(self.out_degree)}, expected {self.n}")

        if null_columns is None:
            null_columns = np.flatnonzero(self.out_degree == 0)
        self.null_columns = _frozen(null_columns)
        self.nnz = int(self.out_degree.sum())

    def dangling_sum(self, v):
        """
        Rank mass held by dangling nodes, spread uniformly over all nodes.

        Returns:
            float: sum(v[j] for j in null_columns) / n
        """
        return float(np.asarray(v)[self.null_columns].sum()) / self.n

    def __repr__(self):
        return (f"GraphMetadata(n={self.n}, nnz={self.nnz}, "
                f"null_columns={len(self.null_columns)})")


class CSCMatrix:
    """
    Immutable adjacency matrix (or row-partition of one) in CSC layout.

    A sequential graph is a single matrix with rows == n. A partitioned
    graph is a list of matrices that all keep the full column structure
    (col_ptr of length n+1) but only store the entries whose destination
    falls in their own row range [row_offset, row_offset + rows).

    Args:
        row_index (array-like): Local destination ids, grouped by column
        col_ptr (array-like): Column start offsets, length n+1
        metadata (GraphMetadata): Shared out-degree / null-column data
        rows (int|None): Number of owned rows (defaults to n)
        row_offset (int): Global id of the first owned row
    """

    def __init__(self, row_index, col_ptr, metadata, rows=None, row_offset=0):
        self.metadata = metadata
        self.n = metadata.n
        self.rows = self.n if rows is None else int(rows)
        self.row_offset = int(row_offset)
        self.row_index = _frozen(row_index)
        self.col_ptr = _frozen(col_ptr)
        self._validate()

        # Stored value of entry (j, i) is 1/out_degree[i]; the operator is
        # built once here so iterations only pay for the product itself.
        counts = np.diff(self.col_ptr)
        cols = np.repeat(np.arange(self.n), counts)
        data = 1.0 / self.out_degree[cols].astype(np.float64)
        self._transition = sp.csc_matrix(
            (data, self.row_index.copy(), self.col_ptr.copy()),
            shape=(self.rows, self.n),
        )

    def _validate(self):
        n = self.n
        if self.col_ptr.shape != (n + 1,):
            raise ValueError(f"col_ptr has length {len(self.col_ptr)}, expected {n + 1}")
        if self.col_ptr[0] != 0 or self.col_ptr[-1] != len(self.row_index):
            raise ValueError("col_ptr must start at 0 and end at len(row_index)")
        counts = np.diff(self.col_ptr)
        if np.any(counts < 0):
            raise ValueError("col_ptr must be non-decreasing")
        if len(self.row_index) and (self.row_index.min() < 0 or self.row_index.max() >= self.rows):
            raise ValueError(f"row_index values must lie in [0, {self.rows})")
        if np.any(self.out_degree[counts > 0] == 0):
            raise ValueError("column with stored entries has zero out-degree")

    @property
    def out_degree(self):
        return self.metadata.out_degree

    @property
    def null_columns(self):
        return self.metadata.null_columns

    @property
    def nnz(self):
        """Number of entries stored in this matrix (not the whole graph)."""
        return int(self.col_ptr[-1])

    def column(self, col):
        """Local destination ids stored for source node `col`."""
        return self.row_index[self.col_ptr[col]:self.col_ptr[col + 1]]

    def access(self, row, col):
        """
        Return 1 if there is an edge col -> row, 0 otherwise.

        `row` is local to this matrix (subtract row_offset for partitions).
        """
        return int(np.any(self.column(col) == row))

    def global_row_index(self):
        """row_index translated back to global node ids."""
        return self.row_index + self.row_offset

    def multiply(self, v):
        """
        Apply the column-stochastic transition matrix to `v`.

        Null columns have empty ranges so they contribute nothing here;
        their mass is redistributed by the caller.

        Args:
            v (np.ndarray): Dense rank vector of length n

        Returns:
            np.ndarray: New vector of length `rows`
        """
        v = np.asarray(v, dtype=np.float64)
        if v.shape != (self.n,):
            raise ValueError(f"vector has shape {v.shape}, expected ({self.n},)")
        return self._transition @ v

    def __repr__(self):
        return (f"CSCMatrix(n={self.n}, rows={self.rows}, "
                f"row_offset={self.row_offset}, nnz={self.nnz})")
