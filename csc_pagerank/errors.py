# errors.py
#
# Project: CSC PageRank
#
# Description:
#   Failure kinds raised while loading a graph or iterating PageRank.
#   An unopenable source surfaces as the built-in OSError (IOError).


class PageRankError(Exception):
    """Base class for all loader and solver failures."""


class FormatError(PageRankError, ValueError):
    """The edge-list file is malformed (header, ids, ordering, counts)."""

    def __init__(self, message, line=None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class NumericNonConvergence(PageRankError, ArithmeticError):
    """Power iteration hit its iteration bound before reaching tolerance."""

    def __init__(self, iterations, norm, tol):
        self.iterations = iterations
        self.norm = norm
        self.tol = tol
        super().__init__(
            f"no convergence after {iterations} iterations "
            f"(last norm {norm:.3e}, tolerance {tol:.1e})"
        )
