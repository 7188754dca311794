"""
Sparse direct solver with a condition number guard.
"""

from typing import Tuple

import numpy as np
import scipy.sparse as sp
from scipy.sparse.linalg import LinearOperator, onenormest, splu
from scipy.sparse.linalg import norm as sparse_norm

from ..core.errors import LinearSolveError


def clean_matrix(matrix: sp.spmatrix, tolerance: float = 1e-12) -> sp.csc_matrix:
    """CSC copy of ``matrix`` without entries smaller than ``tolerance`` in magnitude."""
    cleaned = sp.csc_matrix(matrix, dtype=float, copy=True)
    cleaned.data[np.abs(cleaned.data) < tolerance] = 0.0
    cleaned.eliminate_zeros()
    return cleaned


class SparseDirectSolver:
    """
    LU solver for the flow and hematocrit systems.

    Parameters
    ----------
    max_condition : float
        Largest accepted 1-norm condition estimate
    drop_tolerance : float
        Entries below this magnitude are removed before factorisation
    """

    def __init__(self, max_condition: float = 1e16, drop_tolerance: float = 1e-12):
        self.max_condition = max_condition
        self.drop_tolerance = drop_tolerance

    def solve(self, matrix: sp.spmatrix, rhs: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        Solve ``matrix @ x = rhs``.

        Returns
        -------
        x : ndarray
            Solution
        condition : float
            Estimate of the 1-norm condition number

        Raises
        ------
        LinearSolveError
            If the matrix is singular, the solution is not finite or the
            condition estimate exceeds ``max_condition``
        """
        A = clean_matrix(matrix, self.drop_tolerance)
        n = A.shape[0]
        if A.shape != (n, n) or np.shape(rhs) != (n,):
            raise LinearSolveError(f"Incompatible system: matrix {A.shape}, rhs {np.shape(rhs)}")

        try:
            lu = splu(A)
        except RuntimeError as e:
            raise LinearSolveError(f"Singular matrix: {e}")

        x = lu.solve(np.asarray(rhs, dtype=float))
        if not np.all(np.isfinite(x)):
            raise LinearSolveError("Linear solve produced non-finite values")

        condition = self.condition_estimate(A, lu)
        if not np.isfinite(condition) or condition > self.max_condition:
            raise LinearSolveError(
                f"Matrix is ill-conditioned (condition estimate {condition:.3e})",
                condition=condition,
            )
        return x, condition

    @staticmethod
    def condition_estimate(A: sp.csc_matrix, lu) -> float:
        """``||A||_1 * ||A^-1||_1`` with the inverse norm estimated from the factors."""
        n = A.shape[0]
        norm_a = sparse_norm(A, 1)
        if n == 0 or norm_a == 0.0:
            return float("inf")
        inverse = LinearOperator(
            (n, n),
            matvec=lambda b: lu.solve(np.asarray(b, dtype=float).ravel()),
            rmatvec=lambda b: lu.solve(np.asarray(b, dtype=float).ravel(), trans="T"),
            dtype=float,
        )
        return float(norm_a * onenormest(inverse))
