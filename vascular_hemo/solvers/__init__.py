"""Linear and coupled fixed-point solvers."""

from .linear import SparseDirectSolver, clean_matrix
from .fixed_point import CoupledFixedPointSolver, SolverState, relative_change

__all__ = [
    "SparseDirectSolver",
    "clean_matrix",
    "CoupledFixedPointSolver",
    "SolverState",
    "relative_change",
]
