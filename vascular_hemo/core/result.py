"""
Result types for the coupled solver.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
from enum import Enum

import numpy as np


class SolverStatus(Enum):
    """Final status of a fixed-point run."""
    CONVERGED = "converged"
    MAX_ITER_EXCEEDED = "max_iter_exceeded"


class ErrorCode(Enum):
    """Codes attached to results and warnings."""
    NOT_CONVERGED = "NOT_CONVERGED"
    MASS_RESIDUAL_HIGH = "MASS_RESIDUAL_HIGH"
    FLOW_BALANCE_ERROR = "FLOW_BALANCE_ERROR"
    NEGATIVE_HEMATOCRIT = "NEGATIVE_HEMATOCRIT"


@dataclass
class IterationRecord:
    """Residuals and diagnostics of one outer iteration."""

    iteration: int
    residual_solution: float
    residual_mass: float
    residual_hematocrit: float
    total_filtration_rate: float = 0.0
    lymphatic_flow_rate: float = 0.0
    condition_flow: float = 0.0
    condition_hematocrit: float = 0.0
    geometry_version: int = 0
    flow_time: float = 0.0
    hematocrit_time: float = 0.0

    @property
    def cube_flow_rate(self) -> float:
        """Flow rate leaving the tissue block through its boundary."""
        return self.total_filtration_rate - self.lymphatic_flow_rate

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "iteration": self.iteration,
            "residual_solution": self.residual_solution,
            "residual_mass": self.residual_mass,
            "residual_hematocrit": self.residual_hematocrit,
            "total_filtration_rate": self.total_filtration_rate,
            "lymphatic_flow_rate": self.lymphatic_flow_rate,
            "condition_flow": self.condition_flow,
            "condition_hematocrit": self.condition_hematocrit,
            "geometry_version": self.geometry_version,
            "flow_time": self.flow_time,
            "hematocrit_time": self.hematocrit_time,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "IterationRecord":
        """Create from dictionary."""
        return cls(**d)


@dataclass
class FixedPointResult:
    """
    Outcome of a coupled flow / hematocrit run.

    Non-convergence is reported here (``status``, ``converged`` and a
    warning), never raised.
    """

    status: SolverStatus
    iterations: int
    flow_solution: np.ndarray
    hematocrit: np.ndarray
    history: List[IterationRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error_codes: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def converged(self) -> bool:
        return self.status == SolverStatus.CONVERGED

    @property
    def final_record(self) -> Optional[IterationRecord]:
        return self.history[-1] if self.history else None

    def add_warning(self, warning: str, code: Optional[ErrorCode] = None) -> None:
        """Add a warning message with optional error code."""
        self.warnings.append(warning)
        if code is not None:
            self.error_codes.append(code.value)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization (JSON-safe)."""
        return {
            "status": self.status.value,
            "iterations": self.iterations,
            "flow_solution": np.asarray(self.flow_solution).tolist(),
            "hematocrit": np.asarray(self.hematocrit).tolist(),
            "history": [record.to_dict() for record in self.history],
            "warnings": self.warnings,
            "error_codes": self.error_codes,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "FixedPointResult":
        """Create from dictionary."""
        return cls(
            status=SolverStatus(d["status"]),
            iterations=d["iterations"],
            flow_solution=np.asarray(d["flow_solution"], dtype=float),
            hematocrit=np.asarray(d["hematocrit"], dtype=float),
            history=[IterationRecord.from_dict(r) for r in d.get("history", [])],
            warnings=d.get("warnings", []),
            error_codes=d.get("error_codes", []),
            metadata=d.get("metadata", {}),
        )
