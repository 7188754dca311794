"""Core data structures: mesh, topology records, dof layouts and results."""

from .errors import TopologyError, LinearSolveError, ConfigurationError
from .ids import RegionIDAllocator
from .mesh import Mesh1D
from .domain import BoxDomain
from .network import (
    BoundaryLabel,
    BoundaryCondition,
    BoundarySpec,
    Branch,
    Junction,
    JunctionBranch,
    NetworkTopology,
    FLOW_PRESSURE,
    FLOW_VELOCITY,
)
from .dofs import FlowDofLayout, HematocritDofLayout
from .result import SolverStatus, ErrorCode, IterationRecord, FixedPointResult

__all__ = [
    "TopologyError",
    "LinearSolveError",
    "ConfigurationError",
    "RegionIDAllocator",
    "Mesh1D",
    "BoxDomain",
    "BoundaryLabel",
    "BoundaryCondition",
    "BoundarySpec",
    "Branch",
    "Junction",
    "JunctionBranch",
    "NetworkTopology",
    "FLOW_PRESSURE",
    "FLOW_VELOCITY",
    "FlowDofLayout",
    "HematocritDofLayout",
    "SolverStatus",
    "ErrorCode",
    "IterationRecord",
    "FixedPointResult",
]
