"""
vascular_hemo: coupled blood flow and hematocrit transport on vessel networks.

Builds the branch / junction / boundary graph of a 1D vessel mesh and solves
the fixed-point coupling between network flow, tissue filtration, wall
compliance, blood viscosity and red cell transport.
"""

__version__ = "0.1.0"

from .core import (
    Mesh1D,
    BoxDomain,
    BoundaryLabel,
    BoundaryCondition,
    BoundarySpec,
    Branch,
    Junction,
    JunctionBranch,
    NetworkTopology,
    FixedPointResult,
    IterationRecord,
    SolverStatus,
    TopologyError,
    LinearSolveError,
    ConfigurationError,
)
from .params import SimulationConfig, ParameterStore, get_preset, list_presets
from .topology import NetworkTopologyBuilder, build_topology
from .physics import VesselComplianceModel, ViscosityModel
from .fem import TissueDiscretization
from .assembly import FlowSystemAssembler, HematocritTransportAssembler
from .solvers import CoupledFixedPointSolver, SparseDirectSolver, SolverState
from .pipeline import SimulationProblem, build_problem, run_simulation

__all__ = [
    "Mesh1D",
    "BoxDomain",
    "BoundaryLabel",
    "BoundaryCondition",
    "BoundarySpec",
    "Branch",
    "Junction",
    "JunctionBranch",
    "NetworkTopology",
    "FixedPointResult",
    "IterationRecord",
    "SolverStatus",
    "TopologyError",
    "LinearSolveError",
    "ConfigurationError",
    "SimulationConfig",
    "ParameterStore",
    "get_preset",
    "list_presets",
    "NetworkTopologyBuilder",
    "build_topology",
    "VesselComplianceModel",
    "ViscosityModel",
    "TissueDiscretization",
    "FlowSystemAssembler",
    "HematocritTransportAssembler",
    "CoupledFixedPointSolver",
    "SparseDirectSolver",
    "SolverState",
    "SimulationProblem",
    "build_problem",
    "run_simulation",
]
