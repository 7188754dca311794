"""
End-to-end driver: mesh and configuration in, coupled solution out.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np

from .core.domain import BoxDomain
from .core.mesh import Mesh1D
from .core.network import BoundarySpec, NetworkTopology
from .core.result import FixedPointResult
from .fem.tissue import TissueDiscretization
from .io.exporters import VtkExporter
from .params.config import SimulationConfig
from .params.store import ParameterStore
from .params.validation import validate_and_warn
from .solvers.fixed_point import CoupledFixedPointSolver
from .topology.builder import NetworkTopologyBuilder


@dataclass
class SimulationProblem:
    """Everything the coupled solver needs, built once."""

    mesh: Mesh1D
    topology: NetworkTopology
    store: ParameterStore
    tissue: TissueDiscretization
    boundary_specs: Tuple[BoundarySpec, ...]
    config: SimulationConfig

    def make_solver(self, exporter=None, verbose: bool = False, progress: bool = False) -> CoupledFixedPointSolver:
        return CoupledFixedPointSolver(
            self.mesh,
            self.topology,
            self.store,
            self.tissue,
            self.boundary_specs,
            exporter=exporter,
            verbose=verbose,
            progress=progress,
        )


def build_problem(
    mesh: Mesh1D,
    config: SimulationConfig,
    boundary_specs: Sequence[BoundarySpec] = (),
    element_data: Optional[Dict[str, np.ndarray]] = None,
    tissue_domain: Optional[BoxDomain] = None,
    tissue_shape: Sequence[int] = (2, 2, 2),
) -> SimulationProblem:
    """
    Build topology, parameters and tissue grid for a network.

    Parameters
    ----------
    mesh : Mesh1D
        Vessel mesh, coordinates in units of ``d``
    config : SimulationConfig
        Simulation parameters
    boundary_specs : sequence of BoundarySpec
        Registered boundary nodes
    element_data : dict, optional
        Per-element radius, thickness, Young modulus, wall permeability,
        reflection coefficient
    tissue_domain : BoxDomain, optional
        Tissue block (default: bounding box of the mesh padded by 10 %)
    tissue_shape : sequence of int
        Tissue cells along x, y, z

    Returns
    -------
    SimulationProblem
    """
    validate_and_warn(config)
    specs = tuple(boundary_specs)
    element_data = dict(element_data or {})

    radius = element_data.get("radius")
    if radius is None:
        radius = np.full(mesh.n_elements, config.real_value("RADIUS"))
    topology = NetworkTopologyBuilder(mesh, specs, element_radius=radius).build()

    store = ParameterStore(mesh, topology, config, element_data)
    domain = tissue_domain or BoxDomain.around_points(mesh.points)
    tissue = TissueDiscretization(domain, tissue_shape)

    return SimulationProblem(
        mesh=mesh,
        topology=topology,
        store=store,
        tissue=tissue,
        boundary_specs=specs,
        config=config,
    )


def run_simulation(
    mesh: Mesh1D,
    config: SimulationConfig,
    boundary_specs: Sequence[BoundarySpec] = (),
    element_data: Optional[Dict[str, np.ndarray]] = None,
    tissue_domain: Optional[BoxDomain] = None,
    tissue_shape: Sequence[int] = (2, 2, 2),
    output_dir: Optional[Union[str, Path]] = None,
    report_path: Optional[Union[str, Path]] = None,
    verbose: bool = False,
    progress: bool = False,
) -> Tuple[FixedPointResult, SimulationProblem]:
    """
    Full pipeline:

    - Build the network topology and parameter store
    - Run the coupled fixed-point solver
    - Write VTK files and the residual table (optional)
    - Save a JSON report with the result, topology, tissue grid and
      configuration (optional)

    Returns
    -------
    result : FixedPointResult
        Coupled solution and residual history
    problem : SimulationProblem
        The problem that was solved
    """
    problem = build_problem(mesh, config, boundary_specs, element_data, tissue_domain, tissue_shape)
    if verbose:
        print(problem.topology.summary())
        print(problem.store.summary())

    exporter = VtkExporter(output_dir) if output_dir is not None else None
    solver = problem.make_solver(exporter=exporter, verbose=verbose, progress=progress)
    result = solver.run()

    if exporter is not None:
        print("Solution written to:", exporter.output_dir)

    if report_path is not None:
        report = {
            "result": result.to_dict(),
            "topology": problem.topology.to_dict(),
            "tissue": {
                "domain": problem.tissue.domain.to_dict(),
                "shape": list(problem.tissue.shape),
            },
            "config": config.to_dict(),
        }
        with open(Path(report_path), "w") as f:
            json.dump(report, f, indent=2)

    return result, problem
