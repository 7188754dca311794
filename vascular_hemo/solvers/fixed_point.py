"""
Outer fixed-point (Picard) iteration coupling flow, wall compliance,
viscosity and hematocrit transport.

One iteration:

1. recompute the vessel geometry from the previous pressures (compliant
   vessels only) and commit it to the parameter store;
2. evaluate the viscosity of every element from the previous hematocrit;
3. assemble and solve the flow system, under-relax with ``underRelax``;
4. assemble and solve the hematocrit system on the new flow, under-relax
   with ``underH``;
5. compute the solution, mass and hematocrit residuals.

The loop stops when all three residuals are below their tolerances or after
``Max_it`` iterations.  Non-convergence is reported in the result.
"""

import time
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

import numpy as np
from tqdm import tqdm

from ..assembly.flow import FlowSystemAssembler
from ..assembly.hematocrit import HematocritTransportAssembler
from ..core.mesh import Mesh1D
from ..core.network import BoundarySpec, NetworkTopology
from ..core.result import ErrorCode, FixedPointResult, IterationRecord, SolverStatus
from ..fem.tissue import TissueDiscretization
from ..fem.vessel import branch_p1_to_vertices, vertex_to_element_average
from ..params.store import GeometryView, ParameterStore
from ..physics.compliance import VesselComplianceModel
from ..physics.viscosity import ViscosityModel
from .linear import SparseDirectSolver


class SolverState(Enum):
    """Phase of the coupled solver."""
    INITIAL_GUESS = "initial_guess"
    GEOMETRY_UPDATE = "geometry_update"
    FLOW_ASSEMBLE_SOLVE = "flow_assemble_solve"
    HEMATOCRIT_ASSEMBLE_SOLVE = "hematocrit_assemble_solve"
    RESIDUAL_CHECK = "residual_check"
    CONVERGED = "converged"
    MAX_ITER_EXCEEDED = "max_iter_exceeded"


def relative_change(new: np.ndarray, old: np.ndarray) -> float:
    """
    ``||new - old|| / ||old||``, or the absolute change when ``old`` is zero.

    A zero reference (e.g. a zero hematocrit seed) does not drop the term:
    a moving iterate must still keep the loop running, and a zero change
    still gives zero.
    """
    change = float(np.linalg.norm(np.asarray(new) - np.asarray(old)))
    reference = float(np.linalg.norm(old))
    if reference == 0.0:
        return change
    return change / reference


class CoupledFixedPointSolver:
    """
    Coupled flow / hematocrit solver.

    Parameters
    ----------
    mesh : Mesh1D
        Vessel mesh (dimensionless coordinates)
    topology : NetworkTopology
        Network records
    store : ParameterStore
        Physical parameters; its geometry is updated during the run
    tissue : TissueDiscretization
        Tissue grid
    boundary_specs : iterable of BoundarySpec
        Flow and hematocrit conditions at registered boundary vertices
    linear_solver : SparseDirectSolver, optional
        Solver for both linear systems
    exporter : optional
        Object with ``write(mesh, point_data, cell_data, name)`` and
        ``write_residuals(history)``; receives checkpoints every
        ``Save_it`` iterations and the final state
    verbose : bool
        Print residuals at every iteration
    progress : bool
        Show a tqdm progress bar over the iterations
    """

    def __init__(
        self,
        mesh: Mesh1D,
        topology: NetworkTopology,
        store: ParameterStore,
        tissue: TissueDiscretization,
        boundary_specs: Iterable[BoundarySpec] = (),
        linear_solver: Optional[SparseDirectSolver] = None,
        exporter=None,
        verbose: bool = False,
        progress: bool = False,
    ):
        self.mesh = mesh
        self.topology = topology
        self.store = store
        self.tissue = tissue
        self.exporter = exporter
        self.verbose = verbose
        self.progress = progress

        config = store.config
        self.flow = FlowSystemAssembler(mesh, topology, tissue, store, boundary_specs)
        self.hematocrit = HematocritTransportAssembler(mesh, topology, store, self.flow.layout)
        self.viscosity = ViscosityModel(store)
        if config.bool_value("COMPLIANT_VESSELS", False):
            self.compliance = VesselComplianceModel(store)
        else:
            self.compliance = None
        self.linear_solver = linear_solver or SparseDirectSolver(
            max_condition=config.real_value("MAX_CONDITION", 1e16)
        )

        self.eps_solution = config.real_value("epsSol", 1e-6)
        self.eps_mass = config.real_value("epsCM", 1e-4)
        self.eps_hematocrit = config.real_value("epsH", 1e-6)
        self.relax_flow = config.real_value("underRelax", 1.0)
        self.relax_hematocrit = config.real_value("underH", 1.0)
        self.max_iterations = config.int_value("Max_it", 100)
        self.save_every = config.int_value("Save_it", 0)
        self.h_start = config.real_value("H_START", 0.45)

        self.state = SolverState.INITIAL_GUESS

    def element_pressures(self, solution: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Vessel and surrounding tissue pressure per element."""
        p_int = vertex_to_element_average(self.mesh, self.flow.vessel_pressure(solution))
        p_ext = vertex_to_element_average(self.mesh, self.flow.tissue_pressure_at_vertices(solution))
        return p_int, p_ext

    def initial_guess(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Flow on the undeformed network with the reference viscosity, then
        hematocrit transported on that flow from a uniform ``H_START`` seed.
        """
        self.state = SolverState.INITIAL_GUESS
        geometry = self.store.geometry()
        viscosity = np.full(self.mesh.n_elements, self.store.mu_v)
        system = self.flow.assemble(geometry, viscosity)
        flow, _ = self.linear_solver.solve(system.matrix, system.rhs)

        seed = np.full(self.hematocrit.layout.total, self.h_start)
        h_system = self.hematocrit.assemble(flow, geometry, previous=seed)
        hematocrit, _ = self.linear_solver.solve(h_system.matrix, h_system.rhs)
        return flow, hematocrit

    def _geometry_update(self, flow: np.ndarray) -> GeometryView:
        self.state = SolverState.GEOMETRY_UPDATE
        if self.compliance is None:
            return self.store.geometry()
        p_int, p_ext = self.element_pressures(flow)
        return self.compliance.update(p_int, p_ext)

    def run(
        self,
        initial_flow: Optional[np.ndarray] = None,
        initial_hematocrit: Optional[np.ndarray] = None,
    ) -> FixedPointResult:
        """
        Iterate until convergence or ``Max_it``.

        Parameters
        ----------
        initial_flow, initial_hematocrit : ndarray, optional
            Starting iterates (default: ``initial_guess()``)

        Returns
        -------
        FixedPointResult
        """
        if initial_flow is None or initial_hematocrit is None:
            guess_flow, guess_h = self.initial_guess()
            flow_old = guess_flow if initial_flow is None else np.asarray(initial_flow, dtype=float)
            h_old = guess_h if initial_hematocrit is None else np.asarray(initial_hematocrit, dtype=float)
        else:
            flow_old = np.asarray(initial_flow, dtype=float)
            h_old = np.asarray(initial_hematocrit, dtype=float)

        history = []
        iteration = 0
        res_solution = res_mass = res_hematocrit = np.inf
        geometry = self.store.geometry()

        bar = tqdm(total=self.max_iterations, desc="Fixed point", unit="iter", disable=not self.progress)
        while (
            res_solution > self.eps_solution
            or abs(res_mass) > self.eps_mass
            or res_hematocrit > self.eps_hematocrit
        ) and iteration < self.max_iterations:
            iteration += 1

            geometry = self._geometry_update(flow_old)
            h_elements = self.hematocrit.element_hematocrit(h_old)
            viscosity = self.viscosity.element_viscosity(h_elements, geometry.radius)

            self.state = SolverState.FLOW_ASSEMBLE_SOLVE
            start = time.time()
            system = self.flow.assemble(geometry, viscosity, previous=flow_old)
            flow_star, cond_flow = self.linear_solver.solve(system.matrix, system.rhs)
            flow_new = self.relax_flow * flow_star + (1.0 - self.relax_flow) * flow_old
            flow_time = time.time() - start

            self.state = SolverState.HEMATOCRIT_ASSEMBLE_SOLVE
            start = time.time()
            h_system = self.hematocrit.assemble(flow_new, geometry, previous=h_old)
            h_star, cond_h = self.linear_solver.solve(h_system.matrix, h_system.rhs)
            h_new = self.relax_hematocrit * h_star + (1.0 - self.relax_hematocrit) * h_old
            hematocrit_time = time.time() - start

            self.state = SolverState.RESIDUAL_CHECK
            res_solution = relative_change(flow_new, flow_old)
            res_hematocrit = relative_change(h_new, h_old)
            res_mass = self.flow.mass_residual(
                system.matrix, system.rhs, flow_new, geometry, previous=flow_old
            )
            record = IterationRecord(
                iteration=iteration,
                residual_solution=res_solution,
                residual_mass=res_mass,
                residual_hematocrit=res_hematocrit,
                total_filtration_rate=self.flow.total_filtration_rate(flow_new, geometry),
                lymphatic_flow_rate=self.flow.lymphatic_flow_rate(flow_new, previous=flow_old),
                condition_flow=cond_flow,
                condition_hematocrit=cond_h,
                geometry_version=geometry.version,
                flow_time=flow_time,
                hematocrit_time=hematocrit_time,
            )
            history.append(record)

            if self.verbose:
                print(
                    f"iter {iteration:4d}  resSol = {res_solution:.3e}  "
                    f"resCM = {res_mass:.3e}  resH = {res_hematocrit:.3e}  "
                    f"TFR = {record.total_filtration_rate:.4e}  "
                    f"time = {flow_time + hematocrit_time:.3f} s"
                )

            if self.exporter is not None and self.save_every > 0 and iteration % self.save_every == 0:
                self.exporter.write(
                    self.mesh, *self.fields(flow_new, h_new, geometry, viscosity), name=f"iter_{iteration:04d}"
                )

            flow_old, h_old = flow_new, h_new
            bar.update(1)
        bar.close()

        converged = (
            res_solution <= self.eps_solution
            and abs(res_mass) <= self.eps_mass
            and res_hematocrit <= self.eps_hematocrit
        )
        self.state = SolverState.CONVERGED if converged else SolverState.MAX_ITER_EXCEEDED
        result = FixedPointResult(
            status=SolverStatus.CONVERGED if converged else SolverStatus.MAX_ITER_EXCEEDED,
            iterations=iteration,
            flow_solution=flow_old,
            hematocrit=h_old,
            history=history,
            metadata={
                "geometry_version": geometry.version,
                "flow_dofs": self.flow.layout.total,
                "hematocrit_dofs": self.hematocrit.layout.total,
                "compliant_vessels": self.compliance is not None,
            },
        )
        if not converged:
            result.add_warning(
                f"Fixed point did not converge in {iteration} iterations "
                f"(resSol = {res_solution:.3e}, resCM = {res_mass:.3e}, resH = {res_hematocrit:.3e})",
                ErrorCode.NOT_CONVERGED,
            )
            if abs(res_mass) > self.eps_mass:
                result.add_warning(
                    f"Tissue mass residual {res_mass:.3e} above epsCM = {self.eps_mass:.1e}",
                    ErrorCode.MASS_RESIDUAL_HIGH,
                )
        if np.any(h_old < 0.0):
            result.add_warning(
                f"Negative hematocrit (min {h_old.min():.3e}); consider increasing THETA",
                ErrorCode.NEGATIVE_HEMATOCRIT,
            )

        if self.exporter is not None:
            h_elements = self.hematocrit.element_hematocrit(h_old)
            viscosity = self.viscosity.element_viscosity(h_elements, geometry.radius)
            self.exporter.write(self.mesh, *self.fields(flow_old, h_old, geometry, viscosity), name="solution")
            self.exporter.write_residuals(history)
        return result

    def fields(
        self,
        flow: np.ndarray,
        hematocrit: np.ndarray,
        geometry: GeometryView,
        viscosity: np.ndarray,
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, np.ndarray]]:
        """Vertex and element fields of a state, keyed by name."""
        point_data = {
            "pressure": self.flow.vessel_pressure(flow),
            "tissue_pressure": self.flow.tissue_pressure_at_vertices(flow),
            "hematocrit": branch_p1_to_vertices(
                self.mesh, self.topology.branches, self.hematocrit.layout, hematocrit
            ),
        }
        cell_data = {
            "velocity": self.flow.layout.element_velocity(flow),
            "radius": np.asarray(geometry.radius),
            "wall_conductivity": self.store.wall_conductivity(geometry),
            "viscosity": np.asarray(viscosity),
        }
        return point_data, cell_data
