"""
Monolithic flow system of the vessel network and the tissue block.

Unknown layout ``[Ut | Pt | Uv | Pv]`` (see ``FlowDofLayout``).  Rows:

- tissue faces: Darcy law ``(h / kt) u_f + p_right - p_left = 0``;
- tissue cells: net outflux + lymphatic drainage - vessel leakage = 0;
- vessel elements: ``c_e L_e u_e + A_e (p_i1 - p_i0) = 0`` with
  ``c_e = resistance_e * mu_e``;
- vessel vertices: signed ``A u`` balance of the incident elements plus the
  leakage ``q_k (p_k - p_t - sigma (pi_v - pi_t))``; at boundary vertices the
  row is replaced by the flow boundary condition.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import numpy as np
import scipy.sparse as sp

from ..core.dofs import FlowDofLayout
from ..core.mesh import Mesh1D
from ..core.network import FLOW_PRESSURE, BoundarySpec, NetworkTopology
from ..fem.tissue import TissueDiscretization
from ..fem.vessel import element_to_vertex_average, lumped_vertex_coefficient
from ..params.store import GeometryView, ParameterStore
from ..physics.lymphatics import LymphaticDrainage


@dataclass
class FlowSystem:
    """Assembled flow matrix and right-hand side."""

    matrix: sp.csr_matrix
    rhs: np.ndarray
    exchange: np.ndarray  # lumped wall conductivity per vertex
    geometry_version: int


class _Triplets:
    """COO accumulator; duplicate entries are summed on conversion."""

    def __init__(self):
        self.rows: List[np.ndarray] = []
        self.cols: List[np.ndarray] = []
        self.vals: List[np.ndarray] = []

    def add(self, rows, cols, vals) -> None:
        rows = np.atleast_1d(np.asarray(rows, dtype=int))
        cols = np.atleast_1d(np.asarray(cols, dtype=int))
        vals = np.broadcast_to(np.asarray(vals, dtype=float), rows.shape)
        self.rows.append(rows)
        self.cols.append(cols)
        self.vals.append(np.array(vals))

    def add_block(self, block: sp.spmatrix, row_offset: int, col_offset: int) -> None:
        coo = sp.coo_matrix(block)
        self.add(coo.row + row_offset, coo.col + col_offset, coo.data)

    def tocsr(self, n: int) -> sp.csr_matrix:
        if not self.rows:
            return sp.csr_matrix((n, n))
        return sp.coo_matrix(
            (np.concatenate(self.vals), (np.concatenate(self.rows), np.concatenate(self.cols))),
            shape=(n, n),
        ).tocsr()


class FlowSystemAssembler:
    """
    Assembles the coupled vessel / tissue flow system.

    Parameters
    ----------
    mesh : Mesh1D
        Vessel mesh (dimensionless coordinates)
    topology : NetworkTopology
        Branches and boundary records
    tissue : TissueDiscretization
        Tissue grid
    store : ParameterStore
        Physical parameters
    boundary_specs : iterable of BoundarySpec
        Flow conditions at registered boundary vertices; the other boundary
        extrema get the reference pressure ``P0``
    """

    def __init__(
        self,
        mesh: Mesh1D,
        topology: NetworkTopology,
        tissue: TissueDiscretization,
        store: ParameterStore,
        boundary_specs: Iterable[BoundarySpec] = (),
    ):
        self.mesh = mesh
        self.topology = topology
        self.tissue = tissue
        self.store = store
        n_faces, n_cells = tissue.counts()
        self.layout = FlowDofLayout(n_faces, n_cells, topology.branches, mesh.n_points)
        self.specs: Dict[int, BoundarySpec] = {s.vertex_id: s for s in boundary_specs}

        config = store.config
        self.reference_pressure = config.real_value("P0", 0.0)
        self.darcy = tissue.darcy_blocks(store.kt, config.real_value("P_T0", 0.0))
        self.lymph = LymphaticDrainage(store)

        self.lengths = mesh.element_lengths()
        self.vertex_cell = tissue.locate(mesh.points)
        self.vertex_averaging = tissue.averaging_matrix(mesh.points)
        self.boundary_vertices = np.array(topology.boundary_vertices(), dtype=int)
        self.vertex_reflection = element_to_vertex_average(mesh, store.reflection)
        self.oncotic_jump = store.pi_v - store.pi_t
        self._static = self._tissue_triplets()

    def _tissue_triplets(self) -> _Triplets:
        lay = self.layout
        t = _Triplets()
        faces = np.arange(lay.n_ut)
        t.add(faces, faces, self.darcy.face_mass)
        t.add_block(self.darcy.gradient, lay.ut.start, lay.pt.start)
        t.add_block(self.darcy.divergence, lay.pt.start, lay.ut.start)
        if self.lymph.linear:
            cells = lay.pt.start + np.arange(lay.n_pt)
            t.add(cells, cells, self.lymph.coefficient * self.tissue.cell_volume)
        return t

    def exchange_coefficient(self, geometry: GeometryView) -> np.ndarray:
        """Wall conductivity lumped on the vertices (zero at boundary vertices)."""
        density = self.store.wall_conductivity(geometry)
        return lumped_vertex_coefficient(self.mesh, density, exclude=self.boundary_vertices)

    def assemble(
        self,
        geometry: GeometryView,
        viscosity: np.ndarray,
        previous: Optional[np.ndarray] = None,
    ) -> FlowSystem:
        """
        Assemble the flow system for a geometry and element viscosities.

        Parameters
        ----------
        geometry : GeometryView
            Committed vessel geometry
        viscosity : ndarray
            Blood viscosity per element [Pa s]
        previous : ndarray, optional
            Previous flow iterate (sigmoid lymphatic drainage)

        Returns
        -------
        FlowSystem
        """
        lay = self.layout
        mesh = self.mesh
        n = lay.total
        viscosity = np.asarray(viscosity, dtype=float)
        if viscosity.shape != (mesh.n_elements,):
            raise ValueError("viscosity must hold one value per element")

        t = _Triplets()
        t.rows, t.cols, t.vals = list(self._static.rows), list(self._static.cols), list(self._static.vals)
        rhs = np.zeros(n)
        rhs[lay.ut] = self.darcy.face_rhs

        # vessel element rows
        uv = lay.uv.start + lay.uv_position
        i0 = lay.pv.start + mesh.elements[:, 0]
        i1 = lay.pv.start + mesh.elements[:, 1]
        area = np.asarray(geometry.area)
        t.add(uv, uv, geometry.resistance * viscosity * self.lengths)
        t.add(uv, i1, area)
        t.add(uv, i0, -area)

        # vessel vertex rows: mass balance of the incident elements
        is_boundary = np.zeros(mesh.n_points, dtype=bool)
        is_boundary[self.boundary_vertices] = True
        for column, sign in ((0, 1.0), (1, -1.0)):
            vertices = mesh.elements[:, column]
            keep = ~is_boundary[vertices]
            t.add(lay.pv.start + vertices[keep], uv[keep], sign * area[keep])

        # leakage through the vessel wall
        q = self.exchange_coefficient(geometry)
        leaking = np.flatnonzero(q > 0.0)
        pv = lay.pv.start + leaking
        pt = lay.pt.start + self.vertex_cell[leaking]
        ql = q[leaking]
        oncotic = ql * self.vertex_reflection[leaking] * self.oncotic_jump
        t.add(pv, pv, ql)
        t.add(pv, pt, -ql)
        t.add(pt, pt, ql)
        t.add(pt, pv, -ql)
        np.add.at(rhs, pv, oncotic)
        np.add.at(rhs, pt, -oncotic)

        # lymphatic drainage
        volume = self.tissue.cell_volume
        if self.lymph.linear:
            rhs[lay.pt] += self.lymph.coefficient * volume * self.lymph.lymph_pressure
        else:
            p_tissue = np.zeros(lay.n_pt) if previous is None else np.asarray(previous)[lay.pt]
            rhs[lay.pt] -= volume * self.lymph.rate(p_tissue)

        # boundary conditions
        for bc in self.topology.boundaries:
            k = bc.vertex_id
            row = lay.pv.start + k
            spec = self.specs.get(k)
            if spec is None or spec.flow_kind == FLOW_PRESSURE:
                t.add(row, row, 1.0)
                rhs[row] = self.reference_pressure if spec is None else spec.flow_value
            else:
                e = mesh.elements_of_vertex(k)[0]
                inward = 1.0 if mesh.elements[e, 0] == k else -1.0
                t.add(row, lay.uv_index(e), inward * area[e])
                rhs[row] = area[e] * spec.flow_value

        return FlowSystem(
            matrix=t.tocsr(n),
            rhs=rhs,
            exchange=q,
            geometry_version=geometry.version,
        )

    def vessel_pressure(self, solution: np.ndarray) -> np.ndarray:
        return np.asarray(solution)[self.layout.pv]

    def tissue_pressure(self, solution: np.ndarray) -> np.ndarray:
        return np.asarray(solution)[self.layout.pt]

    def tissue_pressure_at_vertices(self, solution: np.ndarray) -> np.ndarray:
        return self.vertex_averaging @ self.tissue_pressure(solution)

    def leakage(self, solution: np.ndarray, geometry: Optional[GeometryView] = None) -> np.ndarray:
        """Fluid leaving the vessels through the wall at every vertex."""
        geometry = geometry or self.store.geometry()
        q = self.exchange_coefficient(geometry)
        pv = self.vessel_pressure(solution)
        pt = self.tissue_pressure_at_vertices(solution)
        return q * (pv - pt - self.vertex_reflection * self.oncotic_jump)

    def total_filtration_rate(self, solution: np.ndarray, geometry: Optional[GeometryView] = None) -> float:
        """Total flow leaving the network through the vessel walls (TFR)."""
        return float(self.leakage(solution, geometry).sum())

    def lymphatic_flow_rate(self, solution: np.ndarray, previous: Optional[np.ndarray] = None) -> float:
        """
        Total lymphatic drainage.

        The sigmoid law is evaluated on ``previous`` when given, matching the
        lag used during assembly.
        """
        source = solution if previous is None or self.lymph.linear else previous
        rate = self.lymph.rate(self.tissue_pressure(source))
        return float(rate.sum() * self.tissue.cell_volume)

    def mass_residual(
        self,
        matrix: sp.spmatrix,
        rhs: np.ndarray,
        solution: np.ndarray,
        geometry: Optional[GeometryView] = None,
        previous: Optional[np.ndarray] = None,
    ) -> float:
        """
        Tissue mass imbalance relative to the total filtration rate.

        Sum over the tissue pressure rows of ``A U - F`` divided by TFR; zero
        when TFR is zero.  The sigmoid drainage in ``F`` was evaluated on
        ``previous``; it is replaced here by the drainage of ``solution``, so
        the residual measures the lag of the lymphatic term.
        """
        tfr = self.total_filtration_rate(solution, geometry)
        if tfr == 0.0:
            return 0.0
        residual = (matrix @ solution - rhs)[self.layout.pt]
        if not self.lymph.linear:
            p_old = np.zeros(self.layout.n_pt) if previous is None else self.tissue_pressure(previous)
            drainage = self.lymph.rate(self.tissue_pressure(solution)) - self.lymph.rate(p_old)
            residual = residual + self.tissue.cell_volume * drainage
        return float(residual.sum() / tfr)
