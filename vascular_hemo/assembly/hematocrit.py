"""
Hematocrit transport on the vessel network.

Steady advection of the discharge hematocrit along every branch with P1
elements:

- conservative advection ``-int Q H phi'`` with ``Q = A u`` in the branch
  direction, plus artificial diffusion ``D A H' phi'`` where
  ``D = THETA / 2 * max_b(max |u_b| * max h_b)``;
- at a downstream (outflow) branch end the flux ``Q H`` leaves the branch;
- at a boundary inflow end the prescribed hematocrit enters, with an
  optional Robin penalty ``BETA_H * A (H - H_bc)``;
- at a junction the red cell flux of the incoming branches is shared among
  the outgoing branches (``phase_separation.partition``).
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import scipy.sparse as sp

from ..core.dofs import FlowDofLayout, HematocritDofLayout
from ..core.mesh import Mesh1D
from ..core.network import NetworkTopology
from ..fem.vessel import advection_matrix, branch_p1_to_elements, diffusion_matrix
from ..params.store import GeometryView, ParameterStore
from ..physics.phase_separation import partition


@dataclass
class HematocritSystem:
    """Assembled hematocrit matrix, right-hand side and diagnostics."""

    matrix: sp.csr_matrix
    rhs: np.ndarray
    diffusivity: float
    peclet: float


@dataclass
class _BranchEnd:
    dof: int
    normal_flow: float  # Q . n, positive when blood leaves the branch
    element: int


class HematocritTransportAssembler:
    """
    Assembles the hematocrit system for a given flow solution.

    Parameters
    ----------
    mesh : Mesh1D
        Vessel mesh
    topology : NetworkTopology
        Branches, boundaries and junctions
    store : ParameterStore
        Physical parameters and configuration
    flow_layout : FlowDofLayout
        Layout of the flow unknown, to read the vessel velocities
    """

    def __init__(
        self,
        mesh: Mesh1D,
        topology: NetworkTopology,
        store: ParameterStore,
        flow_layout: FlowDofLayout,
    ):
        self.mesh = mesh
        self.topology = topology
        self.store = store
        self.flow_layout = flow_layout
        self.layout = HematocritDofLayout(topology.branches)
        self.lengths = mesh.element_lengths()

        config = store.config
        self.theta = config.real_value("THETA", 1.0)
        self.beta = config.real_value("BETA_H", 0.0)
        self.phase_separation = config.bool_value("PHASE_SEPARATION", False)
        self.h_start = config.real_value("H_START", 0.45)

        # branch radii in the units of the junction weights
        unit = 1.0 if store.dimensionless else store.length_scale
        self.branch_weights = np.array([
            store.branch_mean_radius(b.index, store.undeformed) * unit for b in topology.branches
        ])

    def branch_flows(self, solution: np.ndarray, geometry: GeometryView) -> List[np.ndarray]:
        """Blood flow of every element along its branch direction, per branch."""
        velocity = self.flow_layout.element_velocity(solution)
        flows = []
        for b in self.topology.branches:
            elements = list(b.elements)
            flows.append(np.asarray(b.orientation) * geometry.area[elements] * velocity[elements])
        return flows

    def artificial_diffusivity(self, solution: np.ndarray) -> float:
        velocity = np.abs(self.flow_layout.element_velocity(solution))
        largest = 0.0
        for b in self.topology.branches:
            elements = list(b.elements)
            largest = max(largest, velocity[elements].max() * self.lengths[elements].max())
        return 0.5 * self.theta * largest

    def _ends(self, flows: List[np.ndarray]) -> List[Tuple[_BranchEnd, _BranchEnd]]:
        ends = []
        for b, q in zip(self.topology.branches, flows):
            first = _BranchEnd(self.layout.first(b.index), -q[0], b.elements[0])
            last = _BranchEnd(self.layout.last(b.index), q[-1], b.elements[-1])
            ends.append((first, last))
        return ends

    def assemble(
        self,
        solution: np.ndarray,
        geometry: GeometryView,
        previous: Optional[np.ndarray] = None,
    ) -> HematocritSystem:
        """
        Assemble the hematocrit system.

        Parameters
        ----------
        solution : ndarray
            Flow solution providing the vessel velocities
        geometry : GeometryView
            Vessel geometry matching ``solution``
        previous : ndarray, optional
            Previous hematocrit iterate (parent hematocrit of the plasma
            skimming law); ``H_START`` everywhere when omitted

        Returns
        -------
        HematocritSystem
        """
        n = self.layout.total
        if previous is None:
            previous = np.full(n, self.h_start)
        rows, cols, vals = [], [], []
        rhs = np.zeros(n)

        def add(r, c, v):
            rows.append(r)
            cols.append(c)
            vals.append(v)

        flows = self.branch_flows(solution, geometry)
        diffusivity = self.artificial_diffusivity(solution)
        area = np.asarray(geometry.area)

        for b, q in zip(self.topology.branches, flows):
            offset = self.layout.first(b.index)
            for k, e in enumerate(b.elements):
                local = advection_matrix(q[k]) + diffusion_matrix(diffusivity * area[e], self.lengths[e])
                for a in range(2):
                    for c in range(2):
                        add(offset + k + a, offset + k + c, local[a, c])

        ends = self._ends(flows)
        for first, last in ends:
            for end in (first, last):
                if end.normal_flow > 0.0:
                    add(end.dof, end.dof, end.normal_flow)

        for bc in self.topology.boundaries:
            b = bc.branches[0]
            first, last = ends[b]
            end = first if self.topology.branches[b].first_vertex == bc.vertex_id else last
            if end.normal_flow > 0.0:
                continue
            penalty = self.beta * area[end.element]
            add(end.dof, end.dof, penalty)
            rhs[end.dof] += (-end.normal_flow + penalty) * bc.value

        for junction in self.topology.junctions:
            incoming = []
            incoming_branches = []
            outgoing = []
            for entry in junction.branches:
                first, last = ends[entry.branch]
                end = last if entry.sign < 0 else first
                if end.normal_flow > 0.0:
                    incoming.append(end)
                    incoming_branches.append(entry.branch)
                else:
                    outgoing.append((entry.branch, end))
            if not incoming or not outgoing:
                continue

            radii, weight = self.outgoing_weights(junction, incoming_branches, [b for b, _ in outgoing])
            shares = self._shares(incoming, outgoing, radii, weight, geometry, previous)
            for share, (_, out_end) in zip(shares, outgoing):
                for in_end in incoming:
                    add(out_end.dof, in_end.dof, -share * in_end.normal_flow)

        matrix = sp.coo_matrix((vals, (rows, cols)), shape=(n, n)).tocsr()
        return HematocritSystem(
            matrix=matrix,
            rhs=rhs,
            diffusivity=diffusivity,
            peclet=self._peclet(solution, diffusivity),
        )

    def outgoing_weights(self, junction, incoming_branches, outgoing_branches) -> Tuple[np.ndarray, float]:
        """Radii of the outgoing branches and the junction weight left to them."""
        radii = self.branch_weights[list(outgoing_branches)]
        weight = junction.weight - float(self.branch_weights[list(incoming_branches)].sum())
        return radii, weight

    def _shares(
        self, incoming, outgoing, radii, weight, geometry: GeometryView, previous: np.ndarray
    ) -> np.ndarray:
        outflows = [-end.normal_flow for _, end in outgoing]
        if not self.phase_separation or len(outgoing) != 2:
            return partition(outflows, radii, weight)

        influx = np.array([end.normal_flow for end in incoming])
        parent = incoming[int(np.argmax(influx))]
        parent_h = float(np.dot(influx, previous[[end.dof for end in incoming]]) / influx.sum())
        diameters = self.store.diameter_um(geometry.radius)
        return partition(
            outflows,
            radii,
            weight,
            parent_diameter=float(diameters[parent.element]),
            daughter_diameters=[float(diameters[end.element]) for _, end in outgoing],
            parent_hematocrit=parent_h,
            phase_separation=True,
        )

    def _peclet(self, solution: np.ndarray, diffusivity: float) -> float:
        velocity = np.abs(self.flow_layout.element_velocity(solution))
        largest = float((velocity * self.lengths).max()) if velocity.size else 0.0
        if diffusivity <= 0.0:
            return float("inf") if largest > 0.0 else 0.0
        return largest / diffusivity

    def element_hematocrit(self, hematocrit: np.ndarray) -> np.ndarray:
        """Element means of the hematocrit, indexed by element id."""
        return branch_p1_to_elements(
            self.topology.branches, self.layout, hematocrit, self.mesh.n_elements
        )
