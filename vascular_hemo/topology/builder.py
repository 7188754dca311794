"""
Reconstruction of the branch / junction / boundary graph of a vessel mesh.

Every mesh element carries the region id of its branch.  The builder walks
the elements in ascending id order, classifies each endpoint by its number
of incident elements and creates one record per boundary extremum and per
junction.  Region ids of the records are handed out by a
``RegionIDAllocator`` starting right after the branch regions.
"""

from typing import Dict, Iterable, List, Optional

import networkx as nx
import numpy as np

from ..core.errors import TopologyError
from ..core.ids import RegionIDAllocator
from ..core.mesh import Mesh1D
from ..core.network import (
    BoundaryCondition,
    BoundaryLabel,
    BoundarySpec,
    Branch,
    Junction,
    JunctionBranch,
    NetworkTopology,
)


def mesh_to_multigraph(mesh: Mesh1D) -> nx.MultiGraph:
    """
    Incidence graph of a mesh.

    Nodes are mesh vertices (with a ``coord`` attribute), edges are elements
    keyed by element id and carrying their ``region``.
    """
    G = nx.MultiGraph()
    for v, p in enumerate(mesh.points):
        G.add_node(v, coord=p.tolist())
    for e, (i0, i1) in enumerate(mesh.elements):
        G.add_edge(int(i0), int(i1), key=e, element=e, region=int(mesh.element_region[e]))
    return G


def _chain_branch(mesh: Mesh1D, region: int, elements: np.ndarray) -> Branch:
    """Order the elements of one region into a simple chain."""
    sub = nx.MultiGraph()
    for e in elements:
        i0, i1 = mesh.elements[e]
        sub.add_edge(int(i0), int(i1), key=int(e))

    n_el = len(elements)
    degrees = dict(sub.degree())
    if (
        sub.number_of_nodes() != n_el + 1
        or not nx.is_connected(sub)
        or max(degrees.values()) > 2
    ):
        raise TopologyError(f"Branch {region} is not a simple chain of elements")

    ends = sorted(v for v, deg in degrees.items() if deg == 1)
    vertices = [ends[0]]
    chain: List[int] = []
    previous = None
    while len(chain) < n_el:
        current = vertices[-1]
        step = [(w, key) for _, w, key in sub.edges(current, keys=True) if key != previous]
        w, key = step[0]
        chain.append(key)
        vertices.append(w)
        previous = key

    # branch direction follows the lowest-id element
    k_min = chain.index(int(min(elements)))
    if int(mesh.elements[chain[k_min], 0]) != vertices[k_min]:
        chain.reverse()
        vertices.reverse()

    orientation = tuple(
        1 if int(mesh.elements[e, 0]) == vertices[k] else -1 for k, e in enumerate(chain)
    )
    element_tangents = mesh.element_tangents()
    tangents = tuple(
        tuple(float(c) for c in s * element_tangents[e]) for e, s in zip(chain, orientation)
    )
    return Branch(
        index=region,
        elements=tuple(chain),
        vertices=tuple(vertices),
        orientation=orientation,
        tangents=tangents,
    )


class NetworkTopologyBuilder:
    """
    Builds a ``NetworkTopology`` from a region-labelled 1D mesh.

    Parameters
    ----------
    mesh : Mesh1D
        Vessel mesh
    boundary_specs : iterable of BoundarySpec
        Expected boundary nodes; their extremum becomes INFLOW or OUTFLOW,
        every other extremum is MIXED
    element_radius : array-like, optional
        Radius per element, used for junction weights (default 1)
    n_branches : int, optional
        Number of branch regions (default: largest region id + 1)
    """

    def __init__(
        self,
        mesh: Mesh1D,
        boundary_specs: Iterable[BoundarySpec] = (),
        element_radius=None,
        n_branches: Optional[int] = None,
    ):
        self.mesh = mesh
        self.specs: Dict[int, BoundarySpec] = {}
        for spec in boundary_specs:
            if spec.vertex_id in self.specs:
                raise TopologyError(f"Boundary vertex {spec.vertex_id} is registered twice")
            self.specs[spec.vertex_id] = spec
        if element_radius is None:
            self.element_radius = np.ones(mesh.n_elements)
        else:
            self.element_radius = np.asarray(element_radius, dtype=float).reshape(-1)
            if self.element_radius.shape != (mesh.n_elements,):
                raise ValueError("element_radius must hold one value per element")
        self.n_branches = mesh.n_regions if n_branches is None else int(n_branches)
        self.graph = mesh_to_multigraph(mesh)

    def _build_branches(self) -> List[Branch]:
        regions = self.mesh.element_region
        bad = np.flatnonzero((regions < 0) | (regions >= self.n_branches))
        if bad.size:
            e = int(bad[0])
            raise TopologyError(f"Element {e} belongs to unknown region {int(regions[e])}")
        branches = []
        for b in range(self.n_branches):
            elements = self.mesh.elements_in_region(b)
            if elements.size == 0:
                raise TopologyError(f"Branch {b} has no elements")
            branches.append(_chain_branch(self.mesh, b, elements))
        return branches

    def _check_specs(self) -> None:
        for vertex in self.specs:
            if not 0 <= vertex < self.mesh.n_points:
                raise TopologyError(f"Boundary vertex {vertex} is not a mesh vertex")
            if self.graph.degree(vertex) != 1:
                raise TopologyError(
                    f"Boundary vertex {vertex} has {self.graph.degree(vertex)} incident "
                    "elements; boundary nodes must be network extrema"
                )

    def build(self) -> NetworkTopology:
        """
        Classify every branch endpoint.

        Returns
        -------
        NetworkTopology
            Branches, boundary records and junction records

        Raises
        ------
        TopologyError
            For malformed meshes (see module docstring)
        """
        branches = self._build_branches()
        self._check_specs()
        mean_radius = [float(np.mean(self.element_radius[list(b.elements)])) for b in branches]

        allocator = RegionIDAllocator(start_id=self.n_branches)
        boundaries: Dict[int, BoundaryCondition] = {}
        drafts: Dict[int, dict] = {}

        for e, (i0, i1) in enumerate(self.mesh.elements):
            region = int(self.mesh.element_region[e])
            for position, vertex in enumerate((int(i0), int(i1))):
                degree = self.graph.degree(vertex)

                if degree == 1:
                    if vertex in boundaries:
                        continue
                    spec = self.specs.get(vertex)
                    if spec is None:
                        label, value = BoundaryLabel.MIXED, 0.0
                    else:
                        label = BoundaryLabel.INFLOW if position == 0 else BoundaryLabel.OUTFLOW
                        value = spec.hematocrit
                    boundaries[vertex] = BoundaryCondition(
                        label=label,
                        value=value,
                        vertex_id=vertex,
                        region_id=allocator.next_id(),
                        branches=(region,),
                    )
                    continue

                incident_regions = {
                    data["region"] for _, _, data in self.graph.edges(vertex, data=True)
                }
                if degree == 2 and len(incident_regions) == 1:
                    continue

                draft = drafts.get(vertex)
                if draft is None:
                    draft = {"region_id": allocator.next_id(), "branches": [], "weight": 0.0}
                    drafts[vertex] = draft
                if any(entry.branch == region for entry in draft["branches"]):
                    continue

                branch = branches[region]
                if vertex == branch.last_vertex:
                    sign = -1
                elif vertex == branch.first_vertex:
                    sign = 1
                else:
                    raise TopologyError(
                        f"Branch {region} passes through junction vertex {vertex}"
                    )
                draft["branches"].append(JunctionBranch(region, sign))
                draft["weight"] += mean_radius[region]

        junctions = []
        for vertex, draft in drafts.items():
            if len(draft["branches"]) < 2:
                raise TopologyError(f"Junction at vertex {vertex} joins fewer than two branches")
            junctions.append(
                Junction(
                    weight=draft["weight"],
                    vertex_id=vertex,
                    region_id=draft["region_id"],
                    branches=tuple(draft["branches"]),
                )
            )

        return NetworkTopology(
            branches=branches,
            boundaries=sorted(boundaries.values(), key=lambda bc: bc.region_id),
            junctions=sorted(junctions, key=lambda j: j.region_id),
            metadata={
                "n_vertices": self.mesh.n_points,
                "n_elements": self.mesh.n_elements,
                "first_record_id": self.n_branches,
            },
        )


def build_topology(
    mesh: Mesh1D,
    boundary_specs: Iterable[BoundarySpec] = (),
    element_radius=None,
) -> NetworkTopology:
    """Shortcut for ``NetworkTopologyBuilder(...).build()``."""
    return NetworkTopologyBuilder(mesh, boundary_specs, element_radius).build()
