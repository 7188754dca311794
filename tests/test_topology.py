import pytest
import numpy as np

from vascular_hemo.core import (
    Mesh1D,
    BoundaryLabel,
    BoundarySpec,
    NetworkTopology,
    TopologyError,
    RegionIDAllocator,
)
from vascular_hemo.topology import NetworkTopologyBuilder, build_topology, mesh_to_multigraph


def test_y_bifurcation_records(y_mesh, y_specs):
    """Y network has three boundary nodes and one junction."""
    topology = build_topology(y_mesh, y_specs, element_radius=np.full(6, 0.1))

    assert topology.n_branches == 3
    assert len(topology.boundaries) == 3
    assert len(topology.junctions) == 1

    labels = {bc.vertex_id: bc.label for bc in topology.boundaries}
    assert labels == {
        0: BoundaryLabel.INFLOW,
        4: BoundaryLabel.OUTFLOW,
        6: BoundaryLabel.OUTFLOW,
    }
    assert topology.boundary_at(0).value == pytest.approx(0.45)


def test_y_junction_signs_and_weight(y_mesh, y_specs):
    """Parent ends at the junction, daughters start there."""
    topology = build_topology(y_mesh, y_specs, element_radius=np.full(6, 0.1))
    junction = topology.junction_at(2)

    assert junction is not None
    assert junction.label == "JUN"
    assert not junction.is_trivial
    assert junction.sign_of(0) == -1
    assert junction.sign_of(1) == 1
    assert junction.sign_of(2) == 1
    assert junction.weight == pytest.approx(0.3)

    with pytest.raises(KeyError):
        junction.sign_of(7)


def test_region_ids_follow_element_order(y_mesh, y_specs):
    """Records are numbered after the branches in discovery order."""
    topology = build_topology(y_mesh, y_specs)

    assert topology.boundary_at(0).region_id == 3
    assert topology.junction_at(2).region_id == 4
    assert topology.boundary_at(4).region_id == 5
    assert topology.boundary_at(6).region_id == 6
    assert topology.region_ids() == [3, 4, 5, 6]
    assert topology.metadata["first_record_id"] == 3


def test_unregistered_extrema_are_mixed(y_mesh):
    """Boundary nodes without a BoundarySpec get the MIXED label and zero value."""
    topology = build_topology(y_mesh, [BoundarySpec(0, "pressure", 1.0)])

    assert topology.boundary_at(0).label == BoundaryLabel.INFLOW
    for vertex in (4, 6):
        bc = topology.boundary_at(vertex)
        assert bc.label == BoundaryLabel.MIXED
        assert bc.value == 0.0


def test_registered_downstream_end_is_outflow(straight_mesh):
    """The label depends on which end of the element the boundary sits."""
    topology = build_topology(
        straight_mesh, [BoundarySpec(0, hematocrit=0.3), BoundarySpec(4, hematocrit=0.2)]
    )
    assert topology.boundary_at(0).label == BoundaryLabel.INFLOW
    assert topology.boundary_at(4).label == BoundaryLabel.OUTFLOW
    assert topology.junctions == []


def test_trivial_junction_between_two_regions():
    """Two branches in series meet at a junction with two entries."""
    mesh = Mesh1D.from_polylines([[(0, 0, 0), (1, 0, 0)], [(1, 0, 0), (2, 0, 0)]])
    topology = build_topology(mesh, element_radius=[0.1, 0.2])

    assert len(topology.junctions) == 1
    junction = topology.junctions[0]
    assert junction.is_trivial
    assert junction.vertex_id == 1
    assert junction.sign_of(0) == -1
    assert junction.sign_of(1) == 1
    assert junction.weight == pytest.approx(0.3)


def test_star_junction_with_four_branches(star_mesh):
    """All four arms start at the centre vertex."""
    topology = build_topology(star_mesh)

    assert len(topology.boundaries) == 4
    assert len(topology.junctions) == 1
    junction = topology.junctions[0]
    assert junction.vertex_id == 0
    assert len(junction.branches) == 4
    assert all(entry.sign == 1 for entry in junction.branches)
    assert junction.weight == pytest.approx(4.0)


def test_interior_vertices_are_not_classified(y_mesh, y_specs):
    """Degree-2 vertices inside a branch belong to no record."""
    classified = build_topology(y_mesh, y_specs).classified_vertices()

    assert classified == {0: "boundary", 2: "junction", 4: "boundary", 6: "boundary"}


def test_branch_direction_follows_lowest_element():
    """Branch vertices run along element 0 even when it points backwards."""
    mesh = Mesh1D([(0, 0, 0), (1, 0, 0), (2, 0, 0)], [(1, 0), (2, 1)], [0, 0])
    branch = build_topology(mesh).branches[0]

    assert branch.vertices == (2, 1, 0)
    assert branch.elements == (1, 0)
    assert branch.orientation == (1, 1)
    assert branch.first_vertex == 2
    assert branch.last_vertex == 0


def test_branch_orientation_of_reversed_element():
    """An element against the branch direction gets orientation -1."""
    mesh = Mesh1D([(0, 0, 0), (1, 0, 0), (2, 0, 0)], [(0, 1), (2, 1)], [0, 0])
    branch = build_topology(mesh).branches[0]

    assert branch.vertices == (0, 1, 2)
    assert branch.orientation == (1, -1)
    np.testing.assert_allclose(branch.tangents[1], (1.0, 0.0, 0.0))


def test_boundary_spec_on_junction_is_rejected(y_mesh):
    """Boundary nodes must be network extrema."""
    with pytest.raises(TopologyError, match="extrema"):
        build_topology(y_mesh, [BoundarySpec(2)])


def test_duplicate_boundary_spec_is_rejected(y_mesh):
    with pytest.raises(TopologyError, match="twice"):
        NetworkTopologyBuilder(y_mesh, [BoundarySpec(0), BoundarySpec(0)])


def test_disconnected_region_is_rejected():
    """Elements of one region must form a single chain."""
    mesh = Mesh1D(
        [(0, 0, 0), (1, 0, 0), (5, 0, 0), (6, 0, 0)],
        [(0, 1), (2, 3)],
        [0, 0],
    )
    with pytest.raises(TopologyError, match="simple chain"):
        build_topology(mesh)


def test_branch_through_junction_is_rejected():
    """A junction vertex in the middle of a branch is malformed."""
    mesh = Mesh1D(
        [(0, 0, 0), (1, 0, 0), (2, 0, 0), (1, 1, 0)],
        [(0, 1), (1, 2), (1, 3)],
        [0, 0, 1],
    )
    with pytest.raises(TopologyError, match="passes through"):
        build_topology(mesh)


def test_empty_region_is_rejected():
    mesh = Mesh1D([(0, 0, 0), (1, 0, 0), (2, 0, 0)], [(0, 1), (1, 2)], [0, 2])
    with pytest.raises(TopologyError, match="no elements"):
        build_topology(mesh)


def test_element_radius_length_is_checked(y_mesh):
    with pytest.raises(ValueError):
        NetworkTopologyBuilder(y_mesh, element_radius=[0.1, 0.1])


def test_multigraph_keys_are_element_ids(y_mesh):
    G = mesh_to_multigraph(y_mesh)

    assert G.number_of_nodes() == 7
    assert G.number_of_edges() == 6
    assert G.degree(2) == 3
    assert G.edges[2, 3, 2]["region"] == 1


def test_topology_dict_roundtrip_preserves_lookups(y_mesh, y_specs):
    topology = build_topology(y_mesh, y_specs)
    restored = NetworkTopology.from_dict(topology.to_dict())

    assert restored.junction_at(2) == topology.junction_at(2)
    assert restored.boundary_at(4) == topology.boundary_at(4)
    assert restored.branches == topology.branches


def test_summary_lists_records(y_mesh, y_specs):
    summary = build_topology(y_mesh, y_specs).summary()

    assert "3 branches" in summary
    assert "1 junctions" in summary
    assert "INFLOW" in summary


def test_region_allocator_rejects_reuse():
    allocator = RegionIDAllocator(start_id=3)

    assert allocator.next_id() == 3
    assert allocator.claim(7) == 7
    assert allocator.peek_next_id() == 8
    with pytest.raises(TopologyError):
        allocator.claim(7)
    with pytest.raises(TopologyError):
        allocator.claim(1)

    state = allocator.get_state()
    other = RegionIDAllocator()
    other.set_state(state)
    assert other.is_claimed(7)
    assert other.next_id() == 8
