import pytest
import numpy as np

from vascular_hemo.core import Mesh1D, BoxDomain, TopologyError
from vascular_hemo.core.dofs import FlowDofLayout, HematocritDofLayout
from vascular_hemo.fem import (
    TissueDiscretization,
    vertex_to_element_average,
    element_to_vertex_average,
    lumped_vertex_coefficient,
    discrete_curvature,
)
from vascular_hemo.topology import build_topology


def test_from_polylines_merges_shared_points(y_mesh):
    """Branches meeting at a point share one vertex."""
    assert y_mesh.n_points == 7
    assert y_mesh.n_elements == 6
    assert y_mesh.n_regions == 3
    np.testing.assert_array_equal(y_mesh.element_region, [0, 0, 1, 1, 2, 2])
    np.testing.assert_array_equal(y_mesh.vertex_degree(), [1, 2, 3, 2, 1, 2, 1])
    assert y_mesh.elements_of_vertex(2) == [1, 2, 4]


def test_element_geometry(straight_mesh):
    np.testing.assert_allclose(straight_mesh.element_lengths(), 0.25)
    np.testing.assert_allclose(straight_mesh.element_tangents(), [[1.0, 0.0, 0.0]] * 4)
    np.testing.assert_allclose(straight_mesh.element_midpoints()[0], [0.125, 0.0, 0.0])


def test_element_needs_two_endpoints():
    with pytest.raises(TopologyError, match="exactly 2"):
        Mesh1D([(0, 0, 0), (1, 0, 0), (2, 0, 0)], [(0, 1, 2)], [0])


def test_degenerate_element_is_rejected():
    with pytest.raises(TopologyError, match="degenerate"):
        Mesh1D([(0, 0, 0), (1, 0, 0)], [(1, 1)], [0])


def test_unknown_vertex_is_rejected():
    with pytest.raises(TopologyError, match="unknown vertex"):
        Mesh1D([(0, 0, 0), (1, 0, 0)], [(0, 5)], [0])


def test_mesh_dict_roundtrip(y_mesh):
    restored = Mesh1D.from_dict(y_mesh.to_dict())

    np.testing.assert_allclose(restored.points, y_mesh.points)
    np.testing.assert_array_equal(restored.elements, y_mesh.elements)
    np.testing.assert_array_equal(restored.element_region, y_mesh.element_region)


def test_box_around_points_is_padded():
    box = BoxDomain.around_points([(0, 0, 0), (2, 1, 0)], margin=0.1)

    assert box.get_bounds() == pytest.approx((-0.2, 2.2, -0.2, 1.2, -0.2, 0.2))
    assert box.contains((1.0, 0.5, 0.0))
    assert not box.contains((3.0, 0.5, 0.0))
    np.testing.assert_allclose(box.project_inside([(5.0, 0.0, 0.0)]), [[2.2, 0.0, 0.0]])


def test_box_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        BoxDomain(1.0, 0.0, 0.0, 1.0, 0.0, 1.0)


def test_tissue_grid_counts():
    """2 x 2 x 2 cells have 3 * 12 faces."""
    tissue = TissueDiscretization(BoxDomain(0, 2, 0, 2, 0, 2), shape=(2, 2, 2))

    assert tissue.n_cells == 8
    assert tissue.n_faces == 36
    assert len(tissue.boundary_faces) == 24
    assert tissue.cell_volume == pytest.approx(1.0)
    np.testing.assert_array_equal(tissue.locate([(0.5, 0.5, 0.5), (1.5, 1.5, 1.5)]), [0, 7])


def test_tissue_constant_pressure_is_equilibrium():
    """A uniform pressure equal to the block pressure gives zero face fluxes."""
    tissue = TissueDiscretization(BoxDomain(0, 1, 0, 1, 0, 1), shape=(2, 3, 2))
    blocks = tissue.darcy_blocks(kt=2.0, boundary_pressure=0.7)
    pressure = np.full(tissue.n_cells, 0.7)

    residual = blocks.gradient @ pressure - blocks.face_rhs
    np.testing.assert_allclose(residual, 0.0, atol=1e-14)


def test_divergence_is_minus_area_weighted_transpose():
    tissue = TissueDiscretization(BoxDomain(0, 1, 0, 2, 0, 3), shape=(2, 2, 2))
    blocks = tissue.darcy_blocks(kt=1.0)

    expected = -(blocks.gradient.toarray() * tissue.face_area[:, None]).T
    np.testing.assert_allclose(blocks.divergence.toarray(), expected)


def test_vertex_element_averages(straight_mesh):
    values = np.arange(5, dtype=float)
    np.testing.assert_allclose(vertex_to_element_average(straight_mesh, values), [0.5, 1.5, 2.5, 3.5])

    per_element = np.array([1.0, 1.0, 3.0, 3.0])
    np.testing.assert_allclose(
        element_to_vertex_average(straight_mesh, per_element), [1.0, 1.0, 2.0, 3.0, 3.0]
    )


def test_lumped_coefficient_excludes_boundaries(straight_mesh):
    lumped = lumped_vertex_coefficient(straight_mesh, np.ones(4), exclude=[0, 4])
    np.testing.assert_allclose(lumped, [0.0, 0.25, 0.25, 0.25, 0.0])


def test_curvature_of_straight_and_bent_branches():
    straight = Mesh1D.from_polylines([[(0, 0, 0), (2, 0, 0)]], n_elements=[2])
    np.testing.assert_allclose(
        discrete_curvature(straight, build_topology(straight).branches), 0.0, atol=1e-12
    )

    bent = Mesh1D.from_polylines([[(0, 0, 0), (1, 0, 0), (1, 1, 0)]])
    curvature = discrete_curvature(bent, build_topology(bent).branches)
    # right angle over a mean length of 1, halved onto each element
    np.testing.assert_allclose(curvature, [np.pi / 4, np.pi / 4])


def test_dof_layouts(y_mesh, y_specs):
    topology = build_topology(y_mesh, y_specs)
    flow = FlowDofLayout(n_tissue_faces=36, n_tissue_cells=8, branches=topology.branches, n_vertices=7)

    assert flow.total == 36 + 8 + 6 + 7
    assert flow.uv_index(0) == 44
    assert flow.pv_index(2) == 36 + 8 + 6 + 2
    assert flow.uv_branch(1) == slice(46, 48)

    solution = np.zeros(flow.total)
    solution[flow.uv] = np.arange(6)
    np.testing.assert_allclose(flow.element_velocity(solution), np.arange(6))

    h = HematocritDofLayout(topology.branches)
    assert h.total == 9
    assert h.block(1) == slice(3, 6)
    assert h.first(2) == 6
    assert h.last(2) == 8


def test_tissue_averaging_matrix():
    tissue = TissueDiscretization(BoxDomain(0, 2, 0, 2, 0, 2), shape=(2, 2, 2))
    averaging = tissue.averaging_matrix([(0.5, 0.5, 0.5), (1.5, 1.5, 1.5), (9.0, 9.0, 9.0)])
    cell_values = np.arange(8, dtype=float)

    # points outside the block take the nearest boundary cell
    np.testing.assert_allclose(averaging @ cell_values, [0.0, 7.0, 7.0])
    assert tissue.counts() == (36, 8)
