"""
Finite element helpers on the vessel centreline.

Vessel velocity lives on elements (P0), pressure on vertices (P1,
continuous across junctions), hematocrit on branch-local P1 blocks.
"""

from typing import Optional, Sequence

import numpy as np

from ..core.dofs import HematocritDofLayout
from ..core.mesh import Mesh1D
from ..core.network import Branch


def vertex_to_element_average(mesh: Mesh1D, values: np.ndarray) -> np.ndarray:
    """Mean of the two endpoint values of every element."""
    values = np.asarray(values, dtype=float)
    return 0.5 * (values[mesh.elements[:, 0]] + values[mesh.elements[:, 1]])


def element_to_vertex_average(mesh: Mesh1D, values: np.ndarray) -> np.ndarray:
    """Length-weighted mean of the incident element values at every vertex."""
    values = np.asarray(values, dtype=float)
    lengths = mesh.element_lengths()
    total = np.zeros(mesh.n_points)
    weight = np.zeros(mesh.n_points)
    for column in (0, 1):
        np.add.at(total, mesh.elements[:, column], lengths * values)
        np.add.at(weight, mesh.elements[:, column], lengths)
    return total / np.where(weight > 0.0, weight, 1.0)


def branch_p1_to_elements(
    branches: Sequence[Branch], layout: HematocritDofLayout, values: np.ndarray, n_elements: int
) -> np.ndarray:
    """Element means of a branch-wise P1 field, indexed by element id."""
    out = np.zeros(n_elements)
    for b in branches:
        local = np.asarray(values[layout.block(b.index)])
        out[list(b.elements)] = 0.5 * (local[:-1] + local[1:])
    return out


def branch_p1_to_vertices(
    mesh: Mesh1D, branches: Sequence[Branch], layout: HematocritDofLayout, values: np.ndarray
) -> np.ndarray:
    """Vertex values of a branch-wise P1 field (mean over branches at junctions)."""
    total = np.zeros(mesh.n_points)
    count = np.zeros(mesh.n_points)
    for b in branches:
        vertices = list(b.vertices)
        np.add.at(total, vertices, values[layout.block(b.index)])
        np.add.at(count, vertices, 1.0)
    return total / np.where(count > 0.0, count, 1.0)


def lumped_vertex_coefficient(
    mesh: Mesh1D, density: np.ndarray, exclude: Optional[Sequence[int]] = None
) -> np.ndarray:
    """
    Lump a per-unit-length element coefficient on the vertices.

    Every vertex receives half the integral of ``density`` over each incident
    element; vertices in ``exclude`` get zero.
    """
    half = 0.5 * mesh.element_lengths() * np.asarray(density, dtype=float)
    lumped = np.zeros(mesh.n_points)
    np.add.at(lumped, mesh.elements[:, 0], half)
    np.add.at(lumped, mesh.elements[:, 1], half)
    if exclude is not None and len(exclude):
        lumped[list(exclude)] = 0.0
    return lumped


def advection_matrix(flow: float) -> np.ndarray:
    """
    Element matrix of ``-int Q H phi'`` for P1 on one element.

    ``flow`` is the (constant) blood flow along the element in the branch
    direction.
    """
    half = 0.5 * flow
    return np.array([[half, half], [-half, -half]])


def diffusion_matrix(coefficient: float, length: float) -> np.ndarray:
    """Element stiffness matrix of ``coefficient * H' phi'``."""
    k = coefficient / length
    return np.array([[k, -k], [-k, k]])


def discrete_curvature(mesh: Mesh1D, branches: Sequence[Branch]) -> np.ndarray:
    """
    Curvature of the centreline per element.

    Vertex curvature is the turning angle between the two adjacent elements
    divided by their mean length; element curvature is the mean of its two
    vertex values (zero at branch ends).
    """
    lengths = mesh.element_lengths()
    curvature = np.zeros(mesh.n_elements)
    for b in branches:
        tangents = np.asarray(b.tangents)
        n = len(b.elements)
        nodal = np.zeros(n + 1)
        for k in range(1, n):
            cos = np.clip(np.dot(tangents[k - 1], tangents[k]), -1.0, 1.0)
            mean_length = 0.5 * (lengths[b.elements[k - 1]] + lengths[b.elements[k]])
            nodal[k] = np.arccos(cos) / mean_length
        curvature[list(b.elements)] = 0.5 * (nodal[:-1] + nodal[1:])
    return curvature
