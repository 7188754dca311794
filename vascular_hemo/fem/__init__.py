"""Discretisation helpers for the vessel network and the tissue block."""

from .tissue import TissueDiscretization, DarcyBlocks
from .vessel import (
    vertex_to_element_average,
    element_to_vertex_average,
    branch_p1_to_elements,
    branch_p1_to_vertices,
    lumped_vertex_coefficient,
    advection_matrix,
    diffusion_matrix,
    discrete_curvature,
)

__all__ = [
    "TissueDiscretization",
    "DarcyBlocks",
    "vertex_to_element_average",
    "element_to_vertex_average",
    "branch_p1_to_elements",
    "branch_p1_to_vertices",
    "lumped_vertex_coefficient",
    "advection_matrix",
    "diffusion_matrix",
    "discrete_curvature",
]
