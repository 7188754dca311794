"""Input / output: JSON, parameter value files and exporters."""

from .serialize import save_json, load_json
from .loaders import (
    read_values,
    expand_to_elements,
    load_element_values,
    load_thickness,
    load_element_data,
)
from .exporters import (
    VtkExporter,
    InMemoryExporter,
    mesh_to_polydata,
    residual_table,
    write_residual_table,
)

__all__ = [
    "save_json",
    "load_json",
    "read_values",
    "expand_to_elements",
    "load_element_values",
    "load_thickness",
    "load_element_data",
    "VtkExporter",
    "InMemoryExporter",
    "mesh_to_polydata",
    "residual_table",
    "write_residual_table",
]
