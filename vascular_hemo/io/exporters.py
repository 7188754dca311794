"""
Exporters for simulation states.

``VtkExporter`` writes the vessel centreline as VTK polydata (pyvista) with
vertex and element fields; ``InMemoryExporter`` keeps everything in memory.
Both also record the residual history.
"""

from pathlib import Path
from typing import Dict, List, Sequence, Union

import numpy as np

from ..core.mesh import Mesh1D
from ..core.result import IterationRecord

RESIDUAL_COLUMNS = (
    "iteration",
    "residual_solution",
    "residual_mass",
    "residual_hematocrit",
    "total_filtration_rate",
    "lymphatic_flow_rate",
    "flow_time",
    "hematocrit_time",
)


def mesh_to_polydata(mesh: Mesh1D):
    """Centreline ``pyvista.PolyData`` with one line cell per element."""
    import pyvista as pv

    lines = np.column_stack([np.full(mesh.n_elements, 2), mesh.elements]).ravel()
    return pv.PolyData(mesh.points.copy(), lines=lines)


def residual_table(history: Sequence[IterationRecord]) -> str:
    """Residual history as whitespace separated text with a header line."""
    rows = ["\t".join(RESIDUAL_COLUMNS)]
    for record in history:
        values = record.to_dict()
        rows.append("\t".join(
            str(values[c]) if c == "iteration" else f"{values[c]:.6e}" for c in RESIDUAL_COLUMNS
        ))
    return "\n".join(rows) + "\n"


def write_residual_table(history: Sequence[IterationRecord], filepath: Union[str, Path]) -> Path:
    filepath = Path(filepath)
    filepath.write_text(residual_table(history))
    return filepath


class VtkExporter:
    """
    Writes ``<name>.vtk`` files into ``output_dir``.

    Parameters
    ----------
    output_dir : str or Path
        Target directory (created if needed)
    """

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.written: List[Path] = []

    def write(
        self,
        mesh: Mesh1D,
        point_data: Dict[str, np.ndarray],
        cell_data: Dict[str, np.ndarray],
        name: str = "solution",
    ) -> Path:
        polydata = mesh_to_polydata(mesh)
        for key, values in point_data.items():
            values = np.asarray(values)
            if len(values) != mesh.n_points:
                raise ValueError(f"Point field '{key}' has {len(values)} values, mesh has {mesh.n_points} points")
            polydata.point_data[key] = values
        for key, values in cell_data.items():
            values = np.asarray(values)
            if len(values) != mesh.n_elements:
                raise ValueError(f"Cell field '{key}' has {len(values)} values, mesh has {mesh.n_elements} elements")
            polydata.cell_data[key] = values

        filepath = self.output_dir / f"{name}.vtk"
        polydata.save(str(filepath))
        self.written.append(filepath)
        return filepath

    def write_residuals(self, history: Sequence[IterationRecord], name: str = "Residuals.txt") -> Path:
        filepath = write_residual_table(history, self.output_dir / name)
        self.written.append(filepath)
        return filepath


class InMemoryExporter:
    """Keeps every written state; useful in tests and notebooks."""

    def __init__(self):
        self.states: Dict[str, dict] = {}
        self.history: List[IterationRecord] = []

    def write(
        self,
        mesh: Mesh1D,
        point_data: Dict[str, np.ndarray],
        cell_data: Dict[str, np.ndarray],
        name: str = "solution",
    ) -> str:
        self.states[name] = {
            "point_data": {k: np.array(v) for k, v in point_data.items()},
            "cell_data": {k: np.array(v) for k, v in cell_data.items()},
        }
        return name

    def write_residuals(self, history: Sequence[IterationRecord]) -> None:
        self.history = list(history)
