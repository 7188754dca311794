"""
Readers for per-branch and per-element parameter files.

A value file holds one number per line (blank lines and ``#`` comments are
ignored).  It may list one value per branch or one value per element; branch
values are spread over the elements of the branch.  Unreadable files are not
fatal: a warning is emitted and the caller's fallback is used.
"""

import warnings
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np

from ..core.mesh import Mesh1D


def read_values(filepath: Union[str, Path]) -> np.ndarray:
    """Numbers of a value file, in order."""
    values = []
    with open(Path(filepath), 'r') as f:
        for line in f:
            line = line.split("#", 1)[0].strip()
            if line:
                values.extend(float(token) for token in line.split())
    return np.array(values, dtype=float)


def expand_to_elements(values: np.ndarray, mesh: Mesh1D) -> np.ndarray:
    """Per-element array from per-branch or per-element values."""
    values = np.asarray(values, dtype=float)
    if values.size == mesh.n_elements:
        return values.copy()
    if values.size == mesh.n_regions:
        return values[mesh.element_region]
    raise ValueError(
        f"Expected {mesh.n_regions} branch values or {mesh.n_elements} element values, "
        f"got {values.size}"
    )


def load_element_values(
    filepath: Union[str, Path],
    mesh: Mesh1D,
    name: str = "values",
    default: Optional[np.ndarray] = None,
) -> Optional[np.ndarray]:
    """
    Read a value file and expand it to the mesh elements.

    Parameters
    ----------
    filepath : str or Path
        Value file
    mesh : Mesh1D
        Mesh the values refer to
    name : str
        Quantity name used in the warning
    default : ndarray, optional
        Returned when the file cannot be used

    Returns
    -------
    ndarray or None
        Per-element values, or ``default`` after a warning
    """
    try:
        return expand_to_elements(read_values(filepath), mesh)
    except (OSError, ValueError) as e:
        warnings.warn(f"Cannot use {name} file '{filepath}' ({e}); using default", UserWarning)
        return None if default is None else np.asarray(default, dtype=float)


def load_thickness(
    filepath: Union[str, Path],
    mesh: Mesh1D,
    radius: np.ndarray,
    ratio: float = 0.2,
) -> np.ndarray:
    """Wall thickness per element, ``ratio * radius`` when the file is unusable."""
    return load_element_values(filepath, mesh, "thickness", default=ratio * np.asarray(radius))


def load_element_data(files: Dict[str, Union[str, Path]], mesh: Mesh1D) -> Dict[str, np.ndarray]:
    """
    Read several value files at once.

    ``files`` maps a parameter store field (``radius``, ``thickness``, ...)
    to its file; unusable files are skipped with a warning, except a missing
    thickness which falls back to 20 % of the imported radius.
    """
    data: Dict[str, np.ndarray] = {}
    for field, path in files.items():
        if field == "thickness":
            continue
        values = load_element_values(path, mesh, field)
        if values is not None:
            data[field] = values
    if "thickness" in files:
        if "radius" in data:
            data["thickness"] = load_thickness(files["thickness"], mesh, data["radius"])
        else:
            values = load_element_values(files["thickness"], mesh, "thickness")
            if values is not None:
                data["thickness"] = values
    return data
