"""
JSON serialization for meshes and network topologies.
"""

import json
from pathlib import Path
from typing import Union

from ..core.mesh import Mesh1D
from ..core.network import NetworkTopology

SCHEMA_VERSION = "1.0"

_KINDS = {
    "mesh": Mesh1D,
    "topology": NetworkTopology,
}


def save_json(
    obj: Union[Mesh1D, NetworkTopology],
    filepath: Union[str, Path],
    indent: int = 2,
) -> None:
    """
    Save a mesh or topology to a JSON file.

    Parameters
    ----------
    obj : Mesh1D or NetworkTopology
        Object to save
    filepath : str or Path
        Output file path
    indent : int
        JSON indentation level

    Example
    -------
    >>> from vascular_hemo.io import save_json
    >>> save_json(topology, "network.json")
    """
    kind = next((name for name, cls in _KINDS.items() if isinstance(obj, cls)), None)
    if kind is None:
        raise TypeError(f"Cannot serialize objects of type {type(obj).__name__}")

    data = {"schema_version": SCHEMA_VERSION, "kind": kind}
    data.update(obj.to_dict())

    with open(Path(filepath), 'w') as f:
        json.dump(data, f, indent=indent)


def load_json(filepath: Union[str, Path]) -> Union[Mesh1D, NetworkTopology]:
    """
    Load a mesh or topology from a JSON file.

    Parameters
    ----------
    filepath : str or Path
        Input file path

    Returns
    -------
    Mesh1D or NetworkTopology
        Loaded object, according to the stored ``kind``
    """
    with open(Path(filepath), 'r') as f:
        data = json.load(f)

    schema_version = data.get("schema_version", SCHEMA_VERSION)
    if schema_version != SCHEMA_VERSION:
        raise ValueError(f"Unsupported schema version: {schema_version}")

    kind = data.get("kind")
    if kind not in _KINDS:
        raise ValueError(f"Unknown object kind: {kind}")

    return _KINDS[kind].from_dict(data)
