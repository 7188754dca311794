import pytest
import numpy as np
from pathlib import Path
import tempfile

import matplotlib
matplotlib.use("Agg")

from vascular_hemo.core import Mesh1D, BoundarySpec
from vascular_hemo.params import dimensionless_test


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config():
    """Dimensionless configuration with tight tolerances."""
    return dimensionless_test()


@pytest.fixture
def straight_mesh():
    """Single straight vessel from (0, 0, 0) to (1, 0, 0), four elements.

    Vertices are numbered 0..4 along the vessel.
    """
    return Mesh1D.from_polylines([[(0, 0, 0), (1, 0, 0)]], n_elements=[4])


@pytest.fixture
def straight_specs():
    """Pressure drop from 1 at the inlet to 0 at the outlet."""
    return [
        BoundarySpec(0, "pressure", 1.0, hematocrit=0.45),
        BoundarySpec(4, "pressure", 0.0),
    ]


@pytest.fixture
def y_mesh():
    """Symmetric Y bifurcation, two elements per branch.

    Vertex ids: parent 0 -> 1 -> 2 (junction), upper daughter 2 -> 3 -> 4,
    lower daughter 2 -> 5 -> 6.
    """
    parent = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0)]
    upper = [(1.0, 0.0, 0.0), (2.0, 0.5, 0.0)]
    lower = [(1.0, 0.0, 0.0), (2.0, -0.5, 0.0)]
    return Mesh1D.from_polylines([parent, upper, lower], n_elements=[2, 2, 2])


@pytest.fixture
def y_specs():
    """Inflow at the parent end, both daughters at zero pressure."""
    return [
        BoundarySpec(0, "pressure", 1.0, hematocrit=0.45),
        BoundarySpec(4, "pressure", 0.0),
        BoundarySpec(6, "pressure", 0.0),
    ]


@pytest.fixture
def star_mesh():
    """Four branches leaving the origin along +x, -x, +y, -y."""
    arms = [(1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0)]
    return Mesh1D.from_polylines([[(0, 0, 0), arm] for arm in arms])
