"""
One-dimensional vessel centreline mesh.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np

from .errors import TopologyError


class Mesh1D:
    """
    Centreline mesh of a vessel network.

    Elements are segments ``(i0, i1)`` oriented from ``i0`` to ``i1``; each
    element carries the region id of the branch it belongs to.

    Parameters
    ----------
    points : array-like, shape (n_points, 3)
        Vertex coordinates
    elements : sequence of pairs
        Vertex indices of every element
    element_region : array-like, shape (n_elements,)
        Branch region id per element
    """

    def __init__(self, points, elements: Sequence[Sequence[int]], element_region):
        self.points = np.asarray(points, dtype=float)
        if self.points.ndim != 2 or self.points.shape[1] != 3:
            raise ValueError(f"points must have shape (n, 3), got {self.points.shape}")

        rows = []
        for e, element in enumerate(elements):
            element = list(element)
            if len(element) != 2:
                raise TopologyError(
                    f"Element {e} has {len(element)} endpoints; 1D elements need exactly 2"
                )
            i0, i1 = int(element[0]), int(element[1])
            if i0 == i1:
                raise TopologyError(f"Element {e} is degenerate (both endpoints are {i0})")
            for v in (i0, i1):
                if not 0 <= v < len(self.points):
                    raise TopologyError(f"Element {e} references unknown vertex {v}")
            rows.append((i0, i1))
        self.elements = np.array(rows, dtype=int).reshape(-1, 2)

        self.element_region = np.asarray(element_region, dtype=int)
        if self.element_region.shape != (len(self.elements),):
            raise ValueError("element_region must hold one region id per element")

        self._incidence: List[List[int]] = [[] for _ in range(len(self.points))]
        for e, (i0, i1) in enumerate(self.elements):
            self._incidence[i0].append(e)
            self._incidence[i1].append(e)

    @property
    def n_points(self) -> int:
        return len(self.points)

    @property
    def n_elements(self) -> int:
        return len(self.elements)

    @property
    def n_regions(self) -> int:
        return int(self.element_region.max()) + 1 if self.n_elements else 0

    def elements_of_vertex(self, vertex: int) -> List[int]:
        """Elements incident to ``vertex`` (ascending ids)."""
        return list(self._incidence[vertex])

    def vertex_degree(self) -> np.ndarray:
        return np.array([len(inc) for inc in self._incidence], dtype=int)

    def elements_in_region(self, region: int) -> np.ndarray:
        return np.flatnonzero(self.element_region == region)

    def element_vectors(self) -> np.ndarray:
        return self.points[self.elements[:, 1]] - self.points[self.elements[:, 0]]

    def element_lengths(self) -> np.ndarray:
        return np.linalg.norm(self.element_vectors(), axis=1)

    def element_tangents(self) -> np.ndarray:
        """Unit tangent of every element, oriented from i0 to i1."""
        vectors = self.element_vectors()
        return vectors / self.element_lengths()[:, None]

    def element_midpoints(self) -> np.ndarray:
        return 0.5 * (self.points[self.elements[:, 0]] + self.points[self.elements[:, 1]])

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "points": self.points.tolist(),
            "elements": self.elements.tolist(),
            "element_region": self.element_region.tolist(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Mesh1D":
        """Create from dictionary."""
        return cls(d["points"], d["elements"], d["element_region"])

    @classmethod
    def from_polylines(
        cls,
        polylines: Sequence,
        n_elements: Optional[Sequence[int]] = None,
        tolerance: float = 1e-9,
    ) -> "Mesh1D":
        """
        Build a mesh from one polyline per branch.

        Polyline ``b`` becomes region ``b``; its elements are oriented along the
        polyline.  End points closer than ``tolerance`` are merged so that
        branches sharing an end point meet at a junction vertex.

        Parameters
        ----------
        polylines : sequence of array-like, each shape (k, 3)
            Control points of every branch
        n_elements : sequence of int, optional
            Subdivide every straight piece of polyline ``b`` into this many
            elements (default 1)
        tolerance : float
            Merge distance for coincident points
        """
        points: List[np.ndarray] = []
        lookup: Dict[tuple, int] = {}

        def vertex_for(p: np.ndarray) -> int:
            key = tuple(np.round(p / tolerance).astype(np.int64))
            if key not in lookup:
                lookup[key] = len(points)
                points.append(p)
            return lookup[key]

        elements = []
        regions = []
        for b, polyline in enumerate(polylines):
            control = np.asarray(polyline, dtype=float)
            if len(control) < 2:
                raise ValueError(f"Polyline {b} needs at least two points")
            pieces = 1 if n_elements is None else int(n_elements[b])
            previous = vertex_for(control[0])
            for start, end in zip(control[:-1], control[1:]):
                for k in range(1, pieces + 1):
                    current = vertex_for(start + (end - start) * k / pieces)
                    elements.append((previous, current))
                    regions.append(b)
                    previous = current

        return cls(np.array(points), elements, regions)
