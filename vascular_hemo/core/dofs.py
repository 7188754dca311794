"""
Degree-of-freedom layouts of the flow and hematocrit systems.
"""

from typing import List, Sequence

import numpy as np

from .network import Branch


class FlowDofLayout:
    """
    Layout ``[Ut | Pt | Uv | Pv]`` of the monolithic flow unknown.

    ``Ut`` tissue face fluxes, ``Pt`` tissue cell pressures, ``Uv`` one
    velocity per vessel element (ordered branch by branch, along the
    branch), ``Pv`` one pressure per mesh vertex.
    """

    def __init__(self, n_tissue_faces: int, n_tissue_cells: int, branches: Sequence[Branch], n_vertices: int):
        self.n_ut = n_tissue_faces
        self.n_pt = n_tissue_cells
        self.n_uv = sum(b.n_elements for b in branches)
        self.n_pv = n_vertices

        # Uv position of every element
        self.element_order = np.array([e for b in branches for e in b.elements], dtype=int)
        self.uv_position = np.empty(self.n_uv, dtype=int)
        self.uv_position[self.element_order] = np.arange(self.n_uv)

        self._branch_start: List[int] = []
        start = 0
        for b in branches:
            self._branch_start.append(start)
            start += b.n_elements
        self._branch_count = [b.n_elements for b in branches]

    @property
    def ut(self) -> slice:
        return slice(0, self.n_ut)

    @property
    def pt(self) -> slice:
        return slice(self.n_ut, self.n_ut + self.n_pt)

    @property
    def uv(self) -> slice:
        start = self.n_ut + self.n_pt
        return slice(start, start + self.n_uv)

    @property
    def pv(self) -> slice:
        start = self.n_ut + self.n_pt + self.n_uv
        return slice(start, start + self.n_pv)

    @property
    def total(self) -> int:
        return self.n_ut + self.n_pt + self.n_uv + self.n_pv

    def uv_index(self, element: int) -> int:
        """Global row/column of the velocity of ``element``."""
        return self.uv.start + int(self.uv_position[element])

    def pv_index(self, vertex: int) -> int:
        return self.pv.start + vertex

    def uv_branch(self, branch: int) -> slice:
        """Global slice of the velocities of one branch."""
        start = self.uv.start + self._branch_start[branch]
        return slice(start, start + self._branch_count[branch])

    def element_velocity(self, solution: np.ndarray) -> np.ndarray:
        """Vessel velocities indexed by element id."""
        return np.asarray(solution)[self.uv][self.uv_position]


class HematocritDofLayout:
    """One P1 block per branch, concatenated in branch order."""

    def __init__(self, branches: Sequence[Branch]):
        self.offsets: List[int] = []
        start = 0
        for b in branches:
            self.offsets.append(start)
            start += b.n_vertices
        self.sizes = [b.n_vertices for b in branches]
        self.total = start

    def block(self, branch: int) -> slice:
        start = self.offsets[branch]
        return slice(start, start + self.sizes[branch])

    def first(self, branch: int) -> int:
        return self.offsets[branch]

    def last(self, branch: int) -> int:
        return self.offsets[branch] + self.sizes[branch] - 1
