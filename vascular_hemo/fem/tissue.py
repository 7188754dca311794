"""
Lowest-order mixed Darcy discretisation of the tissue block.

The box is split into a structured grid of cells.  Unknowns are one normal
flux per face (positive along the axis) and one pressure per cell.  Face
rows read ``(h / kt) u_f + p_right - p_left = 0``; boundary faces use half a
cell and the block boundary pressure.  Cell rows collect the net outflux.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import scipy.sparse as sp

from ..core.domain import BoxDomain


@dataclass
class DarcyBlocks:
    """Tissue blocks of the flow system."""

    face_mass: np.ndarray  # diagonal of the face rows, h / kt
    gradient: sp.csr_matrix  # faces x cells, p_right - p_left
    divergence: sp.csr_matrix  # cells x faces, outflux times face area
    face_rhs: np.ndarray


class TissueDiscretization:
    """
    Structured grid on a ``BoxDomain``.

    Parameters
    ----------
    domain : BoxDomain
        Tissue block (dimensionless coordinates)
    shape : tuple of int
        Number of cells along x, y, z
    """

    def __init__(self, domain: BoxDomain, shape: Sequence[int] = (2, 2, 2)):
        self.domain = domain
        self.shape = tuple(int(n) for n in shape)
        if len(self.shape) != 3 or min(self.shape) < 1:
            raise ValueError(f"shape must be three positive integers, got {shape}")
        self.spacing = domain.size / np.array(self.shape, dtype=float)
        self.n_cells = int(np.prod(self.shape))
        self.cell_volume = float(np.prod(self.spacing))
        self._build_faces()

    def cell_index(self, i: int, j: int, k: int) -> int:
        nx, ny, _ = self.shape
        return i + nx * (j + ny * k)

    def _build_faces(self) -> None:
        left, right, axis = [], [], []
        for a in range(3):
            counts = list(self.shape)
            counts[a] += 1
            for k in range(counts[2]):
                for j in range(counts[1]):
                    for i in range(counts[0]):
                        index = [i, j, k]
                        lo = list(index)
                        lo[a] -= 1
                        left.append(self.cell_index(*lo) if lo[a] >= 0 else -1)
                        right.append(self.cell_index(*index) if index[a] < self.shape[a] else -1)
                        axis.append(a)
        self.face_left = np.array(left, dtype=int)
        self.face_right = np.array(right, dtype=int)
        self.face_axis = np.array(axis, dtype=int)
        self.n_faces = len(axis)
        area = self.cell_volume / self.spacing
        self.face_area = area[self.face_axis]
        boundary = (self.face_left < 0) | (self.face_right < 0)
        self.face_distance = np.where(boundary, 0.5, 1.0) * self.spacing[self.face_axis]
        self.boundary_faces = np.flatnonzero(boundary)

    def darcy_blocks(self, kt: float, boundary_pressure: float = 0.0) -> DarcyBlocks:
        """
        Tissue blocks for conductivity ``kt``.

        Returns
        -------
        DarcyBlocks
            Face mass diagonal, gradient, divergence and face right-hand side
        """
        faces = np.arange(self.n_faces)
        has_left = self.face_left >= 0
        has_right = self.face_right >= 0

        rows = np.concatenate([faces[has_right], faces[has_left]])
        cols = np.concatenate([self.face_right[has_right], self.face_left[has_left]])
        vals = np.concatenate([np.ones(has_right.sum()), -np.ones(has_left.sum())])
        gradient = sp.csr_matrix((vals, (rows, cols)), shape=(self.n_faces, self.n_cells))

        d_rows = np.concatenate([self.face_left[has_left], self.face_right[has_right]])
        d_cols = np.concatenate([faces[has_left], faces[has_right]])
        d_vals = np.concatenate([self.face_area[has_left], -self.face_area[has_right]])
        divergence = sp.csr_matrix((d_vals, (d_rows, d_cols)), shape=(self.n_cells, self.n_faces))

        face_rhs = np.zeros(self.n_faces)
        face_rhs[~has_left] = boundary_pressure
        face_rhs[~has_right] = -boundary_pressure

        return DarcyBlocks(
            face_mass=self.face_distance / kt,
            gradient=gradient,
            divergence=divergence,
            face_rhs=face_rhs,
        )

    def locate(self, points) -> np.ndarray:
        """Cell containing each point (points outside are clipped to the box)."""
        pts = self.domain.project_inside(np.asarray(points, dtype=float).reshape(-1, 3))
        ijk = np.floor((pts - self.domain.lower) / self.spacing).astype(int)
        ijk = np.clip(ijk, 0, np.array(self.shape) - 1)
        nx, ny, _ = self.shape
        return ijk[:, 0] + nx * (ijk[:, 1] + ny * ijk[:, 2])

    def averaging_matrix(self, points) -> sp.csr_matrix:
        """Matrix mapping cell values to the given points (piecewise constant)."""
        cells = self.locate(points)
        n = len(cells)
        return sp.csr_matrix((np.ones(n), (np.arange(n), cells)), shape=(n, self.n_cells))

    def counts(self) -> Tuple[int, int]:
        """Number of (face flux, cell pressure) unknowns."""
        return self.n_faces, self.n_cells
