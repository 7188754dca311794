"""
Tissue domain enclosing the vessel network.
"""

from dataclasses import dataclass

import numpy as np


@dataclass
class BoxDomain:
    """Rectangular tissue block."""

    x_min: float
    x_max: float
    y_min: float
    y_max: float
    z_min: float
    z_max: float

    def __post_init__(self):
        """Validate box dimensions."""
        if self.x_min >= self.x_max:
            raise ValueError(f"x_min ({self.x_min}) must be less than x_max ({self.x_max})")
        if self.y_min >= self.y_max:
            raise ValueError(f"y_min ({self.y_min}) must be less than y_max ({self.y_max})")
        if self.z_min >= self.z_max:
            raise ValueError(f"z_min ({self.z_min}) must be less than z_max ({self.z_max})")

    @property
    def lower(self) -> np.ndarray:
        return np.array([self.x_min, self.y_min, self.z_min])

    @property
    def upper(self) -> np.ndarray:
        return np.array([self.x_max, self.y_max, self.z_max])

    @property
    def size(self) -> np.ndarray:
        return self.upper - self.lower

    @property
    def volume(self) -> float:
        return float(np.prod(self.size))

    def contains(self, point) -> bool:
        """Check if point is inside box."""
        p = np.asarray(point, dtype=float)
        return bool(np.all(p >= self.lower) and np.all(p <= self.upper))

    def project_inside(self, points) -> np.ndarray:
        """Clip point(s) to the box."""
        return np.clip(np.asarray(points, dtype=float), self.lower, self.upper)

    def get_bounds(self) -> tuple:
        """Get bounding box (min_x, max_x, min_y, max_y, min_z, max_z)."""
        return (
            self.x_min, self.x_max,
            self.y_min, self.y_max,
            self.z_min, self.z_max,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "type": "box",
            "x_min": self.x_min,
            "x_max": self.x_max,
            "y_min": self.y_min,
            "y_max": self.y_max,
            "z_min": self.z_min,
            "z_max": self.z_max,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "BoxDomain":
        """Create from dictionary."""
        return cls(
            x_min=d["x_min"],
            x_max=d["x_max"],
            y_min=d["y_min"],
            y_max=d["y_max"],
            z_min=d["z_min"],
            z_max=d["z_max"],
        )

    @classmethod
    def around_points(cls, points, margin: float = 0.1) -> "BoxDomain":
        """
        Smallest box containing ``points`` padded by ``margin`` times its
        largest extent on every side (flat directions get the same padding).
        """
        pts = np.asarray(points, dtype=float).reshape(-1, 3)
        lo = pts.min(axis=0)
        hi = pts.max(axis=0)
        extent = float((hi - lo).max())
        pad = margin * extent if extent > 0 else 1.0
        return cls(lo[0] - pad, hi[0] + pad, lo[1] - pad, hi[1] + pad, lo[2] - pad, hi[2] + pad)
