"""
Physical parameters of the vessel network and tissue.

Holds the dimensionless scalars and per-element arrays used by the
assemblers.  The geometric arrays (radius, area, perimeter, resistance) are
the only state that changes during a run; they are replaced as a whole by
``commit_geometry`` which bumps ``geometry_version``.
"""

import warnings
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from ..core.mesh import Mesh1D
from ..core.network import NetworkTopology
from ..utils.units import NondimensionalScales
from .config import SimulationConfig

ELEMENT_FIELDS = ("radius", "thickness", "young_modulus", "wall_permeability", "reflection")
DEFAULT_THICKNESS_RATIO = 0.2


def _frozen(values) -> np.ndarray:
    array = np.array(values, dtype=float)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class GeometryView:
    """Read-only snapshot of the vessel geometry (dimensionless, per element)."""

    radius: np.ndarray
    area: np.ndarray
    perimeter: np.ndarray
    resistance: np.ndarray  # flow resistance coefficient per unit viscosity
    version: int


class ParameterStore:
    """
    Dimensionless physical parameters of a simulation.

    Parameters
    ----------
    mesh : Mesh1D
        Vessel mesh, coordinates in units of the characteristic length ``d``
    topology : NetworkTopology
        Branch structure, used for curvature
    config : SimulationConfig
        Scalar parameters
    element_data : dict, optional
        SI per-element arrays keyed by ``ELEMENT_FIELDS``
    """

    def __init__(
        self,
        mesh: Mesh1D,
        topology: NetworkTopology,
        config: SimulationConfig,
        element_data: Optional[Dict[str, np.ndarray]] = None,
    ):
        self.config = config
        self.n_elements = mesh.n_elements
        self.dimensionless = config.dimensionless
        element_data = dict(element_data or {})
        unknown = set(element_data) - set(ELEMENT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown element fields: {sorted(unknown)}")

        # characteristic length is needed in both modes (viscosity law in um)
        self.length_scale = config.real_value("d", comment="characteristic length [m]")
        if self.dimensionless:
            self.scales = None
        else:
            self.scales = NondimensionalScales(
                length=self.length_scale,
                velocity=config.real_value("U", comment="characteristic velocity [m/s]"),
                pressure=config.real_value("P", comment="characteristic pressure [Pa]"),
            )

        self.gamma = config.real_value("Gamma", 2.0)
        self.nu = config.real_value("nu", 0.49)
        self.mu_v = config.real_value("mu_v", comment="reference blood viscosity [Pa s]")
        self.mu_plasma = config.real_value("mu_plasma", 1.2e-3)

        self.radius_undeformed = self._element_array(
            element_data.get("radius"), config.real_value("RADIUS"), kind="length"
        )
        if np.any(self.radius_undeformed <= 0.0):
            raise ValueError("Vessel radii must be positive")

        if element_data.get("thickness") is not None:
            self.thickness = self._element_array(element_data["thickness"], None, kind="length")
        else:
            if config.bool_value("COMPLIANT_VESSELS", False):
                warnings.warn(
                    f"No wall thickness given, using {DEFAULT_THICKNESS_RATIO:.0%} of the radius",
                    UserWarning,
                )
            self.thickness = DEFAULT_THICKNESS_RATIO * self.radius_undeformed

        self.young_modulus = self._element_array(
            element_data.get("young_modulus"), config.real_value("E", 1.0e5), kind="pressure"
        )
        self.reflection = self._element_array(
            element_data.get("reflection"), config.real_value("sigma", 0.0), kind="plain"
        )

        if self.dimensionless:
            # Q is the wall conductivity of a vessel of the reference radius
            q = config.real_value("Q", comment="dimensionless wall conductivity")
            self.wall_factor = np.full(self.n_elements, q) / (2.0 * np.pi * self.radius_undeformed)
            self.kt = config.real_value("Kt", comment="dimensionless tissue conductivity")
            kv = config.real_value("Kv", comment="dimensionless vessel conductivity")
            self.resistance_scale = self.radius_undeformed ** 4 / (kv * self.mu_v)
            self.pi_t = config.real_value("pi_t_adim", 0.0)
            self.pi_v = config.real_value("pi_v_adim", 0.0)
            self.lymph_coefficient = config.real_value("Q_LF", 0.0)
            self.lymph_pressure = config.real_value("PL", 0.0)
            self.lymph_sigmoid = tuple(
                config.real_value(k, default) for k, default in
                (("QLF_A", 0.0), ("QLF_B", 0.0), ("QLF_C", 1.0), ("QLF_D", 0.0))
            )
        else:
            s = self.scales
            lp = self._element_array(
                element_data.get("wall_permeability"), config.real_value("Lp", 0.0), kind="plain"
            )
            self.wall_factor = s.wall_conductivity_factor(lp)
            self.kt = s.tissue_conductivity(config.real_value("k"), config.real_value("mu_t"))
            self.resistance_scale = np.full(
                self.n_elements, s.resistance_prefactor() * 2.0 * (self.gamma + 2.0) / np.pi
            )
            self.pi_t = s.pressure_to_adim(config.real_value("Pi_t", 0.0))
            self.pi_v = s.pressure_to_adim(config.real_value("Pi_v", 0.0))
            self.lymph_coefficient = s.lymphatic_coefficient(config.real_value("Lp_LF", 0.0))
            self.lymph_pressure = s.pressure_to_adim(config.real_value("PL", 0.0))
            self.lymph_sigmoid = (
                s.rate_to_adim(config.real_value("A_LF", 0.0)),
                s.rate_to_adim(config.real_value("B_LF", 0.0)),
                s.pressure_to_adim(config.real_value("C_LF", 1.0)),
                s.pressure_to_adim(config.real_value("D_LF", 0.0)),
            )

        if config.bool_value("CURVE_PROBLEM", False):
            from ..fem.vessel import discrete_curvature
            self.curvature = discrete_curvature(mesh, topology.branches)
        else:
            self.curvature = np.zeros(self.n_elements)

        self._branch_elements = [np.array(b.elements, dtype=int) for b in topology.branches]
        self.geometry_version = 0
        radius = self.radius_undeformed
        self.undeformed = GeometryView(
            radius=_frozen(radius),
            area=_frozen(np.pi * radius ** 2),
            perimeter=_frozen(2.0 * np.pi * radius),
            resistance=_frozen(self.rigid_resistance()),
            version=0,
        )
        self._geometry = self.undeformed

    def _element_array(self, values, default: Optional[float], kind: str) -> np.ndarray:
        """Per-element array, scaled to dimensionless form unless already so."""
        if values is None:
            if default is None:
                raise ValueError("A per-element array or a default value is required")
            array = np.full(self.n_elements, float(default))
        else:
            array = np.asarray(values, dtype=float).reshape(-1)
            if array.shape != (self.n_elements,):
                raise ValueError(
                    f"Per-element array has {array.size} values, mesh has {self.n_elements} elements"
                )
        if self.dimensionless:
            return array.copy()
        if kind == "length":
            return array / self.length_scale
        if kind == "pressure":
            return self.scales.pressure_to_adim(array)
        return array.copy()

    def rigid_resistance(self) -> np.ndarray:
        """Resistance coefficient of the undeformed circular vessels."""
        r = self.radius_undeformed
        area = np.pi * r ** 2
        return self.resistance_scale * area ** 2 / r ** 4 * (1.0 + self.curvature ** 2 * r ** 2)

    @property
    def buckled_prefactor(self) -> np.ndarray:
        """Prefactor of the buckled-section resistance (``U / (P d)`` in SI mode)."""
        return self.resistance_scale * np.pi / (2.0 * (self.gamma + 2.0))

    def geometry(self) -> GeometryView:
        """Current geometry (read only)."""
        return self._geometry

    def commit_geometry(self, radius, area, perimeter, resistance) -> GeometryView:
        """
        Replace the geometric arrays.

        Returns
        -------
        GeometryView
            The new snapshot, tagged with the bumped ``geometry_version``
        """
        arrays = [np.asarray(a, dtype=float) for a in (radius, area, perimeter, resistance)]
        for name, a in zip(("radius", "area", "perimeter", "resistance"), arrays):
            if a.shape != (self.n_elements,):
                raise ValueError(f"{name} must hold one value per element")
            if not np.all(np.isfinite(a)) or np.any(a <= 0.0):
                raise ValueError(f"{name} must be finite and positive")
        self.geometry_version += 1
        self._geometry = GeometryView(
            radius=_frozen(arrays[0]),
            area=_frozen(arrays[1]),
            perimeter=_frozen(arrays[2]),
            resistance=_frozen(arrays[3]),
            version=self.geometry_version,
        )
        return self._geometry

    def wall_conductivity(self, geometry: Optional[GeometryView] = None) -> np.ndarray:
        """Wall conductivity per unit length of every element."""
        geometry = geometry or self._geometry
        return geometry.perimeter * self.wall_factor

    def branch_mean_radius(self, branch: int, geometry: Optional[GeometryView] = None) -> float:
        geometry = geometry or self._geometry
        return float(np.mean(geometry.radius[self._branch_elements[branch]]))

    def diameter_um(self, radius) -> np.ndarray:
        return 2.0 * np.asarray(radius) * self.length_scale * 1e6

    def summary(self) -> str:
        """Human-readable listing of the parameters."""
        geometry = self._geometry
        lines = [
            "--- PHYSICAL PARAMETERS ---",
            f"  mode               : {'dimensionless' if self.dimensionless else 'SI'}",
            f"  tissue conductivity: {self.kt:.4g}",
            f"  radius (min/max)   : {geometry.radius.min():.4g} / {geometry.radius.max():.4g}",
            f"  thickness (mean)   : {self.thickness.mean():.4g}",
            f"  Young modulus      : {self.young_modulus.mean():.4g}",
            f"  reflection (mean)  : {self.reflection.mean():.4g}",
            f"  oncotic pi_v, pi_t : {self.pi_v:.4g}, {self.pi_t:.4g}",
            f"  lymph coefficient  : {self.lymph_coefficient:.4g}",
            f"  curvature (max)    : {self.curvature.max():.4g}",
            f"  geometry version   : {self.geometry_version}",
        ]
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.summary()
