"""
Vessel wall compliance.

Each element's cross section is recomputed from the undeformed geometry and
the pressure jump across the wall (all quantities dimensionless):

- thick-walled vessels (wall/radius ratio >= 0.1) follow the Lame solution
  of a pressurized cylinder and stay circular;
- thin-walled vessels shrink linearly until the external load exceeds the
  buckling threshold ``3 E (h/R)^3 / (12 (1 - nu^2))``, after which the
  section collapses following the tube law fits of the buckled shape.
"""

from dataclasses import dataclass
from typing import List, Union

import numpy as np

from ..params.store import GeometryView, ParameterStore

ARTERIOLE_RATIO = 0.1
COLLAPSE_LIMIT = 5.0


@dataclass(frozen=True)
class CircularSection:
    """Round cross section."""

    radius: float

    @property
    def area(self) -> float:
        return np.pi * self.radius ** 2

    @property
    def perimeter(self) -> float:
        return 2.0 * np.pi * self.radius

    def resistance(self, scale: float, buckled_prefactor: float, curvature: float = 0.0) -> float:
        """Resistance coefficient per unit viscosity."""
        r = self.radius
        return scale * self.area ** 2 / r ** 4 * (1.0 + curvature ** 2 * r ** 2)


@dataclass(frozen=True)
class BuckledSection:
    """
    Collapsed cross section of a thin-walled vessel.

    The wall length is that of the undeformed vessel, the hydraulic radius is
    ``area / perimeter``.
    """

    area: float
    perimeter: float
    reference_radius: float
    resistance_integral: float

    @property
    def hydraulic_radius(self) -> float:
        return self.area / self.perimeter

    @property
    def radius(self) -> float:
        return self.hydraulic_radius

    def resistance(self, scale: float, buckled_prefactor: float, curvature: float = 0.0) -> float:
        """Resistance coefficient per unit viscosity (curvature is ignored)."""
        r = self.reference_radius
        return buckled_prefactor * self.area ** 2 / (r ** 4 * self.resistance_integral)


Section = Union[CircularSection, BuckledSection]


def buckling_threshold(ratio: float, young: float, nu: float) -> float:
    """External overpressure at which a thin wall buckles."""
    return 3.0 * young * ratio ** 3 / (12.0 * (1.0 - nu ** 2))


def deform_section(
    radius: float,
    thickness: float,
    p_int: float,
    p_ext: float,
    young: float,
    nu: float,
) -> Section:
    """
    Deformed cross section of one vessel.

    Parameters
    ----------
    radius : float
        Undeformed radius
    thickness : float
        Wall thickness
    p_int, p_ext : float
        Luminal and interstitial pressure
    young : float
        Wall Young modulus
    nu : float
        Wall Poisson ratio

    Returns
    -------
    CircularSection or BuckledSection
    """
    ratio = thickness / radius
    dp = p_ext - p_int

    if ratio >= ARTERIOLE_RATIO:
        outer = radius + thickness
        den = outer ** 2 - radius ** 2
        b1 = (p_int * radius ** 2 - p_ext * outer ** 2) / den
        b2 = dp * radius ** 2 * outer ** 2 / den
        new_radius = radius * (1.0 + (1.0 - nu) / young * b1 - (1.0 + nu) / young * b2 / radius ** 2)
        return CircularSection(new_radius)

    if dp <= buckling_threshold(ratio, young, nu):
        new_radius = radius * (1.0 - (1.0 - nu ** 2) / (ratio * young) * dp)
        return CircularSection(new_radius)

    p_adim = min(dp * 12.0 * (1.0 - nu ** 2) / (young * ratio ** 3), COLLAPSE_LIMIT)
    return BuckledSection(
        area=15.95 * np.exp(-0.545 * p_adim) * radius ** 2,
        perimeter=2.0 * np.pi * radius,
        reference_radius=radius,
        resistance_integral=69.56 * np.exp(-1.74 * p_adim),
    )


class VesselComplianceModel:
    """
    Updates the vessel geometry of a ``ParameterStore`` from the current
    pressures.

    Every update starts from the undeformed geometry, so applying the same
    pressures twice gives the same geometry.
    """

    def __init__(self, store: ParameterStore):
        self.store = store

    def sections(self, p_int: np.ndarray, p_ext: np.ndarray) -> List[Section]:
        """Deformed section of every element for element-wise pressures."""
        s = self.store
        radius = s.undeformed.radius
        return [
            deform_section(radius[e], s.thickness[e], p_int[e], p_ext[e], s.young_modulus[e], s.nu)
            for e in range(s.n_elements)
        ]

    def update(self, p_int: np.ndarray, p_ext: np.ndarray) -> GeometryView:
        """
        Recompute and commit radius, area, perimeter and resistance.

        Parameters
        ----------
        p_int : ndarray
            Vessel pressure per element
        p_ext : ndarray
            Tissue pressure around every element

        Returns
        -------
        GeometryView
            The committed geometry
        """
        s = self.store
        p_int = np.asarray(p_int, dtype=float)
        p_ext = np.asarray(p_ext, dtype=float)
        if p_int.shape != (s.n_elements,) or p_ext.shape != (s.n_elements,):
            raise ValueError("Pressures must be given per element")

        sections = self.sections(p_int, p_ext)
        prefactor = s.buckled_prefactor
        resistance = [
            section.resistance(s.resistance_scale[e], prefactor[e], s.curvature[e])
            for e, section in enumerate(sections)
        ]
        return s.commit_geometry(
            radius=[section.radius for section in sections],
            area=[section.area for section in sections],
            perimeter=[section.perimeter for section in sections],
            resistance=resistance,
        )

    def n_buckled(self, p_int: np.ndarray, p_ext: np.ndarray) -> int:
        return sum(isinstance(sec, BuckledSection) for sec in self.sections(p_int, p_ext))
