"""
Unit conversion and nondimensional scaling.

Physical inputs are SI.  The solver works on dimensionless quantities built
from a characteristic length ``d``, velocity ``U`` and pressure ``P``.
"""

from dataclasses import dataclass
from typing import Union

import numpy as np

_TO_METERS = {
    "m": 1.0,
    "mm": 0.001,
    "cm": 0.01,
    "um": 1e-6,
}

MMHG_TO_PA = 133.322


def to_si_length(value: Union[float, np.ndarray], from_unit: str = "um") -> Union[float, np.ndarray]:
    """
    Convert length from specified unit to SI (meters).

    Parameters
    ----------
    value : float or ndarray
        Length value(s) to convert
    from_unit : str
        Source unit ('mm', 'cm', 'm', 'um'). Default: 'um'

    Returns
    -------
    float or ndarray
        Length in meters (SI)

    Examples
    --------
    >>> to_si_length(5.0, 'um')
    5e-06
    """
    if from_unit not in _TO_METERS:
        raise ValueError(f"Unknown unit '{from_unit}'. Supported: {list(_TO_METERS.keys())}")

    return value * _TO_METERS[from_unit]


def from_si_length(value: Union[float, np.ndarray], to_unit: str = "um") -> Union[float, np.ndarray]:
    """Convert length from SI (meters) to ``to_unit``."""
    if to_unit not in _TO_METERS:
        raise ValueError(f"Unknown unit '{to_unit}'. Supported: {list(_TO_METERS.keys())}")

    return value / _TO_METERS[to_unit]


def mmhg_to_pa(value: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    return value * MMHG_TO_PA


def pa_to_mmhg(value: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    return value / MMHG_TO_PA


@dataclass(frozen=True)
class NondimensionalScales:
    """
    Characteristic scales of a simulation.

    Attributes
    ----------
    length : float
        Characteristic length ``d`` [m]
    velocity : float
        Characteristic velocity ``U`` [m/s]
    pressure : float
        Characteristic pressure ``P`` [Pa]
    """

    length: float
    velocity: float
    pressure: float

    def __post_init__(self):
        for name in ("length", "velocity", "pressure"):
            if getattr(self, name) <= 0.0:
                raise ValueError(f"Characteristic {name} must be positive")

    def pressure_to_adim(self, value):
        return value / self.pressure

    def tissue_conductivity(self, permeability: float, viscosity: float) -> float:
        """Dimensionless Darcy conductivity ``k / mu * P / U / d``."""
        return permeability / viscosity * self.pressure / self.velocity / self.length

    def wall_conductivity_factor(self, lp):
        """Factor turning a dimensionless perimeter into wall conductivity (``Lp P / U``)."""
        return lp * self.pressure / self.velocity

    def lymphatic_coefficient(self, lp_lf: float) -> float:
        """Dimensionless linear lymphatic coefficient ``Lp_LF P d / U``."""
        return lp_lf * self.pressure * self.length / self.velocity

    def rate_to_adim(self, value):
        """Volumetric rate per unit volume [1/s] to dimensionless (``* d / U``)."""
        return value * self.length / self.velocity

    def resistance_prefactor(self) -> float:
        """``U / (P d)``, the scale of the vessel resistance coefficient."""
        return self.velocity / (self.pressure * self.length)

    def diameter_um(self, radius_adim):
        """Diameter in micrometres from a dimensionless radius."""
        return 2.0 * radius_adim * self.length * 1e6
