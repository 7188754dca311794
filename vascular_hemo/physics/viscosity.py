"""
Apparent blood viscosity as a function of hematocrit and vessel diameter.

Empirical laws of Pries et al.: ``"vivo"`` (Pries & Secomb 2005, in-vivo
network data) and ``"vitro"`` (Pries et al. 1992, glass tube data).
Diameters are in micrometres.
"""

import numpy as np

from ..params.store import ParameterStore

MODELS = ("vivo", "vitro")
MIN_DIAMETER_UM = 1.1  # the in-vivo law is singular here
_MAX_HEMATOCRIT = 0.99


def _shape_exponent(diameter):
    """Diameter dependent exponent C of the hematocrit dependence."""
    damp = 1.0 / (1.0 + 1e-11 * diameter ** 12)
    return (0.8 + np.exp(-0.075 * diameter)) * (-1.0 + damp) + damp


def _hematocrit_factor(h, c):
    return ((1.0 - h) ** c - 1.0) / ((1.0 - 0.45) ** c - 1.0)


def relative_viscosity_vivo(h, diameter):
    """Relative apparent viscosity, in-vivo law."""
    mu45 = 6.0 * np.exp(-0.085 * diameter) + 3.2 - 2.44 * np.exp(-0.06 * diameter ** 0.645)
    c = _shape_exponent(diameter)
    fahraeus = (diameter / (diameter - MIN_DIAMETER_UM)) ** 2
    return (1.0 + (mu45 - 1.0) * _hematocrit_factor(h, c) * fahraeus) * fahraeus


def relative_viscosity_vitro(h, diameter):
    """Relative apparent viscosity, in-vitro law."""
    mu45 = 220.0 * np.exp(-1.3 * diameter) + 3.2 - 2.44 * np.exp(-0.06 * diameter ** 0.645)
    c = _shape_exponent(diameter)
    return 1.0 + (mu45 - 1.0) * _hematocrit_factor(h, c)


def blood_viscosity(h, diameter_um, mu_plasma: float, model: str = "vivo"):
    """
    Apparent blood viscosity.

    Parameters
    ----------
    h : float or ndarray
        Discharge hematocrit
    diameter_um : float or ndarray
        Vessel diameter [um]
    mu_plasma : float
        Plasma viscosity
    model : str
        ``"vivo"`` or ``"vitro"``

    Returns
    -------
    float or ndarray
        Viscosity in the units of ``mu_plasma``; plasma viscosity where the
        hematocrit is zero or the diameter is at most 1.1 um
    """
    if model not in MODELS:
        raise ValueError(f"Unknown viscosity model '{model}'. Available: {', '.join(MODELS)}")

    scalar = np.ndim(h) == 0 and np.ndim(diameter_um) == 0
    h, diameter = np.broadcast_arrays(
        np.clip(np.asarray(h, dtype=float), 0.0, _MAX_HEMATOCRIT),
        np.asarray(diameter_um, dtype=float),
    )
    plasma = (h <= 0.0) | (diameter <= MIN_DIAMETER_UM)
    safe_d = np.where(plasma, 10.0, diameter)
    safe_h = np.where(plasma, 0.45, h)

    law = relative_viscosity_vivo if model == "vivo" else relative_viscosity_vitro
    mu = np.where(plasma, 1.0, law(safe_h, safe_d)) * mu_plasma
    return float(mu) if scalar else mu


class ViscosityModel:
    """
    Element-wise blood viscosity of a network.

    Parameters
    ----------
    store : ParameterStore
        Source of plasma viscosity and length scale
    model : str, optional
        Viscosity law (default from the ``VISCOSITY_MODEL`` key)
    """

    def __init__(self, store: ParameterStore, model: str = None):
        self.store = store
        self.model = model or store.config.string_value("VISCOSITY_MODEL", "vivo")
        if self.model not in MODELS:
            raise ValueError(f"Unknown viscosity model '{self.model}'. Available: {', '.join(MODELS)}")

    def element_viscosity(self, h_elements: np.ndarray, radius_elements: np.ndarray) -> np.ndarray:
        """Viscosity [Pa s] from element hematocrit and dimensionless radius."""
        diameter = self.store.diameter_um(radius_elements)
        return np.asarray(
            blood_viscosity(h_elements, diameter, self.store.mu_plasma, self.model), dtype=float
        ).reshape(-1)
