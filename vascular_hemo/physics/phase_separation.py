"""
Red blood cell partition at diverging junctions.

``partition`` returns, for every outgoing branch of a junction, the share of
the incoming red cell flux it receives.  Without phase separation the share
follows the blood flow; with it, two-daughter bifurcations use the plasma
skimming fit of Pries et al. (1990).
"""

from typing import Optional, Sequence

import numpy as np
from scipy.special import expit

_TINY_FLOW = 1e-14


def pries_fractional_flux(
    flow_fraction: float,
    parent_diameter: float,
    daughter_diameter: float,
    sibling_diameter: float,
    parent_hematocrit: float,
) -> float:
    """
    Fraction of the parent red cell flux entering one daughter.

    Parameters
    ----------
    flow_fraction : float
        Fraction of the parent blood flow entering the daughter
    parent_diameter, daughter_diameter, sibling_diameter : float
        Diameters [um]
    parent_hematocrit : float
        Discharge hematocrit of the parent vessel

    Returns
    -------
    float
        Red cell flux fraction in [0, 1]
    """
    x0 = 0.4 / parent_diameter
    if flow_fraction <= x0:
        return 0.0
    if flow_fraction >= 1.0 - x0:
        return 1.0
    h = np.clip(parent_hematocrit, 0.0, 0.99)
    a = -6.96 * np.log(daughter_diameter / sibling_diameter) / parent_diameter
    b = 1.0 + 6.98 * (1.0 - h) / parent_diameter
    return float(expit(a + b * (np.log(flow_fraction - x0) - np.log(1.0 - flow_fraction - x0))))


def partition(
    outflows: Sequence[float],
    radii: Sequence[float],
    weight: Optional[float] = None,
    parent_diameter: float = 0.0,
    daughter_diameters: Sequence[float] = (),
    parent_hematocrit: float = 0.45,
    phase_separation: bool = False,
) -> np.ndarray:
    """
    Shares of the incoming red cell flux among outgoing branches.

    Parameters
    ----------
    outflows : sequence of float
        Blood flow leaving the junction into each outgoing branch (>= 0)
    radii : sequence of float
        Radius of each outgoing branch, used when the outflow vanishes
    weight : float, optional
        Radius weight of the junction restricted to the outgoing branches
        (default: sum of ``radii``)
    parent_diameter : float
        Diameter of the feeding vessel [um] (phase separation only)
    daughter_diameters : sequence of float
        Diameters of the outgoing branches [um] (phase separation only)
    parent_hematocrit : float
        Discharge hematocrit entering the junction
    phase_separation : bool
        Use the plasma skimming law for two-daughter junctions

    Returns
    -------
    ndarray
        Non-negative shares summing to one
    """
    flows = np.abs(np.asarray(outflows, dtype=float))
    radii = np.asarray(radii, dtype=float)
    if flows.size == 0:
        return flows

    total = flows.sum()
    if total <= _TINY_FLOW:
        if weight is None or weight <= 0.0:
            weight = radii.sum()
        return radii / weight

    shares = flows / total
    if not phase_separation or flows.size != 2 or parent_diameter <= 0.0:
        return shares
    if 0.4 / parent_diameter >= 0.5:
        return shares

    d_alpha, d_beta = daughter_diameters
    fqe = pries_fractional_flux(shares[0], parent_diameter, d_alpha, d_beta, parent_hematocrit)
    return np.array([fqe, 1.0 - fqe])
