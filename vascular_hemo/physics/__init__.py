"""Constitutive laws: wall compliance, viscosity, phase separation, drainage."""

from .compliance import (
    VesselComplianceModel,
    CircularSection,
    BuckledSection,
    deform_section,
    buckling_threshold,
    ARTERIOLE_RATIO,
    COLLAPSE_LIMIT,
)
from .viscosity import ViscosityModel, blood_viscosity
from .phase_separation import partition, pries_fractional_flux
from .lymphatics import LymphaticDrainage, linear_drainage, sigmoid_drainage

__all__ = [
    "VesselComplianceModel",
    "CircularSection",
    "BuckledSection",
    "deform_section",
    "buckling_threshold",
    "ARTERIOLE_RATIO",
    "COLLAPSE_LIMIT",
    "ViscosityModel",
    "blood_viscosity",
    "partition",
    "pries_fractional_flux",
    "LymphaticDrainage",
    "linear_drainage",
    "sigmoid_drainage",
]
