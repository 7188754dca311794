"""Utility helpers."""

from .units import (
    NondimensionalScales,
    to_si_length,
    from_si_length,
    mmhg_to_pa,
    pa_to_mmhg,
    MMHG_TO_PA,
)

__all__ = [
    "NondimensionalScales",
    "to_si_length",
    "from_si_length",
    "mmhg_to_pa",
    "pa_to_mmhg",
    "MMHG_TO_PA",
]
