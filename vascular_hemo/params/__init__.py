"""Simulation configuration, presets, validation and the parameter store."""

from .config import SimulationConfig

from .presets import (
    microcirculation,
    compliant_microcirculation,
    dimensionless_test,
    get_preset,
    list_presets,
    PRESETS,
)

from .validation import (
    validate_config,
    validate_and_warn,
    CONFIG_BOUNDS,
)

from .store import ParameterStore, GeometryView, ELEMENT_FIELDS

__all__ = [
    "SimulationConfig",
    # Presets
    "microcirculation",
    "compliant_microcirculation",
    "dimensionless_test",
    "get_preset",
    "list_presets",
    "PRESETS",
    # Validation
    "validate_config",
    "validate_and_warn",
    "CONFIG_BOUNDS",
    # Store
    "ParameterStore",
    "GeometryView",
    "ELEMENT_FIELDS",
]
