"""Configuration validation with bounds checking.

Bounds are plausibility ranges: values outside them are reported, not
rejected.
"""

from typing import List, Tuple

from .config import SimulationConfig


CONFIG_BOUNDS = {
    "THETA": (0.0, 10.0, "factor"),
    "BETA_H": (0.0, 1.0e6, "coefficient"),
    "H_START": (0.0, 0.99, "fraction"),
    "underRelax": (1.0e-3, 1.0, "ratio"),
    "underH": (1.0e-3, 1.0, "ratio"),
    "epsSol": (0.0, 1.0, "relative"),
    "epsCM": (0.0, 1.0, "relative"),
    "epsH": (0.0, 1.0, "relative"),
    "Max_it": (1, 100000, "iterations"),
    "Save_it": (0, 100000, "iterations"),
    "nu": (0.0, 0.5, "ratio"),
    "sigma": (0.0, 1.0, "ratio"),
    "Gamma": (0.0, 20.0, "exponent"),
    "d": (1.0e-7, 1.0, "m"),
    "mu_v": (1.0e-4, 1.0, "Pa s"),
    "mu_plasma": (1.0e-4, 1.0, "Pa s"),
}

_POSITIVE_KEYS = ("d", "U", "P", "k", "mu_t", "mu_v", "E", "Kt", "Kv")


def validate_config(config: SimulationConfig) -> Tuple[bool, List[str]]:
    """
    Validate a configuration against bounds.

    Parameters
    ----------
    config : SimulationConfig
        Configuration to validate

    Returns
    -------
    is_valid : bool
        True if all values are valid
    warnings : list of str
        List of validation warnings/errors
    """
    warnings = []

    for key, (min_val, max_val, unit) in CONFIG_BOUNDS.items():
        if key not in config:
            continue
        value = config.real_value(key)
        if value < min_val:
            warnings.append(f"{key} = {value} {unit} is below minimum {min_val} {unit}")
        elif value > max_val:
            warnings.append(f"{key} = {value} {unit} exceeds maximum {max_val} {unit}")

    for key in _POSITIVE_KEYS:
        if key in config and config.real_value(key) <= 0.0:
            warnings.append(f"{key} = {config.real_value(key)} must be positive")

    model = config.string_value("VISCOSITY_MODEL", "vivo")
    if model not in ("vivo", "vitro"):
        warnings.append(f"VISCOSITY_MODEL = {model!r} is not one of 'vivo', 'vitro'")

    if config.bool_value("PHASE_SEPARATION", False) and config.real_value("THETA", 1.0) == 0.0:
        warnings.append(
            "PHASE_SEPARATION with THETA = 0 leaves stagnant branches without diffusion, "
            "the hematocrit system may be singular"
        )

    if not config.bool_value("LINEAR_LYMPHATIC_DRAINAGE", True):
        c_key = "QLF_C" if config.dimensionless else "C_LF"
        if c_key in config and config.real_value(c_key) == 0.0:
            warnings.append(f"{c_key} = 0 makes the sigmoid lymphatic law a step function")

    is_valid = len(warnings) == 0
    return is_valid, warnings


def validate_and_warn(config: SimulationConfig) -> SimulationConfig:
    """
    Validate a configuration and print warnings.

    Parameters
    ----------
    config : SimulationConfig
        Configuration to validate

    Returns
    -------
    config : SimulationConfig
        Same configuration (for chaining)
    """
    is_valid, warnings = validate_config(config)

    if not is_valid:
        print(f"⚠️  Configuration validation warnings ({len(warnings)}):")
        for warning in warnings:
            print(f"  - {warning}")

    return config
