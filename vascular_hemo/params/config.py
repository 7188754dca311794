"""
Key/value configuration source of a simulation.

Values come from a plain dictionary or a JSON file.  Typed accessors fall back
to the supplied default and raise ``ConfigurationError`` when a required key
is absent.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.errors import ConfigurationError

_MISSING = object()

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


class SimulationConfig:
    """
    Simulation parameters keyed by name.

    Parameters
    ----------
    values : dict, optional
        Initial key/value pairs
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(values or {})

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __repr__(self) -> str:
        return f"SimulationConfig({len(self._values)} keys)"

    def keys(self):
        return self._values.keys()

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def _lookup(self, key: str, default: Any, comment: str) -> Any:
        if key in self._values:
            return self._values[key]
        if default is _MISSING:
            hint = f" ({comment})" if comment else ""
            raise ConfigurationError(f"Missing required configuration key '{key}'{hint}")
        return default

    def real_value(self, key: str, default: Any = _MISSING, comment: str = "") -> float:
        value = self._lookup(key, default, comment)
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Configuration key '{key}' is not a number: {value!r}")

    def int_value(self, key: str, default: Any = _MISSING, comment: str = "") -> int:
        value = self._lookup(key, default, comment)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Configuration key '{key}' is not an integer: {value!r}")

    def bool_value(self, key: str, default: Any = _MISSING, comment: str = "") -> bool:
        value = self._lookup(key, default, comment)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
            raise ConfigurationError(f"Configuration key '{key}' is not a flag: {value!r}")
        return bool(value)

    def string_value(self, key: str, default: Any = _MISSING, comment: str = "") -> str:
        return str(self._lookup(key, default, comment))

    @property
    def dimensionless(self) -> bool:
        """True when physical scalars are read as already dimensionless."""
        return self.bool_value("TEST_PARAM", False)

    def with_overrides(self, **overrides) -> "SimulationConfig":
        """Copy of this configuration with some keys replaced."""
        values = dict(self._values)
        values.update(overrides)
        return SimulationConfig(values)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return dict(self._values)

    @classmethod
    def from_dict(cls, d: dict) -> "SimulationConfig":
        """Create from dictionary."""
        return cls(d)

    def to_json(self, path: Union[str, Path]) -> None:
        with open(path, "w") as f:
            json.dump(self._values, f, indent=2, sort_keys=True)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "SimulationConfig":
        with open(path, "r") as f:
            return cls(json.load(f))
