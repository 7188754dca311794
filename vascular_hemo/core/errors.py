"""
Exception types raised by vascular_hemo.

Recoverable input problems are reported with ``warnings.warn`` and a
fallback value; the exceptions below are for problems the caller has to fix.
"""

from typing import Optional


class TopologyError(ValueError):
    """The vessel mesh cannot be turned into a branch/junction/boundary graph."""


class LinearSolveError(RuntimeError):
    """A linear system is singular, ill-conditioned or produced non-finite values."""

    def __init__(self, message: str, condition: Optional[float] = None):
        super().__init__(message)
        self.condition = condition


class ConfigurationError(KeyError):
    """A required configuration key is missing or has the wrong type."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
