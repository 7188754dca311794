"""Assembly of the flow and hematocrit systems."""

from .flow import FlowSystemAssembler, FlowSystem
from .hematocrit import HematocritTransportAssembler, HematocritSystem

__all__ = [
    "FlowSystemAssembler",
    "FlowSystem",
    "HematocritTransportAssembler",
    "HematocritSystem",
]
