"""Network topology reconstruction."""

from .builder import NetworkTopologyBuilder, build_topology, mesh_to_multigraph

__all__ = ["NetworkTopologyBuilder", "build_topology", "mesh_to_multigraph"]
