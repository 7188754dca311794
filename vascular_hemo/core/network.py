"""
Topology records of a vessel network.

Records are immutable once the builder has produced them; the arena
(``NetworkTopology``) owns them and answers vertex lookups.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple


class BoundaryLabel(Enum):
    """Kind of a boundary extremum."""
    INFLOW = "INFLOW"
    OUTFLOW = "OUTFLOW"
    MIXED = "MIXED"


FLOW_PRESSURE = "pressure"
FLOW_VELOCITY = "velocity"
FLOW_KINDS = (FLOW_PRESSURE, FLOW_VELOCITY)


class JunctionBranch(NamedTuple):
    """Branch attached to a junction with its orientation sign."""

    branch: int
    sign: int  # -1: junction is the branch's downstream end, +1: upstream end

    @property
    def is_incoming(self) -> bool:
        return self.sign < 0


@dataclass(frozen=True)
class Branch:
    """
    Maximal chain of elements sharing one region id.

    ``vertices`` are ordered along the branch direction,
    ``orientation[k]`` is +1 when element ``elements[k]`` runs from
    ``vertices[k]`` to ``vertices[k + 1]`` and -1 otherwise.
    """

    index: int
    elements: Tuple[int, ...]
    vertices: Tuple[int, ...]
    orientation: Tuple[int, ...]
    tangents: Tuple[Tuple[float, float, float], ...]

    @property
    def n_elements(self) -> int:
        return len(self.elements)

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def first_vertex(self) -> int:
        return self.vertices[0]

    @property
    def last_vertex(self) -> int:
        return self.vertices[-1]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "index": self.index,
            "elements": list(self.elements),
            "vertices": list(self.vertices),
            "orientation": list(self.orientation),
            "tangents": [list(t) for t in self.tangents],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Branch":
        """Create from dictionary."""
        return cls(
            index=d["index"],
            elements=tuple(d["elements"]),
            vertices=tuple(d["vertices"]),
            orientation=tuple(d["orientation"]),
            tangents=tuple(tuple(t) for t in d["tangents"]),
        )


@dataclass(frozen=True)
class BoundaryCondition:
    """Boundary extremum of the network (a vertex of degree 1)."""

    label: BoundaryLabel
    value: float  # prescribed hematocrit, 0.0 for MIXED
    vertex_id: int
    region_id: int
    branches: Tuple[int, ...]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "label": self.label.value,
            "value": self.value,
            "vertex_id": self.vertex_id,
            "region_id": self.region_id,
            "branches": list(self.branches),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "BoundaryCondition":
        """Create from dictionary."""
        return cls(
            label=BoundaryLabel(d["label"]),
            value=d["value"],
            vertex_id=d["vertex_id"],
            region_id=d["region_id"],
            branches=tuple(d["branches"]),
        )


@dataclass(frozen=True)
class Junction:
    """Vertex where two or more branches meet."""

    weight: float  # sum of the mean radii of the attached branches
    vertex_id: int
    region_id: int
    branches: Tuple[JunctionBranch, ...]
    label: str = "JUN"

    @property
    def is_trivial(self) -> bool:
        return len(self.branches) == 2

    def sign_of(self, branch: int) -> int:
        for entry in self.branches:
            if entry.branch == branch:
                return entry.sign
        raise KeyError(f"Branch {branch} is not attached to junction {self.region_id}")

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "label": self.label,
            "weight": self.weight,
            "vertex_id": self.vertex_id,
            "region_id": self.region_id,
            "branches": [[b.branch, b.sign] for b in self.branches],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Junction":
        """Create from dictionary."""
        return cls(
            weight=d["weight"],
            vertex_id=d["vertex_id"],
            region_id=d["region_id"],
            branches=tuple(JunctionBranch(int(b), int(s)) for b, s in d["branches"]),
            label=d.get("label", "JUN"),
        )


@dataclass
class BoundarySpec:
    """
    Expected boundary node supplied by the configuration.

    ``flow_kind`` selects a pressure or an inward velocity condition for the
    flow problem, ``hematocrit`` the discharge hematocrit entering there.
    """

    vertex_id: int
    flow_kind: str = FLOW_PRESSURE
    flow_value: float = 0.0
    hematocrit: float = 0.45

    def __post_init__(self):
        if self.flow_kind not in FLOW_KINDS:
            raise ValueError(f"flow_kind must be one of {FLOW_KINDS}, got {self.flow_kind!r}")
        if not 0.0 <= self.hematocrit < 1.0:
            raise ValueError(f"hematocrit must lie in [0, 1), got {self.hematocrit}")

    def to_dict(self) -> dict:
        return {
            "vertex_id": self.vertex_id,
            "flow_kind": self.flow_kind,
            "flow_value": self.flow_value,
            "hematocrit": self.hematocrit,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "BoundarySpec":
        return cls(
            vertex_id=d["vertex_id"],
            flow_kind=d.get("flow_kind", FLOW_PRESSURE),
            flow_value=d.get("flow_value", 0.0),
            hematocrit=d.get("hematocrit", 0.45),
        )


@dataclass
class NetworkTopology:
    """
    Branches, boundary extrema and junctions of a vessel network.

    Owns all records; junctions and boundaries refer to branches by index.
    """

    branches: List[Branch]
    boundaries: List[BoundaryCondition] = field(default_factory=list)
    junctions: List[Junction] = field(default_factory=list)
    metadata: Dict[str, object] = field(default_factory=dict)

    def __post_init__(self):
        self._boundary_by_vertex = {bc.vertex_id: bc for bc in self.boundaries}
        self._junction_by_vertex = {j.vertex_id: j for j in self.junctions}

    @property
    def n_branches(self) -> int:
        return len(self.branches)

    def boundary_at(self, vertex_id: int) -> Optional[BoundaryCondition]:
        return self._boundary_by_vertex.get(vertex_id)

    def junction_at(self, vertex_id: int) -> Optional[Junction]:
        return self._junction_by_vertex.get(vertex_id)

    def boundary_vertices(self) -> List[int]:
        return [bc.vertex_id for bc in self.boundaries]

    def classified_vertices(self) -> Dict[int, str]:
        """Map every classified vertex to ``"boundary"`` or ``"junction"``."""
        classified = {bc.vertex_id: "boundary" for bc in self.boundaries}
        classified.update({j.vertex_id: "junction" for j in self.junctions})
        return classified

    def region_ids(self) -> List[int]:
        """Region ids of boundaries and junctions in discovery order."""
        records = list(self.boundaries) + list(self.junctions)
        return [r.region_id for r in sorted(records, key=lambda r: r.region_id)]

    def summary(self) -> str:
        """Human-readable listing of the network records."""
        lines = [
            f"Network: {self.n_branches} branches, "
            f"{len(self.boundaries)} boundary nodes, {len(self.junctions)} junctions"
        ]
        for bc in self.boundaries:
            lines.append(
                f"  BC  region {bc.region_id}: {bc.label.value} at vertex {bc.vertex_id} "
                f"(H = {bc.value}, branches {list(bc.branches)})"
            )
        for j in self.junctions:
            attached = ", ".join(f"{'-' if b.sign < 0 else '+'}{b.branch}" for b in j.branches)
            lines.append(
                f"  JUN region {j.region_id}: vertex {j.vertex_id}, weight {j.weight:.4g}, "
                f"branches [{attached}]"
            )
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "branches": [b.to_dict() for b in self.branches],
            "boundaries": [bc.to_dict() for bc in self.boundaries],
            "junctions": [j.to_dict() for j in self.junctions],
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "NetworkTopology":
        """Create from dictionary."""
        return cls(
            branches=[Branch.from_dict(b) for b in d["branches"]],
            boundaries=[BoundaryCondition.from_dict(bc) for bc in d.get("boundaries", [])],
            junctions=[Junction.from_dict(j) for j in d.get("junctions", [])],
            metadata=d.get("metadata", {}),
        )
