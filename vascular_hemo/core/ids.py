"""
Region id allocation for topology records.
"""

from typing import Set

from .errors import TopologyError


class RegionIDAllocator:
    """
    Monotonic allocator for boundary and junction region ids.

    Branch regions own ids ``0 .. n_branches - 1``; records built on top of
    them are numbered from ``start_id`` upwards in discovery order.
    """

    def __init__(self, start_id: int = 0):
        """
        Initialize allocator.

        Parameters
        ----------
        start_id : int
            First id handed out (usually the number of branches)
        """
        self.start_id = start_id
        self.current_id = start_id
        self._claimed: Set[int] = set()

    def next_id(self) -> int:
        """Claim and return the next free id."""
        return self.claim(self.current_id)

    def claim(self, region_id: int) -> int:
        """Claim a specific id. Claiming an id twice is a topology error."""
        if region_id < self.start_id:
            raise TopologyError(
                f"Region id {region_id} collides with branch regions (< {self.start_id})"
            )
        if region_id in self._claimed:
            raise TopologyError(f"Region id {region_id} is already in use")
        self._claimed.add(region_id)
        self.current_id = max(self.current_id, region_id + 1)
        return region_id

    def peek_next_id(self) -> int:
        """Peek at next ID without consuming it."""
        return self.current_id

    def is_claimed(self, region_id: int) -> bool:
        return region_id in self._claimed

    def get_state(self) -> dict:
        """Get current state for serialization."""
        return {
            "start_id": self.start_id,
            "current_id": self.current_id,
            "claimed": sorted(self._claimed),
        }

    def set_state(self, state: dict) -> None:
        """Restore state from serialization."""
        self.start_id = state["start_id"]
        self.current_id = state["current_id"]
        self._claimed = set(state.get("claimed", []))
