"""
Mixed-event pool

Keeps, for every EventClass, the candidate arrays of the most recent
events (most recent first). The depth of a slot is limited by the mixing
depth of its centrality bin only; vertex and reaction-plane bins share
that limit.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterator

from .binning import CentralityBinning, EventClass
from .candidates import CandidateArray


class MixedEventPool:
    """
    Capacity-bounded FIFO of past candidate arrays per EventClass.

    Slots are allocated lazily at the flattened offset
    vtx_bin * n_cent * n_rp + cent_bin * n_rp + rp_bin.

    Attributes:
        name: Label used in log messages
        n_vtx_bins: Number of vertex bins
        n_rp_bins: Number of reaction-plane bins
        centrality: Centrality binning holding the per-bin depth limits
    """

    def __init__(
        self,
        centrality: CentralityBinning,
        n_rp_bins: int,
        n_vtx_bins: int = 1,
        name: str = "pool",
    ) -> None:
        self.name = name
        self.centrality: CentralityBinning = centrality
        self.n_vtx_bins: int = n_vtx_bins
        self.n_rp_bins: int = n_rp_bins
        self._slots: list[deque[CandidateArray] | None] = [None] * self.capacity
        self.logger = logging.getLogger("PHOSCorrelations.MixedEventPool")

    @property
    def n_cent_bins(self) -> int:
        return self.centrality.n_bins

    @property
    def capacity(self) -> int:
        """Number of possible EventClass slots."""
        return self.n_vtx_bins * self.n_cent_bins * self.n_rp_bins

    def offset(self, event_class: EventClass) -> int:
        vtx_bin, cent_bin, rp_bin = event_class
        if not (0 <= vtx_bin < self.n_vtx_bins
                and 0 <= cent_bin < self.n_cent_bins
                and 0 <= rp_bin < self.n_rp_bins):
            raise IndexError(
                f"{event_class} outside pool dimensions "
                f"({self.n_vtx_bins}, {self.n_cent_bins}, {self.n_rp_bins})"
            )
        return vtx_bin * self.n_cent_bins * self.n_rp_bins + cent_bin * self.n_rp_bins + rp_bin

    def get(self, event_class: EventClass) -> deque[CandidateArray]:
        """History of an EventClass, most recent first; created empty on first access."""
        offset = self.offset(event_class)
        slot = self._slots[offset]
        if slot is None:
            slot = deque()
            self._slots[offset] = slot
        return slot

    def admit(self, event_class: EventClass, candidates: CandidateArray) -> bool:
        """
        Take ownership of an event's candidates.

        Empty arrays are discarded. When the slot grows beyond the depth
        limit of its centrality bin, the oldest array is dropped.

        Returns:
            True if the array was pooled
        """
        if not candidates:
            return False

        slot = self.get(event_class)
        candidates.seal()
        slot.appendleft(candidates)

        cent_bin = event_class[1]
        limit = self.centrality.depth_limit(cent_bin)
        self.logger.debug(
            f"{self.name}: cent_bin={cent_bin}, depth={len(slot)}, limit={limit}"
        )
        if len(slot) > limit:
            slot.pop()
        return True

    def __iter__(self) -> Iterator[deque[CandidateArray]]:
        return (slot for slot in self._slots if slot is not None)

    def n_allocated(self) -> int:
        return sum(1 for _ in self)

    def n_events(self) -> int:
        return sum(len(slot) for slot in self)

    def state(self) -> list[list[int]]:
        """Per-slot history sizes (empty list for unallocated slots)."""
        return [[len(arr) for arr in slot] if slot is not None else [] for slot in self._slots]
