"""
Analysis-ready candidates and per-event candidate arrays
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

import vector


@dataclass(frozen=True)
class Candidate:
    """
    One reconstructed object usable in a pair correlation.

    Attributes:
        momentum: 4-momentum (px, py, pz, E)
        module: PHOS module number (0 for tracks)
        disp_ok: Cluster passed the shower-shape (dispersion) cut
        cpv_ok: Cluster passed the charged-particle-veto cut
        n_cells: Number of cells in the cluster (0 for tracks)
    """

    momentum: vector.MomentumObject4D
    module: int = 0
    disp_ok: bool = True
    cpv_ok: bool = True
    n_cells: int = 0

    @classmethod
    def from_components(cls, px: float, py: float, pz: float, e: float, **flags) -> Candidate:
        return cls(vector.obj(px=px, py=py, pz=pz, E=e), **flags)

    @property
    def px(self) -> float:
        return self.momentum.px

    @property
    def py(self) -> float:
        return self.momentum.py

    @property
    def pz(self) -> float:
        return self.momentum.pz

    @property
    def e(self) -> float:
        return self.momentum.E

    @property
    def pt(self) -> float:
        return self.momentum.pt

    @property
    def phi(self) -> float:
        return self.momentum.phi

    @property
    def eta(self) -> float:
        return self.momentum.eta

    def __add__(self, other: Candidate) -> vector.MomentumObject4D:
        return self.momentum + other.momentum


class CandidateArray:
    """
    Append-only, ordered candidates of one event.

    Once sealed (ownership handed to a mixed-event pool) the array can no
    longer grow, so a pooled snapshot never changes.
    """

    def __init__(self) -> None:
        self._items: list[Candidate] = []
        self._sealed: bool = False

    def append(self, candidate: Candidate) -> None:
        if self._sealed:
            raise RuntimeError("Cannot append to a CandidateArray owned by a mixing pool")
        self._items.append(candidate)

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __getitem__(self, index: int) -> Candidate:
        return self._items[index]

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self._items)

    def __repr__(self) -> str:
        state = "sealed" if self._sealed else "open"
        return f"CandidateArray({len(self._items)} candidates, {state})"
