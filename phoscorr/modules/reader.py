"""
Momentum-array reader and eta/phi unit grid

The reader turns the tracks of one event into massless 4-momenta with a
signal flag and a pt-cut flag per accepted track. The unit grid divides
an eta/phi acceptance into uniform cells; a UnitArray sums the transverse
momentum of the tracks falling into each cell.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Sequence

import awkward as ak
import numpy as np
import vector

from .event_source import RawTrack
from .exceptions import ConfigurationError

vector.register_awkward()

TWO_PI = 2.0 * math.pi

# Tracks with |label| below this value come from the signal event
SIGNAL_LABEL_LIMIT = 10000


def wrap_phi(phi):
    """Map azimuth into [0, 2pi); works on scalars and numpy arrays."""
    return np.mod(phi, TWO_PI)


@dataclass
class MomentumArray:
    """Accepted tracks of one event."""

    momenta: vector.MomentumNumpy4D
    signal_flag: np.ndarray
    cut_flag: np.ndarray
    track_index: np.ndarray

    def __len__(self) -> int:
        return len(self.signal_flag)

    @property
    def n_above_cut(self) -> int:
        return int(np.count_nonzero(self.cut_flag))


class MomentumArrayReader:
    """
    Fill per-event momentum arrays from tracks.

    Attributes:
        pt_min: Threshold of the pt-cut flag [GeV/c]
        eta_min: Lower edge of the fiducial eta window
        eta_max: Upper edge of the fiducial eta window
        filter_mask: Filter bits a track must carry, 0 disables the test
    """

    def __init__(
        self,
        pt_min: float = 0.0,
        eta_min: float = -0.9,
        eta_max: float = 0.9,
        filter_mask: int = 0,
    ) -> None:
        if eta_min > eta_max:
            raise ConfigurationError(f"Fiducial eta window is empty: [{eta_min}, {eta_max}]")
        self.pt_min = pt_min
        self.eta_min = eta_min
        self.eta_max = eta_max
        self.filter_mask = filter_mask
        self.logger = logging.getLogger("PHOSCorrelations.MomentumArrayReader")

    def accept(self, track: RawTrack) -> bool:
        if track.status == 0:
            return False
        if self.filter_mask > 0 and not track.test_filter_bit(self.filter_mask):
            return False
        return self.eta_min <= track.eta <= self.eta_max

    def fill(self, tracks: Sequence[RawTrack]) -> MomentumArray:
        """
        Build the momentum array of one event.

        Momenta are massless: E = |p|.
        """
        accepted = [(i, t) for i, t in enumerate(tracks) if self.accept(t)]
        px = np.array([t.px for _, t in accepted], dtype=np.float64)
        py = np.array([t.py for _, t in accepted], dtype=np.float64)
        pz = np.array([t.pz for _, t in accepted], dtype=np.float64)
        labels = np.array([t.label for _, t in accepted], dtype=np.int64)

        momenta = vector.array({"px": px, "py": py, "pz": pz, "E": np.sqrt(px**2 + py**2 + pz**2)})
        self.logger.debug(f"Tracks: {len(tracks)}, used: {len(accepted)}")
        return MomentumArray(
            momenta=momenta,
            signal_flag=np.abs(labels) < SIGNAL_LABEL_LIMIT,
            cut_flag=momenta.pt > self.pt_min,
            track_index=np.array([i for i, _ in accepted], dtype=np.int64),
        )

    def fill_jagged(self, events: ak.Array) -> ak.Array:
        """
        Columnar variant over many events.

        Args:
            events: Record array with jagged fields track_px, track_py,
                track_pz, track_status, track_label and optionally
                track_filter_map

        Returns:
            Jagged Momentum4D records with extra fields signal_flag and cut_flag
        """
        px, py, pz = events["track_px"], events["track_py"], events["track_pz"]
        p4 = vector.zip({"px": px, "py": py, "pz": pz, "E": np.sqrt(px**2 + py**2 + pz**2)})

        mask = (events["track_status"] != 0) & (p4.eta >= self.eta_min) & (p4.eta <= self.eta_max)
        if self.filter_mask > 0 and "track_filter_map" in events.fields:
            mask = mask & ((events["track_filter_map"] & self.filter_mask) != 0)

        selected = p4[mask]
        return ak.zip(
            {
                "px": selected.px,
                "py": selected.py,
                "pz": selected.pz,
                "E": selected.E,
                "signal_flag": abs(events["track_label"][mask]) < SIGNAL_LABEL_LIMIT,
                "cut_flag": selected.pt > self.pt_min,
            },
            with_name="Momentum4D",
        )


@dataclass(frozen=True)
class UnitGrid:
    """
    Uniform eta x phi cell grid. Phi limits are wrapped into [0, 2pi).

    Cell index = eta_index * n_phi + phi_index.
    """

    n_eta: int
    eta_min: float
    eta_max: float
    n_phi: int
    phi_min: float
    phi_max: float

    def __post_init__(self) -> None:
        if self.n_eta < 1 or self.n_phi < 1:
            raise ConfigurationError(f"Grid needs at least one cell per axis: {self.n_eta} x {self.n_phi}")
        if not self.eta_max > self.eta_min or not self.phi_max > self.phi_min:
            raise ConfigurationError(
                f"Empty grid range: eta [{self.eta_min}, {self.eta_max}], phi [{self.phi_min}, {self.phi_max}]"
            )
        if self.phi_max - self.phi_min > TWO_PI + 1e-12:
            raise ConfigurationError(f"Phi range wider than 2pi: [{self.phi_min}, {self.phi_max}]")

    @property
    def n_cells(self) -> int:
        return self.n_eta * self.n_phi

    @property
    def deta(self) -> float:
        return (self.eta_max - self.eta_min) / self.n_eta

    @property
    def dphi(self) -> float:
        return (self.phi_max - self.phi_min) / self.n_phi

    def centers(self):
        """(eta, phi) of every cell centre, phi in [0, 2pi)."""
        eta_idx, phi_idx = np.divmod(np.arange(self.n_cells), self.n_phi)
        eta = self.eta_min + (eta_idx + 0.5) * self.deta
        phi = wrap_phi(self.phi_min + (phi_idx + 0.5) * self.dphi)
        return eta, phi

    def cell_index(self, eta, phi) -> np.ndarray:
        """Cell of each (eta, phi), -1 outside the grid."""
        eta = np.atleast_1d(np.asarray(eta, dtype=np.float64))
        # Azimuth relative to the lower grid edge
        rel_phi = wrap_phi(np.atleast_1d(np.asarray(phi, dtype=np.float64)) - self.phi_min)

        i_eta = np.floor((eta - self.eta_min) / self.deta).astype(np.int64)
        i_phi = np.floor(rel_phi / self.dphi).astype(np.int64)
        inside = (i_eta >= 0) & (i_eta < self.n_eta) & (i_phi >= 0) & (i_phi < self.n_phi)
        return np.where(inside, i_eta * self.n_phi + i_phi, -1)


@dataclass
class UnitArray:
    """Summed transverse momentum per grid cell of one event."""

    grid: UnitGrid
    pt_min: float = 0.0
    pt: np.ndarray = field(init=False)
    multiplicity: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        self.pt = np.zeros(self.grid.n_cells, dtype=np.float64)
        self.multiplicity = np.zeros(self.grid.n_cells, dtype=np.int64)

    def reset(self) -> None:
        self.pt[:] = 0.0
        self.multiplicity[:] = 0

    def fill(self, momenta: MomentumArray) -> int:
        """
        Add the momenta of an event into the cells.

        Returns:
            Number of momenta that fell inside the grid
        """
        if len(momenta) == 0:
            return 0
        cells = self.grid.cell_index(momenta.momenta.eta, momenta.momenta.phi)
        inside = cells >= 0
        np.add.at(self.pt, cells[inside], momenta.momenta.pt[inside])
        np.add.at(self.multiplicity, cells[inside], 1)
        return int(np.count_nonzero(inside))

    @property
    def cut_flag(self) -> np.ndarray:
        """Cells whose summed pt is above the cut."""
        return self.pt > self.pt_min

    @property
    def n_above_cut(self) -> int:
        return int(np.count_nonzero(self.cut_flag))
