"""
Event records and event sources

An event source yields one EventRecord per stored event, or None when an
event could not be retrieved. Two sources are provided:

- InMemoryEventSource: wraps an already built list of records
- UprootEventSource: reads a flat ROOT tree (scalars per event, jagged
  branches for clusters and tracks) with uproot into awkward arrays
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

import awkward as ak
import uproot
import vector

from .exceptions import BranchMissingError, DataLoadError

PION_MASS = 0.13957


@dataclass(frozen=True)
class PrimaryVertex:
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class RawCluster:
    """
    Calorimeter cluster as stored in the event.

    Attributes:
        energy: Cluster energy [GeV]
        position: Global cluster position (x, y, z) [cm]
        core_energy: Corrected (core) energy, falls back to energy
        n_cells: Number of cells
        m02: Shower-shape long axis
        dispersion: Shower dispersion
        emc_cpv_distance: Distance to the closest charged track
        distance_to_bad_channel: Distance to the nearest bad channel
        tof: Time of flight [s]
        cell_abs_id: Absolute id of the leading cell
        is_phos: Cluster belongs to PHOS (not EMCAL)
    """

    energy: float
    position: tuple[float, float, float]
    core_energy: float | None = None
    n_cells: int = 3
    m02: float = 0.5
    dispersion: float = 1.0
    emc_cpv_distance: float = 10.0
    distance_to_bad_channel: float = 10.0
    tof: float = 0.0
    cell_abs_id: int = 1
    is_phos: bool = True


@dataclass(frozen=True)
class RawTrack:
    """
    Charged track as stored in the event.

    Reconstruction-quality fields are only consulted by the track-quality
    variant matching the data type (ESD or AOD).
    """

    px: float
    py: float
    pz: float
    energy: float | None = None
    charge: int = 1
    status: int = 1
    filter_map: int = 0xFFFF
    label: int = 0
    is_hybrid: bool = True
    tpc_refit: bool = True
    n_tpc_clusters: int = 100
    chi2_per_tpc_cluster: float = 1.0
    dca_xy: float = 0.0
    dca_z: float = 0.0
    is_kink_daughter: bool = False

    @property
    def e(self) -> float:
        if self.energy is not None:
            return self.energy
        return math.sqrt(self.px**2 + self.py**2 + self.pz**2 + PION_MASS**2)

    @property
    def momentum(self) -> vector.MomentumObject4D:
        return vector.obj(px=self.px, py=self.py, pz=self.pz, E=self.e)

    @property
    def pt(self) -> float:
        return math.hypot(self.px, self.py)

    @property
    def eta(self) -> float:
        return self.momentum.eta

    def test_filter_bit(self, mask: int) -> bool:
        return bool(self.filter_map & mask)


@dataclass
class EventRecord:
    """
    One stored event.

    Attributes:
        run_number: Run the event belongs to
        trigger_mask: Trigger class bitmask
        vertex: Primary vertex, None when absent
        centrality: Percentile per estimator name, None when unavailable
        reaction_plane: Event-plane angle; None or a value outside [0, 999) means undefined
        clusters: Calorimeter clusters
        tracks: Charged tracks
        data_type: 'ESD' or 'AOD'
    """

    run_number: int
    trigger_mask: int = 0
    vertex: PrimaryVertex | None = None
    centrality: dict[str, float] | None = None
    reaction_plane: float | None = None
    clusters: list[RawCluster] = field(default_factory=list)
    tracks: list[RawTrack] = field(default_factory=list)
    data_type: str = "AOD"


class InMemoryEventSource:
    """Iterate over a fixed sequence of records; None marks a lost event."""

    def __init__(self, records: Iterable[EventRecord | None]) -> None:
        self.records: list[EventRecord | None] = list(records)

    def __iter__(self) -> Iterator[EventRecord | None]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


# Branch layout of the flat event tree
EVENT_BRANCHES = {
    "run_number": "run_number",
    "trigger_mask": "trigger_mask",
    "has_vertex": "has_vertex",
    "vertex_x": "vertex_x",
    "vertex_y": "vertex_y",
    "vertex_z": "vertex_z",
    "centrality": "centrality",
    "reaction_plane": "reaction_plane",
}

CLUSTER_BRANCHES = {
    "energy": "cluster_E",
    "core_energy": "cluster_Ecore",
    "x": "cluster_x",
    "y": "cluster_y",
    "z": "cluster_z",
    "n_cells": "cluster_ncells",
    "m02": "cluster_m02",
    "dispersion": "cluster_disp",
    "emc_cpv_distance": "cluster_cpv_dist",
    "distance_to_bad_channel": "cluster_bc_dist",
    "tof": "cluster_tof",
    "cell_abs_id": "cluster_cell_id",
    "is_phos": "cluster_is_phos",
}

TRACK_BRANCHES = {
    "px": "track_px",
    "py": "track_py",
    "pz": "track_pz",
    "charge": "track_charge",
    "status": "track_status",
    "filter_map": "track_filter_map",
    "label": "track_label",
    "is_hybrid": "track_is_hybrid",
    "tpc_refit": "track_tpc_refit",
    "n_tpc_clusters": "track_tpc_ncls",
    "chi2_per_tpc_cluster": "track_tpc_chi2",
    "dca_xy": "track_dca_xy",
    "dca_z": "track_dca_z",
}

REQUIRED_BRANCHES = [
    "run_number", "has_vertex", "vertex_z", "centrality",
    "cluster_E", "cluster_x", "cluster_y", "cluster_z",
    "track_px", "track_py", "track_pz",
]


class UprootEventSource:
    """
    Read events from a flat ROOT tree with uproot.

    Scalar branches hold per-event quantities; jagged branches hold one
    entry per cluster or track. Optional branches that are absent take the
    RawCluster / RawTrack defaults.
    """

    def __init__(
        self,
        file_path: str,
        tree_name: str = "events",
        data_type: str = "AOD",
        estimator: str = "V0M",
        step_size: int = 1000,
        max_events: int | None = None,
    ) -> None:
        self.file_path = Path(file_path)
        self.tree_name = tree_name
        self.data_type = data_type
        self.estimator = estimator
        self.step_size = step_size
        self.max_events = max_events
        self.logger = logging.getLogger("PHOSCorrelations.UprootEventSource")

        if not self.file_path.exists():
            raise DataLoadError(f"Input file not found: {self.file_path}")

        with uproot.open(self.file_path) as file:
            if self.tree_name not in file:
                raise DataLoadError(f"Tree '{self.tree_name}' not found in {self.file_path}")
            tree = file[self.tree_name]
            self.available_branches = set(tree.keys())
            self.n_entries = tree.num_entries

        for branch in REQUIRED_BRANCHES:
            if branch not in self.available_branches:
                raise BranchMissingError(branch, str(self.file_path))

        self.branches = sorted(
            name
            for name in [*EVENT_BRANCHES.values(), *CLUSTER_BRANCHES.values(), *TRACK_BRANCHES.values()]
            if name in self.available_branches
        )
        self.logger.info(
            f"Opened {self.file_path}:{self.tree_name} with {self.n_entries} events "
            f"({len(self.branches)} branches)"
        )

    def __len__(self) -> int:
        if self.max_events is None:
            return self.n_entries
        return min(self.n_entries, self.max_events)

    def __iter__(self) -> Iterator[EventRecord | None]:
        n_read = 0
        with uproot.open(self.file_path) as file:
            tree = file[self.tree_name]
            for chunk in tree.iterate(self.branches, step_size=self.step_size, library="ak"):
                for event in chunk:
                    if self.max_events is not None and n_read >= self.max_events:
                        return
                    n_read += 1
                    yield self._to_record(event)

    def _field(self, event: ak.Record, name: str, default=None):
        if name in event.fields:
            return event[name]
        return default

    def _to_record(self, event: ak.Record) -> EventRecord:
        vertex = None
        if bool(event["has_vertex"]):
            vertex = PrimaryVertex(
                float(self._field(event, "vertex_x", 0.0)),
                float(self._field(event, "vertex_y", 0.0)),
                float(event["vertex_z"]),
            )

        centrality = float(event["centrality"])
        rp = self._field(event, "reaction_plane")

        return EventRecord(
            run_number=int(event["run_number"]),
            trigger_mask=int(self._field(event, "trigger_mask", 0)),
            vertex=vertex,
            centrality={self.estimator: centrality} if centrality >= 0 else None,
            reaction_plane=None if rp is None else float(rp),
            clusters=self._clusters(event),
            tracks=self._tracks(event),
            data_type=self.data_type,
        )

    def _jagged(self, event: ak.Record, branch_map: dict[str, str]) -> dict[str, list]:
        return {
            key: ak.to_list(event[branch])
            for key, branch in branch_map.items()
            if branch in event.fields
        }

    def _clusters(self, event: ak.Record) -> list[RawCluster]:
        columns = self._jagged(event, CLUSTER_BRANCHES)
        clusters = []
        for i in range(len(columns["energy"])):
            values = {key: column[i] for key, column in columns.items()}
            position = (values.pop("x"), values.pop("y"), values.pop("z"))
            clusters.append(RawCluster(position=position, **values))
        return clusters

    def _tracks(self, event: ak.Record) -> list[RawTrack]:
        columns = self._jagged(event, TRACK_BRANCHES)
        return [
            RawTrack(**{key: column[i] for key, column in columns.items()})
            for i in range(len(columns["px"]))
        ]
