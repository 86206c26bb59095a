"""
Mock event generators for testing pipeline components.

Provides deterministic synthetic events, both as in-memory EventRecord
lists and as flat ROOT trees written with uproot, so the pipeline can be
tested without real data files.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Sequence

import awkward as ak
import numpy as np
import uproot

from phoscorr.modules.event_source import EventRecord, PrimaryVertex, RawCluster, RawTrack

PHOS_RADIUS = 460.0
CELLS_PER_MODULE = 64 * 56
DEFAULT_RUNS = (170593, 170572, 169858)


def generate_phos_cluster(rng: np.random.Generator, module: int | None = None) -> RawCluster:
    """
    Generate a cluster on the PHOS surface with loosely realistic properties.

    Some generated clusters fail the default selection on purpose.
    """
    module = module if module is not None else int(rng.integers(1, 4))
    phi = rng.uniform(-1.75, -0.65)
    z = rng.uniform(-60.0, 60.0)
    return RawCluster(
        energy=float(rng.exponential(1.0) + 0.2),
        position=(PHOS_RADIUS * math.cos(phi), PHOS_RADIUS * math.sin(phi), float(z)),
        n_cells=int(rng.integers(1, 12)),
        m02=float(rng.uniform(0.1, 2.0)),
        dispersion=float(rng.uniform(0.0, 4.0)),
        emc_cpv_distance=float(rng.uniform(0.0, 10.0)),
        distance_to_bad_channel=float(rng.uniform(0.0, 5.0)),
        tof=float(rng.normal(0.0, 40e-9)),
        cell_abs_id=(module - 1) * CELLS_PER_MODULE + int(rng.integers(1, CELLS_PER_MODULE + 1)),
    )


def generate_track(rng: np.random.Generator) -> RawTrack:
    pt = float(rng.exponential(1.5) + 0.2)
    phi = rng.uniform(-math.pi, math.pi)
    eta = rng.uniform(-1.0, 1.0)
    return RawTrack(
        px=pt * math.cos(phi),
        py=pt * math.sin(phi),
        pz=pt * math.sinh(eta),
        charge=int(rng.choice([-1, 1])),
        label=int(rng.integers(0, 20000)),
        n_tpc_clusters=int(rng.integers(40, 160)),
        chi2_per_tpc_cluster=float(rng.uniform(0.5, 5.0)),
        dca_xy=float(rng.normal(0.0, 1.0)),
        dca_z=float(rng.normal(0.0, 1.5)),
    )


def generate_event_records(
    n_events: int = 100,
    seed: int = 42,
    runs: Sequence[int] = DEFAULT_RUNS,
    p_no_vertex: float = 0.05,
    p_no_centrality: float = 0.05,
    p_no_reaction_plane: float = 0.1,
) -> list[EventRecord]:
    """
    Generate a deterministic sequence of events.

    Args:
        n_events: Number of events
        seed: Random seed for reproducibility
        runs: Run numbers, each used for a contiguous block of events
        p_no_vertex: Fraction of events without primary vertex
        p_no_centrality: Fraction of events without centrality
        p_no_reaction_plane: Fraction of events with undefined reaction plane

    Returns:
        List of EventRecord
    """
    rng = np.random.default_rng(seed)
    block = max(1, math.ceil(n_events / len(runs)))
    records = []
    for i in range(n_events):
        vertex = None
        if rng.uniform() >= p_no_vertex:
            vertex = PrimaryVertex(float(rng.normal(0.0, 0.01)), float(rng.normal(0.0, 0.01)),
                                   float(rng.normal(0.0, 6.0)))
        centrality = None
        if rng.uniform() >= p_no_centrality:
            centrality = {"V0M": float(rng.uniform(0.0, 95.0))}
        reaction_plane = None
        if rng.uniform() >= p_no_reaction_plane:
            reaction_plane = float(rng.uniform(0.0, math.pi))

        records.append(
            EventRecord(
                run_number=int(runs[min(i // block, len(runs) - 1)]),
                trigger_mask=int(rng.choice([1 << 1, 1 << 4, 1 << 7, (1 << 1) | (1 << 4)])),
                vertex=vertex,
                centrality=centrality,
                reaction_plane=reaction_plane,
                clusters=[generate_phos_cluster(rng) for _ in range(int(rng.integers(0, 7)))],
                tracks=[generate_track(rng) for _ in range(int(rng.integers(0, 15)))],
            )
        )
    return records


def _event_columns(records: Sequence[EventRecord], estimator: str = "V0M") -> dict[str, object]:
    """Flatten records into the branch layout read by UprootEventSource."""
    columns: dict[str, object] = {
        "run_number": np.array([r.run_number for r in records], dtype=np.int32),
        "trigger_mask": np.array([r.trigger_mask for r in records], dtype=np.int32),
        "has_vertex": np.array([r.vertex is not None for r in records], dtype=np.int32),
        "vertex_x": np.array([r.vertex.x if r.vertex else 0.0 for r in records], dtype=np.float64),
        "vertex_y": np.array([r.vertex.y if r.vertex else 0.0 for r in records], dtype=np.float64),
        "vertex_z": np.array([r.vertex.z if r.vertex else 0.0 for r in records], dtype=np.float64),
        "centrality": np.array(
            [r.centrality[estimator] if r.centrality else -1.0 for r in records], dtype=np.float64
        ),
        "reaction_plane": np.array(
            [r.reaction_plane if r.reaction_plane is not None else -999.0 for r in records], dtype=np.float64
        ),
    }

    def jagged(values, dtype=np.float64):
        return ak.values_astype(ak.Array(values), dtype)

    columns["cluster"] = ak.zip({
        "E": jagged([[c.energy for c in r.clusters] for r in records]),
        "Ecore": jagged([[c.energy if c.core_energy is None else c.core_energy for c in r.clusters]
                         for r in records]),
        "x": jagged([[c.position[0] for c in r.clusters] for r in records]),
        "y": jagged([[c.position[1] for c in r.clusters] for r in records]),
        "z": jagged([[c.position[2] for c in r.clusters] for r in records]),
        "ncells": jagged([[c.n_cells for c in r.clusters] for r in records], np.int32),
        "m02": jagged([[c.m02 for c in r.clusters] for r in records]),
        "disp": jagged([[c.dispersion for c in r.clusters] for r in records]),
        "cpv_dist": jagged([[c.emc_cpv_distance for c in r.clusters] for r in records]),
        "bc_dist": jagged([[c.distance_to_bad_channel for c in r.clusters] for r in records]),
        "tof": jagged([[c.tof for c in r.clusters] for r in records]),
        "cell_id": jagged([[c.cell_abs_id for c in r.clusters] for r in records], np.int32),
    })
    columns["track"] = ak.zip({
        "px": jagged([[t.px for t in r.tracks] for r in records]),
        "py": jagged([[t.py for t in r.tracks] for r in records]),
        "pz": jagged([[t.pz for t in r.tracks] for r in records]),
        "charge": jagged([[t.charge for t in r.tracks] for r in records], np.int32),
        "status": jagged([[t.status for t in r.tracks] for r in records], np.int32),
        "filter_map": jagged([[t.filter_map for t in r.tracks] for r in records], np.int32),
        "label": jagged([[t.label for t in r.tracks] for r in records], np.int32),
        "tpc_ncls": jagged([[t.n_tpc_clusters for t in r.tracks] for r in records], np.int32),
        "tpc_chi2": jagged([[t.chi2_per_tpc_cluster for t in r.tracks] for r in records]),
        "dca_xy": jagged([[t.dca_xy for t in r.tracks] for r in records]),
        "dca_z": jagged([[t.dca_z for t in r.tracks] for r in records]),
    })
    return columns


def create_mock_event_file(
    output_path: str | Path,
    records: Sequence[EventRecord] | None = None,
    tree_name: str = "events",
    n_events: int = 50,
    seed: int = 42,
    drop_branches: Sequence[str] = (),
) -> Path:
    """
    Write events to a flat ROOT tree.

    Events without vertex are written with has_vertex = 0, missing
    centrality as -1 and an undefined reaction plane as -999.

    Args:
        output_path: Path where the ROOT file will be created
        records: Events to write (generated if None)
        tree_name: Name of the TTree
        n_events: Number of generated events when records is None
        seed: Random seed for generated events
        drop_branches: Flat branches to leave out

    Returns:
        Path to created ROOT file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if records is None:
        records = generate_event_records(n_events, seed)
    columns = _event_columns(records)
    for name in drop_branches:
        columns.pop(name, None)

    with uproot.recreate(output_path) as file:
        file[tree_name] = columns

    return output_path
