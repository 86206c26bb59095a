"""
Candidate selection

Turns the raw clusters and tracks of one event into CandidateArrays that
the pair correlator and the mixed-event pools work with. Output order
always follows input order.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable

import vector

from .candidates import Candidate, CandidateArray
from .event_source import PrimaryVertex, RawCluster, RawTrack
from .geometry import PHOSGeometry
from .histograms import HistogramRegistry
from .track_selection import TrackQualityCuts

TRACK_PT_MIN = 0.5
TRACK_PT_MAX = 10.0
TRACK_ETA_MAX = 0.8


@dataclass(frozen=True)
class ClusterCuts:
    """
    Photon-cluster selection thresholds.

    Attributes:
        min_energy: Minimum cluster energy [GeV]
        min_bc_distance: Minimum distance to a bad channel
        min_n_cells: Minimum number of cells
        min_m02: Minimum shower-shape long axis
        tof_cut_enabled: Apply the time-of-flight window
        tof_cut: Maximum |TOF| [s]
        dispersion_max: Dispersion below which the shape flag is set
        cpv_distance_min: Track distance above which the CPV flag is set
    """

    min_energy: float = 0.3
    min_bc_distance: float = 0.0
    min_n_cells: int = 3
    min_m02: float = 0.2
    tof_cut_enabled: bool = True
    tof_cut: float = 100.0e-9
    dispersion_max: float = 2.5
    cpv_distance_min: float = 2.0


class CandidateSelector:
    """
    Select photon and track candidates of one event.

    Attributes:
        cluster_cuts: Cluster thresholds
        geometry: Read-only PHOS geometry handle
        histograms: Optional sink for the cluster QA maps
    """

    def __init__(
        self,
        cluster_cuts: ClusterCuts,
        geometry: PHOSGeometry,
        histograms: HistogramRegistry | None = None,
        pt_min: float = TRACK_PT_MIN,
        pt_max: float = TRACK_PT_MAX,
        eta_max: float = TRACK_ETA_MAX,
    ) -> None:
        self.cluster_cuts: ClusterCuts = cluster_cuts
        self.geometry: PHOSGeometry = geometry
        self.histograms: HistogramRegistry | None = histograms
        self.pt_min = pt_min
        self.pt_max = pt_max
        self.eta_max = eta_max
        self.logger = logging.getLogger("PHOSCorrelations.CandidateSelector")

    def accept_cluster(self, cluster: RawCluster) -> bool:
        cuts = self.cluster_cuts
        if not cluster.is_phos:
            return False
        if cluster.energy < cuts.min_energy:
            return False
        if cluster.distance_to_bad_channel < cuts.min_bc_distance:
            return False
        if cluster.n_cells < cuts.min_n_cells:
            return False
        if cluster.m02 < cuts.min_m02:
            return False
        if cuts.tof_cut_enabled and abs(cluster.tof) > cuts.tof_cut:
            return False
        return True

    def cluster_momentum(self, cluster: RawCluster, vertex: PrimaryVertex) -> vector.MomentumObject4D:
        """
        Massless 4-momentum pointing from the vertex to the cluster,
        scaled to the core energy.
        """
        dx = cluster.position[0] - vertex.x
        dy = cluster.position[1] - vertex.y
        dz = cluster.position[2] - vertex.z
        r = math.sqrt(dx * dx + dy * dy + dz * dz)
        energy = cluster.energy if cluster.core_energy is None else cluster.core_energy
        if r == 0.0:
            return vector.obj(px=0.0, py=0.0, pz=0.0, E=energy)
        scale = energy / r
        return vector.obj(px=dx * scale, py=dy * scale, pz=dz * scale, E=energy)

    def select_clusters(self, clusters: Iterable[RawCluster], vertex: PrimaryVertex) -> CandidateArray:
        photons = CandidateArray()
        cuts = self.cluster_cuts
        for cluster in clusters:
            if not self.accept_cluster(cluster):
                continue

            momentum = self.cluster_momentum(cluster, vertex)
            rel = self.geometry.rel_id(cluster.cell_abs_id)
            photons.append(
                Candidate(
                    momentum=momentum,
                    module=rel.module,
                    disp_ok=cluster.dispersion < cuts.dispersion_max,
                    cpv_ok=cluster.emc_cpv_distance > cuts.cpv_distance_min,
                    n_cells=cluster.n_cells,
                )
            )
            if self.histograms is not None:
                self.histograms.fill(f"QA_cluXZE_mod{rel.module}", rel.cell_x, rel.cell_z, momentum.E)
        return photons

    def accept_track_kinematics(self, track: RawTrack) -> bool:
        pt = track.pt
        if pt < self.pt_min or pt >= self.pt_max:
            return False
        return abs(track.eta) <= self.eta_max

    def select_tracks(self, tracks: Iterable[RawTrack], quality: TrackQualityCuts) -> CandidateArray:
        selected = CandidateArray()
        for track in tracks:
            if not self.accept_track_kinematics(track):
                continue
            if not quality.accept(track):
                continue
            selected.append(Candidate(momentum=track.momentum))
        return selected
