"""
Track-quality selection for the two reconstruction paths

Real-data (ESD) tracks are checked against the standard TPC-only quality
cuts; derived-data (AOD) tracks already carry their quality as filter
bits and only the hybrid-track classification is tested. The variant is
chosen once per run with make_track_cuts().
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from .event_source import RawTrack
from .exceptions import ConfigurationError


class HybridMode(Enum):
    """Three-way switch on the hybrid (global-constrained) classification."""

    ONLY_HYBRID = "only_hybrid"
    WITHOUT_HYBRID = "without_hybrid"
    ALL = "all"

    @classmethod
    def from_name(cls, name: str) -> HybridMode:
        try:
            return cls(name.lower())
        except ValueError:
            valid = ", ".join(mode.value for mode in cls)
            raise ConfigurationError(f"Unknown hybrid track mode '{name}' (valid: {valid})")


@dataclass(frozen=True)
class ESDCutSettings:
    """Standard TPC-only track cuts, with TPC refit required."""

    min_tpc_clusters: int = 50
    max_chi2_per_tpc_cluster: float = 4.0
    max_dca_xy: float = 2.4
    max_dca_z: float = 3.2
    dca_2d: bool = True
    require_tpc_refit: bool = True
    accept_kink_daughters: bool = False


class TrackQualityCuts(ABC):
    """Quality predicate of one reconstruction path."""

    data_type: str = ""

    @abstractmethod
    def accept(self, track: RawTrack) -> bool:
        """Return True if the track passes the quality requirements."""


class ESDTrackCuts(TrackQualityCuts):
    """Quality cuts for tracks reconstructed from real-data ESDs."""

    data_type = "ESD"

    def __init__(self, settings: ESDCutSettings | None = None) -> None:
        self.settings = settings or ESDCutSettings()

    def accept(self, track: RawTrack) -> bool:
        s = self.settings
        if s.require_tpc_refit and not track.tpc_refit:
            return False
        if track.n_tpc_clusters < s.min_tpc_clusters:
            return False
        if track.chi2_per_tpc_cluster > s.max_chi2_per_tpc_cluster:
            return False
        if not s.accept_kink_daughters and track.is_kink_daughter:
            return False
        if s.dca_2d:
            # Elliptical DCA cut in (xy, z)
            return (track.dca_xy / s.max_dca_xy) ** 2 + (track.dca_z / s.max_dca_z) ** 2 <= 1.0
        return abs(track.dca_xy) <= s.max_dca_xy and abs(track.dca_z) <= s.max_dca_z


class AODTrackCuts(TrackQualityCuts):
    """Hybrid-track classification test for derived-data (AOD) tracks."""

    data_type = "AOD"

    def __init__(self, hybrid_mode: HybridMode = HybridMode.ONLY_HYBRID) -> None:
        self.hybrid_mode = hybrid_mode

    def accept(self, track: RawTrack) -> bool:
        if self.hybrid_mode is HybridMode.ONLY_HYBRID:
            return track.is_hybrid
        if self.hybrid_mode is HybridMode.WITHOUT_HYBRID:
            return not track.is_hybrid
        return True


def make_track_cuts(
    data_type: str,
    hybrid_mode: HybridMode = HybridMode.ONLY_HYBRID,
    esd_settings: ESDCutSettings | None = None,
) -> TrackQualityCuts:
    """
    Build the quality-cut variant for a data type.

    Args:
        data_type: 'ESD' or 'AOD'
        hybrid_mode: Hybrid switch used by the AOD variant
        esd_settings: Cut values used by the ESD variant

    Raises:
        ConfigurationError: If the data type is unknown
    """
    logger = logging.getLogger("PHOSCorrelations.TrackCuts")
    kind = data_type.upper()
    if kind == "ESD":
        logger.debug("Using standard TPC-only ESD track cuts")
        return ESDTrackCuts(esd_settings)
    if kind == "AOD":
        logger.debug(f"Using AOD track cuts, hybrid mode '{hybrid_mode.value}'")
        return AODTrackCuts(hybrid_mode)
    raise ConfigurationError(f"Unknown data type '{data_type}', expected 'ESD' or 'AOD'")
