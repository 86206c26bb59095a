"""
Per-event processing pipeline

Each event runs through a fixed sequence of states:

  RETRIEVE -> TRIGGER_CHECK -> VERTEX -> CENTRALITY -> REACTION_PLANE
  -> SELECT -> CORRELATE -> ADMIT -> COMPLETED

Any of the first four states may end the event in EARLY_REJECT. The
accumulated output is posted at every terminal state, so every event
leaves a trace in the counters. One pipeline owns one pair of mixing
pools and must only be fed a single event stream.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable

import pandas as pd
from tqdm import tqdm

from ..utils.logging_config import get_tqdm_kwargs
from .binning import BinIndexer, EventClass
from .candidates import CandidateArray
from .config import AnalysisSettings, TriggerSelection
from .correlator import PairCorrelator
from .event_source import EventRecord
from .exceptions import EventProcessingError
from .geometry import PHOSGeometry
from .histograms import HistogramRegistry
from .mixing import MixedEventPool
from .run_numbers import RunNumberTable
from .selector import CandidateSelector
from .track_selection import TrackQualityCuts, make_track_cuts

TRIGGER_MB = 1 << 1
TRIGGER_CENTRAL = 1 << 4
TRIGGER_SEMI_CENTRAL = 1 << 7

N_RUNS = 200

# Reaction-plane angles at or above this value mean "not defined"
RP_UNDEFINED = 999.0


class EventState(Enum):
    RETRIEVE = 0
    TRIGGER_CHECK = 1
    VERTEX = 2
    CENTRALITY = 3
    REACTION_PLANE = 4
    SELECT = 5
    CORRELATE = 6
    ADMIT = 7
    COMPLETED = 8
    EARLY_REJECT = 9


class SelectionStep(IntEnum):
    """Per-run selection counters (x axis of hSelEvents)."""

    INTERNAL_TRIGGER_MASK_SELECTION = 0
    HAS_VERTEX = 1
    HAS_ABS_VERTEX = 2
    HAS_CENTRALITY = 3
    NO_PHOS_CLUSTERS = 4
    NO_TPC_TRACKS = 5
    TOTAL_SELECTED = 6


@dataclass
class EventResult:
    """Outcome of one event."""

    state: EventState
    trace: list[EventState] = field(default_factory=list)
    rejected_at: EventState | None = None
    event_class: EventClass | None = None
    have_rp: bool = False
    n_photons: int = 0
    n_tracks: int = 0
    n_triggers: int = 0


def trigger_accepts(selection: TriggerSelection, mask: int) -> bool:
    """Check a trigger bitmask against the configured selection mode."""
    if selection is TriggerSelection.NONE:
        return True

    is_mb = bool(mask & TRIGGER_MB)
    is_central = bool(mask & TRIGGER_CENTRAL)
    is_semi_central = bool(mask & TRIGGER_SEMI_CENTRAL)

    if selection is TriggerSelection.CENTRAL_INCLUSIVE:
        return is_central
    if selection is TriggerSelection.CENTRAL_EXCLUSIVE:
        return is_central and not is_semi_central and not is_mb
    if selection is TriggerSelection.SEMI_CENTRAL_INCLUSIVE:
        return is_semi_central
    if selection is TriggerSelection.SEMI_CENTRAL_EXCLUSIVE:
        return is_semi_central and not is_central and not is_mb
    if selection is TriggerSelection.MB_INCLUSIVE:
        return is_mb
    if selection is TriggerSelection.MB_EXCLUSIVE:
        return is_mb and not is_central and not is_semi_central
    return False


class EventPipeline:
    """
    Classify, select, correlate and pool events one at a time.

    Attributes:
        settings: Validated analysis settings
        histograms: Output sink
        indexer: Event classification
        selector: Candidate selection
        correlator: Pair correlations
        photon_pool: Mixed-event pool of photon candidates
        track_pool: Mixed-event pool of track candidates
    """

    def __init__(
        self,
        settings: AnalysisSettings | None = None,
        geometry: PHOSGeometry | None = None,
        run_table: RunNumberTable | None = None,
        histograms: HistogramRegistry | None = None,
    ) -> None:
        self.settings: AnalysisSettings = settings or AnalysisSettings()
        self.geometry: PHOSGeometry = geometry or PHOSGeometry()
        self.run_table: RunNumberTable = run_table or RunNumberTable.from_toml(self.settings.run_table_path)
        self.histograms: HistogramRegistry = histograms or HistogramRegistry()
        self.logger = logging.getLogger("PHOSCorrelations.EventPipeline")

        s = self.settings
        self.indexer = BinIndexer(s.centrality, n_rp_bins=s.n_rp_bins,
                                  n_vtx_bins=s.n_vtx_bins, max_abs_z=s.max_abs_vertex_z)
        self.selector = CandidateSelector(s.cluster_cuts, self.geometry, self.histograms,
                                          pt_min=s.tracks.pt_min, pt_max=s.tracks.pt_max,
                                          eta_max=s.tracks.eta_max)
        self.correlator = PairCorrelator(self.histograms, s.mass_window, s.assoc_bins, s.modules)
        self.photon_pool = MixedEventPool(s.centrality, s.n_rp_bins, s.n_vtx_bins, name="photons")
        self.track_pool = MixedEventPool(s.centrality, s.n_rp_bins, s.n_vtx_bins, name="tracks")

        self.run_number: int | None = None
        self.internal_run_number: int = 0
        self.track_cuts: TrackQualityCuts | None = None

        self.counters: Counter = Counter()
        self._book_histograms()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _book_histograms(self) -> None:
        h = self.histograms
        n_steps = len(SelectionStep)
        n_states = EventState.COMPLETED.value + 1

        h.book_1d("hTriggerPassedEvents", "Event selection passed Cuts", 20, 0.0, 20.0)
        h.book_1d("hTotSelEvents", "Event selection", n_states, 0.0, float(n_states))
        h.book_2d("hSelEvents", "Event selection", n_steps, 0.0, float(n_steps), N_RUNS, 0.0, float(N_RUNS))
        h.book_2d("hCentrality", "Event centrality", 100, 0.0, 100.0, N_RUNS, 0.0, float(N_RUNS))
        h.book_2d("phiRPflat", "RP distribution with TPC flat", 100, 0.0, 2.0 * 3.141592653589793, 20, 0.0, 100.0)
        h.book_2d("massWindow", "mean & sigma", 100, 0.1, 0.18, 100, 0.0, 0.5)
        self.correlator.book_histograms()

    def _on_new_run(self, record: EventRecord) -> None:
        self.run_number = record.run_number
        self.internal_run_number = self.run_table.internal_run_number(self.settings.period, record.run_number)
        self.track_cuts = make_track_cuts(record.data_type, self.settings.tracks.hybrid_mode,
                                          self.settings.tracks.esd)
        self.logger.info(
            f"Run {record.run_number} (internal {self.internal_run_number}), "
            f"{self.track_cuts.data_type} track cuts"
        )

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def _log_progress(self, state: EventState, result: EventResult) -> None:
        result.trace.append(state)
        self.histograms.fill("hTotSelEvents", state.value + 0.5)

    def _log_selection(self, step: SelectionStep) -> None:
        self.counters[step.name.lower()] += 1
        self.histograms.fill("hSelEvents", step.value + 0.5, self.internal_run_number - 0.5)

    def _reject(self, result: EventResult, state: EventState, reason: str) -> EventResult:
        self.logger.debug(f"Event rejected at {state.name}: {reason}")
        self.counters[f"rejected_{state.name.lower()}"] += 1
        result.rejected_at = state
        result.state = EventState.EARLY_REJECT
        result.trace.append(EventState.EARLY_REJECT)
        self.histograms.post()
        return result

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    def process_event(self, record: EventRecord | None) -> EventResult:
        """
        Run one event through the pipeline.

        Args:
            record: Event record, None if the event could not be retrieved

        Returns:
            EventResult with the terminal state and visited states
        """
        s = self.settings
        result = EventResult(state=EventState.RETRIEVE)
        self.counters["events"] += 1

        # RETRIEVE
        self._log_progress(EventState.RETRIEVE, result)
        if record is None:
            self.logger.error("Event could not be retrieved")
            return self._reject(result, EventState.RETRIEVE, "no event")

        self.histograms.fill("hTriggerPassedEvents", 0.0)
        if record.trigger_mask & TRIGGER_MB:
            self.histograms.fill("hTriggerPassedEvents", 2.0)
        if record.trigger_mask & TRIGGER_CENTRAL:
            self.histograms.fill("hTriggerPassedEvents", 3.0)
        if record.trigger_mask & TRIGGER_SEMI_CENTRAL:
            self.histograms.fill("hTriggerPassedEvents", 4.0)

        if self.run_number is None:
            self.logger.debug(
                f"Mean: {s.mass_window.mean} Sigma: {s.mass_window.sigma} Sigma Width: {s.mass_window.sigma_width}"
            )
            self.histograms.fill("massWindow", s.mass_window.mean, s.mass_window.half_width)
        if record.run_number != self.run_number:
            self._on_new_run(record)

        # TRIGGER_CHECK
        self._log_progress(EventState.TRIGGER_CHECK, result)
        if not trigger_accepts(s.trigger_selection, record.trigger_mask):
            return self._reject(result, EventState.TRIGGER_CHECK, f"trigger mask {record.trigger_mask:#x}")
        if s.trigger_selection is not TriggerSelection.NONE:
            self._log_selection(SelectionStep.INTERNAL_TRIGGER_MASK_SELECTION)

        # VERTEX
        self._log_progress(EventState.VERTEX, result)
        vertex = record.vertex
        if vertex is None:
            return self._reject(result, EventState.VERTEX, "no primary vertex")
        self._log_selection(SelectionStep.HAS_VERTEX)
        if not math.isfinite(vertex.z) or abs(vertex.z) > s.max_abs_vertex_z:
            return self._reject(result, EventState.VERTEX, f"|z|={abs(vertex.z):.2f} > {s.max_abs_vertex_z}")
        self._log_selection(SelectionStep.HAS_ABS_VERTEX)
        vtx_bin = self.indexer.vertex_bin(vertex.z)

        # CENTRALITY
        self._log_progress(EventState.CENTRALITY, result)
        if not record.centrality or s.estimator not in record.centrality:
            self.logger.error(f"Event has no centrality for estimator {s.estimator}")
            return self._reject(result, EventState.CENTRALITY, "no centrality")
        centrality = record.centrality[s.estimator]
        if not math.isfinite(centrality):
            self.logger.error(f"Event has non-finite centrality {centrality} for estimator {s.estimator}")
            return self._reject(result, EventState.CENTRALITY, "no centrality")
        cent_bin = self.indexer.centrality_bin(centrality)
        if centrality < s.cent_cutoff_down or centrality > s.cent_cutoff_up:
            return self._reject(result, EventState.CENTRALITY, f"centrality {centrality} outside window")
        self._log_selection(SelectionStep.HAS_CENTRALITY)
        self.histograms.fill("hCentrality", centrality, self.internal_run_number - 0.5)

        # REACTION_PLANE
        self._log_progress(EventState.REACTION_PLANE, result)
        rp = record.reaction_plane
        result.have_rp = rp is not None and 0.0 <= rp < RP_UNDEFINED
        rp_angle = rp if result.have_rp else 0.0
        if not result.have_rp:
            self.counters["no_reaction_plane"] += 1
        self.histograms.fill("phiRPflat", rp_angle, centrality)
        event_class = EventClass(vtx_bin, cent_bin, self.indexer.reaction_plane_bin(rp_angle))
        result.event_class = event_class

        # SELECT
        self._log_progress(EventState.SELECT, result)
        photons: CandidateArray = self.selector.select_clusters(record.clusters, vertex)
        if not photons:
            self._log_selection(SelectionStep.NO_PHOS_CLUSTERS)
        tracks: CandidateArray = self.selector.select_tracks(record.tracks, self.track_cuts)
        if not tracks:
            self._log_selection(SelectionStep.NO_TPC_TRACKS)
        self._log_selection(SelectionStep.TOTAL_SELECTED)
        result.n_photons = len(photons)
        result.n_tracks = len(tracks)

        # CORRELATE
        self._log_progress(EventState.CORRELATE, result)
        triggers = self.correlator.consider_pairs(photons, tracks)
        self.correlator.consider_pairs_mix(photons, self.photon_pool.get(event_class))
        self.correlator.consider_tracks_mix(triggers, self.track_pool.get(event_class))
        self.correlator.fill_track_eta_phi(tracks)
        result.n_triggers = len(triggers)

        # ADMIT
        self._log_progress(EventState.ADMIT, result)
        self.photon_pool.admit(event_class, photons)
        self.track_pool.admit(event_class, tracks)

        self._log_progress(EventState.COMPLETED, result)
        result.state = EventState.COMPLETED
        self.counters["completed"] += 1
        self.histograms.post()
        return result

    def run(self, source: Iterable[EventRecord | None], show_progress: bool = True) -> Counter:
        """
        Process every event of a source.

        An exception inside one event is logged and counted as 'failed';
        processing continues with the next event.

        Returns:
            Event counters
        """
        kwargs = get_tqdm_kwargs(desc="Events", unit="evt")
        if not show_progress:
            kwargs["disable"] = True

        for index, record in enumerate(tqdm(source, **kwargs)):
            try:
                self.process_event(record)
            except Exception as e:
                error = EventProcessingError(str(e), event_index=index)
                self.logger.error(f"{error} ({type(e).__name__})", exc_info=True)
                self.counters["failed"] += 1
                self.histograms.post()

        self.logger.info(
            f"Processed {self.counters['events']} events: {self.counters['completed']} completed, "
            f"{self.counters['failed']} failed"
        )
        return self.counters

    def summary(self) -> pd.DataFrame:
        """Event and selection counters as a table."""
        rows = [{"counter": name, "events": count} for name, count in sorted(self.counters.items())]
        rows.append({"counter": "pooled_photon_events", "events": self.photon_pool.n_events()})
        rows.append({"counter": "pooled_track_events", "events": self.track_pool.n_events()})
        return pd.DataFrame(rows, columns=["counter", "events"])
