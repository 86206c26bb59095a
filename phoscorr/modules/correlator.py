"""
Photon-pair correlations

Real (same-event) and mixed (cross-event) photon pairs fill invariant
mass versus pair-pt spectra in four cut categories. Pairs inside the
mass window are used as triggers for the trigger-track angular
correlation, binned in associated-track pt.
"""

from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from .binning import assoc_bin, wrap_delta_phi, DPHI_HIGH, DPHI_LOW
from .candidates import Candidate, CandidateArray
from .histograms import HistogramRegistry

CATEGORIES = ("all", "cpv", "disp", "both")

DEFAULT_ASSOC_BINS = (0.0, 0.5, 1.0, 1.5, 2.0, 3.0, 5.0, 7.0, 10.0, 16.0)


@dataclass(frozen=True)
class MassWindow:
    """
    Symmetric invariant-mass window: mean +- sigma, or mean +- sigma * sigma_width
    when sigma_width is non-zero.
    """

    mean: float = 0.135
    sigma: float = 0.01
    sigma_width: float = 0.0

    @property
    def half_width(self) -> float:
        if self.sigma_width == 0.0:
            return self.sigma
        return self.sigma * self.sigma_width

    def contains(self, mass: float) -> bool:
        return self.mean - self.half_width < mass < self.mean + self.half_width


def pair_categories(ph1: Candidate, ph2: Candidate) -> list[str]:
    """Cut categories a photon pair contributes to; each flag must hold for both photons."""
    categories = ["all"]
    cpv = ph1.cpv_ok and ph2.cpv_ok
    disp = ph1.disp_ok and ph2.disp_ok
    if cpv:
        categories.append("cpv")
    if disp:
        categories.append("disp")
        if cpv:
            categories.append("both")
    return categories


def pt_assoc_label(upper_edge: float) -> str:
    return f"{upper_edge:3.1f}"


@dataclass(frozen=True)
class Trigger:
    """A photon pair inside the mass window."""

    pt: float
    phi: float
    eta: float
    categories: tuple[str, ...]


class PairCorrelator:
    """
    Fill real and mixed pair histograms.

    Attributes:
        histograms: Output sink
        mass_window: Window promoting pairs to triggers
        assoc_bins: Ascending associated-pt thresholds
        modules: PHOS modules with same-module mass spectra
    """

    def __init__(
        self,
        histograms: HistogramRegistry,
        mass_window: MassWindow,
        assoc_bins: Sequence[float] = DEFAULT_ASSOC_BINS,
        modules: Sequence[int] = (1, 2, 3),
    ) -> None:
        self.histograms = histograms
        self.mass_window = mass_window
        self.assoc_bins = tuple(float(b) for b in assoc_bins)
        self.modules = tuple(modules)
        self.logger = logging.getLogger("PHOSCorrelations.PairCorrelator")

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def book_histograms(self) -> None:
        h = self.histograms
        pi = math.pi

        h.book_2d("clu_phieta", "Cluster's #phi & #eta distribution", 300, -1.8, -0.6, 300, -0.2, 0.2)
        h.book_2d("clusingle_phieta", "Cluster's  #phi & #eta distribution", 300, -1.8, -0.6, 300, -0.2, 0.2)
        h.book_2d("track_phieta", "TPC track's  #phi & #eta distribution", 200, -pi - 0.3, pi + 0.3, 200, -0.9, 0.9)

        mass_min = self.mass_window.mean - self.mass_window.sigma
        mass_max = self.mass_window.mean + self.mass_window.sigma
        titles = {"all": "Only standard cut's", "cpv": "CPV cut", "disp": "Disp cut", "both": "Both cuts (CPV + Disp)"}
        for prefix, suffix in (("", ""), ("mix_", " (mix)")):
            for category in CATEGORIES:
                h.book_2d(f"{prefix}{category}_mpt", f"{titles[category]}{suffix}",
                          100, mass_min, mass_max, 100, 0.0, 20.0)
            for module in self.modules:
                h.book_2d(f"{prefix}both{module}_mpt", f"Both cuts (CPV + Disp) mod[{module}]{suffix}",
                          100, mass_min, mass_max, 100, 0.0, 20.0)

        for upper in self.assoc_bins[1:]:
            label = pt_assoc_label(upper)
            for category in CATEGORIES:
                for prefix in ("", "mix_"):
                    name = f"{prefix}{category}_ptphieta_ptAssoc_{label}"
                    h.book_3d(name, name, 100, 0.0, 20.0, 100, DPHI_LOW, DPHI_HIGH, 20, -1.0, 1.0)

        for module in self.modules:
            h.book_3d(f"QA_cluXZE_mod{module}", f"PHOS Clusters XZE distribution of module {module}",
                      100, 0.0, 100.0, 100, 0.0, 100.0, 100, 0.0, 10.0)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fill_mass(self, prefix: str, ph1: Candidate, ph2: Candidate, mass: float, pt: float) -> list[str]:
        categories = pair_categories(ph1, ph2)
        for category in categories:
            self.histograms.fill(f"{prefix}{category}_mpt", mass, pt)
        if "both" in categories and ph1.module == ph2.module:
            self.histograms.fill(f"{prefix}both{ph1.module}_mpt", mass, pt)
        return categories

    def _fill_angular(self, prefix: str, trigger: Trigger, tracks: Iterable[Candidate]) -> None:
        for track in tracks:
            dphi = wrap_delta_phi(track.phi - trigger.phi)
            deta = track.eta - trigger.eta
            label = pt_assoc_label(assoc_bin(track.pt, self.assoc_bins))
            for category in trigger.categories:
                self.histograms.fill(f"{prefix}{category}_ptphieta_ptAssoc_{label}", trigger.pt, dphi, deta)

    # ------------------------------------------------------------------
    # Same event
    # ------------------------------------------------------------------

    def consider_pairs(self, photons: CandidateArray, tracks: CandidateArray) -> list[Trigger]:
        """
        Pair every two distinct photons of the event and correlate the
        pairs inside the mass window with the event's tracks.

        Returns:
            Triggers (pairs inside the mass window) of this event
        """
        triggers = []
        for ph1, ph2 in itertools.combinations(photons, 2):
            p12 = ph1 + ph2
            mass, pt = p12.mass, p12.pt

            self.histograms.fill("clu_phieta", p12.phi, p12.eta)
            self.histograms.fill("clusingle_phieta", ph1.phi, ph1.eta)
            self.histograms.fill("clusingle_phieta", ph2.phi, ph2.eta)

            categories = self._fill_mass("", ph1, ph2, mass, pt)
            if not self.mass_window.contains(mass):
                continue

            trigger = Trigger(pt, p12.phi, p12.eta, tuple(categories))
            triggers.append(trigger)
            self._fill_angular("", trigger, tracks)
        return triggers

    # ------------------------------------------------------------------
    # Mixed events
    # ------------------------------------------------------------------

    def consider_pairs_mix(self, photons: CandidateArray, pooled: Iterable[CandidateArray]) -> int:
        """
        Pair current-event photons with photons of pooled events.

        Returns:
            Number of mixed pairs
        """
        n_pairs = 0
        for mixed in pooled:
            for ph1 in photons:
                for ph2 in mixed:
                    p12 = ph1 + ph2
                    self._fill_mass("mix_", ph1, ph2, p12.mass, p12.pt)
                    n_pairs += 1
        return n_pairs

    def consider_tracks_mix(self, triggers: Sequence[Trigger], pooled_tracks: Iterable[CandidateArray]) -> None:
        """Correlate current-event triggers with tracks of pooled events."""
        if not triggers:
            return
        for mixed_tracks in pooled_tracks:
            for trigger in triggers:
                self._fill_angular("mix_", trigger, mixed_tracks)

    def fill_track_eta_phi(self, tracks: CandidateArray) -> None:
        for track in tracks:
            self.histograms.fill("track_phieta", track.phi, track.eta)
