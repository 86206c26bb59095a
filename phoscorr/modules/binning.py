"""
Event classification and binning helpers

Maps continuous event quantities (vertex z, centrality percentile,
reaction-plane angle) to the discrete indices used to address the
mixed-event pools, and provides the angular/momentum binning used by
the correlation histograms.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import NamedTuple, Sequence

import numpy as np

from .exceptions import ConfigurationError

TWO_PI = 2.0 * math.pi
DPHI_LOW = -0.5 * math.pi
DPHI_HIGH = 1.5 * math.pi


class EventClass(NamedTuple):
    """Discrete (vertex, centrality, reaction-plane) key of one event."""

    vtx_bin: int
    cent_bin: int
    rp_bin: int


@dataclass(frozen=True)
class CentralityBinning:
    """
    Centrality bin edges paired with the mixing depth of every bin.

    Attributes:
        edges: Strictly increasing bin edges, length n_bins + 1
        n_mixed: Maximum number of pooled events per bin, length n_bins
    """

    edges: tuple[float, ...]
    n_mixed: tuple[int, ...]

    def __post_init__(self) -> None:
        edges = tuple(float(e) for e in self.edges)
        n_mixed = tuple(int(n) for n in self.n_mixed)
        object.__setattr__(self, "edges", edges)
        object.__setattr__(self, "n_mixed", n_mixed)

        if len(edges) < 2:
            raise ConfigurationError(
                f"Centrality binning needs at least two edges, got {len(edges)}"
            )
        for low, high in zip(edges[:-1], edges[1:]):
            if not low < high:
                raise ConfigurationError(
                    f"Centrality edges are not strictly increasing: {list(edges)}"
                )
        if len(edges) != len(n_mixed) + 1:
            raise ConfigurationError(
                f"Centrality edges ({len(edges)}) and mixing depths ({len(n_mixed)}) "
                f"don't have appropriate relative sizes: expected {len(n_mixed) + 1} edges"
            )
        if any(n < 1 for n in n_mixed):
            raise ConfigurationError(f"Mixing depths must be positive: {list(n_mixed)}")

    @property
    def n_bins(self) -> int:
        return len(self.n_mixed)

    def depth_limit(self, cent_bin: int) -> int:
        """Maximum pool depth for a centrality bin."""
        return self.n_mixed[cent_bin]


class BinIndexer:
    """
    Compute the EventClass of an event.

    Attributes:
        centrality: Centrality edges and mixing depths
        n_vtx_bins: Number of uniform vertex-z bins over [-max_abs_z, max_abs_z]
        max_abs_z: Vertex-z acceptance, also the vertex binning range
        n_rp_bins: Number of reaction-plane bins over [0, pi)
    """

    def __init__(
        self,
        centrality: CentralityBinning,
        n_rp_bins: int = 9,
        n_vtx_bins: int = 1,
        max_abs_z: float = 10.0,
    ) -> None:
        if n_rp_bins < 1:
            raise ConfigurationError(f"Number of reaction-plane bins must be positive, got {n_rp_bins}")
        if n_vtx_bins < 1:
            raise ConfigurationError(f"Number of vertex bins must be positive, got {n_vtx_bins}")
        if max_abs_z <= 0:
            raise ConfigurationError(f"Vertex z acceptance must be positive, got {max_abs_z}")

        self.centrality: CentralityBinning = centrality
        self.n_rp_bins: int = n_rp_bins
        self.n_vtx_bins: int = n_vtx_bins
        self.max_abs_z: float = max_abs_z
        self._edges: np.ndarray = np.asarray(centrality.edges, dtype=float)
        self.logger = logging.getLogger("PHOSCorrelations.BinIndexer")

    @property
    def n_cent_bins(self) -> int:
        return self.centrality.n_bins

    def centrality_bin(self, value: float) -> int:
        """
        Index of the half-open bin [edge[i], edge[i+1]) containing value.

        Values outside the edges are clamped to the first or last bin and
        reported with a warning. A value equal to the last edge belongs to
        the last bin.
        """
        last_bin = self.n_cent_bins - 1
        if value > self._edges[-1]:
            self.logger.warning(
                f"centrality ({value}) larger than upper edge of last centrality bin "
                f"({self._edges[-1]}), using bin {last_bin}"
            )
            return last_bin
        if value < self._edges[0]:
            self.logger.warning(
                f"centrality ({value}) smaller than lower edge of first bin "
                f"({self._edges[0]}), using bin 0"
            )
            return 0

        # Search the lower edges only, so value == last edge lands in the last bin
        index = int(np.searchsorted(self._edges[:-1], value, side="right")) - 1
        return min(max(index, 0), last_bin)

    def reaction_plane_bin(self, angle: float, n_bins: int | None = None) -> int:
        """floor(n_bins * angle / pi), clamped to [0, n_bins - 1]."""
        n_bins = self.n_rp_bins if n_bins is None else n_bins
        index = math.floor(n_bins * angle / math.pi)
        return min(max(index, 0), n_bins - 1)

    def vertex_bin(self, z: float) -> int:
        """Uniform vertex-z bin; a single bin always returns 0."""
        if self.n_vtx_bins == 1:
            return 0
        width = 2.0 * self.max_abs_z / self.n_vtx_bins
        index = math.floor((z + self.max_abs_z) / width)
        return min(max(index, 0), self.n_vtx_bins - 1)

    def classify(self, vertex_z: float, centrality: float, rp_angle: float) -> EventClass:
        return EventClass(
            self.vertex_bin(vertex_z),
            self.centrality_bin(centrality),
            self.reaction_plane_bin(rp_angle),
        )


def wrap_delta_phi(dphi: float) -> float:
    """
    Wrap an azimuthal difference into (-pi/2, 3pi/2].

    The window matches the delta-phi axis of the correlation histograms.
    """
    if not math.isfinite(dphi):
        return dphi
    while dphi > DPHI_HIGH:
        dphi -= TWO_PI
    while dphi <= DPHI_LOW:
        dphi += TWO_PI
    return dphi


def assoc_bin(pt: float, thresholds: Sequence[float]) -> float:
    """
    Upper edge of the associated-pt interval containing pt.

    Interval bounds are exclusive on both sides, so a pt equal to one of
    the thresholds (or above all of them) returns the last threshold.
    """
    for low, high in zip(thresholds[:-1], thresholds[1:]):
        if low < pt < high:
            return high
    return thresholds[-1]
