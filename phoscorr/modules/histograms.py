"""
Histogram registry used as the analysis output sink

Histograms are booked once by name with fixed, uniform axes and filled by
name during the event loop. Filling an unknown name is reported and
skipped. The booked objects are `hist.Hist` instances, which uproot writes
to ROOT files directly.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Sequence

import hist
import numpy as np
import uproot

from .exceptions import HistogramError

AXIS_NAMES = ("x", "y", "z")


def regular_axis(nbins: int, low: float, high: float, name: str = "x", label: str = "") -> hist.axis.Regular:
    if nbins < 1 or not high > low:
        raise HistogramError(f"Invalid axis: {nbins} bins over [{low}, {high})")
    return hist.axis.Regular(nbins, low, high, name=name, label=label)


class HistogramRegistry:
    """
    Named histograms with fill-by-key access.

    Attributes:
        n_posts: Number of times the accumulated output was posted
        n_missing: Number of fills skipped for an unknown key or wrong dimension
    """

    def __init__(self) -> None:
        self._registry: dict[str, hist.Hist] = {}
        self.n_posts: int = 0
        self.n_missing: int = 0
        self.logger = logging.getLogger("PHOSCorrelations.HistogramRegistry")

    def book(self, name: str, title: str, *axes: hist.axis.Regular) -> hist.Hist:
        if name in self._registry:
            raise HistogramError(f"Histogram '{name}' is already registered.")
        if not 1 <= len(axes) <= 3:
            raise HistogramError(f"Histogram '{name}' must have 1 to 3 axes, got {len(axes)}")
        h = hist.Hist(*axes, storage=hist.storage.Double(), name=name, label=title)
        self._registry[name] = h
        return h

    def book_1d(self, name: str, title: str, nbins: int, low: float, high: float) -> hist.Hist:
        return self.book(name, title, regular_axis(nbins, low, high))

    def book_2d(self, name: str, title: str,
                nx: int, xlow: float, xhigh: float,
                ny: int, ylow: float, yhigh: float) -> hist.Hist:
        return self.book(name, title,
                         regular_axis(nx, xlow, xhigh, AXIS_NAMES[0]),
                         regular_axis(ny, ylow, yhigh, AXIS_NAMES[1]))

    def book_3d(self, name: str, title: str,
                nx: int, xlow: float, xhigh: float,
                ny: int, ylow: float, yhigh: float,
                nz: int, zlow: float, zhigh: float) -> hist.Hist:
        return self.book(name, title,
                         regular_axis(nx, xlow, xhigh, AXIS_NAMES[0]),
                         regular_axis(ny, ylow, yhigh, AXIS_NAMES[1]),
                         regular_axis(nz, zlow, zhigh, AXIS_NAMES[2]))

    def fill(self, key: str, *values: float) -> bool:
        """
        Fill histogram `key` with one entry.

        Values outside an axis range land in its flow bins.

        Returns:
            True if filled, False if the key is unknown or the number of
            values does not match the histogram dimension
        """
        h = self._registry.get(key)
        if h is None:
            self.n_missing += 1
            self.logger.error(f"can not find histogram <{key}>")
            return False
        if len(values) != h.ndim:
            self.n_missing += 1
            self.logger.error(f"histogram <{key}> has {h.ndim} axes, got {len(values)} values")
            return False
        h.fill(*values)
        return True

    def post(self) -> None:
        """Mark the current content as published output."""
        self.n_posts += 1

    def get(self, key: str) -> hist.Hist:
        return self._registry[key]

    def __contains__(self, key: str) -> bool:
        return key in self._registry

    def __iter__(self) -> Iterator[hist.Hist]:
        return iter(self._registry.values())

    def __len__(self) -> int:
        return len(self._registry)

    def names(self) -> list[str]:
        return list(self._registry)

    def snapshot(self) -> dict[str, np.ndarray]:
        return {name: h.values().copy() for name, h in self._registry.items()}

    def save(self, output_path: str, names: Sequence[str] | None = None) -> Path:
        """
        Write histograms to a ROOT file.

        Args:
            output_path: Path of the ROOT file to (re)create
            names: Subset of histograms to write, all if None

        Returns:
            Path of the written file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        selected = self.names() if names is None else list(names)

        self.logger.info(f"Saving {len(selected)} histograms to {output_path}")
        with uproot.recreate(output_path) as file:
            for name in selected:
                h = self._registry.get(name)
                if h is None:
                    self.logger.warning(f"Histogram {name} not found in registry.")
                    continue
                file[name] = h
        return output_path
