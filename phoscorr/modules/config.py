"""
Configuration loading

TOMLConfig reads the raw TOML files of a configuration directory;
AnalysisSettings turns them into validated, typed settings. All fatal
configuration checks happen here, before any event is processed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import tomli

from .binning import CentralityBinning
from .correlator import DEFAULT_ASSOC_BINS, MassWindow
from .exceptions import ConfigurationError
from .run_numbers import DEFAULT_TABLE_PATH, Period
from .selector import ClusterCuts
from .track_selection import ESDCutSettings, HybridMode

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

REQUIRED_FILES = ("binning.toml", "selection.toml", "correlation.toml")

DEFAULT_CENT_EDGES = (0.0, 5.0, 10.0, 20.0, 30.0, 40.0, 50.0, 60.0, 70.0, 80.0)
DEFAULT_CENT_NMIXED = (4, 4, 6, 10, 20, 30, 50, 100, 100)


class TriggerSelection(Enum):
    """Internal trigger-mask selection modes."""

    NONE = "none"
    CENTRAL_INCLUSIVE = "central_inclusive"
    CENTRAL_EXCLUSIVE = "central_exclusive"
    SEMI_CENTRAL_INCLUSIVE = "semi_central_inclusive"
    SEMI_CENTRAL_EXCLUSIVE = "semi_central_exclusive"
    MB_INCLUSIVE = "mb_inclusive"
    MB_EXCLUSIVE = "mb_exclusive"

    @classmethod
    def from_name(cls, name: str) -> TriggerSelection:
        try:
            return cls(name.lower())
        except ValueError:
            valid = ", ".join(mode.value for mode in cls)
            raise ConfigurationError(f"Unknown trigger selection '{name}' (valid: {valid})")


class TOMLConfig:
    """
    Load and manage the TOML configuration files

    Structure:
    - binning.toml: centrality edges and mixing depths, vertex and reaction-plane binning
    - selection.toml: cluster, track and trigger selection
    - correlation.toml: mass window, associated-pt bins, histogram modules, run period
    """

    def __init__(self, config_dir: str = str(DEFAULT_CONFIG_DIR)):
        self.config_dir = Path(config_dir)

        self.binning = self._load_toml("binning.toml")
        self.selection = self._load_toml("selection.toml")
        self.correlation = self._load_toml("correlation.toml")

    def _load_toml(self, filename: str) -> dict:
        """
        Load TOML configuration file with proper error handling

        Args:
            filename: Name of the TOML file to load

        Returns:
            dict: Parsed TOML configuration

        Raises:
            ConfigurationError: If file not found or parsing fails
        """
        config_path = self.config_dir / filename
        try:
            with open(config_path, 'rb') as f:
                return tomli.load(f)
        except FileNotFoundError:
            raise ConfigurationError(
                f"Configuration file not found: {config_path}\n"
                f"Please ensure all config files are present in {self.config_dir}"
            )
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Error parsing TOML file {config_path}: {e}"
            )

    def get_centrality(self) -> dict:
        return self.binning.get("centrality", {})

    def get_vertex(self) -> dict:
        return self.binning.get("vertex", {})

    def get_reaction_plane(self) -> dict:
        return self.binning.get("reaction_plane", {})

    def get_cluster_cuts(self) -> dict:
        return self.selection.get("clusters", {})

    def get_track_cuts(self) -> dict:
        return self.selection.get("tracks", {})

    def get_trigger(self) -> dict:
        return self.selection.get("trigger", {})

    def get_mass_window(self) -> dict:
        return self.correlation.get("mass_window", {})

    def get_associated(self) -> dict:
        return self.correlation.get("associated", {})

    def get_histograms(self) -> dict:
        return self.correlation.get("histograms", {})

    def get_run(self) -> dict:
        return self.correlation.get("run", {})


def _build(cls, values: dict[str, Any], section: str):
    """Instantiate a settings dataclass, reporting unknown keys as configuration errors."""
    try:
        return cls(**values)
    except TypeError as e:
        raise ConfigurationError(f"Invalid keys in [{section}]: {e}")


@dataclass(frozen=True)
class TrackSettings:
    data_type: str = "AOD"
    hybrid_mode: HybridMode = HybridMode.ONLY_HYBRID
    pt_min: float = 0.5
    pt_max: float = 10.0
    eta_max: float = 0.8
    esd: ESDCutSettings = field(default_factory=ESDCutSettings)


@dataclass(frozen=True)
class AnalysisSettings:
    """
    Validated settings of one analysis stream.

    Defaults reproduce the standard configuration of the task, so
    AnalysisSettings() is usable without configuration files.
    """

    centrality: CentralityBinning = field(
        default_factory=lambda: CentralityBinning(DEFAULT_CENT_EDGES, DEFAULT_CENT_NMIXED)
    )
    estimator: str = "V0M"
    cent_cutoff_down: float = 0.0
    cent_cutoff_up: float = 90.0
    max_abs_vertex_z: float = 10.0
    n_vtx_bins: int = 1
    n_rp_bins: int = 9
    cluster_cuts: ClusterCuts = field(default_factory=ClusterCuts)
    tracks: TrackSettings = field(default_factory=TrackSettings)
    trigger_selection: TriggerSelection = TriggerSelection.NONE
    mass_window: MassWindow = field(default_factory=MassWindow)
    assoc_bins: tuple[float, ...] = DEFAULT_ASSOC_BINS
    modules: tuple[int, ...] = (1, 2, 3)
    period: Period = Period.LHC11h
    run_table_path: Path = DEFAULT_TABLE_PATH

    def __post_init__(self) -> None:
        if not (0.0 <= self.cent_cutoff_down < self.cent_cutoff_up <= 100.0):
            raise ConfigurationError(
                f"Bad value of centrality borders: down={self.cent_cutoff_down}, "
                f"up={self.cent_cutoff_up} (need 0 <= down < up <= 100)"
            )
        if self.n_rp_bins < 1 or self.n_vtx_bins < 1:
            raise ConfigurationError(
                f"Bin counts must be positive: n_rp_bins={self.n_rp_bins}, n_vtx_bins={self.n_vtx_bins}"
            )
        if self.max_abs_vertex_z <= 0:
            raise ConfigurationError(f"max_abs_vertex_z must be positive, got {self.max_abs_vertex_z}")
        if len(self.assoc_bins) < 2 or any(
            not low < high for low, high in zip(self.assoc_bins[:-1], self.assoc_bins[1:])
        ):
            raise ConfigurationError(f"Associated pt bins must be strictly increasing: {list(self.assoc_bins)}")
        if self.mass_window.sigma <= 0:
            raise ConfigurationError(f"Mass window sigma must be positive, got {self.mass_window.sigma}")
        if self.tracks.data_type.upper() not in ("ESD", "AOD"):
            raise ConfigurationError(f"Unknown data type '{self.tracks.data_type}', expected 'ESD' or 'AOD'")

    @classmethod
    def from_config(cls, config: TOMLConfig) -> AnalysisSettings:
        """
        Build settings from loaded TOML files.

        Raises:
            ConfigurationError: On any invalid or inconsistent value
        """
        cent = config.get_centrality()
        vertex = config.get_vertex()
        rp = config.get_reaction_plane()

        track_values = dict(config.get_track_cuts())
        esd = _build(ESDCutSettings, track_values.pop("esd", {}), "tracks.esd")
        if "hybrid_mode" in track_values:
            track_values["hybrid_mode"] = HybridMode.from_name(track_values["hybrid_mode"])
        tracks = _build(TrackSettings, {**track_values, "esd": esd}, "tracks")

        mass = _build(MassWindow, config.get_mass_window(), "mass_window")
        run = config.get_run()

        kwargs: dict[str, Any] = dict(
            centrality=CentralityBinning(
                tuple(cent.get("edges", DEFAULT_CENT_EDGES)),
                tuple(cent.get("n_mixed", DEFAULT_CENT_NMIXED)),
            ),
            estimator=cent.get("estimator", "V0M"),
            cent_cutoff_down=float(cent.get("cutoff_down", 0.0)),
            cent_cutoff_up=float(cent.get("cutoff_up", 90.0)),
            max_abs_vertex_z=float(vertex.get("max_abs_z", 10.0)),
            n_vtx_bins=int(vertex.get("n_bins", 1)),
            n_rp_bins=int(rp.get("n_bins", 9)),
            cluster_cuts=_build(ClusterCuts, config.get_cluster_cuts(), "clusters"),
            tracks=tracks,
            trigger_selection=TriggerSelection.from_name(config.get_trigger().get("selection", "none")),
            mass_window=mass,
            assoc_bins=tuple(float(b) for b in config.get_associated().get("pt_bins", DEFAULT_ASSOC_BINS)),
            modules=tuple(int(m) for m in config.get_histograms().get("modules", (1, 2, 3))),
            period=Period.from_name(run.get("period", "LHC11h")),
        )
        if "run_table" in run:
            kwargs["run_table_path"] = Path(run["run_table"])
        return cls(**kwargs)

    @classmethod
    def from_directory(cls, config_dir: str = str(DEFAULT_CONFIG_DIR)) -> AnalysisSettings:
        return cls.from_config(TOMLConfig(config_dir))
