"""
Validation tests for configuration errors.

Every inconsistent or malformed setting must be reported as a
ConfigurationError before any event is processed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import tomli_w

from phoscorr.modules.binning import BinIndexer, CentralityBinning
from phoscorr.modules.config import AnalysisSettings, TOMLConfig, TrackSettings, TriggerSelection
from phoscorr.modules.correlator import MassWindow
from phoscorr.modules.exceptions import ConfigurationError
from phoscorr.modules.run_numbers import Period, RunNumberTable
from phoscorr.modules.track_selection import HybridMode


def write_config(config_dir: Path, content: dict[str, dict[str, Any]]) -> Path:
    for filename, values in content.items():
        with open(config_dir / filename, "wb") as f:
            tomli_w.dump(values, f)
    return config_dir


@pytest.mark.validation
class TestBinningValidation:
    @pytest.mark.parametrize(
        "edges,n_mixed",
        [
            ((0.0,), ()),
            ((0.0, 10.0, 10.0), (4, 4)),
            ((0.0, 20.0, 10.0), (4, 4)),
            ((0.0, 10.0, 20.0), (4,)),
            ((0.0, 10.0), (4, 4)),
            ((0.0, 10.0), (0,)),
        ],
    )
    def test_bad_centrality_binning(self, edges, n_mixed) -> None:
        with pytest.raises(ConfigurationError):
            CentralityBinning(edges, n_mixed)

    def test_relative_size_message(self) -> None:
        with pytest.raises(ConfigurationError, match="relative sizes"):
            CentralityBinning((0.0, 10.0, 20.0), (4,))

    @pytest.mark.parametrize("kwargs", [{"n_rp_bins": 0}, {"n_vtx_bins": 0}, {"max_abs_z": 0.0}])
    def test_bad_indexer(self, scenario_binning: CentralityBinning, kwargs) -> None:
        with pytest.raises(ConfigurationError):
            BinIndexer(scenario_binning, **kwargs)


@pytest.mark.validation
class TestSettingsValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"cent_cutoff_down": 50.0, "cent_cutoff_up": 40.0},
            {"cent_cutoff_down": -1.0},
            {"cent_cutoff_up": 101.0},
            {"n_rp_bins": 0},
            {"n_vtx_bins": 0},
            {"max_abs_vertex_z": -5.0},
            {"assoc_bins": (1.0,)},
            {"assoc_bins": (0.0, 2.0, 1.0)},
            {"mass_window": MassWindow(sigma=0.0)},
            {"tracks": TrackSettings(data_type="MC")},
        ],
    )
    def test_rejected(self, kwargs) -> None:
        with pytest.raises(ConfigurationError):
            AnalysisSettings(**kwargs)

    def test_centrality_message(self) -> None:
        with pytest.raises(ConfigurationError, match="Bad value of centrality borders"):
            AnalysisSettings(cent_cutoff_down=60.0, cent_cutoff_up=60.0)

    @pytest.mark.parametrize(
        "factory,name",
        [
            (TriggerSelection.from_name, "mb_sometimes"),
            (HybridMode.from_name, "hybridish"),
            (Period.from_name, "LHC99z"),
        ],
    )
    def test_unknown_names(self, factory, name: str) -> None:
        with pytest.raises(ConfigurationError, match="valid:"):
            factory(name)

    def test_names_case_insensitive(self) -> None:
        assert TriggerSelection.from_name("MB_Inclusive") is TriggerSelection.MB_INCLUSIVE
        assert HybridMode.from_name("ALL") is HybridMode.ALL
        assert Period.from_name("lhc11h") is Period.LHC11h


@pytest.mark.validation
@pytest.mark.config
class TestConfigFileValidation:
    def test_missing_file(self, config_dir_fixture: Path) -> None:
        (config_dir_fixture / "selection.toml").unlink()
        with pytest.raises(ConfigurationError, match="Configuration file not found"):
            TOMLConfig(str(config_dir_fixture))

    def test_invalid_toml(self, config_dir_fixture: Path) -> None:
        (config_dir_fixture / "binning.toml").write_text("[centrality\nedges = [0, 10")
        with pytest.raises(ConfigurationError, match="Error parsing TOML file"):
            TOMLConfig(str(config_dir_fixture))

    @pytest.mark.parametrize(
        "filename,section,values",
        [
            ("selection.toml", "clusters", {"min_energy": 0.3, "max_fun": 1.0}),
            ("correlation.toml", "mass_window", {"mean": 0.135, "width": 0.01}),
        ],
    )
    def test_unknown_keys(self, config_dir_fixture: Path, sample_config_dict, filename, section, values) -> None:
        content = dict(sample_config_dict[filename])
        content[section] = values
        write_config(config_dir_fixture, {filename: content})
        with pytest.raises(ConfigurationError, match=f"Invalid keys in \\[{section}\\]"):
            AnalysisSettings.from_directory(str(config_dir_fixture))

    def test_unknown_esd_key(self, config_dir_fixture: Path, sample_config_dict) -> None:
        selection = dict(sample_config_dict["selection.toml"])
        selection["tracks"] = {"data_type": "ESD", "esd": {"min_its_clusters": 2}}
        write_config(config_dir_fixture, {"selection.toml": selection})
        with pytest.raises(ConfigurationError, match="tracks.esd"):
            AnalysisSettings.from_directory(str(config_dir_fixture))

    def test_mismatched_edges_in_file(self, config_dir_fixture: Path, sample_config_dict) -> None:
        binning = dict(sample_config_dict["binning.toml"])
        binning["centrality"] = {**binning["centrality"], "n_mixed": [4, 4, 6]}
        write_config(config_dir_fixture, {"binning.toml": binning})
        with pytest.raises(ConfigurationError, match="relative sizes"):
            AnalysisSettings.from_directory(str(config_dir_fixture))

    def test_zero_reaction_plane_bins(self, config_dir_fixture: Path, sample_config_dict) -> None:
        binning = dict(sample_config_dict["binning.toml"])
        binning["reaction_plane"] = {"n_bins": 0}
        write_config(config_dir_fixture, {"binning.toml": binning})
        with pytest.raises(ConfigurationError, match="Bin counts must be positive"):
            AnalysisSettings.from_directory(str(config_dir_fixture))

    def test_unknown_trigger_in_file(self, config_dir_fixture: Path, sample_config_dict) -> None:
        selection = dict(sample_config_dict["selection.toml"])
        selection["trigger"] = {"selection": "everything"}
        write_config(config_dir_fixture, {"selection.toml": selection})
        with pytest.raises(ConfigurationError, match="Unknown trigger selection"):
            AnalysisSettings.from_directory(str(config_dir_fixture))


@pytest.mark.validation
class TestRunTableValidation:
    def test_missing_table(self, tmp_test_dir: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            RunNumberTable.from_toml(tmp_test_dir / "missing.toml")

    def test_missing_default(self, tmp_test_dir: Path) -> None:
        path = tmp_test_dir / "runs.toml"
        path.write_text("[LHC11h.runs]\n170593 = 179\n")
        with pytest.raises(ConfigurationError, match="Malformed"):
            RunNumberTable.from_toml(path)

    def test_unknown_period(self, tmp_test_dir: Path) -> None:
        path = tmp_test_dir / "runs.toml"
        path.write_text("[LHC42]\ndefault = 1\n")
        with pytest.raises(ConfigurationError, match="Unknown period"):
            RunNumberTable.from_toml(path)
