"""
Global pytest fixtures and configuration for the test suite.

Provides reusable fixtures for testing pipeline components without
duplicating setup code across test modules.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest
import tomli_w

from phoscorr.modules.binning import BinIndexer, CentralityBinning
from phoscorr.modules.config import AnalysisSettings
from phoscorr.modules.event_source import EventRecord
from phoscorr.modules.geometry import PHOSGeometry
from phoscorr.modules.histograms import HistogramRegistry

from .utils.mock_event_generator import generate_event_records


@pytest.fixture
def tmp_test_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test operations.

    Automatically cleaned up after test completion.
    """
    tmp_dir = Path(tempfile.mkdtemp(prefix="phoscorr_test_"))
    try:
        yield tmp_dir
    finally:
        if tmp_dir.exists():
            shutil.rmtree(tmp_dir)


@pytest.fixture
def tmp_output_dir(tmp_test_dir: Path) -> Path:
    output_dir = tmp_test_dir / "output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


@pytest.fixture
def scenario_binning() -> CentralityBinning:
    """Centrality edges [0, 10, 30, 50, 100] with depth limits [4, 4, 6, 10]."""
    return CentralityBinning((0.0, 10.0, 30.0, 50.0, 100.0), (4, 4, 6, 10))


@pytest.fixture
def scenario_indexer(scenario_binning: CentralityBinning) -> BinIndexer:
    return BinIndexer(scenario_binning, n_rp_bins=9)


@pytest.fixture
def registry() -> HistogramRegistry:
    return HistogramRegistry()


@pytest.fixture
def geometry() -> PHOSGeometry:
    return PHOSGeometry()


@pytest.fixture
def default_settings() -> AnalysisSettings:
    return AnalysisSettings()


@pytest.fixture
def mock_events() -> list[EventRecord]:
    """Deterministic mixture of good and incomplete events."""
    return generate_event_records(n_events=120, seed=42)


@pytest.fixture
def sample_config_dict() -> dict[str, dict[str, Any]]:
    """
    Provide a minimal valid configuration, one dictionary per TOML file.
    """
    return {
        "binning.toml": {
            "centrality": {
                "estimator": "V0M",
                "edges": [0.0, 10.0, 30.0, 50.0, 100.0],
                "n_mixed": [4, 4, 6, 10],
                "cutoff_down": 0.0,
                "cutoff_up": 90.0,
            },
            "vertex": {"max_abs_z": 10.0, "n_bins": 2},
            "reaction_plane": {"n_bins": 6},
        },
        "selection.toml": {
            "clusters": {"min_energy": 0.5, "min_n_cells": 2},
            "tracks": {
                "data_type": "ESD",
                "hybrid_mode": "all",
                "esd": {"min_tpc_clusters": 70},
            },
            "trigger": {"selection": "mb_inclusive"},
        },
        "correlation.toml": {
            "mass_window": {"mean": 0.135, "sigma": 0.012, "sigma_width": 2.0},
            "associated": {"pt_bins": [0.0, 1.0, 2.0, 4.0]},
            "histograms": {"modules": [1, 2, 3, 4]},
            "run": {"period": "LHC10h"},
        },
    }


@pytest.fixture
def config_dir_fixture(tmp_test_dir: Path, sample_config_dict: dict[str, dict[str, Any]]) -> Path:
    """
    Create a temporary config directory with sample TOML files.
    """
    config_dir = tmp_test_dir / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    for filename, content in sample_config_dict.items():
        with open(config_dir / filename, "wb") as f:
            tomli_w.dump(content, f)

    return config_dir


def pytest_configure(config: pytest.Config) -> None:
    """
    Configure pytest with custom markers.

    Args:
        config: pytest configuration object
    """
    config.addinivalue_line("markers", "unit: Fast tests of a single component")
    config.addinivalue_line("markers", "integration: Tests running several components together")
    config.addinivalue_line("markers", "validation: Configuration and error-handling checks")
    config.addinivalue_line("markers", "config: Tests reading TOML configuration")
