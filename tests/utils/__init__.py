"""
Test utilities for the correlation pipeline.
"""

from .helpers import assert_arrays_close, make_cluster, make_photon, make_pair_photons, pair_opening_angle
from .mock_event_generator import (
    create_mock_event_file,
    generate_event_records,
    generate_phos_cluster,
    generate_track,
)

__all__ = [
    "assert_arrays_close",
    "make_cluster",
    "make_photon",
    "make_pair_photons",
    "pair_opening_angle",
    "create_mock_event_file",
    "generate_event_records",
    "generate_phos_cluster",
    "generate_track",
]
