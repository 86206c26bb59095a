"""
Helper functions for testing pipeline components.

Provides builders for photons and clusters with known kinematics and
utilities for comparing results.
"""

from __future__ import annotations

import math

import numpy as np

from phoscorr.modules.candidates import Candidate
from phoscorr.modules.event_source import RawCluster
from phoscorr.modules.geometry import PHOSGeometry

PHOS_RADIUS = 460.0


def assert_arrays_close(
    actual: np.ndarray,
    expected: np.ndarray,
    rtol: float = 1e-7,
    atol: float = 0.0,
    msg: str | None = None,
) -> None:
    """
    Assert that two numpy arrays are element-wise close.

    Raises:
        AssertionError: If arrays are not close
    """
    error_msg = msg or f"Arrays not close:\nActual: {actual}\nExpected: {expected}"
    np.testing.assert_allclose(actual, expected, rtol=rtol, atol=atol, err_msg=error_msg)


def pair_opening_angle(mass: float, e1: float = 1.0, e2: float = 1.0) -> float:
    """Opening angle giving two massless photons the requested invariant mass."""
    return math.acos(1.0 - mass**2 / (2.0 * e1 * e2))


def make_photon(phi: float, energy: float = 1.0, module: int = 1,
                disp_ok: bool = True, cpv_ok: bool = True) -> Candidate:
    """Massless photon in the transverse plane (eta = 0)."""
    return Candidate.from_components(
        energy * math.cos(phi), energy * math.sin(phi), 0.0, energy,
        module=module, disp_ok=disp_ok, cpv_ok=cpv_ok,
    )


def make_pair_photons(mass: float = 0.135, phi: float = -1.2, **flags) -> tuple[Candidate, Candidate]:
    """Two unit-energy photons with the requested pair mass."""
    theta = pair_opening_angle(mass)
    return make_photon(phi, **flags), make_photon(phi + theta, **flags)


def make_cluster(phi: float, energy: float = 1.0, module: int = 1, **kwargs) -> RawCluster:
    """
    Cluster on the PHOS surface at z = 0 that passes the default cuts.

    With the vertex at the origin its momentum points exactly along phi.
    """
    cell = (module - 1) * PHOSGeometry().cells_per_module + 1000
    values = dict(
        energy=energy,
        position=(PHOS_RADIUS * math.cos(phi), PHOS_RADIUS * math.sin(phi), 0.0),
        n_cells=5,
        m02=0.5,
        dispersion=1.0,
        emc_cpv_distance=10.0,
        cell_abs_id=cell,
    )
    values.update(kwargs)
    return RawCluster(**values)
