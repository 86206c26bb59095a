"""
Photon-pair / hadron azimuthal correlations with event mixing for PHOS.
"""

__version__ = "0.1.0"
