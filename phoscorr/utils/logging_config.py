"""
Logging and Warning Configuration Utilities

Centralized control over log output, warning messages and progress bars
for the correlation pipeline.

Usage:
    from phoscorr.utils.logging_config import setup_logging, suppress_warnings
    logger = setup_logging(verbose=True)
    suppress_warnings()  # Suppress library warnings by default

    # Via environment variable:
    export ANALYSIS_WARNINGS=on  # Show warnings
    export ANALYSIS_PROGRESS=off  # Hide progress bars
"""

import logging
import os
import warnings
from typing import Literal

import numpy as np

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure logging level"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return logging.getLogger("PHOSCorrelations")


def suppress_warnings(level: Literal["off", "error", "default", "all"] = "off") -> str:
    """
    Configure warning levels for the analysis.

    Args:
        level: Warning level to set
            - 'off': Suppress all warnings (default for pipeline)
            - 'error': Turn warnings into errors, except deprecations
            - 'default': Show important warnings but filter common noise
            - 'all': Show everything (useful for debugging)

    Environment variable ANALYSIS_WARNINGS overrides the level parameter.

    Returns:
        The level actually applied
    """
    env_level = os.environ.get("ANALYSIS_WARNINGS", "").lower()
    if env_level in ["on", "yes", "true", "1"]:
        level = "all"
    elif env_level in ["off", "no", "false", "0"]:
        level = "off"
    elif env_level in ["error", "default"]:
        level = env_level

    if level == "off":
        warnings.filterwarnings("ignore")
        np.seterr(all="ignore")

    elif level == "error":
        warnings.filterwarnings("error")
        warnings.filterwarnings("ignore", category=DeprecationWarning)
        warnings.filterwarnings("ignore", category=FutureWarning)

    elif level == "default":
        warnings.filterwarnings("default")
        warnings.filterwarnings("ignore", category=DeprecationWarning)
        warnings.filterwarnings("ignore", message=".*uproot.*")
        warnings.filterwarnings("ignore", message=".*awkward.*")

    elif level == "all":
        warnings.filterwarnings("default")
        np.seterr(all="warn")

    if level in ["off", "error", "default"]:
        # Awkward and vector emit noisy warnings on jagged inputs
        warnings.filterwarnings("ignore", module="awkward.*")
        warnings.filterwarnings("ignore", module="vector.*")

    return level


def enable_progress_bars() -> bool:
    """
    Check if progress bars should be enabled.

    Can be controlled via ANALYSIS_PROGRESS environment variable.
    """
    env_progress = os.environ.get("ANALYSIS_PROGRESS", "on").lower()
    return env_progress in ["on", "yes", "true", "1"]


def get_tqdm_kwargs(desc: str = "", **kwargs) -> dict:
    """
    Get standard kwargs for tqdm progress bars with consistent styling.

    Args:
        desc: Description for the progress bar
        **kwargs: Additional tqdm parameters

    Returns:
        Dictionary of tqdm parameters
    """
    default_kwargs = {
        "desc": desc,
        "unit": "it",
        "ncols": 80,
        "bar_format": "{l_bar}{bar}| {n_fmt} [{elapsed}, {rate_fmt}]",
        "disable": not enable_progress_bars(),
    }
    default_kwargs.update(kwargs)
    return default_kwargs
