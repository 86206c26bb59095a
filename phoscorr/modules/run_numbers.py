"""
Run-number -> internal run index lookup

The per-period tables live in data/run_numbers.toml and are loaded once
into an immutable mapping.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import tomli

from .exceptions import ConfigurationError

DEFAULT_TABLE_PATH = Path(__file__).resolve().parent.parent / "data" / "run_numbers.toml"

# Index returned when no period is defined
UNDEFINED_PERIOD_INDEX = 1


class Period(Enum):
    UNDEFINED = "undefined"
    LHC10h = "LHC10h"
    LHC11h = "LHC11h"
    LHC13 = "LHC13"

    @classmethod
    def from_name(cls, name: str) -> Period:
        for period in cls:
            if period.value.lower() == name.lower():
                return period
        valid = ", ".join(p.value for p in cls)
        raise ConfigurationError(f"Unknown period '{name}' (valid: {valid})")


class RunNumberTable:
    """
    Immutable run-number tables per period.

    Attributes:
        tables: {period: {run_number: internal_index}}
        defaults: {period: index for runs missing from the table}
    """

    def __init__(self, tables: Mapping[Period, Mapping[int, int]], defaults: Mapping[Period, int]) -> None:
        self.tables = MappingProxyType({p: MappingProxyType(dict(t)) for p, t in tables.items()})
        self.defaults = MappingProxyType(dict(defaults))
        self.logger = logging.getLogger("PHOSCorrelations.RunNumberTable")

    @classmethod
    def from_toml(cls, path: str | Path = DEFAULT_TABLE_PATH) -> RunNumberTable:
        """
        Load tables from a TOML file with one [<period>] table holding
        'default' and a [<period>.runs] sub-table.

        Raises:
            ConfigurationError: If the file is missing, malformed or names an unknown period
        """
        path = Path(path)
        try:
            with open(path, "rb") as f:
                content = tomli.load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Run-number table not found: {path}")
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Error parsing run-number table {path}: {e}")

        tables = {}
        defaults = {}
        for name, section in content.items():
            period = Period.from_name(name)
            try:
                tables[period] = {int(run): int(index) for run, index in section.get("runs", {}).items()}
                defaults[period] = int(section["default"])
            except (KeyError, ValueError, TypeError) as e:
                raise ConfigurationError(f"Malformed run-number table for {name} in {path}: {e}")
        return cls(tables, defaults)

    def internal_run_number(self, period: Period, run: int) -> int:
        """
        Internal index of a run.

        Unknown runs of a known period map to the period default; an
        undefined period maps to UNDEFINED_PERIOD_INDEX.
        """
        if period is Period.UNDEFINED or period not in self.tables:
            self.logger.warning("Period not defined")
            return UNDEFINED_PERIOD_INDEX
        return self.tables[period].get(run, self.defaults[period])

    def __len__(self) -> int:
        return sum(len(t) for t in self.tables.values())
