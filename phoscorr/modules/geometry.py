"""
Read-only PHOS geometry handle

Only the cell numbering is needed by the analysis: an absolute cell id is
decomposed into (module, cell x, cell z). The handle is built once at
setup and passed explicitly to whoever needs it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple


class RelId(NamedTuple):
    module: int
    cell_x: int
    cell_z: int


@dataclass(frozen=True)
class PHOSGeometry:
    """
    PHOS cell numbering.

    Attributes:
        n_x: Cells per module along x (phi direction)
        n_z: Cells per module along z (beam direction)
        n_modules: Number of modules
    """

    n_x: int = 64
    n_z: int = 56
    n_modules: int = 5

    @property
    def cells_per_module(self) -> int:
        return self.n_x * self.n_z

    def module_of(self, abs_id: int) -> int:
        """Module number (1-based) of an absolute cell id."""
        return int(math.ceil(abs_id / self.cells_per_module))

    def rel_id(self, abs_id: int) -> RelId:
        """Decompose a 1-based absolute cell id into (module, x, z)."""
        module = self.module_of(abs_id)
        local = abs_id - (module - 1) * self.cells_per_module
        cell_x = int(math.ceil(local / self.n_z))
        cell_z = local - (cell_x - 1) * self.n_z
        return RelId(module, cell_x, cell_z)
