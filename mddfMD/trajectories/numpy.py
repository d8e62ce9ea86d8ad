"""
NumPy array trajectory backend for mddfMD.

This module provides the NumpyTrajectory class for trajectories stored
directly as NumPy arrays in memory.
"""

from __future__ import annotations

import numpy as np

from mddfMD.cell import as_cell_matrix
from mddfMD.selection import AtomSelection

from ._base import Trajectory


class NumpyTrajectory(Trajectory):
    """
    Represents a trajectory stored directly as NumPy arrays.

    Designed for simulation data already resident in memory, or for synthetic
    trajectories generated numerically.

    Parameters
    ----------
    positions : np.ndarray
        Atomic positions of shape ``(frames, atoms, 3)``.
    solute : AtomSelection
        Solute atoms.
    solvent : AtomSelection
        Solvent atoms.
    cell : np.ndarray
        Periodic cell: side lengths ``(3,)`` or cell matrix ``(3, 3)`` shared
        by all frames, or one per frame, ``(frames, 3)`` or
        ``(frames, 3, 3)``.
    per_frame : bool, optional
        Whether a 2-D ``cell`` holds one row of side lengths per frame. Only
        needed for three-frame trajectories, where a ``(3, 3)`` array is
        either a shared cell matrix or three rows of sides. By default the
        meaning is taken from the shape, and the ambiguous case raises.

    Raises
    ------
    ValueError
        If the arrays are inconsistent or the cell is invalid.
    """

    def __init__(
        self,
        positions: np.ndarray,
        solute: AtomSelection,
        solvent: AtomSelection,
        cell: np.ndarray,
        per_frame: bool | None = None,
    ):
        positions = np.asarray(positions, dtype=np.float64)
        if positions.ndim == 2:
            positions = positions[np.newaxis]
        if positions.ndim != 3 or positions.shape[2] != 3:
            raise ValueError(
                f"Positions must have shape (frames, atoms, 3), got {positions.shape}."
            )
        self.positions = positions
        self.frames = positions.shape[0]
        self.natoms = positions.shape[1]

        cell = np.asarray(cell, dtype=np.float64)
        if per_frame is None:
            if cell.shape == (3, 3) and self.frames == 3:
                raise ValueError(
                    "A (3, 3) cell for a three-frame trajectory is ambiguous; "
                    "pass per_frame=True for per-frame side lengths or "
                    "per_frame=False for a shared cell matrix."
                )
            per_frame = cell.shape not in ((3,), (3, 3))
        if not per_frame and cell.shape in ((3,), (3, 3)):
            self._cells = None
            self._cell = as_cell_matrix(cell)
        elif per_frame and cell.shape in ((self.frames, 3), (self.frames, 3, 3)):
            self._cells = np.array([as_cell_matrix(c) for c in cell])
            self._cell = None
        else:
            raise ValueError(
                f"Cell must have shape (3,), (3, 3), ({self.frames}, 3) or "
                f"({self.frames}, 3, 3), got {cell.shape}."
            )

        super().__init__(solute, solvent)

    def _read_frame(self, index: int) -> tuple[np.ndarray, np.ndarray]:
        cell = self._cell if self._cells is None else self._cells[index]
        return self.positions[index], cell
