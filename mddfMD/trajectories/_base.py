"""
Base classes for trajectory handling in mddfMD.

This module defines the abstract base class and common exceptions used by
all trajectory backends. A trajectory owns the coordinate buffers of the
current frame, split into solute and solvent atoms, and the cell matrix of
that frame.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator

import numpy as np

from mddfMD.cell import as_cell_matrix
from mddfMD.selection import AtomSelection


class DataUnavailableError(Exception):
    """Raised when requested data (e.g. periodic cell) is not available for a frame."""
    pass


class Trajectory(ABC):
    """
    Abstract base class defining the interface for trajectory objects.

    All trajectory backends must implement this interface to ensure consistent
    access patterns across different file formats and data sources.

    The trajectory behaves as a stream with a cursor: :meth:`open` places the
    cursor before the first frame, :meth:`next_frame` reads the following
    frame and :meth:`read_frame` jumps to any frame. After a read, the
    coordinates are available in :attr:`x_solute`, :attr:`x_solvent` and the
    cell in :attr:`cell_matrix`.

    Parameters
    ----------
    solute : AtomSelection
        Solute atoms.
    solvent : AtomSelection
        Solvent atoms.

    Required Attributes
    -------------------
    frames : int
        Number of frames in the trajectory.
    natoms : int
        Number of atoms of the whole system.
    """

    frames: int
    natoms: int

    def __init__(self, solute: AtomSelection, solvent: AtomSelection) -> None:
        """
        Initialise common trajectory attributes.

        Subclasses should call ``super().__init__(solute, solvent)`` after
        setting ``frames`` and ``natoms``.

        Raises
        ------
        ValueError
            If a selection refers to atoms outside the system.
        """
        for name, selection in (('solute', solute), ('solvent', solvent)):
            if selection.indices.max() >= self.natoms or selection.indices.min() < 0:
                raise ValueError(
                    f"The {name} selection contains atom indices outside the system "
                    f"({self.natoms} atoms)."
                )
        self.solute = solute
        self.solvent = solvent
        self.x_solute = np.zeros((solute.natoms, 3))
        self.x_solvent = np.zeros((solvent.natoms, 3))
        self.cell_matrix = np.eye(3)
        self.current_frame = -1
        self.is_open = False

    def _normalize_bounds(
        self, start: int, stop: int | None, stride: int
    ) -> tuple[int, int, int]:
        """
        Normalize start/stop bounds to handle negative indices Pythonically.

        Follows Python slice semantics: negative indices count from the end,
        ``None`` for stop means iterate to the end and out-of-bounds indices
        are clamped to the valid range.
        """
        n = self.frames
        if stop is None:
            stop = n
        if start < 0:
            start = max(0, n + start)
        if stop < 0:
            stop = max(0, n + stop)
        start = min(start, n)
        stop = min(stop, n)
        return start, stop, stride

    def open(self) -> None:
        """Open the trajectory and place the cursor before the first frame."""
        self._open()
        self.is_open = True
        self.current_frame = -1

    def close(self) -> None:
        """Close the trajectory."""
        if self.is_open:
            self._close()
        self.is_open = False

    def __enter__(self) -> Trajectory:
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def first_frame(self) -> None:
        """Read the first frame."""
        self.read_frame(0)

    def next_frame(self) -> None:
        """
        Read the frame after the current one.

        Raises
        ------
        IndexError
            If the cursor is already at the last frame.
        """
        self.read_frame(self.current_frame + 1)

    def read_frame(self, index: int) -> None:
        """
        Read frame ``index`` into the coordinate buffers.

        Raises
        ------
        RuntimeError
            If the trajectory is not open.
        IndexError
            If ``index`` is outside the trajectory.
        """
        if not self.is_open:
            raise RuntimeError("Trajectory must be opened before reading frames.")
        if not 0 <= index < self.frames:
            raise IndexError(f"Frame {index} is outside the trajectory ({self.frames} frames).")
        positions, cell = self._read_frame(index)
        self.x_solute[...] = positions[self.solute.indices]
        self.x_solvent[...] = positions[self.solvent.indices]
        self.cell_matrix = as_cell_matrix(cell)
        self.current_frame = index

    def iter_frames(
        self,
        start: int = 0,
        stop: int | None = None,
        stride: int = 1
    ) -> Iterator[tuple[np.ndarray, np.ndarray, np.ndarray]]:
        """
        Iterate over trajectory frames.

        Parameters
        ----------
        start : int, optional
            First frame index (default: 0). Negative indices count from end.
        stop : int, optional
            Stop iteration before this frame (default: None, meaning all frames).
            Negative indices count from end.
        stride : int, optional
            Step between frames (default: 1).

        Yields
        ------
        x_solute : np.ndarray, shape (solute.natoms, 3)
        x_solvent : np.ndarray, shape (solvent.natoms, 3)
        cell_matrix : np.ndarray, shape (3, 3)
            Copies of the coordinates and cell of each frame.
        """
        start, stop, stride = self._normalize_bounds(start, stop, stride)
        was_open = self.is_open
        if not was_open:
            self.open()
        try:
            for index in range(start, stop, stride):
                self.read_frame(index)
                yield self.x_solute.copy(), self.x_solvent.copy(), self.cell_matrix.copy()
        finally:
            if not was_open:
                self.close()

    def _open(self) -> None:
        """Backend hook run by :meth:`open`."""

    def _close(self) -> None:
        """Backend hook run by :meth:`close`."""

    @abstractmethod
    def _read_frame(self, index: int) -> tuple[np.ndarray, np.ndarray]:
        """
        Return positions of all atoms and the cell of a frame.

        Returns
        -------
        positions : np.ndarray, shape (natoms, 3)
        cell : np.ndarray, shape (3,) or (3, 3)
            Orthorhombic side lengths or cell matrix.
        """
        ...
