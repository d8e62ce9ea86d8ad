"""
Per-molecule minimum-distance records.

For every solvent molecule the linked-cell query keeps the shortest distance
to the current solute molecule, the pair of atoms realising it and the
distance of the solvent reference atom. The records of one query live in a
:class:`MinimumDistanceBuffer`, a struct of arrays with one slot per solvent
molecule that is reset and reused for every query.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np


class MinimumDistance(NamedTuple):
    """
    Shortest solute-solvent contact of one solvent molecule.

    Attributes
    ----------
    within_cutoff : bool
        Whether any atom pair was found within the cutoff.
    d : float
        Minimum distance (``inf`` if not within the cutoff).
    i : int
        Position, in the solute selection, of the solute atom of the pair.
    j : int
        Position, in the solvent selection, of the solvent atom of the pair.
    ref_atom_within_cutoff : bool
        Whether the reference atom of the molecule is within the cutoff.
    d_ref_atom : float
        Distance of the reference atom to the solute (``inf`` if not within
        the cutoff).
    """

    within_cutoff: bool
    d: float
    i: int
    j: int
    ref_atom_within_cutoff: bool
    d_ref_atom: float


class MinimumDistanceBuffer:
    """
    Reusable arrays holding one :class:`MinimumDistance` per molecule.

    Parameters
    ----------
    size : int
        Number of solvent molecules covered by the queries.

    Attributes
    ----------
    skip : int
        Molecule excluded from the last query (``-1`` if none). Its slot
        is always reported as not within the cutoff.
    """

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"Buffer size must be non-negative, got {size}.")
        self.size = int(size)
        self.within_cutoff = np.zeros(size, dtype=np.bool_)
        self.d = np.full(size, np.inf)
        self.i = np.full(size, -1, dtype=np.int64)
        self.j = np.full(size, -1, dtype=np.int64)
        self.ref_atom_within_cutoff = np.zeros(size, dtype=np.bool_)
        self.d_ref_atom = np.full(size, np.inf)
        self.skip = -1

    def reset(self) -> None:
        """Mark every slot as not within the cutoff."""
        self.within_cutoff[:] = False
        self.d[:] = np.inf
        self.i[:] = -1
        self.j[:] = -1
        self.ref_atom_within_cutoff[:] = False
        self.d_ref_atom[:] = np.inf
        self.skip = -1

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, imol: int) -> MinimumDistance:
        return MinimumDistance(
            bool(self.within_cutoff[imol]),
            float(self.d[imol]),
            int(self.i[imol]),
            int(self.j[imol]),
            bool(self.ref_atom_within_cutoff[imol]),
            float(self.d_ref_atom[imol]),
        )

    def __iter__(self):
        for imol in range(self.size):
            yield self[imol]
