"""
Ideal-gas reference configurations of the solvent.

For each solute molecule drawn as a reference, the solvent is replaced by
copies of bulk solvent molecules placed at random positions and
orientations. Distances from the solute to this uncorrelated solvent give
the normalisation of the minimum-distance distribution.
"""

from __future__ import annotations

import numpy as np

from mddfMD.minimum_distances import MinimumDistanceBuffer
from mddfMD.options import Options
from mddfMD.rigid_body import random_rigid_placements


def classify_bulk(
    buffer: MinimumDistanceBuffer, options: Options, out: np.ndarray
) -> int:
    """
    Find the solvent molecules that belong to the bulk solution.

    Without ``usecutoff`` a molecule is in the bulk if it has no atom within
    the cutoff (``dbulk``). With ``usecutoff`` it is in the bulk if its
    minimum distance lies between ``dbulk`` and ``cutoff``. The molecule
    skipped in the query (``buffer.skip``) is never classified as bulk.

    Parameters
    ----------
    buffer : MinimumDistanceBuffer
        Records of the real configuration.
    options : Options
        Run options.
    out : np.ndarray of int
        Receives the indices of the bulk molecules in its first entries.

    Returns
    -------
    int
        Number of bulk molecules.
    """
    if options.usecutoff:
        bulk = buffer.within_cutoff & (buffer.d > options.dbulk)
    else:
        bulk = ~buffer.within_cutoff
    if buffer.skip >= 0:
        bulk[buffer.skip] = False
    indices = np.flatnonzero(bulk)
    out[:len(indices)] = indices
    return len(indices)


def choose_solvent_molecules(
    nslots: int,
    bulk_indices: np.ndarray,
    nbulk: int,
    nmols: int,
    skip: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Draw the molecules copied into the ideal-gas configuration.

    Each slot is drawn uniformly from the first ``nbulk`` entries of
    ``bulk_indices``; if there are no bulk molecules, uniformly from all
    ``nmols`` molecules except ``skip``.
    """
    if nbulk > 0:
        return bulk_indices[rng.integers(0, nbulk, size=nslots)]
    if skip < 0:
        return rng.integers(0, nmols, size=nslots)
    chosen = rng.integers(0, nmols - 1, size=nslots)
    chosen[chosen >= skip] += 1
    return chosen


def randomize_solvent(
    x_solvent: np.ndarray,
    natomspermol: int,
    bulk_indices: np.ndarray,
    nbulk: int,
    skip: int,
    irefatom: int,
    cell_matrix: np.ndarray,
    rng: np.random.Generator,
    out: np.ndarray,
) -> np.ndarray:
    """
    Fill ``out`` with a randomised solvent configuration.

    Parameters
    ----------
    x_solvent : np.ndarray, shape (nmols * natomspermol, 3)
        Solvent coordinates of the real configuration.
    natomspermol : int
        Atoms per solvent molecule.
    bulk_indices : np.ndarray of int
        Bulk molecules, as filled by :func:`classify_bulk`.
    nbulk : int
        Number of valid entries of ``bulk_indices``.
    skip : int
        Molecule never copied when there is no bulk (``-1`` for none).
    irefatom : int
        Reference atom used to make the copied molecules whole.
    cell_matrix : np.ndarray, shape (3, 3)
        Cell of the current frame.
    rng : np.random.Generator
        Random number generator of the worker.
    out : np.ndarray, shape (nslots * natomspermol, 3)
        Destination coordinates. ``nslots`` is the effective number of
        solvent molecules.

    Returns
    -------
    np.ndarray
        ``out``, filled.
    """
    nslots = out.shape[0] // natomspermol
    if nslots == 0:
        return out
    nmols = x_solvent.shape[0] // natomspermol
    chosen = choose_solvent_molecules(nslots, bulk_indices, nbulk, nmols, skip, rng)
    molecules = x_solvent.reshape(nmols, natomspermol, 3)[chosen]
    random_rigid_placements(
        molecules, irefatom, cell_matrix, rng,
        out=out.reshape(nslots, natomspermol, 3),
    )
    return out
