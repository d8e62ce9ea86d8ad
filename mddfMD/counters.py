"""
Histogram updates from minimum-distance records.

Real configurations update the minimum-distance histogram, the per-group
contribution tables and the site-site (reference atom) histogram. Ideal-gas
configurations update only the two random histograms.
"""

from __future__ import annotations

import numpy as np

from mddfMD.minimum_distances import MinimumDistanceBuffer
from mddfMD.selection import AtomSelection


def bin_index(d, binstep: float):
    """
    Histogram bin of a distance.

    Bin ``k`` (0-based) covers ``[k*binstep, (k+1)*binstep)``; its upper
    edge ``(k+1)*binstep`` is the value reported on the distance axis. The
    quotient is rounded to 8 decimals before flooring, so a distance equal
    to ``k*binstep`` lands in bin ``k`` for decimal steps such as 0.02.

    Parameters
    ----------
    d : float or np.ndarray
        Distance(s).
    binstep : float
        Bin width.

    Returns
    -------
    int or np.ndarray
        Bin index(es).

    Examples
    --------
    >>> bin_index(1.0, 0.5)
    2
    """
    ibin = np.floor(np.round(np.asarray(d) / binstep, 8)).astype(np.int64)
    if ibin.ndim == 0:
        return int(ibin)
    return ibin


def _histogram(d: np.ndarray, binstep: float, nbins: int) -> tuple[np.ndarray, np.ndarray]:
    """Bin indices of ``d`` and a mask of those falling inside the histogram."""
    ibin = bin_index(d, binstep)
    return ibin, ibin < nbins


def add_group_counts(
    table: np.ndarray,
    selection: AtomSelection,
    ibin: np.ndarray,
    iatoms: np.ndarray,
    weight: float,
) -> None:
    """
    Add ``weight`` to the contribution table for each (bin, atom) pair.

    Parameters
    ----------
    table : np.ndarray, shape (nbins, ngroups)
        Contribution table, updated in place.
    selection : AtomSelection
        Selection the atoms belong to.
    ibin : np.ndarray of int
        Bin of each contact.
    iatoms : np.ndarray of int
        Position in ``selection`` of the atom realising each contact.
    weight : float
        Increment per contact.
    """
    if selection.custom_groups:
        np.add.at(table, ibin, weight * selection.membership[iatoms])
    else:
        np.add.at(table, (ibin, selection.atom_type(iatoms)), weight)


def update_counters(result, buffer: MinimumDistanceBuffer, frame_weight: float = 1.0) -> None:
    """
    Add the contacts of a real configuration to ``result``.

    Molecules within the cutoff increment ``md_count`` and, through the
    correlation mode of the result, the group contribution tables. Molecules
    whose reference atom is within the cutoff increment ``rdf_count``.

    Parameters
    ----------
    result : Result
        Accumulator to be updated.
    buffer : MinimumDistanceBuffer
        Records of one solute molecule.
    frame_weight : float, optional
        Weight of the current frame.
    """
    within = buffer.within_cutoff
    ibin, inside = _histogram(buffer.d[within], result.binstep, result.nbins)
    ibin = ibin[inside]
    result.md_count += frame_weight * np.bincount(ibin, minlength=result.nbins)
    result.mode.update_groups(
        result, ibin, buffer.i[within][inside], buffer.j[within][inside], frame_weight
    )

    ref = buffer.ref_atom_within_cutoff
    ibin, inside = _histogram(buffer.d_ref_atom[ref], result.binstep, result.nbins)
    result.rdf_count += frame_weight * np.bincount(ibin[inside], minlength=result.nbins)


def update_counters_random(
    result, buffer: MinimumDistanceBuffer, frame_weight: float = 1.0
) -> None:
    """Add the contacts of an ideal-gas configuration to the random histograms."""
    within = buffer.within_cutoff
    ibin, inside = _histogram(buffer.d[within], result.binstep, result.nbins)
    result.md_count_random += frame_weight * np.bincount(ibin[inside], minlength=result.nbins)

    ref = buffer.ref_atom_within_cutoff
    ibin, inside = _histogram(buffer.d_ref_atom[ref], result.binstep, result.nbins)
    result.rdf_count_random += frame_weight * np.bincount(ibin[inside], minlength=result.nbins)
