"""
Accumulator of minimum-distance statistics and its finalisation.

A :class:`Result` holds the histograms of one run (or one worker of a run).
Workers accumulate into their own Result, the Results are summed and the
sum is finalised once into the minimum-distance distribution function,
Kirkwood-Buff integrals and group contributions.
"""

from __future__ import annotations

import copy
import warnings
from typing import Iterable

import numpy as np
from scipy.integrate import cumulative_trapezoid

from mddfMD.counters import add_group_counts
from mddfMD.options import Options
from mddfMD.selection import AtomSelection
from mddfMD.utils import angs3_to_cm3_per_mol


class Density:
    """
    Number densities (sites per cubic Angstrom).

    ``solute`` and ``solvent`` are frame averages of ``nmols / volume``.
    ``solvent_bulk`` is the solvent density far from the solute, available
    after finalisation.
    """

    def __init__(self, solute: float = 0.0, solvent: float = 0.0, solvent_bulk: float = 0.0):
        self.solute = solute
        self.solvent = solvent
        self.solvent_bulk = solvent_bulk

    def to_dict(self) -> dict:
        return {'solute': self.solute, 'solvent': self.solvent, 'solvent_bulk': self.solvent_bulk}

    def __repr__(self) -> str:
        return (
            f"Density(solute={self.solute}, solvent={self.solvent}, "
            f"solvent_bulk={self.solvent_bulk})"
        )


class Volume:
    """
    Volumes (cubic Angstrom).

    ``total`` is the frame-averaged cell volume. ``domain`` is the volume
    within ``dbulk`` of the solute, ``bulk`` the rest, and ``shell[k]`` the
    volume of the minimum-distance shell of bin ``k``; these are available
    after finalisation.
    """

    def __init__(self, nbins: int, total: float = 0.0, bulk: float = 0.0, domain: float = 0.0):
        self.total = total
        self.bulk = bulk
        self.domain = domain
        self.shell = np.zeros(nbins)

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'bulk': self.bulk,
            'domain': self.domain,
            'shell': self.shell.tolist(),
        }

    def __repr__(self) -> str:
        return f"Volume(total={self.total}, bulk={self.bulk}, domain={self.domain})"


# ---------------------------------------------------------------------------
# Correlation modes
# ---------------------------------------------------------------------------


class CrossCorrelation:
    """Solute and solvent are different sets of molecules."""

    name = 'cross'

    def solvent_nmols(self, solvent: AtomSelection) -> int:
        return solvent.nmols

    def skip(self, isolute: int) -> int:
        return -1

    def update_groups(self, result, ibin, i, j, frame_weight: float) -> None:
        add_group_counts(result.solute_group_count, result.solute, ibin, i, frame_weight)
        add_group_counts(result.solvent_group_count, result.solvent, ibin, j, frame_weight)

    def finalize_groups(self, result) -> None:
        pass


class AutoCorrelation:
    """
    Solute and solvent are the same set of molecules.

    A solute molecule is never its own solvent. Both atoms of a contact
    belong to the same set, so each receives half of the weight in the
    solute table, which is copied to the solvent table on finalisation.
    """

    name = 'auto'

    def solvent_nmols(self, solvent: AtomSelection) -> int:
        return solvent.nmols - 1

    def skip(self, isolute: int) -> int:
        return isolute

    def update_groups(self, result, ibin, i, j, frame_weight: float) -> None:
        add_group_counts(result.solute_group_count, result.solute, ibin, i, frame_weight / 2)
        add_group_counts(result.solute_group_count, result.solute, ibin, j, frame_weight / 2)

    def finalize_groups(self, result) -> None:
        result.solvent_group_count[...] = result.solute_group_count


def correlation_mode(solute: AtomSelection, solvent: AtomSelection):
    """Correlation mode implied by a pair of selections."""
    if solute.same_atoms(solvent):
        return AutoCorrelation()
    return CrossCorrelation()


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class Result:
    """
    Histograms, volumes and densities of a minimum-distance calculation.

    Parameters
    ----------
    solute : AtomSelection
        Solute atoms.
    solvent : AtomSelection
        Solvent atoms. If it contains the same atoms as ``solute`` the
        calculation is a self (auto) correlation.
    options : Options, optional
        Run options (default: ``Options()``).

    Attributes
    ----------
    d : np.ndarray
        Upper edge of each histogram bin.
    md_count, md_count_random : np.ndarray
        Minimum-distance counts of the real and ideal-gas configurations.
    rdf_count, rdf_count_random : np.ndarray
        Reference-atom (site) counts of the real and ideal-gas configurations.
    solute_group_count, solvent_group_count : np.ndarray, shape (nbins, ngroups)
        Minimum-distance counts split by the group of the atom realising the
        contact.
    mddf, kb, rdf, kb_rdf : np.ndarray
        Distribution functions and KB integrals (cm^3/mol), after
        :meth:`finalize`.
    solute_group_contributions, solvent_group_contributions : np.ndarray
        Group counts normalised by the ideal-gas count, after
        :meth:`finalize`. Each table sums (over groups) to ``mddf`` when
        contributions are split by atom type.
    progress : str
        State: 'initialized', 'accumulated', or 'computed'.

    Raises
    ------
    ValueError
        If the reference atom is outside the solvent molecule, or a self
        correlation has fewer than two molecules.
    """

    def __init__(
        self,
        solute: AtomSelection,
        solvent: AtomSelection,
        options: Options | None = None,
    ):
        options = Options() if options is None else copy.deepcopy(options)
        if options.irefatom >= solvent.natomspermol:
            raise ValueError(
                f"irefatom ({options.irefatom}) must be smaller than the number of "
                f"atoms per solvent molecule ({solvent.natomspermol})."
            )
        self.solute = solute
        self.solvent = solvent
        self.options = options
        self.mode = correlation_mode(solute, solvent)
        if self.solvent_nmols < 1:
            raise ValueError("Self correlation requires at least two molecules.")

        self.binstep = options.binstep
        self.dbulk = options.dbulk
        self.cutoff = options.cutoff
        self.irefatom = options.irefatom
        self.n_random_samples = options.n_random_samples
        self.nbins = int(np.ceil(round(options.dmax / options.binstep, 8)))
        self.d = options.binstep * np.arange(1, self.nbins + 1)

        nbins = self.nbins
        self.md_count = np.zeros(nbins)
        self.md_count_random = np.zeros(nbins)
        self.rdf_count = np.zeros(nbins)
        self.rdf_count_random = np.zeros(nbins)
        self.solute_group_count = np.zeros((nbins, solute.ngroups))
        self.solvent_group_count = np.zeros((nbins, solvent.ngroups))

        self.volume = Volume(nbins)
        self.density = Density()
        self.nframes_read = 0
        self.weight_total = 0.0
        self.progress = 'initialized'

        # Set by finalize()
        self.sum_md_count = np.zeros(nbins)
        self.sum_md_count_random = np.zeros(nbins)
        self.sum_rdf_count = np.zeros(nbins)
        self.sum_rdf_count_random = np.zeros(nbins)
        self.mddf = np.zeros(nbins)
        self.kb = np.zeros(nbins)
        self.rdf = np.zeros(nbins)
        self.kb_rdf = np.zeros(nbins)
        self.solute_group_contributions = np.zeros((nbins, solute.ngroups))
        self.solvent_group_contributions = np.zeros((nbins, solvent.ngroups))

    @property
    def autocorrelation(self) -> bool:
        """True if solute and solvent are the same set of molecules."""
        return isinstance(self.mode, AutoCorrelation)

    @property
    def solvent_nmols(self) -> int:
        """Number of solvent molecules seen by each solute molecule."""
        return self.mode.solvent_nmols(self.solvent)

    def add_frame(self, volume: float, frame_weight: float = 1.0) -> None:
        """
        Account one frame in the volume and density accumulators.

        Parameters
        ----------
        volume : float
            Cell volume of the frame.
        frame_weight : float, optional
            Weight of the frame.
        """
        if self.progress == 'computed':
            raise RuntimeError("Cannot accumulate frames into a finalized Result.")
        self.volume.total += frame_weight * volume
        self.density.solute += frame_weight * self.solute.nmols / volume
        self.density.solvent += frame_weight * self.solvent.nmols / volume
        self.nframes_read += 1
        self.weight_total += frame_weight
        self.progress = 'accumulated'

    # -----------------------------------------------------------------------
    # Merging
    # -----------------------------------------------------------------------

    def _check_mergeable(self, other: Result) -> None:
        if not isinstance(other, Result):
            raise TypeError(f"Cannot merge Result with {type(other).__name__}.")
        if self.progress == 'computed' or other.progress == 'computed':
            raise RuntimeError("Finalized Results cannot be merged.")
        if self.nbins != other.nbins or self.binstep != other.binstep:
            raise ValueError("Results with different histogram bins cannot be merged.")
        if self.mode.name != other.mode.name:
            raise ValueError("Results of self and cross correlations cannot be merged.")
        if not (self.solute.same_atoms(other.solute) and self.solvent.same_atoms(other.solvent)):
            raise ValueError("Results computed for different selections cannot be merged.")
        if any(
            mine.ngroups != theirs.ngroups or mine.group_names != theirs.group_names
            for mine, theirs in ((self.solute, other.solute), (self.solvent, other.solvent))
        ):
            raise ValueError("Results with different contribution groups cannot be merged.")
        for name in ('dbulk', 'cutoff', 'irefatom', 'n_random_samples'):
            if getattr(self, name) != getattr(other, name):
                raise ValueError(
                    f"Results with different {name} ({getattr(self, name)} and "
                    f"{getattr(other, name)}) cannot be merged."
                )

    def __iadd__(self, other: Result) -> Result:
        self._check_mergeable(other)
        self.md_count += other.md_count
        self.md_count_random += other.md_count_random
        self.rdf_count += other.rdf_count
        self.rdf_count_random += other.rdf_count_random
        self.solute_group_count += other.solute_group_count
        self.solvent_group_count += other.solvent_group_count
        self.volume.total += other.volume.total
        self.density.solute += other.density.solute
        self.density.solvent += other.density.solvent
        self.nframes_read += other.nframes_read
        self.weight_total += other.weight_total
        if self.nframes_read > 0:
            self.progress = 'accumulated'
        return self

    def __add__(self, other: Result) -> Result:
        self._check_mergeable(other)
        merged = copy.deepcopy(self)
        merged += other
        return merged

    # -----------------------------------------------------------------------
    # Finalisation
    # -----------------------------------------------------------------------

    def finalize(self) -> Result:
        """
        Normalise the accumulated counts and compute the distributions.

        Counts are averaged over the frame weights and solute molecules
        (real configurations) or random samples (ideal-gas configurations).
        The ideal-gas counts give the shell volumes and, rescaled to the
        bulk solvent density, the normalisation of the MDDF. KB integrals
        are cumulative sums of ``(mddf - 1)`` times the shell volume.

        Returns
        -------
        Result
            ``self``, now in the 'computed' state.

        Raises
        ------
        RuntimeError
            If already finalized, or if no frame was accumulated.
        """
        if self.progress == 'computed':
            raise RuntimeError("Result has already been finalized.")
        if self.nframes_read == 0 or self.weight_total <= 0:
            raise RuntimeError("No frames were accumulated; nothing to finalize.")

        weight = self.weight_total
        self.volume.total /= weight
        self.density.solute /= weight
        self.density.solvent /= weight

        real_norm = weight * self.solute.nmols
        self.md_count /= real_norm
        self.rdf_count /= real_norm
        self.solute_group_count /= real_norm
        self.solvent_group_count /= real_norm
        random_norm = weight * self.n_random_samples
        self.md_count_random /= random_norm
        self.rdf_count_random /= random_norm
        self.mode.finalize_groups(self)

        nsolvent = self.solvent_nmols
        total_volume = self.volume.total
        domain = self.d <= self.dbulk * (1 + 1e-10)
        self.volume.domain = total_volume * self.md_count_random[domain].sum() / nsolvent
        self.volume.bulk = total_volume - self.volume.domain
        if self.volume.bulk > 0:
            self.density.solvent_bulk = (nsolvent - self.md_count[domain].sum()) / self.volume.bulk
        else:
            warnings.warn(
                f"Bulk volume is not positive ({self.volume.bulk}); dbulk is probably too "
                "large for this system. Using the total solvent density as bulk density.",
                UserWarning,
                stacklevel=2,
            )
            self.density.solvent_bulk = nsolvent / total_volume

        self.volume.shell = total_volume * self.md_count_random / nsolvent
        scale = self.density.solvent_bulk / (nsolvent / total_volume)
        self.md_count_random *= scale
        self.rdf_count_random *= scale

        self.sum_md_count = np.cumsum(self.md_count)
        self.sum_md_count_random = np.cumsum(self.md_count_random)
        self.sum_rdf_count = np.cumsum(self.rdf_count)
        self.sum_rdf_count_random = np.cumsum(self.rdf_count_random)

        self.mddf = _safe_divide(self.md_count, self.md_count_random)
        self.rdf = _safe_divide(self.rdf_count, self.rdf_count_random)
        self.solute_group_contributions = _safe_divide(
            self.solute_group_count, self.md_count_random[:, np.newaxis]
        )
        self.solvent_group_contributions = _safe_divide(
            self.solvent_group_count, self.md_count_random[:, np.newaxis]
        )

        units = angs3_to_cm3_per_mol()
        if self.density.solvent_bulk > 0:
            self.kb = units * (self.sum_md_count - self.sum_md_count_random) / self.density.solvent_bulk
        else:
            warnings.warn(
                "Bulk solvent density is zero; KB integrals are set to zero.",
                UserWarning,
                stacklevel=2,
            )
            self.kb = np.zeros(self.nbins)
        self.kb_rdf = units * cumulative_trapezoid(
            (self.rdf - 1) * 4 * np.pi * self.d**2, self.d, initial=0
        )

        self.progress = 'computed'
        return self

    # -----------------------------------------------------------------------
    # Output
    # -----------------------------------------------------------------------

    def as_table(self) -> dict[str, np.ndarray]:
        """
        Columns of the output table, keyed by name.

        The distributions are followed by one contribution column per
        solute group and then per solvent group, keyed
        ``solute[<k>]:<label>`` and ``solvent[<k>]:<label>`` with the labels
        of :attr:`AtomSelection.group_labels`.

        Raises
        ------
        RuntimeError
            If the Result was not finalized.
        """
        if self.progress != 'computed':
            raise RuntimeError("Result must be finalized before building the output table.")
        table = {
            'd': self.d,
            'mddf': self.mddf,
            'kb': self.kb,
            'md_count': self.md_count,
            'md_count_random': self.md_count_random,
            'rdf': self.rdf,
            'kb_rdf': self.kb_rdf,
            'rdf_count': self.rdf_count,
            'rdf_count_random': self.rdf_count_random,
            'shell_volume': self.volume.shell,
        }
        for prefix, selection, contributions in (
            ('solute', self.solute, self.solute_group_contributions),
            ('solvent', self.solvent, self.solvent_group_contributions),
        ):
            for k, label in enumerate(selection.group_labels):
                label = "_".join(label.split())
                table[f"{prefix}[{k}]:{label}"] = contributions[:, k]
        return table

    _ARRAYS = (
        'md_count', 'md_count_random', 'rdf_count', 'rdf_count_random',
        'solute_group_count', 'solvent_group_count',
        'sum_md_count', 'sum_md_count_random', 'sum_rdf_count', 'sum_rdf_count_random',
        'mddf', 'kb', 'rdf', 'kb_rdf',
        'solute_group_contributions', 'solvent_group_contributions',
    )

    def to_dict(self) -> dict:
        """Plain-data representation, used for persistence."""
        data = {
            'options': self.options.to_dict(),
            'solute': self.solute.to_dict(),
            'solvent': self.solvent.to_dict(),
            'mode': self.mode.name,
            'progress': self.progress,
            'nframes_read': self.nframes_read,
            'weight_total': self.weight_total,
            'volume': self.volume.to_dict(),
            'density': self.density.to_dict(),
        }
        for name in self._ARRAYS:
            data[name] = getattr(self, name).tolist()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Result:
        """
        Inverse of :meth:`to_dict`.

        Raises
        ------
        ValueError
            If the stored correlation mode does not match the selections.
        """
        result = cls(
            AtomSelection.from_dict(data['solute']),
            AtomSelection.from_dict(data['solvent']),
            Options.from_dict(data['options']),
        )
        if result.mode.name != data['mode']:
            raise ValueError(
                f"Stored correlation mode '{data['mode']}' does not match the selections."
            )
        for name in cls._ARRAYS:
            stored = np.asarray(data[name], dtype=np.float64)
            setattr(result, name, stored.reshape(getattr(result, name).shape))
        volume = data['volume']
        result.volume.total = volume['total']
        result.volume.bulk = volume['bulk']
        result.volume.domain = volume['domain']
        result.volume.shell = np.asarray(volume['shell'], dtype=np.float64)
        density = data['density']
        result.density = Density(density['solute'], density['solvent'], density['solvent_bulk'])
        result.nframes_read = data['nframes_read']
        result.weight_total = data['weight_total']
        result.progress = data['progress']
        return result

    def __repr__(self) -> str:
        return (
            f"Result({self.mode.name} correlation, {self.nbins} bins of {self.binstep}, "
            f"{self.nframes_read} frames, progress='{self.progress}')"
        )


def _safe_divide(numerator: np.ndarray, denominator: np.ndarray) -> np.ndarray:
    """``numerator / denominator``, with 0 where the denominator is 0."""
    numerator, denominator = np.broadcast_arrays(numerator, denominator)
    out = np.zeros(numerator.shape)
    np.divide(numerator, denominator, out=out, where=denominator != 0)
    return out


def sum_results(results: Iterable[Result]) -> Result:
    """
    Sum a sequence of un-finalized Results into a new Result.

    Raises
    ------
    ValueError
        If ``results`` is empty or the Results are not compatible.
    RuntimeError
        If any Result was already finalized.
    """
    results = list(results)
    if not results:
        raise ValueError("At least one Result is required.")
    total = copy.deepcopy(results[0])
    if total.progress == 'computed':
        raise RuntimeError("Finalized Results cannot be merged.")
    for result in results[1:]:
        total += result
    return total
