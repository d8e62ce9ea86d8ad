"""Run options for MDDF calculations."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Sequence

import numpy as np


@dataclass
class Options:
    """
    Parameters controlling an MDDF calculation.

    Parameters
    ----------
    firstframe : int
        Index (0-based) of the first frame to be considered.
    lastframe : int
        Index of the last frame to be considered (inclusive). ``-1`` means
        the last frame of the trajectory.
    stride : int
        Consider one every ``stride`` frames.
    binstep : float
        Width of the histogram bins (Angstrom).
    dbulk : float
        Distance from the solute beyond which the solvent is considered
        bulk.
    cutoff : float
        Largest distance computed. Only used if ``usecutoff`` is True;
        otherwise it is set to ``dbulk``.
    usecutoff : bool
        Whether the bulk is taken as the region between ``dbulk`` and
        ``cutoff`` (True) or as everything beyond ``dbulk`` (False).
    irefatom : int
        Index, within a solvent molecule, of the reference atom used for
        the site-site distribution.
    n_random_samples : int
        Number of ideal-gas solvent ensembles generated per frame.
    lcell : int
        Linked-cell granularity: cells have a side of at least
        ``cutoff / lcell``.
    nthreads : int
        Number of worker threads. ``0`` uses the ``MDDFMD_NTHREADS``
        environment variable, or all available cores.
    seed : int or None
        Seed of the random number generators. ``None`` draws fresh entropy
        on each run.
    frame_weights : sequence of float, optional
        Weight of each trajectory frame (indexed by frame). Frames not
        covered by the sequence have weight 1.0.
    silent : bool
        Suppress the run summary and the progress bar.

    Raises
    ------
    ValueError
        If any option is out of range.
    """

    firstframe: int = 0
    lastframe: int = -1
    stride: int = 1
    binstep: float = 0.02
    dbulk: float = 10.0
    cutoff: float = 10.0
    usecutoff: bool = False
    irefatom: int = 0
    n_random_samples: int = 10
    lcell: int = 1
    nthreads: int = 0
    seed: int | None = 321
    frame_weights: Sequence[float] | None = None
    silent: bool = False

    def __post_init__(self) -> None:
        if self.firstframe < 0:
            raise ValueError(f"firstframe must be non-negative, got {self.firstframe}.")
        if self.lastframe < -1:
            raise ValueError(f"lastframe must be -1 or a frame index, got {self.lastframe}.")
        if self.lastframe != -1 and self.lastframe < self.firstframe:
            raise ValueError(
                f"lastframe ({self.lastframe}) occurs before firstframe ({self.firstframe})."
            )
        if self.stride < 1:
            raise ValueError(f"stride must be a positive integer, got {self.stride}.")
        if not self.binstep > 0:
            raise ValueError(f"binstep must be positive, got {self.binstep}.")
        if not self.dbulk > 0:
            raise ValueError(f"dbulk must be positive, got {self.dbulk}.")
        if self.usecutoff:
            if self.cutoff < self.dbulk:
                raise ValueError(
                    f"cutoff ({self.cutoff}) must not be smaller than dbulk ({self.dbulk})."
                )
        else:
            self.cutoff = self.dbulk
        if self.irefatom < 0:
            raise ValueError(f"irefatom must be non-negative, got {self.irefatom}.")
        if self.n_random_samples < 1:
            raise ValueError(
                f"n_random_samples must be a positive integer, got {self.n_random_samples}."
            )
        if self.lcell < 1:
            raise ValueError(f"lcell must be a positive integer, got {self.lcell}.")
        if self.nthreads < 0:
            raise ValueError(f"nthreads must be non-negative, got {self.nthreads}.")
        if self.frame_weights is not None:
            weights = np.asarray(self.frame_weights, dtype=np.float64)
            if weights.ndim != 1 or np.any(weights < 0) or not np.all(np.isfinite(weights)):
                raise ValueError("frame_weights must be a sequence of non-negative numbers.")
            self.frame_weights = weights.tolist()

    @property
    def dmax(self) -> float:
        """Upper limit of the histograms."""
        return self.cutoff if self.usecutoff else self.dbulk

    def frame_weight(self, iframe: int) -> float:
        """Weight of frame ``iframe`` (1.0 if no weights were given)."""
        if self.frame_weights is None or iframe >= len(self.frame_weights):
            return 1.0
        return self.frame_weights[iframe]

    def frame_indices(self, nframes: int) -> range:
        """
        Indices of the trajectory frames visited by a run.

        Raises
        ------
        ValueError
            If the frame range is outside the trajectory.
        """
        if self.firstframe >= nframes:
            raise ValueError(
                f"firstframe ({self.firstframe}) exceeds frames in trajectory ({nframes})."
            )
        if self.lastframe >= nframes:
            raise ValueError(
                f"lastframe ({self.lastframe}) exceeds frames in trajectory ({nframes})."
            )
        lastframe = nframes - 1 if self.lastframe == -1 else self.lastframe
        return range(self.firstframe, lastframe + 1, self.stride)

    def to_dict(self) -> dict:
        """Plain-data representation, used for persistence."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Options:
        """Inverse of :meth:`to_dict`; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})
