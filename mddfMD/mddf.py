"""
Parallel computation of minimum-distance distribution functions.

The frames of the trajectory are split into contiguous chunks, one per
worker thread. Frames are read one at a time under a lock, since the
trajectory reader is shared, and then processed independently: every worker
owns its coordinates, linked-cell lists, random number generator and
:class:`~mddfMD.result.Result`. The worker Results are summed at the end.
"""

from __future__ import annotations

import threading
import warnings
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np
from tqdm import tqdm

from mddfMD.backends import get_nthreads
from mddfMD.frame import FrameBuffer, mddf_frame
from mddfMD.options import Options
from mddfMD.result import Result
from mddfMD.trajectories import Trajectory

BARS = "-" * 79


def _plural(n: int, word: str) -> str:
    return f"{n} {word if n == 1 else word + 's'}"


def title(result: Result, nframes: int, nchunks: int) -> str:
    """Summary of a run, printed before the calculation starts."""
    solute, solvent = result.solute, result.solvent
    mode = "self correlation" if result.autocorrelation else "cross correlation"
    return "\n".join([
        BARS,
        f"Starting MDDF calculation ({mode}):",
        f"  {_plural(nframes, 'frame')} will be considered",
        f"  Number of calculation threads: {nchunks}",
        f"  Solute: {_plural(solute.natoms, 'atom')} belonging to "
        f"{_plural(solute.nmols, 'molecule')}.",
        f"  Solvent: {_plural(solvent.natoms, 'atom')} belonging to "
        f"{_plural(solvent.nmols, 'molecule')}.",
    ])


def accumulate(
    trajectory: Trajectory,
    options: Options | None = None,
    backend: str | None = None,
) -> Result:
    """
    Accumulate minimum-distance counts over a trajectory, without normalising.

    The returned Result can be summed with Results of other trajectories of
    the same system (``R1 + R2``) before calling
    :meth:`~mddfMD.result.Result.finalize`.

    Parameters
    ----------
    trajectory : Trajectory
        Trajectory providing the solute and solvent coordinates.
    options : Options, optional
        Run options (default: ``Options()``).
    backend : str, optional
        Linked-cell query backend, 'numba' or 'numpy'.

    Returns
    -------
    Result
        Un-finalized Result in the 'accumulated' state.

    Raises
    ------
    ValueError
        If the frame range is outside the trajectory.
    CutoffTooLargeError
        If the cutoff exceeds half of the periodic cell in any frame.
    """
    options = Options() if options is None else options
    frames = options.frame_indices(trajectory.frames)
    nframes = len(frames)

    nthreads = options.nthreads if options.nthreads > 0 else get_nthreads()
    if nthreads > nframes:
        warnings.warn(
            f"Number of threads ({nthreads}) is greater than the number of frames "
            f"({nframes}); using {nframes} threads.",
            UserWarning,
            stacklevel=2,
        )
    nchunks = min(nthreads, nframes)

    result = Result(trajectory.solute, trajectory.solvent, options)
    if not options.silent:
        print(title(result, nframes, nchunks))

    chunks = np.array_split(np.arange(nframes), nchunks)
    seeds = np.random.SeedSequence(options.seed).spawn(nchunks)
    worker_results = [Result(trajectory.solute, trajectory.solvent, options) for _ in range(nchunks)]
    buffers = [FrameBuffer(worker_result, backend) for worker_result in worker_results]

    read_lock = threading.Lock()
    stop = threading.Event()
    progress = tqdm(total=nframes, disable=options.silent)

    def run_chunk(ichunk: int) -> None:
        rng = np.random.default_rng(seeds[ichunk])
        buffer = buffers[ichunk]
        try:
            for position in chunks[ichunk]:
                if stop.is_set():
                    return
                iframe = frames[position]
                with read_lock:
                    trajectory.read_frame(iframe)
                    buffer.load(trajectory)
                    progress.update(1)
                mddf_frame(
                    worker_results[ichunk], buffer, rng,
                    frame_weight=options.frame_weight(iframe), iframe=iframe,
                )
        except Exception:
            stop.set()
            raise

    trajectory.open()
    try:
        with ThreadPoolExecutor(max_workers=nchunks) as executor:
            futures = [executor.submit(run_chunk, ichunk) for ichunk in range(nchunks)]
            for future in as_completed(futures):
                future.result()
    finally:
        progress.close()
        trajectory.close()

    for worker_result in worker_results:
        result += worker_result
    return result


def mddf(
    trajectory: Trajectory,
    options: Options | None = None,
    backend: str | None = None,
) -> Result:
    """
    Compute the minimum-distance distribution function of a trajectory.

    This is the main entry point: counts are accumulated over the frames
    selected by ``options`` (see :func:`accumulate`) and normalised into
    the MDDF, KB integrals, site-site RDF and group contributions.

    Parameters
    ----------
    trajectory : Trajectory
        Trajectory providing the solute and solvent coordinates.
    options : Options, optional
        Run options (default: ``Options()``).
    backend : str, optional
        Linked-cell query backend, 'numba' or 'numpy'.

    Returns
    -------
    Result
        Finalized Result.

    Examples
    --------
    >>> solute = AtomSelection(protein_indices, nmols=1)
    >>> solvent = AtomSelection(water_indices, natomspermol=3)
    >>> trajectory = MDATrajectory("traj.dcd", "system.pdb", solute, solvent)
    >>> result = mddf(trajectory, Options(lastframe=1000))
    >>> result.mddf, result.kb
    """
    result = accumulate(trajectory, options, backend)
    result.finalize()
    if not result.options.silent:
        print(BARS)
    return result
