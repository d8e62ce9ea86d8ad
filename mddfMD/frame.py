"""
Minimum-distance statistics of a single trajectory frame.

:class:`FrameBuffer` holds the per-worker arrays, allocated once and reused
for every frame: coordinates, the linked-cell indices of the real and the
ideal-gas solvent, the minimum-distance records and the bulk molecules.
:func:`mddf_frame` processes the frame currently held by the buffer.
"""

from __future__ import annotations

import numpy as np

from mddfMD.cell import cell_volume, check_cutoff
from mddfMD.counters import update_counters, update_counters_random
from mddfMD.linkedcells import CellList
from mddfMD.minimum_distances import MinimumDistanceBuffer
from mddfMD.random_solvent import classify_bulk, randomize_solvent
from mddfMD.result import Result


class FrameBuffer:
    """
    Per-worker state of a minimum-distance calculation.

    Parameters
    ----------
    result : Result
        Result the worker accumulates into; provides selections and options.
    backend : str, optional
        Linked-cell query backend.
    """

    def __init__(self, result: Result, backend: str | None = None):
        solute, solvent, options = result.solute, result.solvent, result.options
        self.x_solute = np.zeros((solute.natoms, 3))
        self.x_solvent = np.zeros((solvent.natoms, 3))
        self.cell_matrix = np.eye(3)

        self.cell_list = CellList(solvent.natomspermol, options.cutoff, options.lcell, backend)
        self.random_cell_list = CellList(solvent.natomspermol, options.cutoff, options.lcell, backend)
        self.distances = MinimumDistanceBuffer(solvent.nmols)
        self.random_distances = MinimumDistanceBuffer(result.solvent_nmols)
        self.bulk_indices = np.zeros(solvent.nmols, dtype=np.int64)
        self.x_random = np.zeros((result.solvent_nmols * solvent.natomspermol, 3))

    def load(self, trajectory) -> None:
        """Copy the current frame of ``trajectory`` into the buffer."""
        self.x_solute[...] = trajectory.x_solute
        self.x_solvent[...] = trajectory.x_solvent
        self.cell_matrix = np.array(trajectory.cell_matrix, dtype=np.float64)


def mddf_frame(
    result: Result,
    buffer: FrameBuffer,
    rng: np.random.Generator,
    frame_weight: float = 1.0,
    iframe: int | None = None,
) -> Result:
    """
    Accumulate the statistics of the frame held by ``buffer``.

    Every solute molecule is compared with the whole solvent. A uniform
    sample of ``n_random_samples`` solute molecules is drawn; each time a
    molecule is drawn, the distances from it to an ideal-gas solvent built
    from bulk molecules are accumulated too.

    Parameters
    ----------
    result : Result
        Accumulator of the worker.
    buffer : FrameBuffer
        Frame coordinates and work arrays of the worker.
    rng : np.random.Generator
        Random number generator of the worker.
    frame_weight : float, optional
        Weight of the frame.
    iframe : int, optional
        Index of the frame in the trajectory, reported in errors.

    Returns
    -------
    Result
        ``result``, updated.

    Raises
    ------
    CutoffTooLargeError
        If the cutoff exceeds half of the periodic cell of the frame.
    """
    options = result.options
    solute, solvent = result.solute, result.solvent
    cell_matrix = buffer.cell_matrix
    check_cutoff(options.cutoff, cell_matrix, frame=iframe)

    result.add_frame(cell_volume(cell_matrix), frame_weight)

    ndraws = np.bincount(
        rng.integers(0, solute.nmols, size=options.n_random_samples),
        minlength=solute.nmols,
    )

    buffer.cell_list.update(buffer.x_solvent, cell_matrix)
    for isolute in range(solute.nmols):
        molecule = solute.molecule_slice(isolute)
        x_molecule = buffer.x_solute[molecule]
        skip = result.mode.skip(isolute)

        buffer.cell_list.minimum_distances(
            x_molecule, buffer.distances, options.irefatom,
            first_query_atom=molecule.start, skip=skip,
        )
        update_counters(result, buffer.distances, frame_weight)

        if ndraws[isolute] == 0:
            continue
        nbulk = classify_bulk(buffer.distances, options, buffer.bulk_indices)
        for _ in range(ndraws[isolute]):
            randomize_solvent(
                buffer.x_solvent, solvent.natomspermol, buffer.bulk_indices, nbulk,
                skip, options.irefatom, cell_matrix, rng, buffer.x_random,
            )
            buffer.random_cell_list.update(buffer.x_random, cell_matrix)
            buffer.random_cell_list.minimum_distances(
                x_molecule, buffer.random_distances, options.irefatom,
                first_query_atom=molecule.start,
            )
            update_counters_random(result, buffer.random_distances, frame_weight)

    return result
