"""
Linked-cell index of solvent atoms and minimum-distance queries.

The periodic cell is divided into ``nx * ny * nz`` bins along the lattice
vectors, each at least ``cutoff / lcell`` thick in the direction normal to
its faces, so every atom within ``cutoff`` of a query point lies in one of
the ``(2*lcell + 1)**3`` bins around it. Neighbouring bins are visited with
explicit periodic image shifts, which is exact for triclinic cells.

Two query backends are available:

- 'numba' (default): JIT-compiled loop over query atoms and neighbour cells.
- 'numpy': vectorised over query atoms, one pass per neighbour offset.

Backend selection is controlled by the MDDFMD_BACKEND environment variable.
See `mddfMD.backends` for configuration details.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from mddfMD.backends import get_backend, AVAILABLE_BACKENDS
from mddfMD.cell import (
    as_cell_matrix,
    cartesian_to_fractional,
    perpendicular_heights,
    wrap_fractional,
)
from mddfMD.minimum_distances import MinimumDistanceBuffer


# ---------------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------------


def _get_numba_functions() -> Callable:
    """Import and return the Numba query kernel."""
    try:
        from mddfMD.linkedcells.cell_list_numba import query_minimum_distances_numba
        return query_minimum_distances_numba
    except ImportError as e:
        raise ImportError(
            "Numba backend requested but numba is not installed. "
            "Install with: pip install numba"
        ) from e


def get_backend_functions(backend: str | None = None) -> Callable:
    """
    Get the minimum-distance query function for the specified backend.

    Parameters
    ----------
    backend : str or None
        Backend to use: 'numpy' or 'numba'. If None, uses the
        MDDFMD_BACKEND environment variable, defaulting to 'numba'.

    Returns
    -------
    callable
        Query function with the signature of
        :func:`query_minimum_distances`.

    Raises
    ------
    ValueError
        If an unknown backend is specified.
    ImportError
        If numba backend is requested but numba is not installed.
    """
    if backend is None:
        backend = get_backend()

    if backend not in AVAILABLE_BACKENDS:
        raise ValueError(
            f"Unknown linked-cell backend: {backend!r}. "
            f"Available backends: {sorted(AVAILABLE_BACKENDS)}"
        )

    if backend == 'numba':
        return _get_numba_functions()

    return query_minimum_distances


# ---------------------------------------------------------------------------
# NumPy backend implementation
# ---------------------------------------------------------------------------


def _per_molecule_minimum(
    mols: np.ndarray, dist: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Molecules present in ``mols`` and the index of their smallest distance."""
    sort = np.lexsort((dist, mols))
    unique_mols, first = np.unique(mols[sort], return_index=True)
    return unique_mols, sort[first]


def query_minimum_distances(
    query_fractional: np.ndarray,
    query_cells: np.ndarray,
    fractional: np.ndarray,
    order: np.ndarray,
    starts: np.ndarray,
    counts: np.ndarray,
    ncells: np.ndarray,
    cell_matrix: np.ndarray,
    lcell: int,
    cutoff: float,
    natomspermol: int,
    irefatom: int,
    skip: int,
    first_query_atom: int,
    within_cutoff: np.ndarray,
    d: np.ndarray,
    i: np.ndarray,
    j: np.ndarray,
    ref_atom_within_cutoff: np.ndarray,
    d_ref_atom: np.ndarray,
) -> None:
    """
    Minimum distance of every indexed molecule to a set of query atoms.

    Same contract as
    :func:`mddfMD.linkedcells.cell_list_numba.query_minimum_distances_numba`:
    the output arrays hold one entry per molecule and are updated in place,
    keeping the smallest distance found.
    """
    nq = query_fractional.shape[0]
    iquery = np.arange(nq)
    found_q: list[np.ndarray] = []
    found_at: list[np.ndarray] = []
    found_d: list[np.ndarray] = []

    offsets = np.arange(-lcell, lcell + 1)
    for ox in offsets:
        for oy in offsets:
            for oz in offsets:
                neighbour = query_cells + np.array([ox, oy, oz])
                wrapped = neighbour % ncells
                shift = (neighbour - wrapped) // ncells
                icell = (wrapped[:, 0] * ncells[1] + wrapped[:, 1]) * ncells[2] + wrapped[:, 2]

                n_in_cell = counts[icell]
                total = int(n_in_cell.sum())
                if total == 0:
                    continue
                q = np.repeat(iquery, n_in_cell)
                first = np.cumsum(n_in_cell) - n_in_cell
                k = np.arange(total) - np.repeat(first, n_in_cell) + np.repeat(starts[icell], n_in_cell)
                jat = order[k]

                displacement = (fractional[jat] + shift[q] - query_fractional[q]) @ cell_matrix
                dist = np.sqrt(np.einsum('ij,ij->i', displacement, displacement))
                keep = dist <= cutoff
                if skip >= 0:
                    keep &= (jat // natomspermol) != skip
                found_q.append(q[keep])
                found_at.append(jat[keep])
                found_d.append(dist[keep])

    if not found_d:
        return
    q = np.concatenate(found_q)
    jat = np.concatenate(found_at)
    dist = np.concatenate(found_d)
    if len(dist) == 0:
        return
    mols = jat // natomspermol

    unique_mols, best = _per_molecule_minimum(mols, dist)
    improve = dist[best] < d[unique_mols]
    unique_mols, best = unique_mols[improve], best[improve]
    within_cutoff[unique_mols] = True
    d[unique_mols] = dist[best]
    i[unique_mols] = first_query_atom + q[best]
    j[unique_mols] = jat[best]

    is_ref = (jat % natomspermol) == irefatom
    if np.any(is_ref):
        ref_mols, best = _per_molecule_minimum(mols[is_ref], dist[is_ref])
        ref_dist = dist[is_ref][best]
        improve = ref_dist < d_ref_atom[ref_mols]
        ref_atom_within_cutoff[ref_mols[improve]] = True
        d_ref_atom[ref_mols[improve]] = ref_dist[improve]


# ---------------------------------------------------------------------------
# Cell list
# ---------------------------------------------------------------------------


class CellList:
    """
    Linked-cell index of the atoms of a set of molecules.

    The index is rebuilt by :meth:`update` whenever the coordinates or the
    periodic cell change, and queried with :meth:`minimum_distances` for
    each solute molecule.

    Parameters
    ----------
    natomspermol : int
        Number of atoms per indexed molecule.
    cutoff : float
        Largest distance recorded by the queries.
    lcell : int, optional
        Number of neighbouring cells visited along each direction. Larger
        values give smaller cells (default: 1).
    backend : str, optional
        Query backend, 'numba' or 'numpy'. Defaults to the configured
        backend (see `mddfMD.backends`).

    Examples
    --------
    >>> cl = CellList(natomspermol=3, cutoff=8.0)
    >>> cl.update(solvent_positions, cell_matrix)
    >>> buffer = MinimumDistanceBuffer(cl.nmols)
    >>> cl.minimum_distances(solute_positions, buffer, irefatom=0)
    """

    def __init__(
        self,
        natomspermol: int,
        cutoff: float,
        lcell: int = 1,
        backend: str | None = None,
    ):
        if natomspermol < 1:
            raise ValueError(f"natomspermol must be positive, got {natomspermol}.")
        if not cutoff > 0:
            raise ValueError(f"cutoff must be positive, got {cutoff}.")
        if lcell < 1:
            raise ValueError(f"lcell must be a positive integer, got {lcell}.")
        self.natomspermol = int(natomspermol)
        self.cutoff = float(cutoff)
        self.lcell = int(lcell)
        self._query = get_backend_functions(backend)

        self.natoms = 0
        self.nmols = 0
        self.cell_matrix: np.ndarray | None = None
        self.cell_inverse: np.ndarray | None = None
        self.ncells = np.ones(3, dtype=np.int64)
        self.fractional = np.empty((0, 3))
        self.order = np.empty(0, dtype=np.int64)
        self.starts = np.zeros(1, dtype=np.int64)
        self.counts = np.zeros(1, dtype=np.int64)

    def _cells_of(self, fractional: np.ndarray) -> np.ndarray:
        cells = np.floor(fractional * self.ncells).astype(np.int64)
        return np.minimum(cells, self.ncells - 1)

    def update(self, positions: np.ndarray, cell_matrix) -> None:
        """
        Rebuild the index for new coordinates and periodic cell.

        Parameters
        ----------
        positions : np.ndarray, shape (natoms, 3)
            Cartesian coordinates, molecule by molecule.
        cell_matrix : array-like, shape (3,) or (3, 3)
            Orthorhombic side lengths or cell matrix.

        Raises
        ------
        ValueError
            If the number of atoms is not a multiple of ``natomspermol``.
        """
        positions = np.asarray(positions, dtype=np.float64)
        if positions.ndim != 2 or positions.shape[1] != 3:
            raise ValueError(f"Positions must have shape (n, 3), got {positions.shape}.")
        if positions.shape[0] % self.natomspermol != 0:
            raise ValueError(
                f"Number of atoms ({positions.shape[0]}) is not a multiple of "
                f"natomspermol ({self.natomspermol})."
            )
        self.cell_matrix = as_cell_matrix(cell_matrix)
        self.cell_inverse = np.linalg.inv(self.cell_matrix)
        heights = perpendicular_heights(self.cell_matrix)
        self.ncells = np.maximum(
            1, np.floor(np.round(heights * self.lcell / self.cutoff, 8))
        ).astype(np.int64)

        self.natoms = positions.shape[0]
        self.nmols = self.natoms // self.natomspermol
        self.fractional = wrap_fractional(
            cartesian_to_fractional(positions, self.cell_inverse)
        )
        cells = self._cells_of(self.fractional)
        flat = (cells[:, 0] * self.ncells[1] + cells[:, 1]) * self.ncells[2] + cells[:, 2]
        ntotal = int(np.prod(self.ncells))
        self.order = np.argsort(flat, kind='stable').astype(np.int64)
        self.counts = np.bincount(flat, minlength=ntotal).astype(np.int64)
        self.starts = (np.cumsum(self.counts) - self.counts).astype(np.int64)

    def minimum_distances(
        self,
        query_positions: np.ndarray,
        buffer: MinimumDistanceBuffer,
        irefatom: int,
        first_query_atom: int = 0,
        skip: int = -1,
    ) -> MinimumDistanceBuffer:
        """
        Minimum distance of every indexed molecule to the query atoms.

        Parameters
        ----------
        query_positions : np.ndarray, shape (nq, 3)
            Cartesian coordinates of the atoms of one solute molecule.
        buffer : MinimumDistanceBuffer
            Output records, one per indexed molecule. Reset before use.
        irefatom : int
            Index of the reference atom within each indexed molecule.
        first_query_atom : int, optional
            Position in the solute selection of the first query atom, so
            that ``buffer.i`` holds solute selection positions.
        skip : int, optional
            Indexed molecule to be ignored (``-1`` for none).

        Returns
        -------
        MinimumDistanceBuffer
            The filled buffer.

        Raises
        ------
        RuntimeError
            If the index was never built.
        ValueError
            If the buffer size differs from the number of indexed molecules.
        """
        if self.cell_matrix is None:
            raise RuntimeError("CellList.update must be called before querying distances.")
        if len(buffer) != self.nmols:
            raise ValueError(
                f"Buffer size ({len(buffer)}) differs from number of indexed molecules ({self.nmols})."
            )
        if not 0 <= irefatom < self.natomspermol:
            raise ValueError(
                f"irefatom ({irefatom}) must be smaller than natomspermol ({self.natomspermol})."
            )
        buffer.reset()
        buffer.skip = int(skip)

        query_positions = np.asarray(query_positions, dtype=np.float64).reshape(-1, 3)
        query_fractional = wrap_fractional(
            cartesian_to_fractional(query_positions, self.cell_inverse)
        )
        query_cells = self._cells_of(query_fractional)
        self._query(
            query_fractional, query_cells, self.fractional,
            self.order, self.starts, self.counts, self.ncells,
            self.cell_matrix, self.lcell, self.cutoff,
            self.natomspermol, int(irefatom), int(skip), int(first_query_atom),
            buffer.within_cutoff, buffer.d, buffer.i, buffer.j,
            buffer.ref_atom_within_cutoff, buffer.d_ref_atom,
        )
        return buffer
