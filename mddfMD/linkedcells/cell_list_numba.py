"""
Numba-accelerated linked-cell query of minimum distances.

The kernel visits, for every query atom, the ``(2*lcell + 1)**3`` cells
around it, with explicit periodic image shifts, and keeps the shortest
distance per solvent molecule.
"""

from __future__ import annotations

import numpy as np
from numba import jit  # type: ignore[import-untyped]


@jit(nopython=True, cache=True, nogil=True)
def query_minimum_distances_numba(
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

    Parameters
    ----------
    query_fractional : np.ndarray, shape (nq, 3)
        Wrapped fractional coordinates of the query atoms.
    query_cells : np.ndarray, shape (nq, 3)
        Cell of each query atom.
    fractional : np.ndarray, shape (natoms, 3)
        Wrapped fractional coordinates of the indexed atoms.
    order, starts, counts : np.ndarray
        Atoms sorted by cell, first position and number of atoms of each
        cell in ``order``.
    ncells : np.ndarray, shape (3,)
        Number of cells along each lattice vector.
    cell_matrix : np.ndarray, shape (3, 3)
        Cell matrix with rows = lattice vectors.
    lcell : int
        Number of neighbouring cells visited along each direction.
    cutoff : float
        Largest distance recorded.
    natomspermol, irefatom, skip : int
        Molecule layout of the indexed atoms, reference atom and molecule
        to be ignored (``-1`` for none).
    first_query_atom : int
        Offset added to the query atom index stored in ``i``.
    within_cutoff, d, i, j, ref_atom_within_cutoff, d_ref_atom : np.ndarray
        Output arrays, one entry per molecule, updated in place.
    """
    cutoff_sq = cutoff * cutoff
    ncx, ncy, ncz = ncells[0], ncells[1], ncells[2]
    for iq in range(query_fractional.shape[0]):
        qx = query_fractional[iq, 0]
        qy = query_fractional[iq, 1]
        qz = query_fractional[iq, 2]
        for ox in range(-lcell, lcell + 1):
            nx = query_cells[iq, 0] + ox
            wx = nx % ncx
            shx = (nx - wx) // ncx
            for oy in range(-lcell, lcell + 1):
                ny = query_cells[iq, 1] + oy
                wy = ny % ncy
                shy = (ny - wy) // ncy
                for oz in range(-lcell, lcell + 1):
                    nz = query_cells[iq, 2] + oz
                    wz = nz % ncz
                    shz = (nz - wz) // ncz
                    icell = (wx * ncy + wy) * ncz + wz
                    for k in range(starts[icell], starts[icell] + counts[icell]):
                        jat = order[k]
                        jmol = jat // natomspermol
                        if jmol == skip:
                            continue
                        fx = fractional[jat, 0] + shx - qx
                        fy = fractional[jat, 1] + shy - qy
                        fz = fractional[jat, 2] + shz - qz
                        rx = fx * cell_matrix[0, 0] + fy * cell_matrix[1, 0] + fz * cell_matrix[2, 0]
                        ry = fx * cell_matrix[0, 1] + fy * cell_matrix[1, 1] + fz * cell_matrix[2, 1]
                        rz = fx * cell_matrix[0, 2] + fy * cell_matrix[1, 2] + fz * cell_matrix[2, 2]
                        d_sq = rx * rx + ry * ry + rz * rz
                        if d_sq > cutoff_sq:
                            continue
                        dist = np.sqrt(d_sq)
                        if dist < d[jmol]:
                            within_cutoff[jmol] = True
                            d[jmol] = dist
                            i[jmol] = first_query_atom + iq
                            j[jmol] = jat
                        if jat % natomspermol == irefatom and dist < d_ref_atom[jmol]:
                            ref_atom_within_cutoff[jmol] = True
                            d_ref_atom[jmol] = dist
