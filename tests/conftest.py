"""Shared fixtures for unit tests."""

import numpy as np
import pytest

from mddfMD.cell import apply_minimum_image
from mddfMD.options import Options
from mddfMD.selection import AtomSelection
from mddfMD.trajectories import NumpyTrajectory


def brute_force_minimum_distances(
    x_solute, x_solvent, natomspermol, irefatom, cell_matrix, cutoff, skip=-1
):
    """All-pairs minimum-image reference for the linked-cell queries."""
    cell_inverse = np.linalg.inv(cell_matrix)
    # Neighbouring images of the wrapped displacement, needed for skewed cells
    shifts = np.array(
        [[a, b, c] for a in (-1, 0, 1) for b in (-1, 0, 1) for c in (-1, 0, 1)]
    ) @ cell_matrix
    nmols = len(x_solvent) // natomspermol
    d = np.full(nmols, np.inf)
    i = np.full(nmols, -1)
    j = np.full(nmols, -1)
    d_ref = np.full(nmols, np.inf)
    for jat, y in enumerate(x_solvent):
        jmol = jat // natomspermol
        if jmol == skip:
            continue
        displacement = apply_minimum_image(x_solute - y, cell_matrix, cell_inverse)
        images = displacement[:, np.newaxis, :] + shifts[np.newaxis, :, :]
        dist = np.linalg.norm(images, axis=2).min(axis=1)
        iat = int(np.argmin(dist))
        if dist[iat] > cutoff:
            continue
        if dist[iat] < d[jmol]:
            d[jmol], i[jmol], j[jmol] = dist[iat], iat, jat
        if jat % natomspermol == irefatom:
            d_ref[jmol] = min(d_ref[jmol], dist[iat])
    return d, i, j, d_ref


def random_molecules(rng, nmols, natomspermol, cell_matrix, spread=1.0):
    """Molecules with atoms scattered around random centres in the cell."""
    centres = rng.random((nmols, 3)) @ cell_matrix
    offsets = spread * (rng.random((nmols, natomspermol, 3)) - 0.5)
    return (centres[:, np.newaxis, :] + offsets).reshape(-1, 3)


@pytest.fixture
def rng():
    """Seeded random number generator."""
    return np.random.default_rng(12345)


@pytest.fixture
def triclinic_cell():
    """Triclinic cell with inscribed sphere radius above 10 A."""
    return np.array([
        [30.0, 0.0, 0.0],
        [6.0, 28.0, 0.0],
        [4.0, 5.0, 27.0],
    ])


@pytest.fixture
def simple_system():
    """
    One single-atom solute at the centre of a 30 A cubic box and three
    water molecules, one of them close to the solute.
    """
    positions = np.array([
        [15.0, 15.0, 15.0],   # solute
        [17.2, 15.0, 15.0],   # water 1, O at 2.2 A
        [17.7, 15.8, 15.0],
        [17.7, 14.2, 15.0],
        [2.0, 2.0, 2.0],      # water 2, far
        [2.5, 2.8, 2.0],
        [2.5, 1.2, 2.0],
        [28.0, 3.0, 27.0],    # water 3, far
        [28.5, 3.8, 27.0],
        [28.5, 2.2, 27.0],
    ])
    solute = AtomSelection([0], nmols=1, names=["X"])
    solvent = AtomSelection(
        np.arange(1, 10), natomspermol=3, names=["OW", "HW1", "HW2"] * 3
    )
    cell = np.array([30.0, 30.0, 30.0])
    return positions, solute, solvent, cell


@pytest.fixture
def simple_trajectory(simple_system):
    """Two-frame in-memory trajectory of ``simple_system``."""
    positions, solute, solvent, cell = simple_system
    frames = np.array([positions, positions + 0.5])
    return NumpyTrajectory(frames, solute, solvent, cell)


@pytest.fixture
def quick_options():
    """Options for fast, deterministic runs."""
    return Options(
        binstep=0.5, dbulk=8.0, n_random_samples=4, nthreads=1, seed=321, silent=True
    )
