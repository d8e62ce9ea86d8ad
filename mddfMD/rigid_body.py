"""
Rigid-body moves of molecules.

Rotations are built from three Euler angles and applied about the centroid
of the coordinate set. The random placement routines are used to build the
ideal-gas reference ensembles: a solvent molecule is copied, made whole
across the periodic boundaries, and dropped with a random orientation at a
random position of the periodic system.
"""

from __future__ import annotations

import numpy as np

from mddfMD.cell import apply_minimum_image, fractional_to_cartesian, wrap_relative_to

#: Random centres are drawn in a copy of the cell enlarged by this factor and
#: folded back by the periodic wrapping of the linked-cell index.
RANDOM_PLACEMENT_SCALE: float = 100.0


def euler_matrix(beta: float, gamma: float, theta: float) -> np.ndarray:
    """
    Rotation matrix from three Euler angles (radians).

    ``beta`` is a counterclockwise rotation around ``x``, ``gamma`` around
    the new ``y`` and ``theta`` around the new ``z``, i.e. the matrix is
    ``Rx(beta) @ Ry(gamma) @ Rz(theta)``.

    Returns
    -------
    np.ndarray, shape (3, 3)
        Proper orthonormal rotation matrix.

    Examples
    --------
    >>> np.allclose(euler_matrix(np.pi, 0.0, 0.0), np.diag([1, -1, -1]))
    True
    """
    return euler_matrices(
        np.atleast_1d(beta), np.atleast_1d(gamma), np.atleast_1d(theta)
    )[0]


def euler_matrices(
    beta: np.ndarray, gamma: np.ndarray, theta: np.ndarray
) -> np.ndarray:
    """Vectorised :func:`euler_matrix`, returns shape ``(n, 3, 3)``."""
    c1, s1 = np.cos(beta), np.sin(beta)
    c2, s2 = np.cos(gamma), np.sin(gamma)
    c3, s3 = np.cos(theta), np.sin(theta)
    rotation = np.empty((len(c1), 3, 3), dtype=np.float64)
    rotation[:, 0, 0] = c2 * c3
    rotation[:, 0, 1] = -c2 * s3
    rotation[:, 0, 2] = s2
    rotation[:, 1, 0] = c1 * s3 + c3 * s1 * s2
    rotation[:, 1, 1] = c1 * c3 - s1 * s2 * s3
    rotation[:, 1, 2] = -c2 * s1
    rotation[:, 2, 0] = s1 * s3 - c1 * c3 * s2
    rotation[:, 2, 1] = c1 * s2 * s3 + c3 * s1
    rotation[:, 2, 2] = c1 * c2
    return rotation


def rigid_transform(
    points: np.ndarray,
    rotation: np.ndarray,
    translation: np.ndarray,
) -> np.ndarray:
    """
    Rotate a coordinate set about its centroid, then translate it.

    Parameters
    ----------
    points : np.ndarray, shape (n, 3)
        Coordinates of the rigid body.
    rotation : np.ndarray, shape (3, 3)
        Rotation matrix, applied to column vectors.
    translation : np.ndarray, shape (3,)
        Displacement applied to the rotated coordinates.

    Returns
    -------
    np.ndarray, shape (n, 3)
        New coordinates. ``points`` is not modified.
    """
    points = np.asarray(points, dtype=np.float64)
    centroid = points.mean(axis=0)
    return (points - centroid) @ np.asarray(rotation).T + centroid + translation


def random_rigid_placement(
    points: np.ndarray,
    irefatom: int,
    cell_matrix: np.ndarray,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Place a copy of a molecule with random position and orientation.

    The molecule is first made whole by wrapping every atom to the image
    closest to the reference atom. A new centre is drawn uniformly in the
    cell enlarged by :data:`RANDOM_PLACEMENT_SCALE`, three rotation angles
    are drawn uniformly in ``[0, 2*pi)``, and the molecule is rotated about
    its centroid and moved to the new centre.

    Parameters
    ----------
    points : np.ndarray, shape (n, 3)
        Coordinates of the molecule.
    irefatom : int
        Index (within the molecule) of the atom used to make it whole.
    cell_matrix : np.ndarray, shape (3, 3)
        Cell matrix with rows = lattice vectors.
    rng : np.random.Generator
        Random number generator.

    Returns
    -------
    np.ndarray, shape (n, 3)
        New coordinates. ``points`` is not modified.
    """
    points = np.asarray(points, dtype=np.float64)
    whole = wrap_relative_to(points, points[irefatom], cell_matrix)
    new_centre = fractional_to_cartesian(
        (rng.random(3) - 0.5) * RANDOM_PLACEMENT_SCALE, cell_matrix
    )
    beta, gamma, theta = 2 * np.pi * rng.random(3)
    rotation = euler_matrix(beta, gamma, theta)
    return rigid_transform(whole, rotation, new_centre - whole.mean(axis=0))


def random_rigid_placements(
    molecules: np.ndarray,
    irefatom: int,
    cell_matrix: np.ndarray,
    rng: np.random.Generator,
    out: np.ndarray | None = None,
) -> np.ndarray:
    """
    Batched :func:`random_rigid_placement` for many molecules at once.

    Parameters
    ----------
    molecules : np.ndarray, shape (m, natomspermol, 3)
        Coordinates of the molecules to be placed.
    irefatom : int
        Index (within each molecule) of the reference atom.
    cell_matrix : np.ndarray, shape (3, 3)
        Cell matrix with rows = lattice vectors.
    rng : np.random.Generator
        Random number generator.
    out : np.ndarray, shape (m, natomspermol, 3), optional
        Destination array. A new array is allocated if not given.

    Returns
    -------
    np.ndarray, shape (m, natomspermol, 3)
        Randomly placed molecules.
    """
    nmols = molecules.shape[0]
    cell_inverse = np.linalg.inv(cell_matrix)
    reference = molecules[:, irefatom:irefatom + 1, :]
    whole = reference + apply_minimum_image(molecules - reference, cell_matrix, cell_inverse)

    new_centres = fractional_to_cartesian(
        (rng.random((nmols, 3)) - 0.5) * RANDOM_PLACEMENT_SCALE, cell_matrix
    )
    angles = 2 * np.pi * rng.random((nmols, 3))
    rotations = euler_matrices(angles[:, 0], angles[:, 1], angles[:, 2])

    centred = whole - whole.mean(axis=1, keepdims=True)
    placed = np.einsum('mij,maj->mai', rotations, centred) + new_centres[:, np.newaxis, :]
    if out is None:
        return placed
    out[...] = placed
    return out
