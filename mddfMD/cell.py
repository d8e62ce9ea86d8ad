"""
Coordinate transforms and cell geometry for periodic simulation cells.

All functions use the convention that rows of the cell matrix are lattice
vectors: ``M[0] = a``, ``M[1] = b``, ``M[2] = c`` (matching MDAnalysis'
``triclinic_vectors``).

Key operations:

- Cartesian from fractional: ``r = s @ M``
- Fractional from Cartesian: ``s = r @ inv(M)``
- Periodic wrapping (fractional): ``s_wrapped = s - floor(s)``
- Minimum image convention: ``ds = r @ inv(M)``, ``ds -= round(ds)``,
  ``dr = ds @ M``
- Cell volume: ``abs(det(M))``
"""

from __future__ import annotations

import numpy as np


class CutoffTooLargeError(ValueError):
    """Raised when the cutoff exceeds half the periodic cell size in a frame."""
    pass


def cell_matrix_from_sides(sides) -> np.ndarray:
    """
    Build a diagonal cell matrix from orthorhombic side lengths.

    Parameters
    ----------
    sides : array-like, shape (3,)
        Box side lengths ``[Lx, Ly, Lz]``.

    Returns
    -------
    np.ndarray, shape (3, 3)
        Diagonal cell matrix.

    Raises
    ------
    ValueError
        If any side is not positive and finite.
    """
    sides = np.asarray(sides, dtype=np.float64)
    if sides.shape != (3,):
        raise ValueError(f"Expected three box side lengths, got shape {sides.shape}.")
    if not np.all(np.isfinite(sides)) or not np.all(sides > 0):
        raise ValueError(f"Box side lengths must be positive and finite. Got: {sides}")
    return np.diag(sides)


def as_cell_matrix(cell) -> np.ndarray:
    """
    Return a ``(3, 3)`` float64 cell matrix from side lengths or a matrix.

    Parameters
    ----------
    cell : array-like, shape (3,) or (3, 3)
        Orthorhombic side lengths or full cell matrix.

    Raises
    ------
    ValueError
        If the shape is neither ``(3,)`` nor ``(3, 3)``, or the cell is
        degenerate.
    """
    cell = np.asarray(cell, dtype=np.float64)
    if cell.shape == (3,):
        return cell_matrix_from_sides(cell)
    if cell.shape != (3, 3):
        raise ValueError(f"Cell must have shape (3,) or (3, 3), got {cell.shape}.")
    if not np.all(np.isfinite(cell)) or abs(np.linalg.det(cell)) == 0.0:
        raise ValueError(f"Cell matrix must be finite and non-singular. Got:\n{cell}")
    return cell.copy()


def cell_volume(cell_matrix: np.ndarray) -> float:
    """Volume of the cell, ``abs(det(M))``."""
    return float(abs(np.linalg.det(cell_matrix)))


def cell_side_lengths(cell_matrix: np.ndarray) -> np.ndarray:
    """Lengths of the three lattice vectors."""
    return np.linalg.norm(cell_matrix, axis=1)


def cartesian_to_fractional(
    positions: np.ndarray, cell_inverse: np.ndarray
) -> np.ndarray:
    """
    Convert Cartesian positions to fractional coordinates.

    Parameters
    ----------
    positions : np.ndarray, shape (N, 3)
        Cartesian positions.
    cell_inverse : np.ndarray, shape (3, 3)
        Inverse of the cell matrix (``np.linalg.inv(cell_matrix)``).

    Returns
    -------
    np.ndarray, shape (N, 3)
        Fractional coordinates.
    """
    return positions @ cell_inverse


def fractional_to_cartesian(
    fractional: np.ndarray, cell_matrix: np.ndarray
) -> np.ndarray:
    """
    Convert fractional coordinates to Cartesian positions.

    Parameters
    ----------
    fractional : np.ndarray, shape (N, 3)
        Fractional coordinates.
    cell_matrix : np.ndarray, shape (3, 3)
        Cell matrix with rows = lattice vectors.

    Returns
    -------
    np.ndarray, shape (N, 3)
        Cartesian positions.
    """
    return fractional @ cell_matrix


def wrap_fractional(fractional: np.ndarray) -> np.ndarray:
    """
    Wrap fractional coordinates into [0, 1).

    Values that round up to exactly 1.0 are folded back to 0.0.
    """
    wrapped = fractional - np.floor(fractional)
    wrapped[wrapped >= 1.0] = 0.0
    return wrapped


def apply_minimum_image(
    displacement: np.ndarray,
    cell_matrix: np.ndarray,
    cell_inverse: np.ndarray,
) -> np.ndarray:
    """
    Apply the minimum image convention to displacement vectors.

    Works for arbitrary triclinic cells.  The displacement is converted to
    fractional coordinates, each component is rounded to the nearest integer
    and subtracted, then the result is converted back to Cartesian.

    Parameters
    ----------
    displacement : np.ndarray, shape (..., 3)
        Displacement vectors in Cartesian coordinates.
    cell_matrix : np.ndarray, shape (3, 3)
        Cell matrix with rows = lattice vectors.
    cell_inverse : np.ndarray, shape (3, 3)
        Inverse of the cell matrix.

    Returns
    -------
    np.ndarray, shape (..., 3)
        Minimum-image displacement vectors in Cartesian coordinates.
    """
    fractional = displacement @ cell_inverse
    fractional -= np.round(fractional)
    return fractional @ cell_matrix


def wrap_relative_to(
    points: np.ndarray,
    reference: np.ndarray,
    cell_matrix: np.ndarray,
) -> np.ndarray:
    """
    Translate points by lattice vectors to their image closest to *reference*.

    Parameters
    ----------
    points : np.ndarray, shape (..., 3)
        Cartesian coordinates.
    reference : np.ndarray, shape (3,)
        Reference point.
    cell_matrix : np.ndarray, shape (3, 3)
        Cell matrix with rows = lattice vectors.

    Returns
    -------
    np.ndarray, shape (..., 3)
        New array with the wrapped coordinates. The input is not modified.
    """
    cell_inverse = np.linalg.inv(cell_matrix)
    displacement = np.asarray(points, dtype=np.float64) - reference
    return reference + apply_minimum_image(displacement, cell_matrix, cell_inverse)


def perpendicular_heights(cell_matrix: np.ndarray) -> np.ndarray:
    """
    Distances between opposite faces of the cell, one per lattice direction.

    Entry ``k`` is the height of the cell measured perpendicular to the face
    spanned by the two lattice vectors other than ``k``. For orthorhombic
    cells these are the side lengths.
    """
    a, b, c = cell_matrix[0], cell_matrix[1], cell_matrix[2]
    volume = abs(np.linalg.det(cell_matrix))
    return np.array([
        volume / np.linalg.norm(np.cross(b, c)),
        volume / np.linalg.norm(np.cross(c, a)),
        volume / np.linalg.norm(np.cross(a, b)),
    ])


def inscribed_sphere_radius(cell_matrix: np.ndarray) -> float:
    """
    Compute the inscribed sphere radius of the parallelepiped defined by
    the cell matrix.

    This is the maximum valid cutoff for the minimum image convention:
    half the smallest perpendicular height of the cell.

    For orthorhombic cells this reduces to ``min(Lx, Ly, Lz) / 2``.
    """
    return float(np.min(perpendicular_heights(cell_matrix)) / 2)


def check_cutoff(
    cutoff: float,
    cell_matrix: np.ndarray,
    frame: int | None = None,
) -> None:
    """
    Fail fast if *cutoff* exceeds half of the periodic cell in this frame.

    Parameters
    ----------
    cutoff : float
        Largest distance that will be searched (``cutoff`` or ``dbulk``).
    cell_matrix : np.ndarray, shape (3, 3)
        Cell matrix of the current frame.
    frame : int, optional
        Index of the frame, reported in the error message.

    Raises
    ------
    CutoffTooLargeError
        If ``cutoff > inscribed_sphere_radius(cell_matrix)``.
    """
    radius = inscribed_sphere_radius(cell_matrix)
    if cutoff > radius:
        where = "" if frame is None else f" in frame {frame}"
        raise CutoffTooLargeError(
            f"cutoff or dbulk ({cutoff}) > periodic dimension / 2 ({radius}){where}. "
            f"Cell side lengths: {cell_side_lengths(cell_matrix).tolist()}. "
            "Check the periodic cell information of the trajectory, or reduce "
            "the cutoff."
        )
