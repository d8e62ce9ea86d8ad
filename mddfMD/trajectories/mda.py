"""
MDAnalysis trajectory backend for mddfMD.

This module provides the MDATrajectory class for reading trajectories
via MDAnalysis, and helpers to build atom selections from MDAnalysis
atom groups.
"""

from __future__ import annotations

from typing import Sequence

import MDAnalysis as MD  # type: ignore[import-untyped]
from MDAnalysis.lib.mdamath import triclinic_vectors  # type: ignore[import-untyped]
import numpy as np

from mddfMD.selection import AtomSelection

from ._base import Trajectory, DataUnavailableError


def selection_from_atomgroup(
    atomgroup,
    nmols: int = 0,
    natomspermol: int = 0,
    group_names: Sequence[str] | None = None,
    groups: Sequence | None = None,
) -> AtomSelection:
    """
    Build an :class:`AtomSelection` from an MDAnalysis ``AtomGroup``.

    Parameters
    ----------
    atomgroup : MDAnalysis.AtomGroup
        Atoms of the selection, molecule by molecule.
    nmols : int, optional
        Number of molecules.
    natomspermol : int, optional
        Number of atoms per molecule. Exactly one of ``nmols`` and
        ``natomspermol`` must be given.
    group_names : sequence of str, optional
        Names of custom contribution groups.
    groups : sequence of AtomGroup, optional
        Atoms of each custom contribution group.

    Returns
    -------
    AtomSelection
        Selection holding the (0-based) atom indices and names.

    Examples
    --------
    >>> u = MDAnalysis.Universe("system.pdb")
    >>> water = selection_from_atomgroup(u.select_atoms("resname WAT"), natomspermol=3)
    """
    group_atom_indices = None
    if groups is not None:
        group_atom_indices = [np.asarray(group.indices) for group in groups]
    return AtomSelection(
        np.asarray(atomgroup.indices),
        nmols=nmols,
        natomspermol=natomspermol,
        names=[str(name) for name in atomgroup.names],
        group_names=group_names,
        group_atom_indices=group_atom_indices,
    )


class MDATrajectory(Trajectory):
    """
    Represents a molecular dynamics trajectory handled by **MDAnalysis**.

    Parameters
    ----------
    trajectory_file : str
        Path to the trajectory file (e.g., `.xtc`, `.trr`, `.dcd`).
    topology_file : str
        Path to the topology file (e.g., `.pdb`, `.gro`, `.psf`).
    solute : AtomSelection
        Solute atoms.
    solvent : AtomSelection
        Solvent atoms.

    Attributes
    ----------
    frames : int
        Number of trajectory frames.
    mdanalysis_universe : MDAnalysis.Universe
        Underlying universe.

    Raises
    ------
    ValueError
        If no topology file is provided.
    RuntimeError
        If MDAnalysis fails to load the trajectory or topology file.
    """

    def __init__(
        self,
        trajectory_file: str,
        topology_file: str,
        solute: AtomSelection,
        solvent: AtomSelection,
    ):
        if not topology_file:
            raise ValueError("A topology file is required for MDAnalysis trajectories.")

        self.trajectory_file = trajectory_file
        self.topology_file = topology_file

        try:
            mdanalysis_universe = MD.Universe(topology_file, trajectory_file)
        except Exception as e:
            raise RuntimeError(f"Failed to load MDAnalysis Universe: {e}")

        self.mdanalysis_universe = mdanalysis_universe
        self.frames = len(mdanalysis_universe.trajectory)
        self.natoms = len(mdanalysis_universe.atoms)
        super().__init__(solute, solvent)

    def _open(self) -> None:
        self.mdanalysis_universe.trajectory.rewind()

    def _read_frame(self, index: int) -> tuple[np.ndarray, np.ndarray]:
        ts = self.mdanalysis_universe.trajectory[index]
        dims = ts.dimensions
        if dims is None:
            raise DataUnavailableError(
                f"Frame {index} of {self.trajectory_file} has no periodic cell information."
            )
        # Older trajectories may lack angular information: assume orthorhombic
        if len(dims) < 6:
            cell = np.array(dims[:3], dtype=np.float64)
        else:
            cell = np.array(triclinic_vectors(dims), dtype=np.float64)
        return ts.positions, cell
