"""AtomSelection: solute or solvent atoms, their molecules and contribution groups."""

from __future__ import annotations

from typing import Sequence

import numpy as np


class AtomSelection:
    """
    Ordered set of atoms forming the solute or the solvent.

    Atoms are laid out contiguously by molecule: molecule ``m`` occupies
    positions ``m*natomspermol`` to ``(m+1)*natomspermol - 1`` of
    ``indices``. Exactly one of ``nmols`` and ``natomspermol`` must be
    given; the other is derived from the number of atoms.

    Parameters
    ----------
    indices : array-like of int
        Global (0-based) atom indices in the trajectory.
    nmols : int, optional
        Number of molecules in the selection.
    natomspermol : int, optional
        Number of atoms per molecule.
    names : sequence of str, optional
        Atom names, one per selected atom.
    group_names : sequence of str, optional
        Names of custom contribution groups.
    group_atom_indices : sequence of array-like of int, optional
        Global atom indices belonging to each custom group. An atom may
        belong to zero or more groups.

    Attributes
    ----------
    natoms : int
        Number of selected atoms.
    custom_groups : bool
        Whether contributions are accounted by custom groups instead of by
        atom type (position within the molecule).
    ngroups : int
        Number of contribution columns.

    Raises
    ------
    ValueError
        If the selection is empty, the molecule partition is inconsistent,
        or a group refers to atoms outside the selection.
    """

    def __init__(
        self,
        indices,
        nmols: int = 0,
        natomspermol: int = 0,
        names: Sequence[str] | None = None,
        group_names: Sequence[str] | None = None,
        group_atom_indices: Sequence | None = None,
    ):
        indices = np.array(indices, dtype=np.int64).ravel()
        natoms = len(indices)
        if natoms == 0:
            raise ValueError("Selection must contain at least one atom.")
        if len(np.unique(indices)) != natoms:
            raise ValueError("Selection contains repeated atom indices.")

        if (nmols == 0) == (natomspermol == 0):
            raise ValueError("Exactly one of nmols or natomspermol must be provided.")
        if nmols < 0 or natomspermol < 0:
            raise ValueError("nmols and natomspermol must be positive.")
        if nmols:
            if natoms % nmols != 0:
                raise ValueError(
                    f"Number of atoms ({natoms}) is not a multiple of nmols ({nmols})."
                )
            natomspermol = natoms // nmols
        else:
            if natoms % natomspermol != 0:
                raise ValueError(
                    f"Number of atoms ({natoms}) is not a multiple of natomspermol ({natomspermol})."
                )
            nmols = natoms // natomspermol

        if names is not None:
            names = [str(name) for name in names]
            if len(names) != natoms:
                raise ValueError(
                    f"Number of atom names ({len(names)}) differs from number of atoms ({natoms})."
                )

        indices.setflags(write=False)
        self.indices = indices
        self.natoms = natoms
        self.nmols = int(nmols)
        self.natomspermol = int(natomspermol)
        self.names = names

        self.group_names: list[str] = []
        self.group_atom_indices: list[np.ndarray] = []
        self._membership: np.ndarray | None = None
        if group_atom_indices is not None:
            self._set_groups(group_names, group_atom_indices)

    def _set_groups(self, group_names, group_atom_indices) -> None:
        ngroups = len(group_atom_indices)
        if group_names is None:
            group_names = [f"group_{igroup}" for igroup in range(ngroups)]
        group_names = [str(name) for name in group_names]
        if len(group_names) != ngroups:
            raise ValueError(
                f"Number of group names ({len(group_names)}) differs from number of groups ({ngroups})."
            )

        position = {int(iat): ipos for ipos, iat in enumerate(self.indices)}
        membership = np.zeros((self.natoms, ngroups), dtype=bool)
        for igroup, (name, atoms) in enumerate(zip(group_names, group_atom_indices)):
            atoms = np.array(atoms, dtype=np.int64).ravel()
            for iat in atoms:
                ipos = position.get(int(iat))
                if ipos is None:
                    raise ValueError(
                        f"Atom index {iat} of group '{name}' is not part of the selection."
                    )
                membership[ipos, igroup] = True
            atoms.setflags(write=False)
            self.group_atom_indices.append(atoms)
        membership.setflags(write=False)
        self.group_names = group_names
        self._membership = membership

    @property
    def custom_groups(self) -> bool:
        """True if contributions are accounted by custom groups."""
        return self._membership is not None

    @property
    def ngroups(self) -> int:
        """Number of contribution columns (custom groups or atom types)."""
        if self._membership is not None:
            return self._membership.shape[1]
        return self.natomspermol

    @property
    def group_labels(self) -> list[str]:
        """
        One label per contribution column.

        Custom group names when groups were given; otherwise the atom names
        of the first molecule, or ``atom_<k>`` without names.
        """
        if self.custom_groups:
            return list(self.group_names)
        if self.names is not None:
            return self.names[:self.natomspermol]
        return [f"atom_{k}" for k in range(self.natomspermol)]

    @property
    def membership(self) -> np.ndarray | None:
        """Boolean ``(natoms, ngroups)`` matrix of custom group membership."""
        return self._membership

    def atom_type(self, iatom):
        """
        Position of an atom within its molecule.

        Parameters
        ----------
        iatom : int or np.ndarray
            Position(s) of the atom(s) in the selection (0-based).
        """
        return iatom % self.natomspermol

    def molecule_slice(self, imol: int) -> slice:
        """Slice of the selection occupied by molecule ``imol``."""
        return slice(imol * self.natomspermol, (imol + 1) * self.natomspermol)

    def position_of(self, atom_index: int) -> int:
        """
        Position in the selection of a global atom index.

        Raises
        ------
        ValueError
            If the atom is not part of the selection.
        """
        found = np.flatnonzero(self.indices == atom_index)
        if len(found) == 0:
            raise ValueError(f"Atom index {atom_index} is not part of the selection.")
        return int(found[0])

    def same_atoms(self, other: AtomSelection) -> bool:
        """True if both selections contain the same atoms in the same order."""
        return np.array_equal(self.indices, other.indices)

    def to_dict(self) -> dict:
        """Plain-data representation, used for persistence."""
        return {
            'indices': self.indices.tolist(),
            'natomspermol': self.natomspermol,
            'names': self.names,
            'group_names': self.group_names if self.custom_groups else None,
            'group_atom_indices': (
                [atoms.tolist() for atoms in self.group_atom_indices]
                if self.custom_groups else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> AtomSelection:
        """Inverse of :meth:`to_dict`."""
        return cls(
            data['indices'],
            natomspermol=data['natomspermol'],
            names=data.get('names'),
            group_names=data.get('group_names'),
            group_atom_indices=data.get('group_atom_indices'),
        )

    def __repr__(self) -> str:
        atoms = f"{self.natoms} {'atom' if self.natoms == 1 else 'atoms'}"
        mols = f"{self.nmols} {'molecule' if self.nmols == 1 else 'molecules'}"
        groups = f", {self.ngroups} custom groups" if self.custom_groups else ""
        return f"AtomSelection({atoms} belonging to {mols}{groups})"
