"""
Contributions of atoms or groups to a minimum-distance distribution.

Each contact counted in the MDDF is attributed to the solute and the
solvent atom realising the minimum distance. The contribution tables of a
finalized :class:`~mddfMD.result.Result` hold these counts normalised like
the MDDF, split by atom type (position within the molecule) or by custom
group. :func:`contributions` extracts the contribution of a subset.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from mddfMD.result import Result
from mddfMD.selection import AtomSelection


@dataclass(frozen=True)
class _Group:
    group_index: int | None = None
    group_name: str | None = None
    atom_indices: Sequence[int] | None = None
    atom_names: Sequence[str] | None = None

    def __post_init__(self) -> None:
        given = [
            value is not None
            for value in (self.group_index, self.group_name, self.atom_indices, self.atom_names)
        ]
        if sum(given) != 1:
            raise ValueError(
                "Exactly one of group_index, group_name, atom_indices or atom_names "
                "must be provided."
            )


@dataclass(frozen=True)
class SoluteGroup(_Group):
    """
    Subset of the solute whose contribution is requested.

    Parameters
    ----------
    group_index : int, optional
        Column of the contribution table (custom group or atom type).
    group_name : str, optional
        Name of a custom group.
    atom_indices : sequence of int, optional
        Global atom indices.
    atom_names : sequence of str, optional
        Atom names.
    """


@dataclass(frozen=True)
class SolventGroup(_Group):
    """Subset of the solvent whose contribution is requested. See :class:`SoluteGroup`."""


def _warn_several_molecules(selection: AtomSelection) -> None:
    if selection.nmols > 1:
        warnings.warn(
            f"The selection contains {selection.nmols} molecules. Contributions are "
            "summed over all atoms of the same type.",
            UserWarning,
            stacklevel=3,
        )


def _atom_types_of_indices(selection: AtomSelection, atom_indices) -> np.ndarray:
    positions = [selection.position_of(int(iat)) for iat in np.ravel(atom_indices)]
    return np.unique(selection.atom_type(np.array(positions, dtype=np.int64)))


def _atom_types_of_names(selection: AtomSelection, atom_names) -> np.ndarray:
    if selection.names is None:
        raise ValueError("The selection has no atom names.")
    names = np.array(selection.names)
    positions = []
    for name in atom_names:
        found = np.flatnonzero(names == name)
        if len(found) == 0:
            raise ValueError(f"Atom name '{name}' is not part of the selection.")
        positions.extend(found.tolist())
    return np.unique(selection.atom_type(np.array(positions, dtype=np.int64)))


def contributions(result: Result, group: SoluteGroup | SolventGroup) -> np.ndarray:
    """
    Contribution of a subset of the solute or solvent to the MDDF.

    Parameters
    ----------
    result : Result
        Finalized Result.
    group : SoluteGroup or SolventGroup
        Subset, given by a column of the contribution table (index or custom
        group name), or by atoms (global indices or names). Atoms are mapped
        to their types, and the contributions of the distinct types are
        summed.

    Returns
    -------
    np.ndarray, shape (nbins,)
        Contribution per histogram bin.

    Raises
    ------
    RuntimeError
        If the Result is not finalized.
    ValueError
        If the index, name or atoms are not available in the contribution
        table.
    """
    if result.progress != 'computed':
        raise RuntimeError("Result must be finalized before extracting contributions.")
    if isinstance(group, SoluteGroup):
        selection, table = result.solute, result.solute_group_contributions
    elif isinstance(group, SolventGroup):
        selection, table = result.solvent, result.solvent_group_contributions
    else:
        raise TypeError(f"Expected SoluteGroup or SolventGroup, got {type(group).__name__}.")

    if group.group_index is not None:
        if not 0 <= group.group_index < table.shape[1]:
            raise ValueError(
                f"Group index {group.group_index} is not available in the contribution "
                f"matrix ({table.shape[1]} groups)."
            )
        return table[:, group.group_index].copy()

    if group.group_name is not None:
        if group.group_name not in selection.group_names:
            raise ValueError(
                f"Group '{group.group_name}' is not available in the contribution matrix."
            )
        return table[:, selection.group_names.index(group.group_name)].copy()

    if selection.custom_groups:
        raise ValueError(
            "Contributions were accumulated by custom groups; select them by "
            "group_index or group_name."
        )
    _warn_several_molecules(selection)
    if group.atom_indices is not None:
        types = _atom_types_of_indices(selection, group.atom_indices)
    else:
        types = _atom_types_of_names(selection, group.atom_names)
    return table[:, types].sum(axis=1)
