"""Tests for mddfMD.selection.AtomSelection."""

import numpy as np
import pytest

from mddfMD.selection import AtomSelection


class TestConstruction:
    """Tests for the molecule partition of a selection."""

    def test_nmols_derives_natomspermol(self):
        s = AtomSelection(np.arange(10, 16), nmols=2)
        assert s.natoms == 6
        assert s.nmols == 2
        assert s.natomspermol == 3

    def test_natomspermol_derives_nmols(self):
        s = AtomSelection(np.arange(9), natomspermol=3)
        assert s.nmols == 3

    @pytest.mark.parametrize("kwargs", [{}, {"nmols": 2, "natomspermol": 3}])
    def test_exactly_one_of_nmols_natomspermol(self, kwargs):
        with pytest.raises(ValueError, match="Exactly one"):
            AtomSelection(np.arange(6), **kwargs)

    def test_non_integer_ratio_rejected(self):
        with pytest.raises(ValueError, match="not a multiple"):
            AtomSelection(np.arange(7), natomspermol=3)

    def test_empty_selection_rejected(self):
        with pytest.raises(ValueError, match="at least one atom"):
            AtomSelection([], nmols=1)

    def test_repeated_indices_rejected(self):
        with pytest.raises(ValueError, match="repeated"):
            AtomSelection([1, 2, 2], nmols=1)

    def test_names_length_checked(self):
        with pytest.raises(ValueError, match="atom names"):
            AtomSelection([1, 2], nmols=1, names=["A"])

    def test_indices_are_read_only(self):
        s = AtomSelection([1, 2, 3], nmols=1)
        with pytest.raises(ValueError):
            s.indices[0] = 5

    def test_input_array_is_copied(self):
        indices = np.array([1, 2, 3])
        s = AtomSelection(indices, nmols=1)
        indices[0] = 9
        assert s.indices[0] == 1


class TestAtomTypes:
    """Tests for atom_type() and molecule layout."""

    def test_atom_type(self):
        s = AtomSelection(np.arange(9), natomspermol=3)
        assert s.atom_type(0) == 0
        assert s.atom_type(3) == 0
        assert s.atom_type(4) == 1
        assert s.atom_type(5) == 2
        np.testing.assert_array_equal(s.atom_type(np.array([2, 7, 8])), [2, 1, 2])

    def test_molecule_slice(self):
        s = AtomSelection(np.arange(9), natomspermol=3)
        assert s.molecule_slice(1) == slice(3, 6)

    def test_ngroups_without_custom_groups(self):
        s = AtomSelection(np.arange(9), natomspermol=3)
        assert not s.custom_groups
        assert s.ngroups == 3
        assert s.membership is None

    def test_position_of(self):
        s = AtomSelection([10, 20, 30], nmols=1)
        assert s.position_of(20) == 1
        with pytest.raises(ValueError, match="25"):
            s.position_of(25)


class TestCustomGroups:
    """Tests for custom contribution groups."""

    def test_membership_matrix(self):
        s = AtomSelection(
            [10, 11, 12, 13], nmols=1,
            group_names=["polar", "all"],
            group_atom_indices=[[10, 12], [10, 11, 12, 13]],
        )
        assert s.custom_groups
        assert s.ngroups == 2
        np.testing.assert_array_equal(
            s.membership,
            [[True, True], [False, True], [True, True], [False, True]],
        )

    def test_default_group_names(self):
        s = AtomSelection([10, 11], nmols=1, group_atom_indices=[[10], [11]])
        assert s.group_names == ["group_0", "group_1"]

    def test_group_atom_outside_selection_rejected(self):
        with pytest.raises(ValueError, match="Atom index 99 of group 'bad'"):
            AtomSelection([1, 2], nmols=1, group_names=["bad"], group_atom_indices=[[1, 99]])

    def test_group_names_length_checked(self):
        with pytest.raises(ValueError, match="group names"):
            AtomSelection([1, 2], nmols=1, group_names=["a", "b"], group_atom_indices=[[1]])


class TestSerialisation:
    """Tests for same_atoms() and dict conversion."""

    def test_same_atoms(self):
        a = AtomSelection([1, 2, 3], nmols=1)
        assert a.same_atoms(AtomSelection([1, 2, 3], natomspermol=3))
        assert not a.same_atoms(AtomSelection([3, 2, 1], nmols=1))

    def test_dict_round_trip_with_groups(self):
        s = AtomSelection(
            [4, 5, 6, 7], natomspermol=2, names=["A", "B", "A", "B"],
            group_names=["g"], group_atom_indices=[[5, 7]],
        )
        restored = AtomSelection.from_dict(s.to_dict())
        assert restored.same_atoms(s)
        assert restored.natomspermol == 2
        assert restored.names == s.names
        assert restored.group_names == ["g"]
        np.testing.assert_array_equal(restored.membership, s.membership)

    def test_repr(self):
        s = AtomSelection(np.arange(6), natomspermol=3)
        assert repr(s) == "AtomSelection(6 atoms belonging to 2 molecules)"
