"""Tests for mddfMD.counters histogram updates."""

import numpy as np
import pytest

from mddfMD.counters import bin_index, update_counters, update_counters_random
from mddfMD.minimum_distances import MinimumDistanceBuffer
from mddfMD.options import Options
from mddfMD.result import Result
from mddfMD.selection import AtomSelection


def _set(buffer, imol, d, i, j, d_ref=None):
    buffer.within_cutoff[imol] = True
    buffer.d[imol] = d
    buffer.i[imol] = i
    buffer.j[imol] = j
    if d_ref is not None:
        buffer.ref_atom_within_cutoff[imol] = True
        buffer.d_ref_atom[imol] = d_ref


@pytest.fixture
def cross_result():
    solute = AtomSelection([0, 1], nmols=1)
    solvent = AtomSelection(np.arange(2, 11), natomspermol=3)
    return Result(solute, solvent, Options(binstep=1.0, dbulk=5.0))


@pytest.fixture
def cross_buffer():
    buffer = MinimumDistanceBuffer(3)
    _set(buffer, 0, 1.2, 0, 0, d_ref=1.5)
    _set(buffer, 1, 4.7, 1, 4, d_ref=5.0)
    return buffer


class TestBinIndex:

    def test_scalar(self):
        assert bin_index(1.0, 0.5) == 2
        assert bin_index(0.0, 0.5) == 0
        assert bin_index(0.49, 0.5) == 0

    def test_array(self):
        np.testing.assert_array_equal(bin_index(np.array([0.1, 1.0, 2.99]), 1.0), [0, 1, 2])

    def test_edges_of_decimal_step_open_their_bin(self):
        k = np.arange(1, 501)
        np.testing.assert_array_equal(bin_index(k * 0.02, 0.02), k)
        assert bin_index(29 * 0.02, 0.02) == 29
        assert bin_index(0.58 - 1e-6, 0.02) == 28


class TestUpdateCounters:

    def test_md_and_rdf_counts(self, cross_result, cross_buffer):
        update_counters(cross_result, cross_buffer, 2.0)
        np.testing.assert_allclose(cross_result.md_count, [0, 2, 0, 0, 2])
        # reference atom at 5.0 falls beyond the last bin
        np.testing.assert_allclose(cross_result.rdf_count, [0, 2, 0, 0, 0])

    def test_group_counts_by_atom_type(self, cross_result, cross_buffer):
        update_counters(cross_result, cross_buffer, 1.0)
        expected_solute = np.zeros((5, 2))
        expected_solute[1, 0] = 1.0
        expected_solute[4, 1] = 1.0
        np.testing.assert_allclose(cross_result.solute_group_count, expected_solute)
        expected_solvent = np.zeros((5, 3))
        expected_solvent[1, 0] = 1.0
        expected_solvent[4, 1] = 1.0
        np.testing.assert_allclose(cross_result.solvent_group_count, expected_solvent)

    def test_distance_at_histogram_end_dropped(self, cross_result):
        buffer = MinimumDistanceBuffer(3)
        _set(buffer, 2, 5.0, 0, 6)
        update_counters(cross_result, buffer)
        assert cross_result.md_count.sum() == 0
        assert cross_result.solute_group_count.sum() == 0

    def test_repeated_bins_accumulate(self, cross_result):
        buffer = MinimumDistanceBuffer(3)
        for imol in range(3):
            _set(buffer, imol, 2.5, 0, 3 * imol)
        update_counters(cross_result, buffer)
        assert cross_result.md_count[2] == 3.0
        assert cross_result.solvent_group_count[2, 0] == 3.0

    def test_random_counters_leave_group_tables(self, cross_result, cross_buffer):
        update_counters_random(cross_result, cross_buffer, 1.5)
        np.testing.assert_allclose(cross_result.md_count_random, [0, 1.5, 0, 0, 1.5])
        np.testing.assert_allclose(cross_result.rdf_count_random, [0, 1.5, 0, 0, 0])
        assert cross_result.md_count.sum() == 0
        assert cross_result.solute_group_count.sum() == 0
        assert cross_result.solvent_group_count.sum() == 0


class TestSelfCorrelationCounters:

    def test_half_weight_to_both_atoms(self):
        water = AtomSelection(np.arange(9), natomspermol=3)
        result = Result(water, water, Options(binstep=1.0, dbulk=5.0))
        buffer = MinimumDistanceBuffer(3)
        _set(buffer, 1, 2.2, 1, 5)
        update_counters(result, buffer, 1.0)
        assert result.solute_group_count[2, 1] == 0.5
        assert result.solute_group_count[2, 2] == 0.5
        assert result.solvent_group_count.sum() == 0
        np.testing.assert_allclose(result.solute_group_count.sum(axis=1), result.md_count)


class TestCustomGroupCounters:

    def test_atom_in_several_groups(self):
        solute = AtomSelection(
            [0, 1, 2], nmols=1,
            group_names=["first", "first_two", "last"],
            group_atom_indices=[[0], [0, 1], [2]],
        )
        solvent = AtomSelection([3, 4], natomspermol=1)
        result = Result(solute, solvent, Options(binstep=1.0, dbulk=5.0))
        buffer = MinimumDistanceBuffer(2)
        _set(buffer, 0, 0.5, 0, 0)
        _set(buffer, 1, 3.5, 2, 1)
        update_counters(result, buffer, 1.0)
        expected = np.zeros((5, 3))
        expected[0, 0] = expected[0, 1] = 1.0
        expected[3, 2] = 1.0
        np.testing.assert_allclose(result.solute_group_count, expected)
