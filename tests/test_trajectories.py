"""
pytest suite for the trajectory backends.
"""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from mddfMD.selection import AtomSelection
from mddfMD.trajectories import (
    DataUnavailableError,
    MDATrajectory,
    NumpyTrajectory,
    Trajectory,
    selection_from_atomgroup,
)


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def selections():
    solute = AtomSelection([0], nmols=1)
    solvent = AtomSelection([1, 2, 3, 4], natomspermol=2)
    return solute, solvent


@pytest.fixture
def positions():
    """Three frames of five atoms; atom k of frame f sits at (f, k, 0)."""
    frames = np.zeros((3, 5, 3))
    frames[:, :, 0] = np.arange(3)[:, np.newaxis]
    frames[:, :, 1] = np.arange(5)[np.newaxis, :]
    return frames


def _timestep(dimensions, positions):
    ts = MagicMock()
    ts.dimensions = dimensions
    ts.positions = positions
    return ts


@pytest.fixture
def mock_mdanalysis_universe():
    """Mock MDAnalysis Universe with two frames of five atoms."""
    frames = [
        _timestep(np.array([20.0, 20.0, 20.0, 90.0, 90.0, 90.0]), np.full((5, 3), 1.0)),
        _timestep(np.array([22.0, 22.0, 22.0, 90.0, 90.0, 90.0]), np.full((5, 3), 2.0)),
    ]
    mock = MagicMock()
    mock.trajectory.__len__.return_value = len(frames)
    mock.trajectory.__getitem__.side_effect = lambda index: frames[index]
    mock.atoms.__len__.return_value = 5
    return mock


# -----------------------------------------------------------------------------
# NumpyTrajectory
# -----------------------------------------------------------------------------
class TestNumpyTrajectory:

    def test_read_frame_splits_solute_and_solvent(self, positions, selections):
        trajectory = NumpyTrajectory(positions, *selections, cell=[10.0, 10.0, 10.0])
        assert trajectory.frames == 3
        assert trajectory.natoms == 5
        with trajectory:
            trajectory.read_frame(2)
            np.testing.assert_array_equal(trajectory.x_solute, [[2.0, 0.0, 0.0]])
            np.testing.assert_array_equal(trajectory.x_solvent[:, 1], [1.0, 2.0, 3.0, 4.0])
            np.testing.assert_array_equal(trajectory.cell_matrix, np.diag([10.0, 10.0, 10.0]))
            assert trajectory.current_frame == 2

    def test_cursor(self, positions, selections):
        trajectory = NumpyTrajectory(positions, *selections, cell=[10.0, 10.0, 10.0])
        trajectory.open()
        trajectory.first_frame()
        trajectory.next_frame()
        assert trajectory.current_frame == 1
        assert trajectory.x_solute[0, 0] == 1.0
        trajectory.next_frame()
        with pytest.raises(IndexError):
            trajectory.next_frame()
        trajectory.close()
        assert not trajectory.is_open

    def test_read_requires_open(self, positions, selections):
        trajectory = NumpyTrajectory(positions, *selections, cell=[10.0, 10.0, 10.0])
        with pytest.raises(RuntimeError, match="opened"):
            trajectory.read_frame(0)

    def test_cell_per_frame(self, positions, selections):
        cells = np.array([[10.0, 10.0, 10.0], [11.0, 11.0, 11.0], [12.0, 12.0, 12.0]])
        trajectory = NumpyTrajectory(positions, *selections, cell=cells, per_frame=True)
        with trajectory:
            trajectory.read_frame(1)
            np.testing.assert_array_equal(trajectory.cell_matrix, np.diag([11.0, 11.0, 11.0]))

    def test_invertible_per_frame_sides_are_not_a_matrix(self, positions, selections):
        sides = np.array([[30.0, 31.0, 32.0], [31.0, 30.0, 33.0], [30.5, 31.5, 30.0]])
        trajectory = NumpyTrajectory(positions, *selections, cell=sides, per_frame=True)
        with trajectory:
            trajectory.read_frame(0)
            np.testing.assert_array_equal(trajectory.cell_matrix, np.diag([30.0, 31.0, 32.0]))
            trajectory.read_frame(2)
            np.testing.assert_array_equal(trajectory.cell_matrix, np.diag([30.5, 31.5, 30.0]))

    def test_three_by_three_cell_for_three_frames_is_ambiguous(self, positions, selections):
        sides = np.array([[30.0, 31.0, 32.0], [31.0, 30.0, 33.0], [30.5, 31.5, 30.0]])
        with pytest.raises(ValueError, match="ambiguous"):
            NumpyTrajectory(positions, *selections, cell=sides)

    def test_shared_matrix_for_three_frames(self, positions, selections):
        matrix = np.array([[30.0, 31.0, 32.0], [31.0, 30.0, 33.0], [30.5, 31.5, 30.0]])
        trajectory = NumpyTrajectory(positions, *selections, cell=matrix, per_frame=False)
        with trajectory:
            trajectory.read_frame(2)
            np.testing.assert_array_equal(trajectory.cell_matrix, matrix)

    def test_triclinic_cell(self, positions, selections, triclinic_cell):
        trajectory = NumpyTrajectory(positions, *selections, cell=triclinic_cell, per_frame=False)
        with trajectory:
            trajectory.read_frame(0)
            np.testing.assert_array_equal(trajectory.cell_matrix, triclinic_cell)

    def test_single_frame_is_promoted(self, positions, selections):
        trajectory = NumpyTrajectory(positions[0], *selections, cell=[10.0, 10.0, 10.0])
        assert trajectory.frames == 1

    def test_invalid_shapes(self, positions, selections):
        with pytest.raises(ValueError, match="Positions"):
            NumpyTrajectory(np.zeros((3, 5, 2)), *selections, cell=[10.0, 10.0, 10.0])
        with pytest.raises(ValueError, match="Cell"):
            NumpyTrajectory(positions, *selections, cell=np.ones((2, 3)))
        with pytest.raises(ValueError):
            NumpyTrajectory(positions, *selections, cell=[10.0, 0.0, 10.0])

    def test_selection_outside_system(self, positions):
        solute = AtomSelection([7], nmols=1)
        solvent = AtomSelection([1, 2], natomspermol=1)
        with pytest.raises(ValueError, match="outside the system"):
            NumpyTrajectory(positions, solute, solvent, cell=[10.0, 10.0, 10.0])

    def test_iter_frames_yields_copies(self, positions, selections):
        trajectory = NumpyTrajectory(positions, *selections, cell=[10.0, 10.0, 10.0])
        frames = list(trajectory.iter_frames())
        assert len(frames) == 3
        assert [x_solute[0, 0] for x_solute, _, _ in frames] == [0.0, 1.0, 2.0]
        assert not trajectory.is_open

    def test_iter_frames_with_start_stop_stride(self, positions, selections):
        trajectory = NumpyTrajectory(positions, *selections, cell=[10.0, 10.0, 10.0])
        picked = [x[0, 0] for x, _, _ in trajectory.iter_frames(start=-3, stop=None, stride=2)]
        assert picked == [0.0, 2.0]
        assert [x[0, 0] for x, _, _ in trajectory.iter_frames(start=1, stop=-1)] == [1.0]


def test_trajectory_is_abstract(selections):
    with pytest.raises(TypeError):
        Trajectory(*selections)


def test_concrete_classes_are_subclasses():
    assert issubclass(NumpyTrajectory, Trajectory)
    assert issubclass(MDATrajectory, Trajectory)


# -----------------------------------------------------------------------------
# MDATrajectory
# -----------------------------------------------------------------------------
@patch("mddfMD.trajectories.mda.MD.Universe")
def test_mda_reads_frames(mock_universe, mock_mdanalysis_universe, selections):
    mock_universe.return_value = mock_mdanalysis_universe
    trajectory = MDATrajectory("traj.xtc", "topol.pdb", *selections)
    assert trajectory.frames == 2
    assert trajectory.natoms == 5
    with trajectory:
        mock_mdanalysis_universe.trajectory.rewind.assert_called_once()
        trajectory.read_frame(1)
        np.testing.assert_allclose(trajectory.cell_matrix, np.diag([22.0, 22.0, 22.0]), atol=1e-10)
        np.testing.assert_array_equal(trajectory.x_solvent, np.full((4, 3), 2.0))


@patch("mddfMD.trajectories.mda.MD.Universe")
def test_mda_missing_cell_raises(mock_universe, mock_mdanalysis_universe, selections):
    mock_mdanalysis_universe.trajectory.__getitem__.side_effect = (
        lambda index: _timestep(None, np.zeros((5, 3)))
    )
    mock_universe.return_value = mock_mdanalysis_universe
    trajectory = MDATrajectory("traj.xtc", "topol.pdb", *selections)
    with trajectory:
        with pytest.raises(DataUnavailableError):
            trajectory.read_frame(0)


@patch("mddfMD.trajectories.mda.MD.Universe", side_effect=Exception("fail"))
def test_mda_raises_on_universe_failure(mock_universe, selections):
    with pytest.raises(RuntimeError, match="Failed to load MDAnalysis Universe"):
        MDATrajectory("traj.xtc", "topol.pdb", *selections)


def test_mda_raises_no_topology(selections):
    with pytest.raises(ValueError, match="topology"):
        MDATrajectory("traj.xtc", "", *selections)


def test_selection_from_atomgroup():
    atomgroup = MagicMock()
    atomgroup.indices = np.array([3, 4, 5, 6, 7, 8])
    atomgroup.names = np.array(["OW", "HW1", "HW2"] * 2)
    hydrogens = MagicMock()
    hydrogens.indices = np.array([4, 5, 7, 8])
    selection = selection_from_atomgroup(
        atomgroup, natomspermol=3, group_names=["H"], groups=[hydrogens]
    )
    assert selection.nmols == 2
    assert selection.names == ["OW", "HW1", "HW2", "OW", "HW1", "HW2"]
    assert selection.custom_groups
    assert selection.ngroups == 1
