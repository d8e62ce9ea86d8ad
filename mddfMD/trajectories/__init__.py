"""
Trajectory handling package for mddfMD.

This package provides classes for reading molecular dynamics trajectories
from file formats supported by MDAnalysis and from in-memory arrays.

Classes
-------
MDATrajectory
    MDAnalysis-based trajectory reader.
NumpyTrajectory
    In-memory NumPy array trajectory.

Exceptions
----------
DataUnavailableError
    Raised when requested data is not available for a frame.
"""

from ._base import DataUnavailableError, Trajectory
from .mda import MDATrajectory, selection_from_atomgroup
from .numpy import NumpyTrajectory


__all__ = [
    # Trajectory classes
    "Trajectory",
    "MDATrajectory",
    "NumpyTrajectory",
    # Selections
    "selection_from_atomgroup",
    # Exception
    "DataUnavailableError",
]
