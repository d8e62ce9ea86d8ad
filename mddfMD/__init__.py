"""Minimum-distance distribution functions and Kirkwood-Buff integrals from molecular dynamics"""
from .cell import CutoffTooLargeError
from .contributions import SoluteGroup, SolventGroup, contributions
from .io import load, save, write_table
from .mddf import accumulate, mddf
from .options import Options
from .result import Result, sum_results
from .selection import AtomSelection
from .trajectories import (
    DataUnavailableError,
    MDATrajectory,
    NumpyTrajectory,
    Trajectory,
    selection_from_atomgroup,
)

MAJOR = 0
MINOR = 1
MICRO = 0
__version__ = f'{MAJOR:d}.{MINOR:d}.{MICRO:d}'

__all__ = [
    "AtomSelection",
    "CutoffTooLargeError",
    "DataUnavailableError",
    "MDATrajectory",
    "NumpyTrajectory",
    "Options",
    "Result",
    "SoluteGroup",
    "SolventGroup",
    "Trajectory",
    "accumulate",
    "contributions",
    "load",
    "mddf",
    "save",
    "selection_from_atomgroup",
    "sum_results",
    "write_table",
]
