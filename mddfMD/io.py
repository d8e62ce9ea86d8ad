"""
Persistence of Results.

Results are stored as JSON documents holding the counters, scalars,
options, selections, correlation mode and lifecycle state, so a saved
Result can be loaded and merged or finalized later. Finalized Results can
also be written as a plain-text table.
"""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np

from mddfMD.result import Result

#: Version of the JSON layout written by :func:`save`.
FORMAT_VERSION = 1


def save(result: Result, filename: str | Path) -> None:
    """
    Write a Result to a JSON file.

    Parameters
    ----------
    result : Result
        Result in any state.
    filename : str or Path
        Output file.
    """
    data = {'format_version': FORMAT_VERSION, **result.to_dict()}
    with open(filename, 'w') as f:
        json.dump(data, f)


def load(filename: str | Path) -> Result:
    """
    Read a Result written by :func:`save`.

    Raises
    ------
    ValueError
        If the file was written with an unsupported layout.
    """
    with open(filename) as f:
        data = json.load(f)
    version = data.get('format_version')
    if version != FORMAT_VERSION:
        raise ValueError(
            f"Unsupported result file version {version!r} in {filename} "
            f"(expected {FORMAT_VERSION})."
        )
    return Result.from_dict(data)


def write_table(result: Result, filename: str | Path) -> None:
    """
    Write the distributions of a finalized Result as a text table.

    The header lists the run parameters and the column names; see
    :meth:`Result.as_table` for the columns.

    Raises
    ------
    RuntimeError
        If the Result was not finalized.
    """
    table = result.as_table()
    header = "\n".join([
        "Minimum-distance distribution function",
        f"Correlation: {result.mode.name}",
        f"Frames: {result.nframes_read}",
        f"binstep = {result.binstep}, dbulk = {result.dbulk}, cutoff = {result.cutoff}",
        f"Bulk solvent density = {result.density.solvent_bulk} sites/A^3",
        f"Volumes: total = {result.volume.total}, domain = {result.volume.domain}, "
        f"bulk = {result.volume.bulk} A^3",
        "KB integrals in cm^3/mol",
        " ".join(table),
    ])
    np.savetxt(filename, np.column_stack(list(table.values())), header=header, fmt='%.10e')
