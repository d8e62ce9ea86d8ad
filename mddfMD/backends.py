"""
Process-wide settings read from the environment when mddfMD is imported.

``MDDFMD_BACKEND`` chooses the kernel that answers linked-cell
minimum-distance queries: ``numba`` (compiled, the default) or ``numpy``
(vectorised, no compilation step). ``MDDFMD_NTHREADS`` sets how many
frames are processed concurrently when ``Options.nthreads`` is 0; unset
means one thread per available core.

Both variables must be set before the first import, e.g.::

    MDDFMD_BACKEND=numpy MDDFMD_NTHREADS=4 python analysis.py
"""

from __future__ import annotations

import os

BACKEND_ENV_VAR = 'MDDFMD_BACKEND'
AVAILABLE_BACKENDS = frozenset({'numpy', 'numba'})
DEFAULT_BACKEND = 'numba'

NTHREADS_ENV_VAR = 'MDDFMD_NTHREADS'


def _resolve_backend() -> str:
    """Kernel name from ``MDDFMD_BACKEND``; blank means the default."""
    value = os.environ.get(BACKEND_ENV_VAR, '').strip().lower()
    if not value:
        return DEFAULT_BACKEND
    if value not in AVAILABLE_BACKENDS:
        raise ValueError(
            f"Invalid {BACKEND_ENV_VAR} '{value}'. "
            f"Choose one of: {', '.join(sorted(AVAILABLE_BACKENDS))}"
        )
    return value


def _resolve_nthreads() -> int:
    """
    Default number of frame workers.

    Raises
    ------
    ValueError
        If ``MDDFMD_NTHREADS`` is set to anything but a positive integer.
    """
    value = os.environ.get(NTHREADS_ENV_VAR, '').strip()
    if not value:
        return os.cpu_count() or 1
    try:
        nthreads = int(value)
    except ValueError:
        nthreads = 0
    if nthreads < 1:
        raise ValueError(
            f"Invalid {NTHREADS_ENV_VAR} '{value}'. Expected a positive number of threads."
        )
    return nthreads


BACKEND = _resolve_backend()
NTHREADS = _resolve_nthreads()


def get_backend() -> str:
    """Minimum-distance kernel in use, 'numba' or 'numpy'."""
    return BACKEND


def get_nthreads() -> int:
    """Worker threads used when ``Options.nthreads == 0``."""
    return NTHREADS
