"""
Utility functions for mddfMD.

This package provides shared utilities used across the mddfMD codebase.
"""

from .conversion_factors import (
    angs3_to_cm3_per_mol,
    angs3_to_l_per_mol,
    sites_per_angs3_to_mol_per_l,
)

__all__ = [
    "angs3_to_cm3_per_mol",
    "angs3_to_l_per_mol",
    "sites_per_angs3_to_mol_per_l",
]
