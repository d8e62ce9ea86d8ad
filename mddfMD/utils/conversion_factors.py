"""
Unit conversion utilities for mddfMD.

Distances are in Angstrom, so volumes come out in cubic Angstrom and number
densities in sites per cubic Angstrom. The factors below convert them to the
units used to report Kirkwood-Buff integrals and concentrations.

Notes
-----
- Uses values from :mod:`scipy.constants`.
"""

import scipy.constants as constants

#: Cubic Angstrom in one cubic centimetre.
ANGS3_PER_CM3 = 1e24

#: Cubic Angstrom in one litre.
ANGS3_PER_L = 1e27


def angs3_to_cm3_per_mol() -> float:
    """
    Factor converting a volume per molecule in A^3 to cm^3/mol.

    Examples
    --------
    >>> from mddfMD.utils import angs3_to_cm3_per_mol
    >>> round(angs3_to_cm3_per_mol(), 6)
    0.602214
    """
    return constants.Avogadro / ANGS3_PER_CM3


def angs3_to_l_per_mol() -> float:
    """Factor converting a volume per molecule in A^3 to L/mol."""
    return constants.Avogadro / ANGS3_PER_L


def sites_per_angs3_to_mol_per_l() -> float:
    """Factor converting a number density in sites/A^3 to mol/L."""
    return ANGS3_PER_L / constants.Avogadro
