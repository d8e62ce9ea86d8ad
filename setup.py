#! /usr/bin/env python
"""
setup.py for mddfMD
"""

# System imports
import io
import re
from os import path
from setuptools import setup, find_packages

PACKAGES = find_packages(exclude=['tests*'])

THIS_DIRECTORY = path.abspath(path.dirname(__file__))

# versioning (read without importing the package, which needs numpy)


def get_version():
    """Version string assembled from MAJOR, MINOR and MICRO in mddfMD/__init__.py."""
    with io.open(path.join(THIS_DIRECTORY, 'mddfMD', '__init__.py')) as f:
        source = f.read()
    parts = [re.search(rf'^{name} = (\d+)', source, re.M).group(1)
             for name in ('MAJOR', 'MINOR', 'MICRO')]
    return '.'.join(parts)


VERSION = get_version()

with io.open(path.join(THIS_DIRECTORY, 'README.md')) as f:
    LONG_DESCRIPTION = f.read()

INFO = {
        'name': 'mddfmd',
        'description': 'Minimum-distance distribution functions and '
                       'Kirkwood-Buff integrals from molecular dynamics.',
        'packages': PACKAGES,
        'include_package_data': True,
        'python_requires': '>=3.10',
        'install_requires': ['numpy', 'numba', 'scipy>=1.9.3', 'tqdm',
                             'MDAnalysis>=2.4.2'],
        'extras_require': {'test': ['pytest']},
        'version': VERSION,
        'license': 'MIT',
        'long_description': LONG_DESCRIPTION,
        'long_description_content_type': 'text/markdown',
        'classifiers': ['Development Status :: 4 - Beta',
                        'Intended Audience :: Science/Research',
                        'License :: OSI Approved :: MIT License',
                        'Natural Language :: English',
                        'Operating System :: OS Independent',
                        'Programming Language :: Python :: 3.10',
                        'Topic :: Scientific/Engineering',
                        'Topic :: Scientific/Engineering :: Chemistry',
                        'Topic :: Scientific/Engineering :: Physics']
        }

####################################################################
# this is where setup starts
####################################################################


def setup_package():
    """
    Runs package setup
    """
    setup(**INFO)


if __name__ == '__main__':
    setup_package()
