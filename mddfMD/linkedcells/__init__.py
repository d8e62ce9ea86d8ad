"""Linked-cell lists for minimum-distance searches under periodic boundaries."""

from .cell_list import CellList, get_backend_functions, query_minimum_distances

__all__ = [
    "CellList",
    "get_backend_functions",
    "query_minimum_distances",
]
