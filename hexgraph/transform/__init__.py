"""
Tabular extraction for the hexgraph routing library.

This package materializes cell sets, graph adjacency, nearest-cell lookups and
batch routing results as pandas DataFrames.
"""

from .frames import (
    cells_to_dataframe,
    edges_to_dataframe,
    nearest_to_dataframe,
    batch_results_to_dataframe,
)

__all__ = [
    "cells_to_dataframe",
    "edges_to_dataframe",
    "nearest_to_dataframe",
    "batch_results_to_dataframe",
]
