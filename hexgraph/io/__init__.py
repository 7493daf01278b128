"""
Graph persistence for the hexgraph routing library.
"""

from .codec import (
    serialize,
    deserialize,
    save_graph,
    load_graph,
    MAGIC,
    FORMAT_VERSION,
)

__all__ = [
    "serialize",
    "deserialize",
    "save_graph",
    "load_graph",
    "MAGIC",
    "FORMAT_VERSION",
]
