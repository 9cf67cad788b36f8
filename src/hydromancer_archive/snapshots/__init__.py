"""
Multi-snapshot decoding module.

Provides random and bulk access to the full L4 books stored in a
.snapshots archive, plus an OrderBook view over any one of them.
"""

from .book import OrderBook, PriceLevel
from .reader import (
    MultiSnapHeader,
    MultiSnapshotReader,
    SnapshotBody,
    SnapshotIndex,
    SnapshotIndexEntry,
    SnapshotOrder,
)

__all__ = [
    "MultiSnapshotReader",
    "MultiSnapHeader",
    "SnapshotIndex",
    "SnapshotIndexEntry",
    "SnapshotBody",
    "SnapshotOrder",
    # Book view
    "OrderBook",
    "PriceLevel",
]
