"""
Hydromancer Archive

Decoders for Hyperliquid order log and L4 snapshot archives.

Order log example:
    >>> from hydromancer_archive import OrderLogReader
    >>> with OrderLogReader.open("BTC_20250601.bin.lz4") as log:
    ...     snapshot = log.read_depth_snapshot()
    ...     print(snapshot.best_bid().px_str, snapshot.best_ask().px_str)
    ...     for update in log.order_updates():
    ...         print(update.block_number, update.user, update.status.wire_name)

Snapshot example:
    >>> from hydromancer_archive import MultiSnapshotReader
    >>> reader = MultiSnapshotReader.open("BTC_20250601.snapshots.lz4")
    >>> if reader.has_midnight():
    ...     orders = reader.read_midnight_snapshot()

Verification example:
    >>> from hydromancer_archive import BinaryReader
    >>> stats = BinaryReader.verify("BTC_20250601.bin.lz4")
    >>> print(stats.to_dict())
"""

from .errors import (
    ArchiveError,
    ArchiveIOError,
    CorruptError,
    DecompressionError,
    SnapshotNotFoundError,
)
from .identifiers import (
    format_cloid,
    format_wallet_address,
    parse_cloid,
    parse_wallet_address,
)
from .orderlog import (
    BinaryReader,
    DepthLevel,
    DepthSnapshot,
    EndOfSnapshot,
    FileHeader,
    Message,
    OrderLogReader,
    OrderStatus,
    OrderType,
    OrderUpdate,
    Side,
    TimeInForce,
    TriggerCondition,
    VerificationStats,
    verify,
)
from .scaling import (
    SCALE,
    decimal_to_fixed,
    fixed_to_decimal,
    format_price,
    format_size,
)
from .snapshots import (
    MultiSnapHeader,
    MultiSnapshotReader,
    OrderBook,
    SnapshotIndexEntry,
    SnapshotOrder,
)

__version__ = "0.1.0"

__all__ = [
    # Order logs
    "BinaryReader",
    "OrderLogReader",
    "FileHeader",
    "DepthLevel",
    "EndOfSnapshot",
    "OrderUpdate",
    "Message",
    "DepthSnapshot",
    "Side",
    "OrderType",
    "TimeInForce",
    "TriggerCondition",
    "OrderStatus",
    # Verification
    "VerificationStats",
    "verify",
    # Snapshots
    "MultiSnapshotReader",
    "MultiSnapHeader",
    "SnapshotIndexEntry",
    "SnapshotOrder",
    "OrderBook",
    # Scaling utilities
    "SCALE",
    "decimal_to_fixed",
    "fixed_to_decimal",
    "format_price",
    "format_size",
    # Identifiers
    "parse_wallet_address",
    "format_wallet_address",
    "parse_cloid",
    "format_cloid",
    # Exceptions
    "ArchiveError",
    "ArchiveIOError",
    "DecompressionError",
    "CorruptError",
    "SnapshotNotFoundError",
    # Version
    "__version__",
]
