"""
Order log verification.

Decodes a whole order log in one forward pass and summarizes what it saw,
without keeping decoded records around.

Example:
    >>> stats = verify("BTC_20250601.bin.lz4")
    >>> print(f"{stats.order_updates} updates, {stats.distinct_wallets} wallets")
    >>> print(f"Compression: {stats.compression_ratio:.1f}x")
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from .._internal.compression import read_source, source_name
from .._internal.stats import RunningRange
from ..errors import CorruptError
from .reader import BinaryReader, Source
from .records import DepthLevel, EndOfSnapshot, OrderStatus, OrderUpdate, Side


logger = logging.getLogger(__name__)


@dataclass
class VerificationStats:
    """
    Summary of one order log.

    Attributes:
        asset_id: Instrument id from the header (None if the header was unreadable)
        version: Record layout version from the header
        total_messages: Records decoded (levels + marker + updates)
        depth_levels: DepthLevel records
        end_of_snapshot: EndOfSnapshot records (1 for a complete file)
        order_updates: OrderUpdate records
        status_counts: OrderUpdate count per status
        side_counts: Count per side, depth levels and updates together
        distinct_wallets: Number of distinct wallets across order updates
        raw_bytes: Size of the file as stored
        decompressed_bytes: Size after decompression
        min_block / max_block: Block number range over order updates
        min_status_timestamp_ms / max_status_timestamp_ms: Status time range
        chronology_violations: Updates whose block number is below the previous one
    """

    asset_id: Optional[int] = None
    version: Optional[int] = None
    total_messages: int = 0
    depth_levels: int = 0
    end_of_snapshot: int = 0
    order_updates: int = 0
    status_counts: dict[OrderStatus, int] = field(default_factory=dict)
    side_counts: dict[Side, int] = field(default_factory=dict)
    distinct_wallets: int = 0
    raw_bytes: int = 0
    decompressed_bytes: int = 0
    min_block: Optional[int] = None
    max_block: Optional[int] = None
    min_status_timestamp_ms: Optional[int] = None
    max_status_timestamp_ms: Optional[int] = None
    chronology_violations: int = 0

    @property
    def compression_ratio(self) -> float:
        """Decompressed size over stored size (0.0 for an empty file)."""
        if not self.raw_bytes:
            return 0.0
        return self.decompressed_bytes / self.raw_bytes

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "asset_id": self.asset_id,
            "version": self.version,
            "total_messages": self.total_messages,
            "depth_levels": self.depth_levels,
            "end_of_snapshot": self.end_of_snapshot,
            "order_updates": self.order_updates,
            "status_counts": {s.wire_name: n for s, n in self.status_counts.items()},
            "side_counts": {s.code: n for s, n in self.side_counts.items()},
            "distinct_wallets": self.distinct_wallets,
            "raw_bytes": self.raw_bytes,
            "decompressed_bytes": self.decompressed_bytes,
            "compression_ratio": self.compression_ratio,
            "min_block": self.min_block,
            "max_block": self.max_block,
            "min_status_timestamp_ms": self.min_status_timestamp_ms,
            "max_status_timestamp_ms": self.max_status_timestamp_ms,
            "chronology_violations": self.chronology_violations,
        }


class _StatsAccumulator:
    """Running tallies for one pass: O(1) per message, O(distinct wallets) space."""

    def __init__(self, reader: BinaryReader):
        self.reader = reader
        self.total = 0
        self.levels = 0
        self.markers = 0
        self.updates = 0
        self.statuses: Counter = Counter()
        self.sides: Counter = Counter()
        self.wallets: set[bytes] = set()
        self.blocks = RunningRange()
        self.status_times = RunningRange()
        self.last_block: Optional[int] = None
        self.chronology_violations = 0

    def add(self, msg):
        self.total += 1
        if isinstance(msg, OrderUpdate):
            self.updates += 1
            self.statuses[msg.status] += 1
            self.sides[msg.side] += 1
            self.wallets.add(msg.wallet)
            self.blocks.record(msg.block_number)
            self.status_times.record(msg.status_timestamp_ms)
            if self.last_block is not None and msg.block_number < self.last_block:
                self.chronology_violations += 1
            self.last_block = msg.block_number
        elif isinstance(msg, DepthLevel):
            self.levels += 1
            self.sides[msg.side] += 1
        elif isinstance(msg, EndOfSnapshot):
            self.markers += 1

    def result(self) -> VerificationStats:
        header = self.reader.header
        return VerificationStats(
            asset_id=header.asset_id,
            version=header.version,
            total_messages=self.total,
            depth_levels=self.levels,
            end_of_snapshot=self.markers,
            order_updates=self.updates,
            status_counts=dict(self.statuses),
            side_counts=dict(self.sides),
            distinct_wallets=len(self.wallets),
            raw_bytes=self.reader.raw_size,
            decompressed_bytes=self.reader.decompressed_size,
            min_block=self.blocks.min,
            max_block=self.blocks.max,
            min_status_timestamp_ms=self.status_times.min,
            max_status_timestamp_ms=self.status_times.max,
            chronology_violations=self.chronology_violations,
        )


def verify(source: Source, compression: str = "auto") -> VerificationStats:
    """
    Decode every message of an order log and return its statistics.

    Args:
        source: File path or binary file handle
        compression: "auto" (detect from magic bytes), "lz4", "zstd" or "none"

    Returns:
        VerificationStats for the whole file

    Raises:
        ArchiveIOError: If the file cannot be read
        DecompressionError: If the compressed stream is malformed
        CorruptError: If a record fails to decode. Its ``stats`` attribute
                      holds the statistics gathered up to that record; for a
                      corrupt header only the byte sizes are filled in.
    """
    reader = BinaryReader.__new__(BinaryReader)
    try:
        reader._load(read_source(source), source_name(source), compression)
    except CorruptError as e:
        e.stats = VerificationStats(
            raw_bytes=reader.raw_size,
            decompressed_bytes=reader.decompressed_size,
        )
        raise

    with reader:
        acc = _StatsAccumulator(reader)
        try:
            for msg in reader.messages():
                acc.add(msg)
        except CorruptError as e:
            e.stats = acc.result()
            raise

        stats = acc.result()

    if stats.chronology_violations:
        logger.warning(
            "%s: %d order updates go back in block number",
            reader.name, stats.chronology_violations,
        )
    return stats
