"""
Multi-snapshot reader.

A .snapshots archive holds several full L4 books of one instrument captured
at different block heights. The header and index are parsed eagerly on open;
each snapshot body is decoded only when asked for, from its own byte range.

Example:
    >>> reader = MultiSnapshotReader.open("ETH_20250601.snapshots.lz4")
    >>> for entry in reader.list_snapshots():
    ...     print(entry.block_height, entry.order_count)
    >>> orders = reader.read_snapshot(reader.list_snapshots()[-1].block_height)
"""

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, Iterator, Optional, Union

from sortedcontainers import SortedDict

from .._internal import formats
from .._internal.compression import decompress, detect_compression, read_source, source_name
from ..errors import ArchiveError, CorruptError, SnapshotNotFoundError
from ..identifiers import format_wallet_address
from ..orderlog.records import Side
from ..scaling import format_price, format_size

if TYPE_CHECKING:
    from .book import OrderBook


logger = logging.getLogger(__name__)

Source = Union[str, "os.PathLike[str]", BinaryIO]


@dataclass(frozen=True)
class MultiSnapHeader:
    """Multi-snapshot file header."""

    version: int
    asset_id: int
    snapshot_count: int
    order_record_size: int
    bodies_offset: int


@dataclass(frozen=True)
class SnapshotIndexEntry:
    """Index entry locating one snapshot body in the archive."""

    block_height: int
    timestamp_ms: int
    body_offset: int
    order_count: int
    is_midnight: bool


@dataclass(frozen=True)
class SnapshotOrder:
    """Resting order at the moment of a snapshot. Prices/sizes are scaled by 10^8."""

    oid: int
    wallet: bytes
    side: Side
    px: int
    sz: int
    timestamp_ms: int

    @property
    def user(self) -> str:
        """Wallet address as a lowercase 0x string."""
        return format_wallet_address(self.wallet)

    @property
    def px_str(self) -> str:
        return format_price(self.px)

    @property
    def sz_str(self) -> str:
        return format_size(self.sz)


class SnapshotIndex:
    """
    Snapshot index entries keyed by block height.

    Uses SortedDict so that listing is always in ascending block height and
    range queries are O(log n + k).
    """

    def __init__(self, entries: list[SnapshotIndexEntry]):
        self._by_height: SortedDict[int, SnapshotIndexEntry] = SortedDict(
            (e.block_height, e) for e in entries
        )
        self._entries = tuple(self._by_height.values())
        self._midnight = next((e for e in self._entries if e.is_midnight), None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, block_height: int) -> bool:
        return block_height in self._by_height

    def __iter__(self) -> Iterator[SnapshotIndexEntry]:
        return iter(self._entries)

    @property
    def entries(self) -> tuple[SnapshotIndexEntry, ...]:
        return self._entries

    @property
    def midnight(self) -> Optional[SnapshotIndexEntry]:
        return self._midnight

    def get(self, block_height: int) -> Optional[SnapshotIndexEntry]:
        """Exact lookup by block height."""
        return self._by_height.get(block_height)

    def between(self, start: int, end: int) -> list[SnapshotIndexEntry]:
        """Entries with start <= block_height <= end, ascending."""
        return [self._by_height[h] for h in self._by_height.irange(start, end)]


class SnapshotBody:
    """Byte range of one snapshot body inside the decompressed archive."""

    def __init__(self, buf: memoryview, entry: SnapshotIndexEntry, record_size: int):
        self.entry = entry
        self.record_size = record_size
        self.start = entry.body_offset
        self.end = entry.body_offset + entry.order_count * record_size
        self._buf = buf

    @property
    def size(self) -> int:
        return self.end - self.start

    def decode(self) -> list[SnapshotOrder]:
        """Decode every order record of this body, in file order."""
        orders = []
        layout = formats.SNAPSHOT_ORDER
        for i, offset in enumerate(range(self.start, self.end, self.record_size)):
            wallet, side, oid, px, sz, timestamp_ms = layout.unpack_from(self._buf, offset)
            try:
                side = Side(side)
            except ValueError:
                raise CorruptError(
                    f"Unknown side code {side} in order {i} of snapshot at block "
                    f"{self.entry.block_height} (offset {offset})",
                    offset=offset,
                    record_index=i,
                    actual=side,
                ) from None
            orders.append(
                SnapshotOrder(oid=oid, wallet=wallet, side=side, px=px, sz=sz, timestamp_ms=timestamp_ms)
            )
        return orders


def decode_multi_snap_header(buf) -> MultiSnapHeader:
    """Decode and validate the 24-byte multi-snapshot header."""
    if len(buf) < formats.MULTI_SNAP_HEADER.size:
        raise CorruptError(
            f"Truncated snapshot header: need {formats.MULTI_SNAP_HEADER.size} bytes, got {len(buf)}",
            offset=0,
            expected=formats.MULTI_SNAP_HEADER.size,
            actual=len(buf),
        )
    magic, version, asset_id, count, record_size, bodies_offset = formats.MULTI_SNAP_HEADER.unpack_from(buf, 0)
    if magic != formats.SNAPSHOT_MAGIC:
        raise CorruptError(
            f"Bad magic {magic!r} (expected {formats.SNAPSHOT_MAGIC!r})",
            offset=0,
            expected=formats.SNAPSHOT_MAGIC,
            actual=magic,
        )
    if version != formats.SNAPSHOT_VERSION:
        raise CorruptError(
            f"Unsupported snapshot version {version} (supported: {formats.SNAPSHOT_VERSION})",
            offset=4,
            expected=formats.SNAPSHOT_VERSION,
            actual=version,
        )
    if record_size != formats.SNAPSHOT_ORDER.size:
        raise CorruptError(
            f"Order record size {record_size} does not match version {version} ({formats.SNAPSHOT_ORDER.size})",
            offset=12,
            expected=formats.SNAPSHOT_ORDER.size,
            actual=record_size,
        )
    index_end = formats.MULTI_SNAP_HEADER.size + count * formats.INDEX_ENTRY.size
    if bodies_offset != index_end:
        raise CorruptError(
            f"Bodies offset {bodies_offset} does not follow an index of {count} entries (expected {index_end})",
            offset=16,
            expected=index_end,
            actual=bodies_offset,
        )
    if len(buf) < index_end:
        raise CorruptError(
            f"Truncated snapshot index: need {index_end} bytes, got {len(buf)}",
            offset=formats.MULTI_SNAP_HEADER.size,
            expected=index_end,
            actual=len(buf),
        )
    return MultiSnapHeader(
        version=version,
        asset_id=asset_id,
        snapshot_count=count,
        order_record_size=record_size,
        bodies_offset=bodies_offset,
    )


def decode_index(buf, header: MultiSnapHeader) -> list[SnapshotIndexEntry]:
    """
    Decode and validate the index table.

    Checks: strictly ascending block heights, midnight flag set exactly on
    block height 0, and body ranges that are ordered, non-overlapping and
    inside the archive.
    """
    entries: list[SnapshotIndexEntry] = []
    prev_end = header.bodies_offset
    for i in range(header.snapshot_count):
        offset = formats.MULTI_SNAP_HEADER.size + i * formats.INDEX_ENTRY.size
        height, timestamp_ms, body_offset, order_count, flags = formats.INDEX_ENTRY.unpack_from(buf, offset)
        is_midnight = bool(flags & formats.FLAG_MIDNIGHT)

        if entries and height <= entries[-1].block_height:
            raise CorruptError(
                f"Index entry {i} block height {height} is not above previous {entries[-1].block_height}",
                offset=offset,
                record_index=i,
                expected=f"> {entries[-1].block_height}",
                actual=height,
            )
        if is_midnight != (height == 0):
            raise CorruptError(
                f"Index entry {i}: midnight flag {is_midnight} inconsistent with block height {height}",
                offset=offset,
                record_index=i,
                actual=flags,
            )
        body_end = body_offset + order_count * header.order_record_size
        if body_offset < prev_end:
            raise CorruptError(
                f"Index entry {i} body at {body_offset} overlaps previous body ending at {prev_end}",
                offset=offset,
                record_index=i,
                expected=f">= {prev_end}",
                actual=body_offset,
            )
        if body_end > len(buf):
            raise CorruptError(
                f"Index entry {i} body [{body_offset}, {body_end}) runs past end of archive ({len(buf)} bytes)",
                offset=offset,
                record_index=i,
                expected=body_end,
                actual=len(buf),
            )
        prev_end = body_end

        entries.append(
            SnapshotIndexEntry(
                block_height=height,
                timestamp_ms=timestamp_ms,
                body_offset=body_offset,
                order_count=order_count,
                is_midnight=is_midnight,
            )
        )
    return entries


class MultiSnapshotReader:
    """
    Random and bulk access to the L4 snapshots of one archive.

    Args:
        source: File path or binary file handle
        compression: "auto" (detect from magic bytes), "lz4", "zstd" or "none"
    """

    def __init__(self, source: Source, compression: str = "auto"):
        self._load(read_source(source), source_name(source), compression)

    @classmethod
    def open(cls, path: Union[str, "os.PathLike[str]"], compression: str = "auto") -> "MultiSnapshotReader":
        """Open a snapshot archive by path."""
        return cls(path, compression=compression)

    @classmethod
    def from_file(cls, handle: BinaryIO, compression: str = "auto") -> "MultiSnapshotReader":
        """Open a snapshot archive from an already opened binary handle."""
        return cls(handle, compression=compression)

    @classmethod
    def from_bytes(cls, data: bytes, compression: str = "auto") -> "MultiSnapshotReader":
        """Open a snapshot archive held in memory (compressed or not)."""
        reader = cls.__new__(cls)
        reader._load(bytes(data), "<bytes>", compression)
        return reader

    def _load(self, raw: bytes, name: str, compression: str):
        self.name = name
        self.compression = detect_compression(raw) if compression == "auto" else compression
        self.raw_size = len(raw)
        data = decompress(raw, self.compression)
        self.decompressed_size = len(data)

        self._buf: Optional[memoryview] = memoryview(data)
        self._header = decode_multi_snap_header(self._buf)
        self._index = SnapshotIndex(decode_index(self._buf, self._header))

        logger.debug(
            "opened snapshot archive %s: %s, %d -> %d bytes, asset=%d snapshots=%d midnight=%s",
            name, self.compression, self.raw_size, self.decompressed_size,
            self._header.asset_id, len(self._index), self._index.midnight is not None,
        )

    @property
    def header(self) -> MultiSnapHeader:
        """Parsed archive header."""
        return self._header

    @property
    def index(self) -> SnapshotIndex:
        return self._index

    def list_snapshots(self) -> tuple[SnapshotIndexEntry, ...]:
        """All index entries in ascending block height."""
        return self._index.entries

    def snapshots_between(self, start: int, end: int) -> list[SnapshotIndexEntry]:
        """Index entries with start <= block_height <= end."""
        return self._index.between(start, end)

    def has_midnight(self) -> bool:
        return self._index.midnight is not None

    def snapshot_count(self) -> int:
        return len(self._index)

    def _body(self, entry: SnapshotIndexEntry) -> SnapshotBody:
        if self._buf is None:
            raise ArchiveError("Reader is closed")
        return SnapshotBody(self._buf, entry, self._header.order_record_size)

    def read_midnight_snapshot(self) -> list[SnapshotOrder]:
        """
        Decode the synthetic midnight snapshot (block height 0).

        Raises:
            SnapshotNotFoundError: If the archive has no midnight snapshot
        """
        entry = self._index.midnight
        if entry is None:
            raise SnapshotNotFoundError(f"{self.name} has no midnight snapshot", block_height=0)
        return self._body(entry).decode()

    def read_snapshot(self, block_height: int) -> list[SnapshotOrder]:
        """
        Decode the snapshot taken at exactly this block height.

        Raises:
            SnapshotNotFoundError: If no index entry has this block height
        """
        entry = self._index.get(block_height)
        if entry is None:
            raise SnapshotNotFoundError(
                f"No snapshot at block height {block_height} in {self.name}",
                block_height=block_height,
            )
        return self._body(entry).decode()

    def read_all_snapshots(self) -> list[tuple[SnapshotIndexEntry, list[SnapshotOrder]]]:
        """Decode every snapshot in ascending block height. Meant for export/validation."""
        return [(entry, self._body(entry).decode()) for entry in self._index]

    def read_order_book(self, block_height: int) -> "OrderBook":
        """Load the snapshot at this block height into an OrderBook."""
        from .book import OrderBook
        return OrderBook.from_orders(self._header.asset_id, self.read_snapshot(block_height))

    # =========================================================================
    # Context manager
    # =========================================================================

    def close(self):
        """Release the decompressed buffer."""
        self._buf = None

    def __enter__(self) -> "MultiSnapshotReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
