"""
Order log readers.

BinaryReader is the low-level stream decoder: it decompresses the archive,
parses the header and yields one Message per record from a single forward
cursor. OrderLogReader splits the same stream into the midnight depth
snapshot and the order update stream.

Example:
    >>> with OrderLogReader.open("BTC_20250601.bin.lz4") as log:
    ...     snapshot = log.read_depth_snapshot()
    ...     for update in log.order_updates():
    ...         print(update.block_number, update.status.wire_name, update.px_str)
"""

import logging
import os
from typing import TYPE_CHECKING, BinaryIO, Iterator, Optional, Union

from .._internal import formats
from .._internal.compression import decompress, detect_compression, read_source, source_name
from ..errors import ArchiveError, CorruptError
from .records import (
    ORDER_UPDATE_LAYOUTS,
    DepthLevel,
    DepthSnapshot,
    EndOfSnapshot,
    FileHeader,
    Message,
    OrderUpdate,
    Side,
    decode_depth_level,
    decode_end_of_snapshot,
    decode_file_header,
)

if TYPE_CHECKING:
    from .verify import VerificationStats


logger = logging.getLogger(__name__)

Source = Union[str, "os.PathLike[str]", BinaryIO]

# Cursor phases
_LEVELS = "levels"
_END = "end"
_UPDATES = "updates"
_DONE = "done"


class BinaryReader:
    """
    Streaming message decoder for one order log file.

    The whole archive is decompressed into memory on open; messages are then
    decoded one record at a time from a single cursor. Iteration is
    single-pass: a second pass needs a new reader.

    Args:
        source: File path or binary file handle
        compression: "auto" (detect from magic bytes), "lz4", "zstd" or "none"

    Example:
        >>> reader = BinaryReader.open("ETH_20250601.bin.lz4")
        >>> for msg in reader.messages():
        ...     ...
    """

    def __init__(self, source: Source, compression: str = "auto"):
        self._load(read_source(source), source_name(source), compression)

    @classmethod
    def open(cls, path: Union[str, "os.PathLike[str]"], compression: str = "auto") -> "BinaryReader":
        """Open an order log by path."""
        return cls(path, compression=compression)

    @classmethod
    def from_file(cls, handle: BinaryIO, compression: str = "auto") -> "BinaryReader":
        """Open an order log from an already opened binary handle."""
        return cls(handle, compression=compression)

    @classmethod
    def from_bytes(cls, data: bytes, compression: str = "auto") -> "BinaryReader":
        """Open an order log held in memory (compressed or not)."""
        reader = cls.__new__(cls)
        reader._load(bytes(data), "<bytes>", compression)
        return reader

    def _load(self, raw: bytes, name: str, compression: str):
        # Sizes are set before the header is parsed so they survive a corrupt header
        self.name = name
        self.compression = detect_compression(raw) if compression == "auto" else compression
        self.raw_size = len(raw)
        self.decompressed_size = 0
        data = decompress(raw, self.compression)
        self.decompressed_size = len(data)

        self._buf: Optional[memoryview] = memoryview(data)
        self._header = decode_file_header(self._buf)
        self._update_layout, self._decode_update = ORDER_UPDATE_LAYOUTS[self._header.version]

        self._offset = formats.FILE_HEADER.size
        self._records_read = 0
        self._phase = _LEVELS
        self._side_counts = {Side.BID: 0, Side.ASK: 0}
        self._error: Optional[CorruptError] = None

        logger.debug(
            "opened order log %s: %s, %d -> %d bytes, version=%d asset=%d levels=%d+%d",
            name, self.compression, self.raw_size, self.decompressed_size,
            self._header.version, self._header.asset_id,
            self._header.bid_levels, self._header.ask_levels,
        )

    @property
    def header(self) -> FileHeader:
        """Parsed file header."""
        return self._header

    @property
    def offset(self) -> int:
        """Byte offset of the next record in the decompressed archive."""
        return self._offset

    @property
    def records_read(self) -> int:
        """Number of records decoded so far (header excluded)."""
        return self._records_read

    # =========================================================================
    # Iteration
    # =========================================================================

    def messages(self) -> Iterator[Message]:
        """
        Iterate the remaining messages from the current cursor.

        Raises:
            CorruptError: At the first record that cannot be decoded. Messages
                          yielded before the failure remain valid.
        """
        while True:
            msg = self.next_message()
            if msg is None:
                return
            yield msg

    def __iter__(self) -> Iterator[Message]:
        return self.messages()

    def next_message(self) -> Optional[Message]:
        """Decode the next record and advance the cursor. Returns None at end of stream."""
        if self._error is not None:
            raise self._error
        if self._buf is None:
            raise ArchiveError("Reader is closed")

        if self._phase == _LEVELS and self._records_read == self._header.depth_levels:
            self._phase = _END

        buf = self._buf
        offset = self._offset
        remaining = len(buf) - offset

        if self._phase == _LEVELS:
            tag, layout = formats.TAG_DEPTH_LEVEL, formats.DEPTH_LEVEL
        elif self._phase == _END:
            tag, layout = formats.TAG_END_OF_SNAPSHOT, formats.END_OF_SNAPSHOT
        elif self._phase == _UPDATES:
            if remaining == 0:
                self._phase = _DONE
                return None
            tag, layout = formats.TAG_ORDER_UPDATE, self._update_layout
        else:
            return None

        name = formats.TAG_NAMES[tag]
        if remaining < layout.size:
            self._fail(
                f"Truncated {name} record {self._records_read} at offset {offset}: "
                f"need {layout.size} bytes, got {remaining}",
                offset, expected=layout.size, actual=remaining,
            )

        actual_tag = buf[offset]
        if actual_tag != tag:
            actual_name = formats.TAG_NAMES.get(actual_tag, f"unknown tag {actual_tag}")
            self._fail(
                f"Unexpected record kind at offset {offset} (record {self._records_read}): "
                f"expected {name}, got {actual_name}",
                offset, expected=tag, actual=actual_tag,
            )

        try:
            if tag == formats.TAG_DEPTH_LEVEL:
                msg = decode_depth_level(buf, offset, self._records_read)
            elif tag == formats.TAG_END_OF_SNAPSHOT:
                msg = decode_end_of_snapshot(buf, offset, self._records_read)
            else:
                msg = self._decode_update(buf, offset, self._records_read)
        except CorruptError as e:
            self._error = e
            raise

        if isinstance(msg, DepthLevel):
            self._side_counts[msg.side] += 1
        elif isinstance(msg, EndOfSnapshot):
            self._check_snapshot_section(msg, offset)
            self._phase = _UPDATES

        self._offset = offset + layout.size
        self._records_read += 1
        return msg

    def _check_snapshot_section(self, marker: EndOfSnapshot, offset: int):
        header = self._header
        if marker.level_count != header.depth_levels:
            self._fail(
                f"End of snapshot at offset {offset} declares {marker.level_count} levels, "
                f"header declares {header.depth_levels}",
                offset, expected=header.depth_levels, actual=marker.level_count,
            )
        bids, asks = self._side_counts[Side.BID], self._side_counts[Side.ASK]
        if (bids, asks) != (header.bid_levels, header.ask_levels):
            self._fail(
                f"Snapshot section holds {bids} bid / {asks} ask levels, "
                f"header declares {header.bid_levels} / {header.ask_levels}",
                offset, expected=(header.bid_levels, header.ask_levels), actual=(bids, asks),
            )

    def _fail(self, message: str, offset: int, expected=None, actual=None):
        self._error = CorruptError(
            message,
            offset=offset,
            record_index=self._records_read,
            expected=expected,
            actual=actual,
        )
        raise self._error

    # =========================================================================
    # Verification
    # =========================================================================

    @staticmethod
    def verify(source: Source, compression: str = "auto") -> "VerificationStats":
        """Decode a whole order log and return its statistics. See orderlog.verify."""
        from .verify import verify
        return verify(source, compression=compression)

    # =========================================================================
    # Context manager
    # =========================================================================

    def close(self):
        """Release the decompressed buffer."""
        self._buf = None

    def __enter__(self) -> "BinaryReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class OrderLogReader:
    """
    Session over one order log: midnight depth snapshot, then order updates.

    Calling order_updates() before read_depth_snapshot() skips the snapshot
    section transparently; the skipped snapshot is kept and still returned by
    a later read_depth_snapshot().

    Args:
        source: File path or binary file handle
        compression: "auto" (detect from magic bytes), "lz4", "zstd" or "none"
    """

    def __init__(self, source: Source, compression: str = "auto"):
        self._reader = BinaryReader(source, compression=compression)
        self._snapshot: Optional[DepthSnapshot] = None

    @classmethod
    def _wrap(cls, reader: BinaryReader) -> "OrderLogReader":
        log = cls.__new__(cls)
        log._reader = reader
        log._snapshot = None
        return log

    @classmethod
    def open(cls, path: Union[str, "os.PathLike[str]"], compression: str = "auto") -> "OrderLogReader":
        """Open an order log by path."""
        return cls(path, compression=compression)

    @classmethod
    def from_file(cls, handle: BinaryIO, compression: str = "auto") -> "OrderLogReader":
        """Open an order log from an already opened binary handle."""
        return cls(handle, compression=compression)

    @classmethod
    def from_bytes(cls, data: bytes, compression: str = "auto") -> "OrderLogReader":
        """Open an order log held in memory (compressed or not)."""
        return cls._wrap(BinaryReader.from_bytes(data, compression=compression))

    def header(self) -> FileHeader:
        """Parsed file header."""
        return self._reader.header

    def read_depth_snapshot(self) -> DepthSnapshot:
        """
        Read the midnight depth snapshot.

        Consumes every DepthLevel up to the end-of-snapshot marker and splits
        them into bids and asks in file order. Repeated calls return the same
        snapshot.
        """
        if self._snapshot is not None:
            return self._snapshot

        bids: list[DepthLevel] = []
        asks: list[DepthLevel] = []
        while True:
            msg = self._reader.next_message()
            if isinstance(msg, DepthLevel):
                (bids if msg.side == Side.BID else asks).append(msg)
            elif isinstance(msg, EndOfSnapshot):
                self._snapshot = DepthSnapshot(
                    bids=tuple(bids),
                    asks=tuple(asks),
                    block_number=msg.block_number,
                )
                return self._snapshot
            else:
                # BinaryReader only yields levels and the marker before any update
                raise CorruptError(
                    f"Expected depth snapshot section, got {type(msg).__name__}",
                    offset=self._reader.offset,
                    record_index=self._reader.records_read,
                )

    def order_updates(self) -> Iterator[OrderUpdate]:
        """
        Iterate order updates in file order.

        Raises:
            CorruptError: At the first record that cannot be decoded. Updates
                          yielded before the failure remain valid.
        """
        if self._snapshot is None:
            logger.debug("%s: skipping depth snapshot section", self._reader.name)
            self.read_depth_snapshot()

        while True:
            msg = self._reader.next_message()
            if msg is None:
                return
            yield msg

    def close(self):
        self._reader.close()

    def __enter__(self) -> "OrderLogReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
