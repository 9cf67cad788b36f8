"""Transport decompression for archive files (LZ4 frame, zstd, or raw)."""

import logging

import lz4.frame
import zstandard as zstd

from ..errors import ArchiveIOError, DecompressionError


logger = logging.getLogger(__name__)

LZ4_FRAME_MAGIC = b"\x04\x22\x4d\x18"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

COMPRESSION_MODES = ("auto", "lz4", "zstd", "none")


def detect_compression(data: bytes) -> str:
    """Return "lz4", "zstd" or "none" from the leading magic bytes."""
    head = bytes(data[:4])
    if head == LZ4_FRAME_MAGIC:
        return "lz4"
    if head == ZSTD_MAGIC:
        return "zstd"
    return "none"


def decompress(data: bytes, compression: str = "auto") -> bytes:
    """
    Decompress a whole archive.

    Args:
        data: Raw file contents
        compression: "auto" to detect from magic bytes, or force "lz4", "zstd", "none"

    Returns:
        Decompressed archive bytes
    """
    if compression not in COMPRESSION_MODES:
        raise ValueError(f"compression must be one of {COMPRESSION_MODES}, got {compression!r}")
    if compression == "auto":
        compression = detect_compression(data)

    logger.debug("decompressing %d bytes as %s", len(data), compression)

    if compression == "none":
        return bytes(data)

    if compression == "lz4":
        try:
            return lz4.frame.decompress(data)
        except RuntimeError as e:
            raise DecompressionError(f"Malformed LZ4 frame: {e}") from e

    # Streaming decompressobj handles frames written without a content size.
    # One decompressobj covers one frame; concatenated frames are decoded in turn.
    dctx = zstd.ZstdDecompressor()
    chunks = []
    remaining = bytes(data)
    while remaining:
        dobj = dctx.decompressobj()
        try:
            chunks.append(dobj.decompress(remaining))
        except zstd.ZstdError as e:
            raise DecompressionError(f"Malformed zstd frame: {e}") from e
        if not dobj.eof:
            raise DecompressionError(
                f"Truncated zstd frame: input ended after {len(remaining)} bytes of frame {len(chunks) - 1}"
            )
        remaining = dobj.unused_data
    return b"".join(chunks)


def read_source(source) -> bytes:
    """Read all bytes from a path or a binary file handle."""
    if hasattr(source, "read"):
        try:
            data = source.read()
        except OSError as e:
            raise ArchiveIOError(f"Failed to read archive handle: {e}") from e
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("archive handle must be opened in binary mode")
        return bytes(data)

    try:
        with open(source, "rb") as f:
            return f.read()
    except OSError as e:
        raise ArchiveIOError(f"Failed to read {source}: {e}") from e


def source_name(source) -> str:
    """Display name of a path or file handle, for log messages."""
    if hasattr(source, "read"):
        return str(getattr(source, "name", "<handle>"))
    return str(source)
