"""Exceptions raised by the archive readers."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .orderlog.verify import VerificationStats


class ArchiveError(Exception):
    """Base exception for archive decoding errors."""
    pass


class ArchiveIOError(ArchiveError):
    """Raised when the underlying file cannot be opened or read."""
    pass


class DecompressionError(ArchiveError):
    """Raised when the compressed transport stream is malformed."""
    pass


class CorruptError(ArchiveError):
    """
    Raised when a record or section is structurally invalid.

    Attributes:
        offset: Byte offset (in the decompressed archive) of the failing record
        record_index: Index of the failing record after the header, if known
        expected: Expected byte count or value, if applicable
        actual: Observed byte count or value, if applicable
        stats: Partial VerificationStats when raised from a verification pass
    """

    def __init__(
        self,
        message: str,
        offset: Optional[int] = None,
        record_index: Optional[int] = None,
        expected=None,
        actual=None,
    ):
        super().__init__(message)
        self.offset = offset
        self.record_index = record_index
        self.expected = expected
        self.actual = actual
        self.stats: Optional["VerificationStats"] = None


class SnapshotNotFoundError(ArchiveError, LookupError):
    """Raised when no snapshot index entry matches a lookup."""

    def __init__(self, message: str, block_height: Optional[int] = None):
        super().__init__(message)
        self.block_height = block_height
