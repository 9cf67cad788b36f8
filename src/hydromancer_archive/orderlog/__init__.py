"""
Order log decoding module.

Reads per-instrument order logs: the midnight depth snapshot followed by
every order status change of the day.
"""

from .reader import BinaryReader, OrderLogReader
from .records import (
    DepthLevel,
    DepthSnapshot,
    EndOfSnapshot,
    FileHeader,
    Message,
    OrderStatus,
    OrderType,
    OrderUpdate,
    Side,
    TimeInForce,
    TriggerCondition,
)
from .verify import VerificationStats, verify

__all__ = [
    # Readers
    "BinaryReader",
    "OrderLogReader",
    # Records
    "FileHeader",
    "DepthLevel",
    "EndOfSnapshot",
    "OrderUpdate",
    "Message",
    "DepthSnapshot",
    # Enums
    "Side",
    "OrderType",
    "TimeInForce",
    "TriggerCondition",
    "OrderStatus",
    # Verification
    "VerificationStats",
    "verify",
]
