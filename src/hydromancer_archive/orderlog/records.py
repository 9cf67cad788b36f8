"""
Order log record types.

Records are decoded from fixed-width little-endian layouts (see
_internal/formats.py). The OrderUpdate layout depends on the version stored
in the file header; each supported version has its own decoder producing
the same OrderUpdate shape.
"""

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Union

from .._internal import formats
from ..errors import CorruptError
from ..identifiers import format_cloid, format_wallet_address
from ..scaling import format_price, format_size


class Side(IntEnum):
    BID = 0
    ASK = 1

    @property
    def code(self) -> str:
        """Hyperliquid side letter: "B" for bids, "A" for asks."""
        return "B" if self is Side.BID else "A"


class OrderType(IntEnum):
    LIMIT = 0
    MARKET = 1
    STOP_MARKET = 2
    STOP_LIMIT = 3
    TAKE_PROFIT_MARKET = 4
    TAKE_PROFIT_LIMIT = 5


class TimeInForce(IntEnum):
    NONE = 0  # trigger orders carry no tif
    GTC = 1
    IOC = 2
    ALO = 3
    FRONTEND_MARKET = 4
    LIQUIDATION_MARKET = 5


class TriggerCondition(IntEnum):
    NONE = 0
    ABOVE = 1
    BELOW = 2


class OrderStatus(IntEnum):
    OPEN = 0
    FILLED = 1
    CANCELED = 2
    TRIGGERED = 3
    REJECTED = 4
    MARGIN_CANCELED = 5
    SELF_TRADE_CANCELED = 6
    REDUCE_ONLY_CANCELED = 7
    SIBLING_FILLED_CANCELED = 8
    LIQUIDATED_CANCELED = 9
    SCHEDULED_CANCEL = 10
    OPEN_INTEREST_CAP_CANCELED = 11
    VAULT_WITHDRAWAL_CANCELED = 12
    DELISTED_CANCELED = 13

    @property
    def wire_name(self) -> str:
        """Status name as it appears in Hyperliquid order status feeds."""
        head, *rest = self.name.lower().split("_")
        return head + "".join(part.capitalize() for part in rest)


@dataclass(frozen=True)
class FileHeader:
    """Order log file header."""

    version: int
    asset_id: int
    bid_levels: int
    ask_levels: int

    @property
    def depth_levels(self) -> int:
        """Number of DepthLevel records declared for the snapshot section."""
        return self.bid_levels + self.ask_levels

    @property
    def order_update_size(self) -> int:
        return ORDER_UPDATE_LAYOUTS[self.version][0].size


@dataclass(frozen=True)
class DepthLevel:
    """One aggregated price level of the midnight book. Prices/sizes are scaled by 10^8."""

    side: Side
    px: int
    sz: int
    order_count: int

    @property
    def px_str(self) -> str:
        return format_price(self.px)

    @property
    def sz_str(self) -> str:
        return format_size(self.sz)


@dataclass(frozen=True)
class EndOfSnapshot:
    """Boundary between the snapshot section and the order updates."""

    level_count: int
    block_number: int


@dataclass(frozen=True)
class OrderUpdate:
    """Single order status change. Prices/sizes are scaled by 10^8."""

    oid: int
    wallet: bytes
    cloid: Optional[bytes]
    side: Side
    order_type: OrderType
    tif: TimeInForce
    trigger_condition: TriggerCondition
    status: OrderStatus
    px: int
    sz: int
    orig_sz: int
    trigger_px: int
    reduce_only: bool
    is_trigger: bool
    is_position_tpsl: bool
    block_number: int
    timestamp_ms: int
    status_timestamp_ms: int

    @property
    def user(self) -> str:
        """Wallet address as a lowercase 0x string."""
        return format_wallet_address(self.wallet)

    @property
    def cloid_str(self) -> Optional[str]:
        return format_cloid(self.cloid) if self.cloid is not None else None

    @property
    def px_str(self) -> str:
        return format_price(self.px)

    @property
    def sz_str(self) -> str:
        return format_size(self.sz)


Message = Union[DepthLevel, OrderUpdate, EndOfSnapshot]


@dataclass(frozen=True)
class DepthSnapshot:
    """
    Midnight depth snapshot of an order log.

    Levels keep the file order (bids best first, asks best first as
    written upstream); nothing is re-sorted.
    """

    bids: tuple[DepthLevel, ...]
    asks: tuple[DepthLevel, ...]
    block_number: int

    @property
    def level_count(self) -> int:
        return len(self.bids) + len(self.asks)

    def best_bid(self) -> Optional[DepthLevel]:
        return self.bids[0] if self.bids else None

    def best_ask(self) -> Optional[DepthLevel]:
        return self.asks[0] if self.asks else None


# =========================================================================
# Decoding
# =========================================================================

def _enum(enum_cls, code: int, field: str, offset: int, record_index: Optional[int]):
    try:
        return enum_cls(code)
    except ValueError:
        raise CorruptError(
            f"Unknown {field} code {code} in record {record_index} at offset {offset}",
            offset=offset,
            record_index=record_index,
            actual=code,
        ) from None


def decode_file_header(buf, offset: int = 0) -> FileHeader:
    """Decode and validate the 16-byte order log header."""
    available = len(buf) - offset
    if available < formats.FILE_HEADER.size:
        raise CorruptError(
            f"Truncated file header: need {formats.FILE_HEADER.size} bytes, got {available}",
            offset=offset,
            expected=formats.FILE_HEADER.size,
            actual=available,
        )
    magic, version, asset_id, bid_levels, ask_levels = formats.FILE_HEADER.unpack_from(buf, offset)
    if magic != formats.ORDER_LOG_MAGIC:
        raise CorruptError(
            f"Bad magic {magic!r} (expected {formats.ORDER_LOG_MAGIC!r})",
            offset=offset,
            expected=formats.ORDER_LOG_MAGIC,
            actual=magic,
        )
    if version not in ORDER_UPDATE_LAYOUTS:
        raise CorruptError(
            f"Unsupported order log version {version} (supported: {sorted(ORDER_UPDATE_LAYOUTS)})",
            offset=offset,
            expected=sorted(ORDER_UPDATE_LAYOUTS),
            actual=version,
        )
    return FileHeader(version=version, asset_id=asset_id, bid_levels=bid_levels, ask_levels=ask_levels)


def decode_depth_level(buf, offset: int, record_index: Optional[int] = None) -> DepthLevel:
    _tag, side, order_count, px, sz = formats.DEPTH_LEVEL.unpack_from(buf, offset)
    return DepthLevel(
        side=_enum(Side, side, "side", offset, record_index),
        px=px,
        sz=sz,
        order_count=order_count,
    )


def decode_end_of_snapshot(buf, offset: int, record_index: Optional[int] = None) -> EndOfSnapshot:
    _tag, level_count, block_number = formats.END_OF_SNAPSHOT.unpack_from(buf, offset)
    return EndOfSnapshot(level_count=level_count, block_number=block_number)


def _build_update(fields: tuple, cloid: Optional[bytes], offset: int, record_index: Optional[int]) -> OrderUpdate:
    (_tag, side, order_type, tif, trigger, status, flags, wallet, oid,
     px, sz, orig_sz, trigger_px, block_number, timestamp_ms, status_timestamp_ms) = fields
    return OrderUpdate(
        oid=oid,
        wallet=wallet,
        cloid=cloid if cloid and any(cloid) else None,
        side=_enum(Side, side, "side", offset, record_index),
        order_type=_enum(OrderType, order_type, "order type", offset, record_index),
        tif=_enum(TimeInForce, tif, "time-in-force", offset, record_index),
        trigger_condition=_enum(TriggerCondition, trigger, "trigger condition", offset, record_index),
        status=_enum(OrderStatus, status, "status", offset, record_index),
        px=px,
        sz=sz,
        orig_sz=orig_sz,
        trigger_px=trigger_px,
        reduce_only=bool(flags & formats.FLAG_REDUCE_ONLY),
        is_trigger=bool(flags & formats.FLAG_IS_TRIGGER),
        is_position_tpsl=bool(flags & formats.FLAG_POSITION_TPSL),
        block_number=block_number,
        timestamp_ms=timestamp_ms,
        status_timestamp_ms=status_timestamp_ms,
    )


def decode_order_update_v2(buf, offset: int, record_index: Optional[int] = None) -> OrderUpdate:
    """Version 2 layout: no client order id."""
    fields = formats.ORDER_UPDATE_V2.unpack_from(buf, offset)
    return _build_update(fields, None, offset, record_index)


def decode_order_update_v3(buf, offset: int, record_index: Optional[int] = None) -> OrderUpdate:
    """Version 3 layout: adds the 16-byte client order id after the oid."""
    fields = formats.ORDER_UPDATE_V3.unpack_from(buf, offset)
    cloid = fields[9]
    return _build_update(fields[:9] + fields[10:], cloid, offset, record_index)


# version -> (layout, decoder)
ORDER_UPDATE_LAYOUTS: dict[int, tuple[struct.Struct, Callable[..., OrderUpdate]]] = {
    2: (formats.ORDER_UPDATE_V2, decode_order_update_v2),
    3: (formats.ORDER_UPDATE_V3, decode_order_update_v3),
}
