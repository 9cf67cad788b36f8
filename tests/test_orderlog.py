"""Tests for the order log stream decoder and façade."""

import io

import pytest

from builders import (
    WALLET_A,
    WALLET_B,
    compress,
    depth_level,
    end_of_snapshot,
    file_header,
    order_log,
    order_update,
)
from hydromancer_archive import (
    ArchiveError,
    ArchiveIOError,
    BinaryReader,
    CorruptError,
    DepthLevel,
    EndOfSnapshot,
    OrderLogReader,
    OrderStatus,
    OrderType,
    OrderUpdate,
    Side,
    TimeInForce,
    TriggerCondition,
)

UPDATES_OFFSET = 16 + 2 * 32 + 16


def test_header(sample_log_path):
    reader = BinaryReader.open(sample_log_path)
    header = reader.header
    assert header.version == 3
    assert header.asset_id == 7
    assert header.bid_levels == 1
    assert header.ask_levels == 1
    assert header.depth_levels == 2
    assert header.order_update_size == 108


def test_messages_in_file_order(sample_log_path):
    reader = BinaryReader.open(sample_log_path)
    kinds = [type(m) for m in reader.messages()]
    assert kinds == [DepthLevel, DepthLevel, EndOfSnapshot, OrderUpdate, OrderUpdate, OrderUpdate]
    assert reader.records_read == 6


def test_exactly_one_end_of_snapshot_after_declared_levels(sample_log_bytes):
    messages = list(BinaryReader.from_bytes(sample_log_bytes).messages())
    markers = [i for i, m in enumerate(messages) if isinstance(m, EndOfSnapshot)]
    assert markers == [2]
    assert messages[2].level_count == 2
    assert messages[2].block_number == 99


def test_iteration_is_single_pass(sample_log_bytes):
    reader = BinaryReader.from_bytes(sample_log_bytes)
    assert len(list(reader)) == 6
    assert list(reader) == []
    assert reader.next_message() is None


def test_order_update_fields(sample_log_bytes):
    updates = [m for m in BinaryReader.from_bytes(sample_log_bytes) if isinstance(m, OrderUpdate)]
    first, second, third = updates

    assert first.oid == 1
    assert first.wallet == WALLET_A
    assert first.user == "0x" + "11" * 20
    assert first.cloid is None
    assert first.cloid_str is None
    assert first.side == Side.BID
    assert first.order_type == OrderType.LIMIT
    assert first.tif == TimeInForce.GTC
    assert first.trigger_condition == TriggerCondition.NONE
    assert first.status == OrderStatus.OPEN
    assert first.px_str == "100"
    assert first.sz_str == "1"
    assert first.block_number == 100

    assert second.side == Side.ASK
    assert second.cloid == bytes(range(16))
    assert second.cloid_str == "0x000102030405060708090a0b0c0d0e0f"

    assert third.status == OrderStatus.FILLED
    assert third.status.wire_name == "filled"
    assert third.sz == 0


def test_flags_and_trigger_fields():
    data = order_log(updates=[dict(
        oid=9,
        block_number=1,
        order_type=3,
        tif=0,
        trigger=2,
        flags=0b111,
        trigger_px=95 * 10**8,
        orig_sz=4 * 10**8,
        timestamp_ms=10,
        status_timestamp_ms=20,
        status=3,
    )])
    (update,) = [m for m in BinaryReader.from_bytes(data) if isinstance(m, OrderUpdate)]
    assert update.order_type == OrderType.STOP_LIMIT
    assert update.tif == TimeInForce.NONE
    assert update.trigger_condition == TriggerCondition.BELOW
    assert update.reduce_only and update.is_trigger and update.is_position_tpsl
    assert update.trigger_px == 95 * 10**8
    assert update.orig_sz == 4 * 10**8
    assert update.timestamp_ms == 10
    assert update.status_timestamp_ms == 20
    assert update.status == OrderStatus.TRIGGERED


def test_version_2_layout_has_no_cloid():
    data = order_log(
        bids=[(10**8, 10**8)],
        updates=[dict(oid=5, block_number=3), dict(oid=6, block_number=4)],
        version=2,
    )
    reader = BinaryReader.from_bytes(data)
    assert reader.header.order_update_size == 92
    updates = [m for m in reader if isinstance(m, OrderUpdate)]
    assert [u.oid for u in updates] == [5, 6]
    assert all(u.cloid is None for u in updates)


def test_status_wire_names():
    assert OrderStatus.MARGIN_CANCELED.wire_name == "marginCanceled"
    assert OrderStatus.SELF_TRADE_CANCELED.wire_name == "selfTradeCanceled"
    assert OrderStatus.OPEN_INTEREST_CAP_CANCELED.wire_name == "openInterestCapCanceled"
    assert Side.BID.code == "B"
    assert Side.ASK.code == "A"


def test_chronological_block_numbers(sample_log_bytes):
    blocks = [m.block_number for m in BinaryReader.from_bytes(sample_log_bytes) if isinstance(m, OrderUpdate)]
    assert all(a <= b for a, b in zip(blocks, blocks[1:]))


def test_empty_sections():
    reader = BinaryReader.from_bytes(order_log())
    messages = list(reader)
    assert len(messages) == 1
    assert isinstance(messages[0], EndOfSnapshot)


# =========================================================================
# Opening
# =========================================================================

def test_open_by_handle(sample_log_path):
    with open(sample_log_path, "rb") as f:
        reader = BinaryReader.from_file(f)
    assert reader.compression == "lz4"
    assert len(list(reader)) == 6


def test_open_uncompressed(sample_log_bytes):
    reader = BinaryReader.from_file(io.BytesIO(sample_log_bytes))
    assert reader.compression == "none"
    assert reader.raw_size == reader.decompressed_size == len(sample_log_bytes)


def test_open_missing_file(tmp_path):
    with pytest.raises(ArchiveIOError):
        BinaryReader.open(tmp_path / "missing.bin.lz4")


def test_closed_reader(sample_log_bytes):
    with BinaryReader.from_bytes(sample_log_bytes) as reader:
        reader.next_message()
    with pytest.raises(ArchiveError):
        reader.next_message()


# =========================================================================
# Corruption
# =========================================================================

def test_bad_magic():
    data = file_header(magic=b"NOPE") + end_of_snapshot(0)
    with pytest.raises(CorruptError) as exc:
        BinaryReader.from_bytes(data)
    assert exc.value.offset == 0
    assert exc.value.actual == b"NOPE"


def test_unsupported_version():
    data = file_header(version=9) + end_of_snapshot(0)
    with pytest.raises(CorruptError, match="version 9"):
        BinaryReader.from_bytes(data)


def test_truncated_header():
    with pytest.raises(CorruptError) as exc:
        BinaryReader.from_bytes(b"HMOL\x03\x00")
    assert exc.value.expected == 16
    assert exc.value.actual == 6


@pytest.mark.parametrize("cut", range(1, 108))
def test_truncated_tail(sample_log_bytes, cut):
    data = compress(sample_log_bytes[:-cut])
    reader = BinaryReader.from_bytes(data)
    good = []
    with pytest.raises(CorruptError) as exc:
        for msg in reader.messages():
            good.append(msg)

    assert len(good) == 5
    assert [m.oid for m in good if isinstance(m, OrderUpdate)] == [1, 2]
    err = exc.value
    assert err.offset == UPDATES_OFFSET + 2 * 108
    assert err.record_index == 5
    assert err.expected == 108
    assert err.actual == 108 - cut


def test_failure_is_terminal(sample_log_bytes):
    reader = BinaryReader.from_bytes(sample_log_bytes[:-1])
    with pytest.raises(CorruptError) as first:
        list(reader)
    with pytest.raises(CorruptError) as second:
        reader.next_message()
    assert second.value is first.value


def test_stream_ends_inside_snapshot_section():
    data = file_header(bid_levels=3) + depth_level(0, 1, 1)
    reader = BinaryReader.from_bytes(data)
    reader.next_message()
    with pytest.raises(CorruptError, match="Truncated depth level") as exc:
        reader.next_message()
    assert exc.value.offset == 16 + 32
    assert exc.value.actual == 0


def test_missing_end_of_snapshot():
    data = file_header(bid_levels=1) + depth_level(0, 1, 1) + order_update(oid=1, block_number=1)
    reader = BinaryReader.from_bytes(data)
    reader.next_message()
    with pytest.raises(CorruptError, match="expected end of snapshot, got order update") as exc:
        reader.next_message()
    assert exc.value.offset == 48


def test_fewer_levels_than_declared():
    data = file_header(bid_levels=2) + depth_level(0, 1, 1) + end_of_snapshot(2)
    reader = BinaryReader.from_bytes(data)
    with pytest.raises(CorruptError, match="expected depth level, got end of snapshot"):
        list(reader)


def test_marker_level_count_mismatch():
    data = file_header(bid_levels=1) + depth_level(0, 1, 1) + end_of_snapshot(5)
    with pytest.raises(CorruptError) as exc:
        list(BinaryReader.from_bytes(data))
    assert exc.value.expected == 1
    assert exc.value.actual == 5


def test_level_sides_disagree_with_header():
    data = file_header(bid_levels=1, ask_levels=1) + depth_level(0, 1, 1) + depth_level(0, 2, 1) + end_of_snapshot(2)
    with pytest.raises(CorruptError, match="2 bid / 0 ask"):
        list(BinaryReader.from_bytes(data))


def test_unknown_tag_in_update_section(sample_log_bytes):
    data = bytearray(sample_log_bytes)
    data[UPDATES_OFFSET + 108] = 0x7F
    reader = BinaryReader.from_bytes(bytes(data))
    with pytest.raises(CorruptError, match="unknown tag 127") as exc:
        list(reader)
    assert exc.value.offset == UPDATES_OFFSET + 108


def test_unknown_status_code():
    data = order_log(updates=[dict(oid=1, block_number=1, status=200)])
    with pytest.raises(CorruptError, match="status code 200"):
        list(BinaryReader.from_bytes(data))


# =========================================================================
# OrderLogReader
# =========================================================================

def test_read_depth_snapshot_then_updates(sample_log_path):
    with OrderLogReader.open(sample_log_path) as log:
        snapshot = log.read_depth_snapshot()
        assert snapshot.level_count == 2
        assert [lvl.px_str for lvl in snapshot.bids] == ["25.381"]
        assert [lvl.px_str for lvl in snapshot.asks] == ["25.39"]
        assert snapshot.best_bid().sz_str == "3"
        assert snapshot.best_ask().sz_str == "5"
        assert snapshot.block_number == 99

        updates = list(log.order_updates())
        assert [(u.oid, u.status) for u in updates] == [
            (1, OrderStatus.OPEN),
            (2, OrderStatus.OPEN),
            (1, OrderStatus.FILLED),
        ]


def test_depth_snapshot_preserves_file_order():
    data = order_log(
        bids=[(3, 1), (1, 1), (2, 1)],
        asks=[(9, 1), (7, 1)],
    )
    snapshot = OrderLogReader.from_bytes(data).read_depth_snapshot()
    assert [lvl.px for lvl in snapshot.bids] == [3, 1, 2]
    assert [lvl.px for lvl in snapshot.asks] == [9, 7]


def test_order_updates_without_snapshot_skips_section(sample_log_bytes):
    log = OrderLogReader.from_bytes(sample_log_bytes)
    assert [u.oid for u in log.order_updates()] == [1, 2, 1]
    # skipped snapshot is still available
    assert log.read_depth_snapshot().level_count == 2


def test_read_depth_snapshot_is_cached(sample_log_bytes):
    log = OrderLogReader.from_bytes(sample_log_bytes)
    assert log.read_depth_snapshot() is log.read_depth_snapshot()
    assert len(list(log.order_updates())) == 3


def test_order_updates_surface_corruption_after_good_records(sample_log_bytes):
    log = OrderLogReader.from_bytes(sample_log_bytes[:-10])
    log.read_depth_snapshot()
    seen = []
    with pytest.raises(CorruptError):
        for update in log.order_updates():
            seen.append(update.oid)
    assert seen == [1, 2]


def test_header_accessor(sample_log_bytes):
    log = OrderLogReader.from_bytes(sample_log_bytes)
    assert log.header().asset_id == 7
    list(log.order_updates())
    assert log.header().asset_id == 7


def test_from_file_handle(sample_log_path):
    with open(sample_log_path, "rb") as f:
        log = OrderLogReader.from_file(f)
    assert len(list(log.order_updates())) == 3


def test_wallets_distinct_per_update(sample_log_bytes):
    wallets = {u.wallet for u in OrderLogReader.from_bytes(sample_log_bytes).order_updates()}
    assert wallets == {WALLET_A, WALLET_B}
