"""
Binary archive layouts.

All integers are little-endian. Prices and sizes are i64 scaled by 10^8.

Order log (.bin):
    [FileHeader 16][DepthLevel 32]*N[EndOfSnapshot 16][OrderUpdate]*M

    FileHeader:    [magic:4 "HMOL"][version:u16][asset_id:u16][bid_levels:u32][ask_levels:u32]
    DepthLevel:    [tag=1:u8][side:u8][pad:2][order_count:u32][px:i64][sz:i64][reserved:8]
    EndOfSnapshot: [tag=2:u8][pad:3][level_count:u32][block_number:u64]
    OrderUpdate v3 (108 bytes):
        [tag=3:u8][side:u8][order_type:u8][tif:u8][trigger:u8][status:u8][flags:u8][pad:1]
        [wallet:20][oid:u64][cloid:16][px:i64][sz:i64][orig_sz:i64][trigger_px:i64]
        [block_number:u64][timestamp_ms:u64][status_timestamp_ms:u64]
    OrderUpdate v2 (92 bytes): v3 without cloid.

Multi-snapshot (.snapshots):
    [MultiSnapHeader 24][IndexEntry 32]*K[bodies...]

    MultiSnapHeader: [magic:4 "HMSS"][version:u16][asset_id:u16][snapshot_count:u32]
                     [order_record_size:u32][bodies_offset:u64]
    IndexEntry:      [block_height:u64][timestamp_ms:u64][body_offset:u64][order_count:u32][flags:u32]
    SnapshotOrder:   [wallet:20][side:u8][pad:3][oid:u64][px:i64][sz:i64][timestamp_ms:u64]
"""

import struct


# Order log
ORDER_LOG_MAGIC = b"HMOL"
FILE_HEADER = struct.Struct("<4sHHII")
DEPTH_LEVEL = struct.Struct("<BB2xIqq8x")
END_OF_SNAPSHOT = struct.Struct("<B3xIQ")
ORDER_UPDATE_V2 = struct.Struct("<BBBBBBBx20sQqqqqQQQ")
ORDER_UPDATE_V3 = struct.Struct("<BBBBBBBx20sQ16sqqqqQQQ")

assert FILE_HEADER.size == 16
assert DEPTH_LEVEL.size == 32
assert END_OF_SNAPSHOT.size == 16
assert ORDER_UPDATE_V2.size == 92
assert ORDER_UPDATE_V3.size == 108

# Record tags (first byte of every record after the header)
TAG_DEPTH_LEVEL = 1
TAG_END_OF_SNAPSHOT = 2
TAG_ORDER_UPDATE = 3

TAG_NAMES = {
    TAG_DEPTH_LEVEL: "depth level",
    TAG_END_OF_SNAPSHOT: "end of snapshot",
    TAG_ORDER_UPDATE: "order update",
}

# OrderUpdate flag bits
FLAG_REDUCE_ONLY = 0x01
FLAG_IS_TRIGGER = 0x02
FLAG_POSITION_TPSL = 0x04

# Multi-snapshot
SNAPSHOT_MAGIC = b"HMSS"
SNAPSHOT_VERSION = 1
MULTI_SNAP_HEADER = struct.Struct("<4sHHIIQ")
INDEX_ENTRY = struct.Struct("<QQQII")
SNAPSHOT_ORDER = struct.Struct("<20sB3xQqqQ")

assert MULTI_SNAP_HEADER.size == 24
assert INDEX_ENTRY.size == 32
assert SNAPSHOT_ORDER.size == 56

# IndexEntry flag bits
FLAG_MIDNIGHT = 0x01
