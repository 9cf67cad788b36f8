import pytest

from builders import WALLET_A, WALLET_B, compress, order_log, snapshot_archive, snapshot_order


@pytest.fixture
def sample_log_bytes() -> bytes:
    """Two depth levels, one end marker, three order updates (uncompressed)."""
    return order_log(
        bids=[(25_381 * 10**5, 3 * 10**8)],
        asks=[(25_390 * 10**5, 5 * 10**8)],
        updates=[
            dict(oid=1, block_number=100, wallet=WALLET_A, status=0),
            dict(oid=2, block_number=100, wallet=WALLET_B, side=1, status=0, cloid=bytes(range(16))),
            dict(oid=1, block_number=105, wallet=WALLET_A, status=1, sz=0),
        ],
        asset_id=7,
        block_number=99,
    )


@pytest.fixture
def sample_log_path(tmp_path, sample_log_bytes):
    path = tmp_path / "BTC_20250601.bin.lz4"
    path.write_bytes(compress(sample_log_bytes))
    return path


@pytest.fixture
def sample_snapshots_bytes() -> bytes:
    """Snapshots at block heights 0, 500 and 1000; midnight only on 0."""
    return snapshot_archive(
        [
            (0, 1_700_000_000_000, [
                snapshot_order(1, 0, 100 * 10**8, 10**8),
                snapshot_order(2, 1, 101 * 10**8, 2 * 10**8, wallet=WALLET_B),
            ]),
            (500, 1_700_000_050_000, [
                snapshot_order(3, 0, 99 * 10**8, 10**8),
            ]),
            (1000, 1_700_000_100_000, []),
        ],
        asset_id=3,
    )


@pytest.fixture
def sample_snapshots_path(tmp_path, sample_snapshots_bytes):
    path = tmp_path / "BTC_20250601.snapshots.lz4"
    path.write_bytes(compress(sample_snapshots_bytes))
    return path
