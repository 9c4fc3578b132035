from cryptofolio.models import HistorySnapshot
from cryptofolio.storage_service import StorageService

from conftest import DAY0, make_asset


def test_assets_round_trip_in_order(storage: StorageService):
    assets = [make_asset("ETH"), make_asset("BTC", price_history=[(DAY0, 1.0)]), make_asset("SOL")]
    assert storage.save_assets(assets) == 3

    loaded = storage.load_assets()
    assert [a.ticker for a in loaded] == ["ETH", "BTC", "SOL"]
    assert [a.model_dump() for a in loaded] == [a.model_dump() for a in assets]


def test_save_assets_replaces_previous_rows(storage: StorageService):
    storage.save_assets([make_asset("ETH"), make_asset("BTC")])
    storage.save_assets([make_asset("SOL")])
    assert [a.ticker for a in storage.load_assets()] == ["SOL"]


def test_snapshots_limit_returns_most_recent_oldest_first(storage: StorageService):
    snapshots = [HistorySnapshot(timestamp=DAY0 + i, total_value=float(i)) for i in range(5)]
    storage.save_snapshots(snapshots)

    assert [s.total_value for s in storage.load_snapshots()] == [0, 1, 2, 3, 4]
    assert [s.total_value for s in storage.load_snapshots(limit=2)] == [3, 4]


def test_data_survives_reopening(tmp_path):
    db_path = tmp_path / "nested" / "portfolio.db"
    StorageService(db_path).save_assets([make_asset("ADA")])
    assert [a.ticker for a in StorageService(db_path).load_assets()] == ["ADA"]


def test_clear_and_stats(storage: StorageService):
    storage.save_assets([make_asset("ETH")])
    storage.save_snapshots([HistorySnapshot(timestamp=DAY0, total_value=1.0)])

    stats = storage.get_stats()
    assert stats["asset_count"] == 1
    assert stats["snapshot_count"] == 1

    storage.clear()
    assert storage.load_assets() == []
    assert storage.load_snapshots() == []
