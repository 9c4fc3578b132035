import json
from datetime import datetime

import pytest

from cryptofolio.backup_parser import (
    BackupParseError,
    backup_filename,
    export_backup,
    parse_backup_content,
)
from cryptofolio.models import HistorySnapshot

from conftest import DAY0, make_asset


def test_export_uses_camel_case_keys():
    content = export_backup(
        [make_asset("BTC")],
        [HistorySnapshot(timestamp=DAY0, total_value=10.0, asset_values={"BTC": 10.0})],
    )
    data = json.loads(content)
    assert data["assets"][0]["ticker"] == "BTC"
    assert "totalCostBasis" in data["assets"][0]
    assert data["history"][0]["assetValues"] == {"BTC": 10.0}


def test_parse_exported_backup():
    content = export_backup([make_asset("BTC"), make_asset("ETH")], [])
    assets, history = parse_backup_content(content)
    assert [a.ticker for a in assets] == ["BTC", "ETH"]
    assert history == []


def test_parse_legacy_asset_array():
    content = json.dumps([{"id": "1", "ticker": "doge", "quantity": 10, "currentPrice": 0.1,
                           "transactions": []}])
    assets, history = parse_backup_content(content)
    assert assets[0].ticker == "DOGE"
    assert history is None


def test_parse_backup_without_history_key():
    assets, history = parse_backup_content(json.dumps({"assets": []}))
    assert assets == []
    assert history is None


@pytest.mark.parametrize("content", [
    "not json",
    json.dumps({"holdings": []}),
    json.dumps("assets"),
    json.dumps({"assets": [], "history": {"a": 1}}),
])
def test_parse_rejects_invalid_format(content):
    with pytest.raises(BackupParseError):
        parse_backup_content(content)


def test_parse_reports_bad_asset_index():
    content = json.dumps({"assets": [{"ticker": "BTC"}, {"quantity": 1}]})
    with pytest.raises(BackupParseError) as exc:
        parse_backup_content(content)
    assert exc.value.index == 1
    assert str(exc.value).startswith("Asset 1:")


def test_backup_filename():
    assert backup_filename(datetime(2024, 5, 6)) == "portfolio-backup-2024-05-06.json"
