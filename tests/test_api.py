import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from cryptofolio import main
from cryptofolio.backup_parser import export_backup

from conftest import make_asset


@pytest.fixture
def client(monkeypatch, portfolio):
    monkeypatch.setattr(main, "portfolio", portfolio)
    return TestClient(main.app)


def add_btc(client):
    response = client.post("/api/assets", json={
        "ticker": "btc",
        "quantity": 0.5,
        "pricePerCoin": 30000,
        "date": "2024-01-01",
    })
    assert response.status_code == 200
    return response.json()["asset"]


def test_add_and_list_assets(client):
    asset = add_btc(client)
    assert asset["ticker"] == "BTC"
    assert asset["currentPrice"] == 50000
    assert asset["totalCostBasis"] == 15000

    assets = client.get("/api/assets").json()["assets"]
    assert [a["id"] for a in assets] == [asset["id"]]


def test_add_transaction_rejects_bad_quantity(client):
    response = client.post("/api/assets", json={
        "ticker": "BTC", "quantity": -1, "pricePerCoin": 1, "date": "2024-01-01",
    })
    assert response.status_code == 400


def test_remove_asset(client):
    asset = add_btc(client)
    assert client.delete(f"/api/assets/{asset['id']}").status_code == 200
    assert client.delete(f"/api/assets/{asset['id']}").status_code == 404


def test_refresh_unknown_asset(client):
    assert client.post("/api/assets/missing/refresh").status_code == 404


def test_summary_and_allocation(client):
    add_btc(client)
    summary = client.get("/api/summary").json()
    assert summary["totalValue"] == 25000
    assert summary["totalPnl"] == 10000
    assert summary["assetCount"] == 1

    allocation = client.get("/api/allocation").json()["allocation"]
    assert allocation[0]["percent"] == 100


def test_chart(client):
    asset = add_btc(client)
    response = client.get("/api/chart", params={"range": "all", "steps": 10})
    assert response.status_code == 200

    data = response.json()
    assert data["range"] == "ALL"
    assert len(data["points"]) == 11
    assert data["points"][-1]["marketValue"] == pytest.approx(25000)
    assert data["paths"]["regions"][asset["id"]].startswith("M ")
    assert data["paths"]["costBasis"].startswith("M ")
    assert len(data["ticks"]["y"]) == 3


@pytest.mark.parametrize("params", [
    {"range": "5Y"},
    {"steps": 0},
    {"steps": 5000},
    {"range": "CUSTOM", "start": "not-a-date"},
    {"range": "CUSTOM", "start": "nan"},
    {"range": "CUSTOM", "start": "2024-01-01", "end": "inf"},
])
def test_chart_rejects_bad_parameters(client, params):
    assert client.get("/api/chart", params=params).status_code == 400


def test_chart_point(client):
    add_btc(client)
    response = client.get("/api/chart/point", params={"ratio": 1.0, "steps": 10})
    assert response.status_code == 200

    data = response.json()
    assert data["detail"]["holdings"][0]["ticker"] == "BTC"
    assert data["detail"]["marketValue"] == pytest.approx(25000)
    assert data["detail"]["pnlPercent"] == pytest.approx(200 / 3)


def test_export_and_import(client, portfolio):
    add_btc(client)
    response = client.get("/api/export")
    assert response.status_code == 200
    assert "portfolio-backup-" in response.headers["content-disposition"]
    assert json.loads(response.content)["assets"][0]["ticker"] == "BTC"

    backup = export_backup([make_asset("ETH"), make_asset("SOL")], [])
    response = client.post(
        "/api/import",
        files={"file": ("backup.json", backup.encode("utf-8"), "application/json")},
    )
    assert response.status_code == 200
    assert response.json()["assets_count"] == 2
    assert [a.ticker for a in portfolio.assets] == ["ETH", "SOL"]


def test_import_rejects_invalid_files(client):
    response = client.post("/api/import", files={"file": ("backup.csv", b"a,b", "text/csv")})
    assert response.status_code == 400

    response = client.post("/api/import", files={"file": ("backup.json", b"{", "application/json")})
    assert response.status_code == 400


def test_dashboard_renders(client):
    add_btc(client)
    response = client.get("/", params={"range": "1W"})
    assert response.status_code == 200
    assert "Total Balance" in response.text
    assert "BTC" in response.text


def test_dashboard_empty_portfolio(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Your portfolio is empty" in response.text


def test_clear_price_cache(client):
    main.price_service._price_cache["BTC-USD"] = (42_000.0, datetime.now())
    main.price_service._history_cache["BTC-USD_max"] = ([], datetime.now())

    response = client.post("/api/cache/clear")

    assert response.status_code == 200
    assert main.price_service._price_cache == {}
    assert main.price_service._history_cache == {}
