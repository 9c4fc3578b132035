"""
Pytest configuration and shared fixtures for cryptofolio tests.

No test touches the network: the price service is replaced by FakePriceService.
"""
from pathlib import Path
from typing import Optional

import pytest

from cryptofolio.models import DAY_MS, Asset, SourceLink, Transaction
from cryptofolio.portfolio import Portfolio
from cryptofolio.price_service import PriceFetchError
from cryptofolio.storage_service import StorageService

# 2024-01-01T00:00:00Z
DAY0 = 1_704_067_200_000.0


# =============================================================================
# Test Data Helpers
# =============================================================================

def make_transaction(
    date: float = DAY0,
    quantity: float = 1.0,
    price_per_coin: float = 100.0,
) -> Transaction:
    """
    Create a BUY transaction.

    Usage:
        txn = make_transaction(date=DAY0 + DAY_MS, quantity=2, price_per_coin=50)
    """
    return Transaction(date=date, quantity=quantity, price_per_coin=price_per_coin)


def make_asset(
    ticker: str = "BTC",
    transactions: Optional[list[Transaction]] = None,
    current_price: float = 150.0,
    price_history: Optional[list[tuple[float, float]]] = None,
    asset_id: Optional[str] = None,
) -> Asset:
    """
    Create an Asset whose cached totals match its ledger.

    Usage:
        asset = make_asset("ETH", [make_transaction()], current_price=2000)
    """
    transactions = transactions if transactions is not None else [make_transaction()]
    quantity = sum(t.quantity for t in transactions)
    cost = sum(t.total_cost for t in transactions)
    kwargs = {"id": asset_id} if asset_id else {}
    return Asset(
        ticker=ticker,
        quantity=quantity,
        current_price=current_price,
        transactions=transactions,
        total_cost_basis=cost,
        avg_buy_price=cost / quantity if quantity else 0.0,
        price_history=price_history,
        **kwargs,
    )


class FakePriceService:
    """Stands in for PriceService with fixed prices and histories."""

    def __init__(
        self,
        prices: Optional[dict[str, float]] = None,
        histories: Optional[dict[str, list[tuple[float, float]]]] = None,
    ):
        self.prices = prices or {}
        self.histories = histories or {}
        self.price_calls: list[str] = []
        self.history_calls: list[str] = []

    def get_current_price(self, ticker: str):
        self.price_calls.append(ticker)
        if ticker not in self.prices:
            raise PriceFetchError(f"{ticker}-USD", "no price data available")
        return self.prices[ticker], [SourceLink(title="Test", url=f"https://example.com/{ticker}")]

    def get_price_history(self, ticker: str, period: str = "max"):
        self.history_calls.append(ticker)
        return list(self.histories.get(ticker, []))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def day_ms() -> float:
    return DAY_MS


@pytest.fixture
def fake_prices() -> FakePriceService:
    return FakePriceService(
        prices={"BTC": 50_000.0, "ETH": 3_000.0},
        histories={"BTC": [(DAY0, 40_000.0), (DAY0 + 10 * DAY_MS, 50_000.0)]},
    )


@pytest.fixture
def storage(tmp_path: Path) -> StorageService:
    return StorageService(tmp_path / "portfolio.db")


@pytest.fixture
def portfolio(storage: StorageService, fake_prices: FakePriceService) -> Portfolio:
    return Portfolio(storage=storage, prices=fake_prices, refresh_delay=0)
