"""Portfolio bookkeeping: assets, refreshes, summaries and chart data."""

import logging
import time
from datetime import datetime, timezone
from typing import Optional, Union

from .chart import DEFAULT_STEPS, build_stack, synthesize
from .models import (
    AllocationSlice,
    Asset,
    HistorySnapshot,
    PortfolioSummary,
    SeriesPoint,
    StackGeometry,
    TimeRange,
    Transaction,
    TransactionType,
    color_for,
    now_ms,
)
from .price_service import PriceFetchError, PriceService, price_service
from .storage_service import StorageService

logger = logging.getLogger(__name__)


class AssetNotFoundError(Exception):
    """Raised when an asset id is not in the portfolio."""
    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset not found: {asset_id}")


class Portfolio:
    """Manages the ordered asset list and everything derived from it."""

    def __init__(
        self,
        storage: Optional[StorageService] = None,
        prices: Optional[PriceService] = None,
        history_limit: int = 50,
        refresh_delay: float = 0.5,
    ):
        """Initialize the portfolio.

        Args:
            storage: Where assets and snapshots are persisted; in-memory only if None
            prices: Price/history source, defaults to the global price service
            history_limit: Number of value snapshots to keep
            refresh_delay: Seconds to wait between assets in refresh_all
        """
        self._storage = storage
        self._prices = prices or price_service
        self._history_limit = history_limit
        self._refresh_delay = refresh_delay
        # Insertion order is also the chart's stacking order
        self._assets: list[Asset] = storage.load_assets() if storage else []
        self._history: list[HistorySnapshot] = (
            storage.load_snapshots(limit=history_limit) if storage else []
        )
        logger.info(f"Portfolio loaded with {len(self._assets)} assets")

    @property
    def assets(self) -> list[Asset]:
        return list(self._assets)

    @property
    def history(self) -> list[HistorySnapshot]:
        return list(self._history)

    @property
    def storage(self) -> Optional[StorageService]:
        return self._storage

    def get_asset(self, asset_id: str) -> Asset:
        for asset in self._assets:
            if asset.id == asset_id:
                return asset
        raise AssetNotFoundError(asset_id)

    def find_by_ticker(self, ticker: str) -> Optional[Asset]:
        ticker = ticker.upper().strip()
        return next((a for a in self._assets if a.ticker == ticker), None)

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.save_assets(self._assets)
            self._storage.save_snapshots(self._history)

    def _replace_asset(self, updated: Asset) -> Asset:
        self._assets = [updated if a.id == updated.id else a for a in self._assets]
        self._persist()
        return updated

    def replace_all(self, assets: list[Asset], history: Optional[list[HistorySnapshot]] = None) -> None:
        """Swap in a whole new asset list, e.g. from a backup import."""
        self._assets = list(assets)
        if history is not None:
            self._history = list(history)[-self._history_limit:]
        self._persist()
        logger.info(f"Replaced portfolio with {len(self._assets)} assets")

    # --- Ledger ---

    def add_transaction(
        self,
        ticker: str,
        quantity: float,
        price_per_coin: float,
        date: Union[str, float, datetime],
    ) -> Asset:
        """Record a buy, creating the asset on its first purchase.

        A new asset gets its current price and price history fetched right
        away; a failed price fetch is recorded on the asset's ``error``.

        Returns:
            The updated or created asset
        """
        txn = Transaction(
            type=TransactionType.BUY,
            quantity=quantity,
            price_per_coin=price_per_coin,
            date=date,
        )

        existing = self.find_by_ticker(ticker)
        if existing is not None:
            new_quantity = existing.quantity + txn.quantity
            new_cost_basis = existing.total_cost_basis + txn.total_cost
            updated = existing.model_copy(update={
                "transactions": [*existing.transactions, txn],
                "quantity": new_quantity,
                "total_cost_basis": new_cost_basis,
                "avg_buy_price": new_cost_basis / new_quantity if new_quantity else 0.0,
            })
            logger.info(f"Added {txn.quantity} {existing.ticker} to existing position")
            return self._replace_asset(updated)

        asset = Asset(
            ticker=ticker,
            name=ticker.upper().strip(),
            quantity=txn.quantity,
            transactions=[txn],
            avg_buy_price=txn.price_per_coin,
            total_cost_basis=txn.total_cost,
            last_updated=datetime.now(timezone.utc),
        )
        self._assets.append(asset)
        logger.info(f"Created asset {asset.ticker}")

        try:
            price, sources = self._prices.get_current_price(asset.ticker)
        except PriceFetchError as e:
            logger.warning(f"Could not price new asset {asset.ticker}: {e}")
            return self._replace_asset(asset.model_copy(update={"error": str(e)}))

        history = self._prices.get_price_history(asset.ticker)
        return self._replace_asset(asset.model_copy(update={
            "current_price": price,
            "sources": sources,
            "last_updated": datetime.now(timezone.utc),
            "price_history": history or None,
        }))

    def remove_asset(self, asset_id: str) -> None:
        asset = self.get_asset(asset_id)
        self._assets = [a for a in self._assets if a.id != asset_id]
        self._persist()
        logger.info(f"Removed asset {asset.ticker}")

    # --- Refresh ---

    def _refreshed(self, asset: Asset) -> Asset:
        """Fetch a fresh price (and history when missing) for one asset.

        Raises:
            PriceFetchError: If the price fetch fails
        """
        price, sources = self._prices.get_current_price(asset.ticker)
        history = asset.price_history
        if not history:
            history = self._prices.get_price_history(asset.ticker) or None
        return asset.model_copy(update={
            "current_price": price,
            "sources": sources,
            "last_updated": datetime.now(timezone.utc),
            "price_history": history,
            "error": None,
        })

    def refresh_asset(self, asset_id: str) -> Asset:
        """Refresh one asset's price and record a value snapshot."""
        asset = self.get_asset(asset_id)
        try:
            updated = self._refreshed(asset)
        except PriceFetchError as e:
            logger.error(f"Refresh failed for {asset.ticker}: {e}")
            return self._replace_asset(asset.model_copy(update={"error": str(e)}))

        self._replace_asset(updated)
        self.record_snapshot()
        return updated

    def refresh_all(self) -> list[Asset]:
        """Refresh every asset in order, pausing between price requests."""
        for index, asset in enumerate(self.assets):
            try:
                self._replace_asset(self._refreshed(asset))
            except PriceFetchError as e:
                logger.error(f"Refresh failed for {asset.ticker}: {e}")
                self._replace_asset(asset.model_copy(update={"error": str(e)}))
                continue
            if self._refresh_delay and index < len(self._assets) - 1:
                time.sleep(self._refresh_delay)

        self.record_snapshot()
        return self.assets

    def retry_history(self, asset_id: str) -> Asset:
        """Fetch price history again for an asset that is missing it."""
        asset = self.get_asset(asset_id)
        history = self._prices.get_price_history(asset.ticker)
        if history:
            return self._replace_asset(asset.model_copy(update={"price_history": history, "error": None}))

        logger.warning(f"History source unavailable for {asset.ticker}")
        return self._replace_asset(asset.model_copy(update={"error": "History source unavailable"}))

    # --- Derived views ---

    def record_snapshot(self, now: Optional[float] = None) -> Optional[HistorySnapshot]:
        """Append the current total value to the snapshot history.

        Nothing is recorded while the portfolio is worth nothing.
        """
        total_value = sum(a.market_value for a in self._assets)
        if total_value == 0:
            return None

        snapshot = HistorySnapshot(
            timestamp=now if now is not None else now_ms(),
            total_value=total_value,
            asset_values={a.ticker: a.market_value for a in self._assets},
        )
        self._history = [*self._history, snapshot][-self._history_limit:]
        self._persist()
        return snapshot

    def summary(self) -> PortfolioSummary:
        """Totals across all assets at their current prices."""
        total_value = sum(a.market_value for a in self._assets)
        total_cost_basis = sum(a.total_cost_basis for a in self._assets)
        total_pnl = total_value - total_cost_basis

        total_pnl_percent = 0.0
        if total_cost_basis > 0:
            total_pnl_percent = total_pnl / total_cost_basis * 100

        updates = [a.last_updated for a in self._assets if a.last_updated is not None]

        return PortfolioSummary(
            total_value=total_value,
            total_cost_basis=total_cost_basis,
            total_pnl=total_pnl,
            total_pnl_percent=total_pnl_percent,
            asset_count=len(self._assets),
            last_global_update=max(updates) if updates else None,
        )

    def allocation(self) -> list[AllocationSlice]:
        """Assets by current value, largest first, with their chart colour."""
        total_value = sum(a.market_value for a in self._assets)
        slices = [
            AllocationSlice(
                asset_id=asset.id,
                ticker=asset.ticker,
                value=asset.market_value,
                percent=asset.market_value / total_value * 100 if total_value > 0 else 0.0,
                color=color_for(index),
            )
            for index, asset in enumerate(self._assets)
        ]
        return sorted(slices, key=lambda s: s.value, reverse=True)

    def chart(
        self,
        selector: Union[TimeRange, str] = TimeRange.ALL,
        custom_start: Optional[str] = None,
        custom_end: Optional[str] = None,
        now: Optional[float] = None,
        steps: int = DEFAULT_STEPS,
    ) -> tuple[list[SeriesPoint], StackGeometry]:
        """Value series and stacked geometry for the history chart."""
        now = now if now is not None else now_ms()
        assets = self.assets
        points = synthesize(assets, selector, custom_start, custom_end, now=now, steps=steps)
        geometry = build_stack(points, [a.id for a in assets], assets=assets)
        return points, geometry
