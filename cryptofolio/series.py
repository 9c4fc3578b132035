"""Reconstruct the portfolio value curve over a time window."""

import logging
from typing import Optional, Sequence, Union

from .estimator import interpolate, price_samples
from .ledger import cumulative_at
from .models import Asset, SeriesPoint, TimeRange
from .timewindow import resolve

logger = logging.getLogger(__name__)

DEFAULT_STEPS = 150


def synthesize_window(
    assets: Sequence[Asset],
    min_time: float,
    max_time: float,
    now: float,
    steps: int = DEFAULT_STEPS,
) -> list[SeriesPoint]:
    """Sample cost basis and estimated market value across a window.

    Produces ``steps + 1`` equally spaced points from ``min_time`` to
    ``max_time`` inclusive. An asset contributes nothing, neither value nor
    cost, at times when its cumulative quantity is not positive; its price is
    only estimated once it is owned.

    Args:
        assets: Assets in portfolio order
        min_time: Window start, epoch milliseconds
        max_time: Window end, epoch milliseconds
        now: Time the assets' current prices refer to
        steps: Number of intervals (at least 1)

    Returns:
        Points in strictly increasing timestamp order
    """
    steps = max(1, int(steps))
    span = max_time - min_time

    # Price samples only depend on the asset, build them once
    samples = {asset.id: price_samples(asset, now) for asset in assets}

    points = []
    for i in range(steps + 1):
        t = max_time if i == steps else min_time + span * i / steps

        total_cost = 0.0
        total_value = 0.0
        per_asset: dict[str, float] = {}

        for asset in assets:
            qty, cost = cumulative_at(asset.transactions, t)
            if qty <= 0:
                per_asset[asset.id] = 0.0
                continue

            value = qty * interpolate(samples[asset.id], t, asset.current_price)
            per_asset[asset.id] = value
            total_value += value
            total_cost += cost

        points.append(SeriesPoint(
            timestamp=t,
            cost_basis=total_cost,
            market_value=total_value,
            per_asset_value=per_asset,
        ))

    logger.debug(f"Synthesized {len(points)} points for {len(assets)} assets")
    return points


def synthesize(
    assets: Sequence[Asset],
    selector: Union[TimeRange, str] = TimeRange.ALL,
    custom_start: Optional[str] = None,
    custom_end: Optional[str] = None,
    *,
    now: float,
    steps: int = DEFAULT_STEPS,
) -> list[SeriesPoint]:
    """Resolve the selector's window and synthesize the series over it."""
    min_time, max_time = resolve(selector, assets, now, custom_start, custom_end)
    return synthesize_window(assets, min_time, max_time, now, steps)
