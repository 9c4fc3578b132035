"""Point lookups on a synthesized series for chart hover."""

import math
from typing import Optional, Sequence

from .models import Asset, HoldingAtPoint, HoverDetail, SeriesPoint, color_for


def resolve_at(points: Sequence[SeriesPoint], ratio: float) -> Optional[SeriesPoint]:
    """Sample under a horizontal position on the chart.

    ``ratio`` is clamped to [0, 1] and mapped to the nearest preceding
    sample; there is no interpolation between samples.
    """
    if not points:
        return None
    if math.isnan(ratio):
        ratio = 0.0
    ratio = max(0.0, min(1.0, ratio))
    return points[math.floor(ratio * (len(points) - 1))]


def hover_detail(point: SeriesPoint, assets: Sequence[Asset]) -> HoverDetail:
    """Tooltip content for a sample: totals, P&L and the holdings held then."""
    holdings = [
        HoldingAtPoint(
            asset_id=asset.id,
            ticker=asset.ticker,
            value=point.per_asset_value.get(asset.id, 0.0),
            color=color_for(index),
        )
        for index, asset in enumerate(assets)
    ]
    holdings = sorted((h for h in holdings if h.value > 0), key=lambda h: h.value, reverse=True)

    pnl_percent = (point.market_value - point.cost_basis) / (point.cost_basis or 1) * 100

    return HoverDetail(
        timestamp=point.timestamp,
        market_value=point.market_value,
        cost_basis=point.cost_basis,
        pnl_percent=pnl_percent,
        holdings=holdings,
    )
