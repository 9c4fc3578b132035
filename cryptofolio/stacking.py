"""Stacked-area geometry for the portfolio value chart."""

from typing import Iterable, Optional, Sequence

from .models import Asset, SeriesPoint, StackedRegion, StackGeometry, color_for

CANVAS_WIDTH = 100.0
CANVAS_HEIGHT = 100.0
HEADROOM = 1.1
# Scale used when every value in the series is zero
EMPTY_PLACEHOLDER_MAX = 100.0


def max_observed_value(points: Iterable[SeriesPoint]) -> float:
    highest = 0.0
    for point in points:
        highest = max(highest, point.market_value, point.cost_basis)
    return highest if highest > 0 else EMPTY_PLACEHOLDER_MAX


def build_stack(
    points: Sequence[SeriesPoint],
    asset_order: Sequence[str],
    assets: Optional[Sequence[Asset]] = None,
    width: float = CANVAS_WIDTH,
    height: float = CANVAS_HEIGHT,
) -> StackGeometry:
    """Build stacked regions and the cost-basis line from a synthesized series.

    Assets are stacked bottom-up in ``asset_order``: each region sits on the
    running total of the regions below it. Assets worth nothing at every
    point are left out, which does not disturb the baselines since they add
    zero.

    Args:
        points: Output of the series synthesizer
        asset_order: Asset ids, bottom of the stack first
        assets: Optional assets used to label regions with tickers
        width: Canvas width
        height: Canvas height

    Returns:
        StackGeometry with canvas coordinates
    """
    if not points:
        return StackGeometry(
            regions=[], cost_basis_line=[], max_value=EMPTY_PLACEHOLDER_MAX,
            width=width, height=height,
        )

    min_time = points[0].timestamp
    max_time = points[-1].timestamp
    span = max_time - min_time
    max_value = max_observed_value(points) * HEADROOM

    def get_x(ts: float) -> float:
        if span <= 0:
            return 0.0
        return (ts - min_time) / span * width

    def get_y(value: float) -> float:
        return height - (value / max_value) * height

    tickers = {a.id: a.ticker for a in assets} if assets else {}
    xs = [get_x(p.timestamp) for p in points]
    baseline = [0.0] * len(points)
    regions = []

    for index, asset_id in enumerate(asset_order):
        values = [p.per_asset_value.get(asset_id, 0.0) for p in points]
        if not any(v != 0 for v in values):
            continue

        top_values = [b + v for b, v in zip(baseline, values)]
        regions.append(StackedRegion(
            asset_id=asset_id,
            ticker=tickers.get(asset_id),
            color=color_for(index),
            top_values=top_values,
            bottom_values=list(baseline),
            top=[(x, get_y(v)) for x, v in zip(xs, top_values)],
            bottom=[(x, get_y(v)) for x, v in zip(xs, baseline)],
        ))
        baseline = top_values

    cost_basis_line = [(x, get_y(p.cost_basis)) for x, p in zip(xs, points)]

    return StackGeometry(
        regions=regions,
        cost_basis_line=cost_basis_line,
        max_value=max_value,
        width=width,
        height=height,
        min_time=min_time,
        max_time=max_time,
    )
