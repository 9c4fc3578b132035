"""Price estimation at arbitrary timestamps.

Two strategies, picked per asset:

* History: the asset carries a fetched ``price_history`` of
  ``(timestamp, price)`` samples sorted ascending.
* Anchor fallback: no history, so anchors are derived from the price paid
  on each transaction plus the asset's current price at ``now``.

Both clamp to the boundary sample outside the known range and interpolate
linearly in between.
"""

import bisect
from typing import Sequence

from .models import Asset

Sample = tuple[float, float]


def build_anchors(asset: Asset, now: float) -> list[Sample]:
    """Anchor points for an asset without price history.

    One anchor per transaction at its purchase price, plus the current price
    at ``now``. Sorted by time; of several anchors sharing a timestamp only
    the first one seen is kept.
    """
    anchors = [(txn.date, txn.price_per_coin) for txn in asset.transactions]
    anchors.append((now, asset.current_price))
    anchors.sort(key=lambda a: a[0])

    unique: list[Sample] = []
    for anchor in anchors:
        if not unique or anchor[0] > unique[-1][0]:
            unique.append(anchor)
    return unique


def price_samples(asset: Asset, now: float) -> list[Sample]:
    """The series estimate_price interpolates over for this asset."""
    if asset.has_history:
        return [(float(ts), float(price)) for ts, price in asset.price_history]
    return build_anchors(asset, now)


def interpolate(samples: Sequence[Sample], t: float, default: float) -> float:
    """Clamped linear interpolation over ascending samples.

    Returns ``default`` when there are no samples at all.
    """
    if not samples:
        return default

    timestamps = [s[0] for s in samples]
    # First sample at or after t
    idx = bisect.bisect_left(timestamps, t)

    if idx == 0:
        return samples[0][1]
    if idx == len(samples):
        return samples[-1][1]

    p2_time, p2_price = samples[idx]
    if p2_time == t:
        return p2_price

    p1_time, p1_price = samples[idx - 1]
    span = p2_time - p1_time
    if span <= 0:
        return p1_price
    return p1_price + (p2_price - p1_price) * (t - p1_time) / span


def estimate_price(asset: Asset, t: float, now: float) -> float:
    """Estimated price of one coin of ``asset`` at time ``t``.

    Args:
        asset: Asset to price
        t: Epoch milliseconds
        now: Time the asset's current price refers to (anchor fallback only)

    Returns:
        Price estimate, or ``asset.current_price`` when nothing is known
    """
    return interpolate(price_samples(asset, now), t, asset.current_price)
