"""Resolve a chart range selector into a concrete time window."""

import logging
from typing import Iterable, Optional, Union

from .ledger import first_transaction_date
from .models import DAY_MS, Asset, TimeRange, to_timestamp_ms

logger = logging.getLogger(__name__)

LOOKBACKS = {
    TimeRange.DAY: DAY_MS,
    TimeRange.WEEK: 7 * DAY_MS,
    TimeRange.MONTH: 30 * DAY_MS,
}

# Pulls the ALL window's left edge just before the first transaction
ALL_RANGE_BIAS = 1e-5


def _parse_bound(value: Optional[str], label: str) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return to_timestamp_ms(value)
    except ValueError:
        logger.warning(f"Ignoring unparseable custom {label} date: {value!r}")
        return None


def earliest_transaction(assets: Iterable[Asset]) -> Optional[float]:
    dates = [d for d in (first_transaction_date(a.transactions) for a in assets) if d is not None]
    return min(dates) if dates else None


def resolve(
    selector: Union[TimeRange, str],
    assets: Iterable[Asset],
    now: float,
    custom_start: Optional[str] = None,
    custom_end: Optional[str] = None,
) -> tuple[float, float]:
    """Map a range selector onto ``(min_time, max_time)``.

    Args:
        selector: 24H, 1W, 1M, ALL or CUSTOM
        assets: Portfolio assets (only ALL looks at them)
        now: Current time in epoch milliseconds
        custom_start: CUSTOM window start; without it the window falls back
            to the last day
        custom_end: CUSTOM window end, defaults to now

    Returns:
        A window with min_time strictly less than max_time
    """
    selector = TimeRange.coerce(selector)
    min_time = now
    max_time = now

    if selector in LOOKBACKS:
        min_time = now - LOOKBACKS[selector]
    elif selector == TimeRange.ALL:
        earliest = earliest_transaction(assets)
        min_time = earliest if earliest is not None else now - DAY_MS
        min_time -= max(abs(min_time) * ALL_RANGE_BIAS, 1.0)
    elif selector == TimeRange.CUSTOM:
        start = _parse_bound(custom_start, "start")
        if start is not None:
            min_time = start
            end = _parse_bound(custom_end, "end")
            max_time = end if end is not None else now

    if min_time >= max_time:
        min_time = max_time - DAY_MS

    return min_time, max_time
