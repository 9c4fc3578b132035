"""Data models for the crypto portfolio dashboard."""

import math
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DAY_MS = 24 * 60 * 60 * 1000

# Stacked regions are coloured by the asset's position in the portfolio
CHART_COLORS = [
    "#6366f1", "#10b981", "#0ea5e9", "#f59e0b", "#f43f5e", "#a855f7", "#ec4899", "#06b6d4",
]

DATE_FORMATS = ["%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d"]


def color_for(index: int) -> str:
    return CHART_COLORS[index % len(CHART_COLORS)]


def new_id() -> str:
    return uuid.uuid4().hex


def now_ms() -> float:
    """Current wall-clock time as epoch milliseconds."""
    return datetime.now(timezone.utc).timestamp() * 1000


def _parse_timestamp_ms(value: Union[str, int, float, date, datetime]) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp() * 1000
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp() * 1000
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty date value")
        # Strings are calendar dates; epoch milliseconds only arrive as numbers
        try:
            return _parse_timestamp_ms(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
        for fmt in DATE_FORMATS:
            try:
                return _parse_timestamp_ms(datetime.strptime(text, fmt))
            except ValueError:
                continue
    raise ValueError(f"Invalid date format: {value!r}")


def to_timestamp_ms(value: Union[str, int, float, date, datetime]) -> float:
    """Normalize a date-like value to epoch milliseconds.

    Naive dates and datetimes are read as UTC, which matches how the
    dashboard's date inputs were stored. Numbers are taken as epoch
    milliseconds; strings must be calendar dates.

    Raises:
        ValueError: If the value cannot be interpreted as a finite point in time
    """
    result = _parse_timestamp_ms(value)
    if not math.isfinite(result):
        raise ValueError(f"Timestamp is not finite: {value!r}")
    return result


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys (backup file format)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TransactionType(str, Enum):
    """Transaction types."""
    BUY = "BUY"
    SELL = "SELL"


class TimeRange(str, Enum):
    """Chart range selectors."""
    DAY = "24H"
    WEEK = "1W"
    MONTH = "1M"
    ALL = "ALL"
    CUSTOM = "CUSTOM"

    @classmethod
    def coerce(cls, value: Union[str, "TimeRange", None]) -> "TimeRange":
        """Map a selector string onto a TimeRange, defaulting to ALL."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.ALL


class SourceLink(CamelModel):
    """A page a price was read from."""
    title: str
    url: str


class Transaction(CamelModel):
    """A single ledger entry. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    type: TransactionType = TransactionType.BUY
    quantity: float = Field(gt=0)
    price_per_coin: float = Field(ge=0)
    date: float
    total_cost: Optional[float] = None

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v):
        """Accept epoch ms, ISO strings, dates and datetimes."""
        return to_timestamp_ms(v)

    @model_validator(mode="after")
    def fill_total_cost(self) -> "Transaction":
        """total_cost defaults to quantity * price_per_coin."""
        if self.total_cost is None:
            object.__setattr__(self, "total_cost", self.quantity * self.price_per_coin)
        return self


class Asset(CamelModel):
    """A tracked coin with its ledger and optional price history.

    The charting code only ever reads assets; the portfolio replaces an
    asset with ``model_copy(update=...)`` instead of mutating it.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    ticker: str
    name: Optional[str] = None
    quantity: float = 0.0
    current_price: float = 0.0
    last_updated: Optional[datetime] = None
    sources: list[SourceLink] = Field(default_factory=list)
    error: Optional[str] = None
    transactions: list[Transaction] = Field(default_factory=list)
    avg_buy_price: float = 0.0
    total_cost_basis: float = 0.0
    price_history: Optional[list[tuple[float, float]]] = None

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        """Normalize ticker symbol to uppercase."""
        return v.upper().strip()

    @property
    def has_history(self) -> bool:
        return bool(self.price_history)

    @property
    def market_value(self) -> float:
        return self.quantity * self.current_price


class HistorySnapshot(CamelModel):
    """Point-in-time record of the portfolio's value taken on refresh."""
    timestamp: float
    total_value: float
    asset_values: dict[str, float] = Field(default_factory=dict)


class SeriesPoint(CamelModel):
    """One synthesized sample of the portfolio value curve."""
    model_config = ConfigDict(frozen=True)

    timestamp: float
    cost_basis: float
    market_value: float
    per_asset_value: dict[str, float]


class StackedRegion(CamelModel):
    """One asset's band in the stacked value chart.

    ``top_values``/``bottom_values`` are in value space; ``top``/``bottom``
    are the same baselines mapped onto the canvas, index for index.
    """
    asset_id: str
    ticker: Optional[str] = None
    color: str
    top_values: list[float]
    bottom_values: list[float]
    top: list[tuple[float, float]]
    bottom: list[tuple[float, float]]

    def polygon(self) -> list[tuple[float, float]]:
        """Closed outline: top line left to right, bottom line right to left."""
        return list(self.top) + list(reversed(self.bottom))

    def svg_path(self) -> str:
        outline = self.polygon()
        if len(self.top) < 2:
            return ""
        first, rest = outline[0], outline[1:]
        d = f"M {first[0]:.2f},{first[1]:.2f}"
        for x, y in rest:
            d += f" L {x:.2f},{y:.2f}"
        return d + " Z"


class AxisTicks(CamelModel):
    x: list[float]
    y: list[float]


class StackGeometry(CamelModel):
    """Everything needed to draw the stacked value chart."""
    regions: list[StackedRegion]
    cost_basis_line: list[tuple[float, float]]
    max_value: float
    width: float
    height: float
    min_time: Optional[float] = None
    max_time: Optional[float] = None

    def cost_basis_svg_path(self) -> str:
        if not self.cost_basis_line:
            return ""
        return "M " + " L ".join(f"{x:.2f},{y:.2f}" for x, y in self.cost_basis_line)

    def axis_ticks(self) -> AxisTicks:
        """Three evenly spaced ticks on each axis (left/middle/right, top/middle/bottom)."""
        if self.min_time is None or self.max_time is None:
            return AxisTicks(x=[], y=[])
        span = self.max_time - self.min_time
        return AxisTicks(
            x=[self.min_time + span * p for p in (0, 0.5, 1)],
            y=[self.max_value * (1 - p) for p in (0, 0.5, 1)],
        )


class HoldingAtPoint(CamelModel):
    asset_id: str
    ticker: str
    value: float
    color: str


class HoverDetail(CamelModel):
    """Tooltip payload for one sample of the chart."""
    timestamp: float
    market_value: float
    cost_basis: float
    pnl_percent: float
    holdings: list[HoldingAtPoint]


class AllocationSlice(CamelModel):
    asset_id: str
    ticker: str
    value: float
    percent: float
    color: str


class PortfolioSummary(CamelModel):
    """Overall portfolio summary."""
    total_value: float
    total_cost_basis: float
    total_pnl: float
    total_pnl_percent: float
    asset_count: int
    last_global_update: Optional[datetime] = None
