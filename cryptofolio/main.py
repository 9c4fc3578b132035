"""FastAPI application entry point."""

import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import HTMLResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.requests import Request

from .backup_parser import BackupParseError, backup_filename, export_backup, parse_backup_content
from .chart import DEFAULT_STEPS, hover_detail, resolve_at
from .models import CamelModel, TimeRange, now_ms, to_timestamp_ms
from .portfolio import AssetNotFoundError, Portfolio
from .price_service import price_service
from .storage_service import StorageService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Application paths
BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.environ.get("CRYPTOFOLIO_DATA_DIR", BASE_DIR / "data"))
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

MAX_STEPS = 2000

# Initialize FastAPI app
app = FastAPI(
    title="Crypto Portfolio Tracker",
    description="Track crypto holdings, cost basis and P&L with a historical value chart",
    version="1.0.0",
)

# Templates
templates = Jinja2Templates(directory=TEMPLATES_DIR)

# Global portfolio instance (loaded from the SQLite store on first use)
portfolio: Optional[Portfolio] = None


class AddTransactionRequest(CamelModel):
    ticker: str
    quantity: float
    price_per_coin: float
    date: str


def load_portfolio() -> Portfolio:
    """Load the portfolio from the data directory."""
    global portfolio
    storage = StorageService(DATA_DIR / "portfolio.db")
    portfolio = Portfolio(storage=storage, prices=price_service)
    return portfolio


def get_portfolio() -> Portfolio:
    if portfolio is None:
        return load_portfolio()
    return portfolio


def dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _chart_args(range_: str, start: Optional[str], end: Optional[str], steps: int) -> TimeRange:
    """Validate chart query parameters, raising 400 on bad input."""
    try:
        selector = TimeRange(range_.upper())
    except ValueError:
        valid = ", ".join(r.value for r in TimeRange)
        raise HTTPException(status_code=400, detail=f"Invalid range. Must be one of: {valid}")

    for label, value in (("start", start), ("end", end)):
        if value:
            try:
                to_timestamp_ms(value)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=f"Invalid {label} date: {e}")

    if steps < 1 or steps > MAX_STEPS:
        raise HTTPException(status_code=400, detail=f"Steps must be between 1 and {MAX_STEPS}")

    return selector


@app.get("/", response_class=HTMLResponse)
async def index(request: Request, range_: str = Query("ALL", alias="range")):
    """Serve the dashboard page."""
    pf = get_portfolio()
    selector = TimeRange.coerce(range_)
    _, geometry = pf.chart(selector)
    return templates.TemplateResponse(request, "index.html", {
        "summary": pf.summary(),
        "allocation": pf.allocation(),
        "assets": pf.assets,
        "geometry": geometry,
        "ticks": geometry.axis_ticks(),
        "selected_range": selector.value,
        "ranges": [r.value for r in TimeRange if r != TimeRange.CUSTOM],
    })


@app.get("/api/assets")
async def list_assets():
    """List assets in portfolio order."""
    return {"assets": [dump(a) for a in get_portfolio().assets]}


@app.post("/api/assets")
async def add_transaction(body: AddTransactionRequest):
    """Record a buy, creating the asset if it is new."""
    try:
        asset = get_portfolio().add_transaction(
            body.ticker, body.quantity, body.price_per_coin, body.date
        )
        return {"asset": dump(asset)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error adding transaction: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/api/assets/{asset_id}")
async def remove_asset(asset_id: str):
    try:
        get_portfolio().remove_asset(asset_id)
        return {"message": f"Removed asset {asset_id}"}
    except AssetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/api/assets/{asset_id}/refresh")
async def refresh_asset(asset_id: str):
    """Refresh one asset's price."""
    try:
        return {"asset": dump(get_portfolio().refresh_asset(asset_id))}
    except AssetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error refreshing asset {asset_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/assets/{asset_id}/history")
async def retry_history(asset_id: str):
    """Fetch price history again for one asset."""
    try:
        return {"asset": dump(get_portfolio().retry_history(asset_id))}
    except AssetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error fetching history for {asset_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/refresh")
async def refresh_all():
    """Refresh prices for every asset."""
    try:
        assets = get_portfolio().refresh_all()
        return {"assets": [dump(a) for a in assets]}
    except Exception as e:
        logger.error(f"Error refreshing portfolio: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/summary")
async def get_summary():
    """Get portfolio totals."""
    return dump(get_portfolio().summary())


@app.get("/api/allocation")
async def get_allocation():
    return {"allocation": [dump(s) for s in get_portfolio().allocation()]}


@app.get("/api/history")
async def get_history():
    """Value snapshots recorded on refresh."""
    return {"history": [dump(h) for h in get_portfolio().history]}


@app.get("/api/chart")
async def get_chart(
    range_: str = Query("ALL", alias="range", description="24H, 1W, 1M, ALL or CUSTOM"),
    start: Optional[str] = Query(None, description="CUSTOM start date (YYYY-MM-DD)"),
    end: Optional[str] = Query(None, description="CUSTOM end date (YYYY-MM-DD)"),
    steps: int = Query(DEFAULT_STEPS, description="Number of intervals"),
):
    """Get the synthesized value series and stacked chart geometry."""
    selector = _chart_args(range_, start, end, steps)
    try:
        points, geometry = get_portfolio().chart(selector, start, end, now=now_ms(), steps=steps)
        return {
            "range": selector.value,
            "points": [dump(p) for p in points],
            "geometry": dump(geometry),
            "ticks": dump(geometry.axis_ticks()),
            "paths": {
                "regions": {r.asset_id: r.svg_path() for r in geometry.regions},
                "costBasis": geometry.cost_basis_svg_path(),
            },
        }
    except Exception as e:
        logger.error(f"Error building chart: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/chart/point")
async def get_chart_point(
    ratio: float = Query(..., description="Horizontal position on the chart, 0..1"),
    range_: str = Query("ALL", alias="range"),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    steps: int = Query(DEFAULT_STEPS),
):
    """Get the sample under a horizontal chart position."""
    selector = _chart_args(range_, start, end, steps)
    pf = get_portfolio()
    points, _ = pf.chart(selector, start, end, now=now_ms(), steps=steps)
    point = resolve_at(points, ratio)
    if point is None:
        raise HTTPException(status_code=404, detail="No chart data")
    return {"point": dump(point), "detail": dump(hover_detail(point, pf.assets))}


@app.get("/api/export")
async def export_data():
    """Download all assets and snapshots as a JSON backup."""
    pf = get_portfolio()
    content = export_backup(pf.assets, pf.history)
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )


@app.post("/api/import")
async def import_data(file: UploadFile = File(...)):
    """Replace the portfolio with the contents of a JSON backup."""
    if not file.filename.endswith(".json"):
        raise HTTPException(status_code=400, detail="File must be a JSON file")

    try:
        content = await file.read()
        assets, history = parse_backup_content(content.decode("utf-8-sig"))
        get_portfolio().replace_all(assets, history)
        return {
            "message": f"Successfully imported {file.filename}",
            "assets_count": len(assets),
        }
    except BackupParseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=400,
            detail="File encoding error. Please use UTF-8 encoding.",
        )
    except Exception as e:
        logger.error(f"Error importing backup: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/storage/stats")
async def get_storage_stats():
    """Get storage statistics."""
    pf = get_portfolio()
    if pf.storage is None:
        return {}
    return pf.storage.get_stats()


@app.post("/api/cache/clear")
async def clear_cache():
    """Drop cached prices and histories so the next refresh hits Yahoo Finance."""
    try:
        price_service.clear_cache()
        return {"message": "Cache cleared successfully"}
    except Exception as e:
        logger.error(f"Error clearing cache: {e}")
        raise HTTPException(status_code=500, detail=str(e))
