"""JSON backup import and export for portfolio data."""

import json
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from .models import Asset, HistorySnapshot


class BackupParseError(Exception):
    """Exception raised for backup parsing errors."""
    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        super().__init__(f"Asset {index}: {message}" if index is not None else message)


def backup_filename(today: Optional[datetime] = None) -> str:
    today = today or datetime.now()
    return f"portfolio-backup-{today.strftime('%Y-%m-%d')}.json"


def export_backup(assets: list[Asset], history: list[HistorySnapshot]) -> str:
    """Serialize assets and snapshots to the backup JSON format."""
    data = {
        "assets": [a.model_dump(mode="json", by_alias=True) for a in assets],
        "history": [h.model_dump(mode="json", by_alias=True) for h in history],
    }
    return json.dumps(data, indent=2)


def _parse_assets(items: list) -> list[Asset]:
    assets = []
    for index, item in enumerate(items):
        try:
            assets.append(Asset.model_validate(item))
        except ValidationError as e:
            raise BackupParseError(str(e), index)
    return assets


def parse_backup_content(content: str) -> tuple[list[Asset], Optional[list[HistorySnapshot]]]:
    """Parse backup JSON from a string.

    Accepts both the current format, an object with ``assets`` and optional
    ``history``, and the older format that was a bare array of assets.

    Args:
        content: Backup file content

    Returns:
        (assets, history); history is None when the backup has none

    Raises:
        BackupParseError: If the content is not a valid backup
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise BackupParseError(f"Invalid JSON: {e}")

    if isinstance(data, list):
        return _parse_assets(data), None

    if not isinstance(data, dict) or not isinstance(data.get("assets"), list):
        raise BackupParseError("Invalid file format: expected an asset list or an object with 'assets'")

    assets = _parse_assets(data["assets"])

    history = None
    if data.get("history") is not None:
        if not isinstance(data["history"], list):
            raise BackupParseError("Invalid file format: 'history' must be a list")
        try:
            history = [HistorySnapshot.model_validate(h) for h in data["history"]]
        except ValidationError as e:
            raise BackupParseError(f"Invalid history snapshot: {e}")

    return assets, history
