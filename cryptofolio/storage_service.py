"""Storage service for persisting assets and value snapshots using SQLite."""

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from .models import Asset, HistorySnapshot

logger = logging.getLogger(__name__)


class StorageService:
    """SQLite-backed store for the portfolio's assets and value snapshots."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the storage service.

        Args:
            db_path: Path to SQLite database file. Defaults to data/portfolio.db
        """
        if db_path is None:
            db_path = Path(__file__).parent.parent / "data" / "portfolio.db"

        self.db_path = Path(db_path)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            # Assets keep their portfolio order, which is also the stacking order
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS assets (
                    id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS history_snapshots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp REAL NOT NULL,
                    payload TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_history_snapshots_timestamp
                ON history_snapshots(timestamp)
            """)

            conn.commit()
            logger.info(f"Portfolio database initialized at {self.db_path}")

    # --- Asset Methods ---

    def load_assets(self) -> list[Asset]:
        """Load all assets in portfolio order."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT payload FROM assets ORDER BY position")
            rows = cursor.fetchall()

        assets = []
        for (payload,) in rows:
            try:
                assets.append(Asset.model_validate_json(payload))
            except ValueError as e:
                logger.error(f"Skipping unreadable stored asset: {e}")
        return assets

    def save_assets(self, assets: list[Asset]) -> int:
        """Replace the stored assets with the given ordered list.

        Returns:
            Number of assets saved
        """
        rows = [
            (asset.id, position, asset.model_dump_json(by_alias=True))
            for position, asset in enumerate(assets)
        ]

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM assets")
            cursor.executemany(
                "INSERT INTO assets (id, position, payload) VALUES (?, ?, ?)",
                rows
            )
            conn.commit()

        logger.info(f"Saved {len(rows)} assets")
        return len(rows)

    # --- Snapshot Methods ---

    def load_snapshots(self, limit: Optional[int] = None) -> list[HistorySnapshot]:
        """Load value snapshots, oldest first.

        Args:
            limit: Only return the most recent ``limit`` snapshots
        """
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            if limit is None:
                cursor.execute("SELECT payload FROM history_snapshots ORDER BY timestamp, id")
                rows = cursor.fetchall()
            else:
                cursor.execute(
                    """SELECT payload FROM history_snapshots
                       ORDER BY timestamp DESC, id DESC LIMIT ?""",
                    (limit,)
                )
                rows = list(reversed(cursor.fetchall()))

        return [HistorySnapshot.model_validate_json(payload) for (payload,) in rows]

    def save_snapshots(self, snapshots: list[HistorySnapshot]) -> int:
        """Replace the stored snapshots.

        Returns:
            Number of snapshots saved
        """
        rows = [(s.timestamp, s.model_dump_json(by_alias=True)) for s in snapshots]

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM history_snapshots")
            cursor.executemany(
                "INSERT INTO history_snapshots (timestamp, payload) VALUES (?, ?)",
                rows
            )
            conn.commit()
        return len(rows)

    # --- Utility Methods ---

    def clear(self) -> None:
        """Delete all stored data."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM assets")
            cursor.execute("DELETE FROM history_snapshots")
            conn.commit()
        logger.info("Storage cleared")

    def get_stats(self) -> dict:
        """Get storage statistics."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute("SELECT COUNT(*) FROM assets")
            asset_count = cursor.fetchone()[0]

            cursor.execute("SELECT COUNT(*) FROM history_snapshots")
            snapshot_count = cursor.fetchone()[0]

            cursor.execute("SELECT MIN(timestamp), MAX(timestamp) FROM history_snapshots")
            snapshot_range = cursor.fetchone()

        return {
            "asset_count": asset_count,
            "snapshot_count": snapshot_count,
            "snapshot_range": snapshot_range,
            "db_size_bytes": self.db_path.stat().st_size if self.db_path.exists() else 0,
        }
