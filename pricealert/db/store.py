"""SQLite data store for PriceAlert."""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterator, Optional

from pricealert.db.base import AlertFilter, AlertStore
from pricealert.errors import StoreUnavailableError
from pricealert.models import Alert, AlertStatus, to_local_naive

logger = logging.getLogger(__name__)

_ALERT_COLUMNS = """
    id, instrument_key, display_label, category, note, threshold, direction,
    status, created_at, expires_at, triggered_at
"""


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class DataStore(AlertStore):
    """SQLite-based alert store for PriceAlert."""

    REQUIRED_TABLES = ["alerts"]

    def __init__(self, db_path: Path):
        """Initialize the data store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, translating SQLite failures.

        Raises:
            StoreUnavailableError: On any SQLite error.
        """
        try:
            conn = sqlite3.connect(self.db_path, timeout=10)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Alert store error: {e}") from e
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS alerts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    instrument_key TEXT NOT NULL,
                    display_label TEXT NOT NULL,
                    category TEXT NOT NULL DEFAULT '',
                    note TEXT NOT NULL DEFAULT '',
                    threshold TEXT NOT NULL,
                    direction TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active',
                    created_at TEXT NOT NULL,
                    expires_at TEXT,
                    triggered_at TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_alerts_status ON alerts (status)"
            )
            conn.commit()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]

    @staticmethod
    def _row_to_alert(row: sqlite3.Row) -> Alert:
        return Alert(
            id=row["id"],
            instrument_key=row["instrument_key"],
            display_label=row["display_label"],
            category=row["category"],
            note=row["note"],
            threshold=Decimal(row["threshold"]),
            direction=row["direction"],
            status=row["status"],
            created_at=datetime.fromisoformat(row["created_at"]),
            expires_at=_parse_dt(row["expires_at"]),
            triggered_at=_parse_dt(row["triggered_at"]),
        )

    # ==================== Alerts ====================

    def save_alert(self, alert: Alert) -> int:
        """Save an alert to the database.

        Args:
            alert: Alert to save.

        Returns:
            The ID of the saved alert.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO alerts
                (instrument_key, display_label, category, note, threshold, direction,
                 status, created_at, expires_at, triggered_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    alert.instrument_key,
                    alert.display_label,
                    alert.category,
                    alert.note,
                    str(alert.threshold),
                    alert.direction,
                    alert.status,
                    alert.created_at.isoformat(),
                    alert.expires_at.isoformat() if alert.expires_at else None,
                    alert.triggered_at.isoformat() if alert.triggered_at else None,
                ),
            )
            conn.commit()
            return cursor.lastrowid or 0

    def get_alerts(self, status: Optional[AlertStatus] = None) -> list[Alert]:
        """Get all alerts, optionally restricted to one status.

        Active alerts are listed first, newest first within a status.

        Args:
            status: Optional status to filter on.

        Returns:
            List of alerts.
        """
        query = f"SELECT {_ALERT_COLUMNS} FROM alerts"
        params: tuple = ()
        if status is not None:
            query += " WHERE status = ?"
            params = (status,)
        query += " ORDER BY status ASC, created_at DESC, id DESC"

        with self._connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_alert(row) for row in cursor.fetchall()]

    def get_alert_by_id(self, alert_id: int) -> Optional[Alert]:
        """Get an alert by ID.

        Args:
            alert_id: Alert ID.

        Returns:
            Alert if found, None otherwise.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_ALERT_COLUMNS} FROM alerts WHERE id = ?",
                (alert_id,),
            )
            row = cursor.fetchone()
            return self._row_to_alert(row) if row else None

    def delete_alert(self, alert_id: int) -> None:
        """Delete an alert.

        Args:
            alert_id: ID of the alert to delete.
        """
        with self._connect() as conn:
            conn.execute("DELETE FROM alerts WHERE id = ?", (alert_id,))
            conn.commit()

    def list_alerts(self, alert_filter: AlertFilter) -> list[Alert]:
        """List alerts matching a filter.

        Status is filtered in SQL; the expiry comparison is done on parsed
        datetimes.
        """
        alerts = self.get_alerts(status=alert_filter.status)
        return [alert for alert in alerts if alert_filter.matches(alert)]

    def update_status(
        self,
        alert_id: int,
        status: AlertStatus,
        triggered_at: Optional[datetime] = None,
    ) -> bool:
        """Move one alert out of the ``active`` state in a single UPDATE."""
        if status == "active":
            raise ValueError("Alerts cannot be moved back to 'active'")
        if (status == "triggered") != (triggered_at is not None):
            raise ValueError("triggered_at must be given exactly when status is 'triggered'")

        triggered_at = to_local_naive(triggered_at)

        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE alerts SET status = ?, triggered_at = ?
                WHERE id = ? AND status = 'active'
                """,
                (
                    status,
                    triggered_at.isoformat() if triggered_at else None,
                    alert_id,
                ),
            )
            conn.commit()
            updated = cursor.rowcount == 1

        if not updated:
            logger.debug("Alert %s was not active, status left unchanged", alert_id)
        return updated
