"""SQLite-backed bid repository storing each bid as a JSON document."""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from licitax.models.bid import Bid
from licitax.store.base import BidRepository, merge_patch

logger = logging.getLogger(__name__)


class SqliteBidRepository(BidRepository):
    """
    SQLite store for bids. The full record lives in a JSON column;
    status and numero are mirrored in columns for listing.
    """

    def __init__(self, db_path: str | Path = "licitax.db"):
        self._db_path = Path(db_path)
        self._ensure_schema()

    def _connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        schema_path = Path(__file__).parent / "schema.sql"
        with self._connection() as conn:
            conn.executescript(schema_path.read_text())

    def _serialize_bid(self, bid: Bid) -> str:
        """Serialize bid to JSON for storage."""
        return json.dumps(bid.model_dump(mode="json"), default=str)

    def _deserialize_bid(self, row: sqlite3.Row) -> Bid:
        """Deserialize stored row to Bid."""
        return Bid.model_validate(json.loads(row["data"]))

    def get(self, bid_id: str) -> Optional[Bid]:
        """Get single bid by id."""
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM bids WHERE id = ?", (bid_id,)).fetchone()
        return self._deserialize_bid(row) if row else None

    def add(self, bid: Bid) -> Bid:
        """Insert a new bid. Raises ValueError on duplicate id."""
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._connection() as conn:
                conn.execute(
                    """
                    INSERT INTO bids (id, numero, status, data, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (bid.id, bid.numero, bid.status.value, self._serialize_bid(bid), now, now),
                )
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Bid {bid.id} already exists") from e
        return bid

    def patch(self, bid_id: str, changes: dict[str, Any]) -> bool:
        """
        Read-modify-write of the full record inside one transaction.
        Returns False (and logs) when the bid is missing, the merge is
        invalid, or SQLite rejects the write.
        """
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._connection() as conn:
                row = conn.execute("SELECT * FROM bids WHERE id = ?", (bid_id,)).fetchone()
                if row is None:
                    logger.warning("Bid patch failed: %s not found", bid_id)
                    return False
                updated = merge_patch(self._deserialize_bid(row), changes)
                conn.execute(
                    "UPDATE bids SET numero = ?, status = ?, data = ?, updated_at = ? WHERE id = ?",
                    (updated.numero, updated.status.value, self._serialize_bid(updated), now, bid_id),
                )
                conn.commit()
        except (ValueError, ValidationError) as e:
            logger.warning("Bid patch rejected for %s: %s", bid_id, e)
            return False
        except sqlite3.Error as e:
            logger.warning("Bid patch write failed for %s: %s", bid_id, e)
            return False
        return True

    def list_all(self) -> list[Bid]:
        """Return all bids, oldest first."""
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM bids ORDER BY created_at ASC").fetchall()
        return [self._deserialize_bid(r) for r in rows]

    def get_by_status(self, status: str) -> list[Bid]:
        """Return bids with given status."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM bids WHERE status = ? ORDER BY created_at ASC",
                (status,),
            ).fetchall()
        return [self._deserialize_bid(r) for r in rows]

    def delete(self, bid_id: str) -> bool:
        """Delete a bid. Returns False if it did not exist."""
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM bids WHERE id = ?", (bid_id,))
            conn.commit()
        return cursor.rowcount > 0
