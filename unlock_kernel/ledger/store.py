"""
Ledger Archive — durable, hash-chained copy of the Completed Ledger.

The engine itself does no I/O. This is the persistence collaborator that
turns ledger snapshots into rows and back into a list of ids to restore.

Behavioral Contract:
- Append-only. Saving the same ledger twice adds no rows.
- Each row is hashed and chained to the previous row (tamper-evident).
- load() returns ids in the order they were first archived.
"""

import hashlib
import json
import logging
import sqlite3
from typing import List, Optional

from unlock_kernel.ledger.ledger import CompletedLedger
from unlock_kernel.models.unlock import LedgerEntry

logger = logging.getLogger(__name__)


class LedgerArchive:
    """
    SQLite-backed archive of achieved unlock ids.
    Use ":memory:" for tests, a file path for real saves.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        """Create the achieved table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS achieved (
                unlock_id TEXT PRIMARY KEY,
                reward_id TEXT NOT NULL,
                achieved_at TEXT NOT NULL,
                signature TEXT NOT NULL,
                prior_record_hash TEXT,
                archived_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        self._conn.commit()

    def save(self, ledger: CompletedLedger) -> int:
        """
        Archive every ledger entry not yet stored.
        Returns the number of newly written rows.
        """
        written = 0
        for entry in ledger.entries():
            if self._exists(entry.unlock_id):
                continue
            self._append(entry)
            written += 1
        self._conn.commit()
        if written:
            logger.info("Archived %d achieved unlocks to %s", written, self.db_path)
        return written

    def _append(self, entry: LedgerEntry) -> None:
        prior_hash = self._get_latest_hash()
        achieved_at = entry.achieved_at.isoformat()
        signature = _sign(entry.unlock_id, entry.reward_id, achieved_at, prior_hash)
        self._conn.execute(
            """
            INSERT INTO achieved (
                unlock_id, reward_id, achieved_at, signature, prior_record_hash
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (entry.unlock_id, entry.reward_id, achieved_at, signature, prior_hash),
        )

    def _exists(self, unlock_id: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM achieved WHERE unlock_id = ?", (unlock_id,)
        ).fetchone()
        return row is not None

    def _get_latest_hash(self) -> Optional[str]:
        """Get the signature of the most recent row."""
        row = self._conn.execute(
            "SELECT signature FROM achieved ORDER BY rowid DESC LIMIT 1"
        ).fetchone()
        return row["signature"] if row else None

    def load(self) -> List[str]:
        """Achieved unlock ids in archive order, ready for UnlockEngine.restore()."""
        rows = self._conn.execute(
            "SELECT unlock_id FROM achieved ORDER BY rowid"
        ).fetchall()
        return [r["unlock_id"] for r in rows]

    def verify_chain_integrity(self) -> bool:
        """Verify no rows have been tampered with or reordered."""
        rows = self._conn.execute(
            "SELECT unlock_id, reward_id, achieved_at, signature, prior_record_hash "
            "FROM achieved ORDER BY rowid"
        ).fetchall()

        prior_sig = None
        for row in rows:
            if row["prior_record_hash"] != prior_sig:
                return False
            expected = _sign(
                row["unlock_id"], row["reward_id"], row["achieved_at"], prior_sig
            )
            if row["signature"] != expected:
                return False
            prior_sig = row["signature"]
        return True

    def count(self) -> int:
        """Total number of archived unlocks."""
        row = self._conn.execute("SELECT COUNT(*) as cnt FROM achieved").fetchone()
        return row["cnt"]

    def clear(self) -> None:
        """Drop every archived row. Only used when a save slot is wiped."""
        self._conn.execute("DELETE FROM achieved")
        self._conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()


def _sign(
    unlock_id: str, reward_id: str, achieved_at: str, prior_hash: Optional[str]
) -> str:
    payload = {
        "unlock_id": unlock_id,
        "reward_id": reward_id,
        "achieved_at": achieved_at,
        "prior_record_hash": prior_hash,
    }
    record_bytes = json.dumps(payload, sort_keys=True).encode()
    return hashlib.sha256(record_bytes).hexdigest()
