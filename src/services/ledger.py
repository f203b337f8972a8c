"""
Ledger - append-only audit log of every bot action on every item.
Also the "already judged recently" signal used by item selection.
"""
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

import aiosqlite

from core.entities import LedgerEntry
from services.database import Database, cutoff, from_db_time, to_db_time, utc_now

logger = logging.getLogger(__name__)


def _dump_state(state: Optional[Dict[str, Any]]) -> Optional[str]:
    if state is None:
        return None
    return json.dumps(state, default=str)


def _load_state(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    return json.loads(raw)


class Ledger:
    """
    Write-once audit trail. There is no update or delete path.
    """

    def __init__(self, database: Database):
        self.db = database

    async def record(self, entry: LedgerEntry) -> None:
        """
        Append one entry. Storage failures are logged and swallowed so that
        auditing never blocks the pipeline.
        """
        created_at = entry.created_at or utc_now()
        try:
            await self.db.execute(
                """
                INSERT INTO bot_ledger
                (bot_name, action, item_type, item_id, before_state, after_state, reason, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.bot_name,
                    entry.action,
                    entry.item_type,
                    entry.item_id,
                    _dump_state(entry.before_state),
                    _dump_state(entry.after_state),
                    entry.reason,
                    to_db_time(created_at),
                ),
            )
        except (aiosqlite.Error, OSError) as e:
            logger.error(
                f"Ledger write failed: bot={entry.bot_name} action={entry.action} "
                f"item={entry.item_id}: {e}"
            )

    async def has_recent_action(
        self,
        item_id: str,
        bot_name: str,
        actions: Iterable[str],
        within_days: float = 7,
    ) -> bool:
        """True if bot_name recorded any of actions on item_id within the window."""
        actions = list(actions)
        if not actions:
            return False

        placeholders = ", ".join("?" for _ in actions)
        row = await self.db.fetchone(
            f"""
            SELECT 1 FROM bot_ledger
            WHERE item_id = ? AND bot_name = ?
              AND action IN ({placeholders})
              AND created_at > ?
            LIMIT 1
            """,
            (item_id, bot_name, *actions, cutoff(days=within_days)),
        )
        return row is not None

    async def history(self, item_id: str, limit: int = 100) -> List[LedgerEntry]:
        """Entries for one item, oldest first."""
        rows = await self.db.fetchall(
            """
            SELECT bot_name, action, item_type, item_id, before_state, after_state, reason, created_at
            FROM bot_ledger
            WHERE item_id = ?
            ORDER BY created_at ASC, id ASC
            LIMIT ?
            """,
            (item_id, limit),
        )
        return [
            LedgerEntry(
                bot_name=row["bot_name"],
                action=row["action"],
                item_type=row["item_type"],
                item_id=row["item_id"],
                before_state=_load_state(row["before_state"]),
                after_state=_load_state(row["after_state"]),
                reason=row["reason"],
                created_at=from_db_time(row["created_at"]),
            )
            for row in rows
        ]
