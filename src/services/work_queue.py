"""
WorkQueue - durable work items shared by producer and consumer bots.

Status lifecycle:
    pending --claim--> processing --complete--> completed
                                  --fail------> failed

Every transition is a conditional UPDATE on the current status; the
affected row count decides whether the caller won the transition. Rows
stuck in processing are left for an operator to reset.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from core.entities import LedgerAction, LedgerEntry, WorkItem, WorkStatus
from core.routing import HIGHEST_PRIORITY, LOWEST_PRIORITY
from services.database import Database, cutoff, from_db_time, to_db_time, utc_now
from services.ledger import Ledger

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (WorkStatus.PENDING.value, WorkStatus.PROCESSING.value)


class QueueError(Exception):
    """Base error for work queue misuse."""


class InvalidPriorityError(QueueError, ValueError):
    pass


def _row_to_work_item(row) -> WorkItem:
    return WorkItem(
        id=row["id"],
        item_id=row["item_id"],
        item_type=row["item_type"],
        action=row["action"],
        priority=row["priority"],
        status=WorkStatus(row["status"]),
        reason=row["reason"],
        created_by=row["created_by"],
        assigned_to=row["assigned_to"],
        created_at=from_db_time(row["created_at"]),
        started_at=from_db_time(row["started_at"]),
        completed_at=from_db_time(row["completed_at"]),
        result=json.loads(row["result"]) if row["result"] else None,
    )


class WorkQueue:
    """
    Priority-ordered work queue over the shared database.
    Pass a Ledger to audit claim/complete/fail transitions.
    """

    def __init__(self, database: Database, ledger: Optional[Ledger] = None):
        self.db = database
        self.ledger = ledger

    async def enqueue(
        self,
        item_id: str,
        action: str,
        reason: str,
        created_by: str,
        priority: int = LOWEST_PRIORITY,
        *,
        item_type: str = "question",
        assigned_to: str = "processor",
    ) -> int:
        """
        Add a work item unless an active one already exists for
        (item_id, action, assigned_to). Returns the new or existing id.
        """
        if not HIGHEST_PRIORITY <= priority <= LOWEST_PRIORITY:
            raise InvalidPriorityError(
                f"Priority must be between {HIGHEST_PRIORITY} and {LOWEST_PRIORITY}, got {priority}"
            )

        async with self.db.transaction() as conn:
            cursor = await conn.execute(
                """
                SELECT id FROM work_queue
                WHERE item_id = ? AND action = ? AND assigned_to = ?
                  AND status IN (?, ?)
                ORDER BY id ASC
                LIMIT 1
                """,
                (item_id, action, assigned_to, *ACTIVE_STATUSES),
            )
            existing = await cursor.fetchone()
            if existing is not None:
                logger.info(
                    f"Work item already queued for {item_id} ({action} -> {assigned_to}), "
                    f"reusing id {existing['id']}"
                )
                return existing["id"]

            cursor = await conn.execute(
                """
                INSERT INTO work_queue
                (item_type, item_id, action, priority, status, reason, created_by, assigned_to, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item_type,
                    item_id,
                    action,
                    priority,
                    WorkStatus.PENDING.value,
                    reason,
                    created_by,
                    assigned_to,
                    to_db_time(utc_now()),
                ),
            )
            work_item_id = cursor.lastrowid

        logger.info(f"Queued work item {work_item_id}: {action} {item_id} (priority {priority})")
        return work_item_id

    async def claim_next(self, bot_type: str, limit: int = 1) -> List[WorkItem]:
        """
        Claim up to limit pending items for bot_type, most urgent first,
        FIFO within a priority. A row is ours only if the conditional
        update matched it.
        """
        if limit <= 0:
            return []

        started_at = to_db_time(utc_now())
        claimed_ids: List[int] = []

        async with self.db.transaction() as conn:
            cursor = await conn.execute(
                """
                SELECT id FROM work_queue
                WHERE assigned_to = ? AND status = ?
                ORDER BY priority ASC, created_at ASC, id ASC
                LIMIT ?
                """,
                (bot_type, WorkStatus.PENDING.value, limit),
            )
            candidates = [row["id"] for row in await cursor.fetchall()]

            for work_item_id in candidates:
                cursor = await conn.execute(
                    """
                    UPDATE work_queue
                    SET status = ?, started_at = ?
                    WHERE id = ? AND status = ?
                    """,
                    (WorkStatus.PROCESSING.value, started_at, work_item_id, WorkStatus.PENDING.value),
                )
                if cursor.rowcount == 1:
                    claimed_ids.append(work_item_id)

        if not claimed_ids:
            return []

        claimed = await self._get_many(claimed_ids)
        for work_item in claimed:
            await self._audit(
                bot_type,
                LedgerAction.CLAIM,
                work_item,
                before={"status": WorkStatus.PENDING.value},
                after={"status": WorkStatus.PROCESSING.value, "work_item_id": work_item.id},
                reason=f"Claimed {work_item.action} (priority {work_item.priority})",
            )

        logger.info(f"{bot_type} claimed {len(claimed)} work item(s)")
        return claimed

    async def complete(self, work_item_id: int, result: Optional[Dict[str, Any]] = None) -> bool:
        """processing -> completed. Returns False (and changes nothing) otherwise."""
        return await self._finish(work_item_id, WorkStatus.COMPLETED, result or {})

    async def fail(self, work_item_id: int, error: str) -> bool:
        """processing -> failed, storing the error in result."""
        return await self._finish(work_item_id, WorkStatus.FAILED, {"error": str(error)})

    async def _finish(self, work_item_id: int, status: WorkStatus, result: Dict[str, Any]) -> bool:
        rowcount = await self.db.execute(
            """
            UPDATE work_queue
            SET status = ?, completed_at = ?, result = ?
            WHERE id = ? AND status = ?
            """,
            (
                status.value,
                to_db_time(utc_now()),
                json.dumps(result, default=str),
                work_item_id,
                WorkStatus.PROCESSING.value,
            ),
        )

        if rowcount != 1:
            logger.info(
                f"Work item {work_item_id} not in processing, ignoring {status.value} transition"
            )
            return False

        work_item = await self.get(work_item_id)
        if work_item is not None:
            action = LedgerAction.COMPLETE if status is WorkStatus.COMPLETED else LedgerAction.FAIL
            await self._audit(
                work_item.assigned_to,
                action,
                work_item,
                before={"status": WorkStatus.PROCESSING.value},
                after={"status": status.value, "result": result},
                reason=f"{work_item.action} {status.value}",
            )
        return True

    async def get(self, work_item_id: int) -> Optional[WorkItem]:
        row = await self.db.fetchone("SELECT * FROM work_queue WHERE id = ?", (work_item_id,))
        return _row_to_work_item(row) if row else None

    async def _get_many(self, ids: List[int]) -> List[WorkItem]:
        placeholders = ", ".join("?" for _ in ids)
        rows = await self.db.fetchall(
            f"""
            SELECT * FROM work_queue WHERE id IN ({placeholders})
            ORDER BY priority ASC, created_at ASC, id ASC
            """,
            tuple(ids),
        )
        return [_row_to_work_item(row) for row in rows]

    async def find(
        self,
        item_id: str,
        action: Optional[str] = None,
        status: Optional[WorkStatus] = None,
    ) -> List[WorkItem]:
        """Work items for one content item, oldest first."""
        query = "SELECT * FROM work_queue WHERE item_id = ?"
        params: list = [item_id]
        if action:
            query += " AND action = ?"
            params.append(action)
        if status:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY id ASC"

        rows = await self.db.fetchall(query, tuple(params))
        return [_row_to_work_item(row) for row in rows]

    async def stats(self, assigned_to: Optional[str] = None) -> Dict[str, int]:
        """Row counts per status."""
        counts = {status.value: 0 for status in WorkStatus}
        if assigned_to:
            rows = await self.db.fetchall(
                "SELECT status, COUNT(*) AS n FROM work_queue WHERE assigned_to = ? GROUP BY status",
                (assigned_to,),
            )
        else:
            rows = await self.db.fetchall(
                "SELECT status, COUNT(*) AS n FROM work_queue GROUP BY status"
            )
        for row in rows:
            counts[row["status"]] = row["n"]
        return counts

    async def cleanup(self, days_old: int = 30) -> int:
        """Remove completed and failed rows finished more than days_old days ago."""
        count = await self.db.execute(
            """
            DELETE FROM work_queue
            WHERE status IN (?, ?) AND COALESCE(completed_at, created_at) < ?
            """,
            (WorkStatus.COMPLETED.value, WorkStatus.FAILED.value, cutoff(days=days_old)),
        )
        logger.info(f"Cleaned up {count} finished work items older than {days_old} days")
        return count

    async def _audit(
        self,
        bot_name: str,
        action: LedgerAction,
        work_item: WorkItem,
        *,
        before: Dict[str, Any],
        after: Dict[str, Any],
        reason: str,
    ) -> None:
        if self.ledger is None:
            return
        await self.ledger.record(
            LedgerEntry(
                bot_name=bot_name,
                action=action.value,
                item_type=work_item.item_type,
                item_id=work_item.item_id,
                before_state=before,
                after_state=after,
                reason=reason,
            )
        )
