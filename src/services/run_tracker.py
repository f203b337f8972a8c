"""
RunTracker - one bot_runs row per bot invocation.
"""
import json
import logging
from typing import Any, Dict, Optional

from services.database import Database, to_db_time, utc_now

logger = logging.getLogger(__name__)


class RunTracker:
    def __init__(self, database: Database):
        self.db = database

    async def start_run(self, bot_name: str) -> int:
        async with self.db.connect() as conn:
            cursor = await conn.execute(
                "INSERT INTO bot_runs (bot_name, status, started_at) VALUES (?, 'running', ?)",
                (bot_name, to_db_time(utc_now())),
            )
            run_id = cursor.lastrowid
        logger.info(f"Started run {run_id} for {bot_name}")
        return run_id

    async def complete_run(
        self,
        run_id: int,
        stats: Dict[str, Any],
        summary: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self.db.execute(
            """
            UPDATE bot_runs
            SET status = 'completed', completed_at = ?, stats = ?, summary = ?
            WHERE id = ?
            """,
            (
                to_db_time(utc_now()),
                json.dumps(stats, default=str),
                json.dumps(summary or {}, default=str),
                run_id,
            ),
        )
        logger.info(f"Completed run {run_id}")

    async def fail_run(self, run_id: int, error: BaseException | str) -> None:
        await self.db.execute(
            "UPDATE bot_runs SET status = 'failed', completed_at = ?, error = ? WHERE id = ?",
            (to_db_time(utc_now()), str(error), run_id),
        )
        logger.error(f"Run {run_id} failed: {error}")

    async def get_run(self, run_id: int) -> Optional[Dict[str, Any]]:
        row = await self.db.fetchone("SELECT * FROM bot_runs WHERE id = ?", (run_id,))
        if row is None:
            return None
        run = dict(row)
        for key in ("stats", "summary"):
            if run.get(key):
                run[key] = json.loads(run[key])
        return run
