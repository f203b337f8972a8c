"""
Item source backed by the shared questions table.
"""
import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from ingestion.base import ContentItem, ItemNotFoundError, ItemSource
from services.database import Database, cutoff

logger = logging.getLogger(__name__)

JUDGED_ACTIONS = ("verify", "flag")


def _json_list(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Ignoring malformed JSON list: {raw[:80]}")
        return None
    return value if isinstance(value, list) else None


def row_to_item(row) -> ContentItem:
    return ContentItem(
        id=str(row["id"]),
        channel=row["channel"],
        sub_channel=row["sub_channel"],
        question=row["question"],
        answer=row["answer"],
        explanation=row["explanation"],
        difficulty=row["difficulty"],
        diagram=row["diagram"],
        tags=_json_list(row["tags"]) or [],
        voice_keywords=_json_list(row["voice_keywords"]),
        voice_suitable=bool(row["voice_suitable"]),
        status=row["status"] or "active",
    )


def rows_to_items(rows) -> List[ContentItem]:
    """Map rows one at a time, skipping any that do not validate."""
    items = []
    for row in rows:
        try:
            items.append(row_to_item(row))
        except ValidationError as e:
            logger.warning(f"Skipping malformed item {row['id']}: {e.error_count()} validation errors")
    return items


class DatabaseItemSource(ItemSource):
    """
    Reads questions from the same SQLite file the bots coordinate through.
    The table belongs to the content bots; init_tables only creates it
    when missing.
    """

    def __init__(self, database: Database):
        self.db = database

    async def init_tables(self) -> None:
        async with self.db.connect() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS questions (
                    id TEXT PRIMARY KEY,
                    question TEXT,
                    answer TEXT,
                    explanation TEXT,
                    channel TEXT NOT NULL,
                    sub_channel TEXT,
                    difficulty TEXT,
                    diagram TEXT,
                    tags TEXT,
                    voice_keywords TEXT,
                    voice_suitable INTEGER DEFAULT 0,
                    status TEXT DEFAULT 'active'
                )
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_questions_channel ON questions(channel, status)
            """)

    async def fetch_unjudged(
        self,
        *,
        bot_name: str,
        limit: int,
        channel: Optional[str] = None,
        within_days: int = 7,
    ) -> List[ContentItem]:
        query = """
            SELECT * FROM questions q
            WHERE q.status = 'active'
              AND NOT EXISTS (
                SELECT 1 FROM bot_ledger l
                WHERE l.item_id = q.id
                  AND l.bot_name = ?
                  AND l.action IN (?, ?)
                  AND l.created_at > ?
              )
        """
        params: list = [bot_name, *JUDGED_ACTIONS, cutoff(days=within_days)]

        if channel:
            query += " AND q.channel = ?"
            params.append(channel)

        query += " ORDER BY RANDOM() LIMIT ?"
        params.append(limit)

        rows = await self.db.fetchall(query, tuple(params))
        return rows_to_items(rows)

    async def get_item(self, item_id: str) -> ContentItem:
        row = await self.db.fetchone("SELECT * FROM questions WHERE id = ?", (item_id,))
        if row is None:
            raise ItemNotFoundError(f"Item not found: {item_id}")
        return row_to_item(row)

    async def fetch_channel_candidates(
        self,
        *,
        channel: str,
        exclude_id: str,
        limit: int,
    ) -> List[ContentItem]:
        rows = await self.db.fetchall(
            """
            SELECT * FROM questions
            WHERE channel = ? AND id != ? AND status = 'active'
            LIMIT ?
            """,
            (channel, exclude_id, limit),
        )
        return rows_to_items(rows)
