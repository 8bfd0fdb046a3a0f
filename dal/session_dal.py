"""Async Data Access Layer for the SESSION table.

Provides SessionDAL with an idempotent upsert keyed by session id, used
to mirror every accepted session transition.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Optional, Sequence

from models.session_models import BrowserSession
from utils.database_init import AsyncDatabaseInitializer


class SessionDAL:
    """Data access layer for SESSION records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "url",
        "initial_prompt",
        "current_image",
        "current_image_mime",
        "click_history",
        "input_fields",
        "created_at",
        "updated_at",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)
    _PLACEHOLDERS = ", ".join("?" for _ in _COLUMNS)
    _UPDATES = ", ".join(f"{col} = excluded.{col}" for col in _COLUMNS[1:])

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer
        self._write_lock = asyncio.Lock()

    async def upsert_session(self, session: BrowserSession) -> None:
        """Insert or replace the full record for `session` (keyed by id).

        Writes are serialized and the record is read once the lock is held,
        so the last write always carries the newest state.
        """
        async with self._write_lock:
            record = session.to_dict(include_image=False, include_history_images=True)
            async with self._db.connection() as conn:
                await conn.execute(
                    f"INSERT INTO SESSION ({self._COLUMN_LIST}) VALUES ({self._PLACEHOLDERS}) "
                    f"ON CONFLICT(id) DO UPDATE SET {self._UPDATES}",
                    (
                        session.session_id,
                        session.url,
                        session.initial_prompt,
                        session.current_image.data,
                        session.current_image.mime_type,
                        json.dumps(record["clickHistory"]),
                        json.dumps(record["inputFields"]),
                        session.created_at,
                        session.updated_at,
                    ),
                )
                await conn.commit()

    async def get_session_record(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored record for `session_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM SESSION WHERE id = ?",
                (session_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def delete_session(self, session_id: str) -> bool:
        """Delete SESSION row by id. Returns True if a row was deleted."""
        async with self._write_lock:
            async with self._db.connection() as conn:
                await conn.execute("DELETE FROM SESSION WHERE id = ?", (session_id,))
                await conn.commit()
                cur = await conn.execute("SELECT changes()")
                changed = await cur.fetchone()
                return bool(changed and changed[0] > 0)

    @staticmethod
    def _row_to_record(row: Sequence[Any]) -> Dict[str, Any]:
        """Convert a DB row tuple into a plain record dict."""
        return {
            "id": row[0],
            "url": row[1],
            "initialPrompt": row[2],
            "currentImage": row[3],
            "currentImageMime": row[4],
            "clickHistory": json.loads(row[5]),
            "inputFields": json.loads(row[6]),
            "createdAt": row[7],
            "updatedAt": row[8],
        }
