import os
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

SESSION_SCHEMA = """
CREATE TABLE IF NOT EXISTS SESSION (
    id TEXT PRIMARY KEY,
    url TEXT,
    initial_prompt TEXT NOT NULL,
    current_image BLOB NOT NULL,
    current_image_mime TEXT NOT NULL,
    click_history TEXT NOT NULL,
    input_fields TEXT NOT NULL,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL
)
"""


def _resolve_database_dir(database_dir: Optional[Path | str]) -> Path:
    """Return the directory holding app.db, creating it when needed."""
    raw = str(database_dir) if database_dir is not None else os.getenv("DATABASE_DIR")
    if raw is None or not raw.strip():
        raise RuntimeError(
            "DATABASE_DIR must name a writable directory for the session mirror database."
        )

    path = Path(raw).expanduser()
    if path.exists() and not path.is_dir():
        raise RuntimeError(f"DATABASE_DIR={raw!r} is a file, not a directory ({path}).")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(f"Cannot create database directory {path}") from exc
    return path


class AsyncDatabaseInitializer:
    """
    Own the SQLite file that mirrors browsing sessions (`<database_dir>/app.db`).

    Sessions only live as long as the process, so the first
    `ensure_database()` on an instance removes any file left by a previous
    run and creates the SESSION table; later calls do nothing. `connection()`
    calls it lazily, so callers never need to.
    """

    def __init__(self, database_dir: Optional[Path | str] = None) -> None:
        self.db_dir = _resolve_database_dir(database_dir)
        self.db_path = self.db_dir / "app.db"
        self._initialized = False

    async def ensure_database(self) -> None:
        """Start from an empty database with the SESSION table (once per instance)."""
        if self._initialized:
            return

        try:
            self.db_path.unlink(missing_ok=True)
        except OSError as exc:
            raise RuntimeError(f"Failed to remove stale database at {self.db_path}") from exc

        attempts = 3
        for attempt in range(1, attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute(SESSION_SCHEMA)
                    await db.commit()
                break
            except FileNotFoundError:
                # Freshly removed files can briefly race on some filesystems.
                if attempt == attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield an `aiosqlite.Connection`, creating the database on first use."""
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
