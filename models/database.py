"""SQLite database initialization and identifier upserts."""

import logging
import shutil
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from config.exceptions import DatabaseError
from models.novel import NovelRecord
from models.sort import CategoryRecord, SortEntity
from tools.idgen import SnowflakeIdGenerator

logger = logging.getLogger(__name__)

# SQL for creating all tables
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY,
    spider_id TEXT NOT NULL,
    name TEXT NOT NULL,
    link TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS novels (
    id INTEGER PRIMARY KEY,
    spider_id TEXT NOT NULL,
    raw_id TEXT NOT NULL DEFAULT '',
    name TEXT NOT NULL,
    author TEXT NOT NULL DEFAULT '',
    link TEXT NOT NULL,
    section_link TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

# Indexes and constraints added via migration (idempotent)
_MIGRATION_SQL = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_categories_spider_name ON categories(spider_id, name)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_novels_spider_name_author ON novels(spider_id, name, author)",
    "CREATE INDEX IF NOT EXISTS idx_novels_spider_raw ON novels(spider_id, raw_id)",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class Database:
    """SQLite store for category and novel identifiers.

    Every operation is scoped by `spider_id`; ids themselves come from the
    injected generator so they stay unique across sites.
    """

    def __init__(self, db_path: str | Path, id_generator: SnowflakeIdGenerator):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.ids = id_generator
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection whose statements commit (or roll back) together."""
        conn = self._get_conn()
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise DatabaseError("Database operation failed", {"error": str(e)}) from e
        finally:
            conn.close()

    def _init_db(self):
        with self._transaction() as conn:
            conn.executescript(_CREATE_TABLES_SQL)
        self._migrate()

    def _migrate(self):
        """Apply idempotent schema migrations (indexes, constraints)."""
        with self._transaction() as conn:
            for sql in _MIGRATION_SQL:
                try:
                    conn.execute(sql)
                except sqlite3.OperationalError as e:
                    logger.debug("Migration skipped (already applied): %s", e)

    def backup_database(self, target_path: str | Path) -> Path:
        """Create a backup copy of the database.

        Args:
            target_path: Path for the backup file.

        Returns:
            Path to the backup file.
        """
        target = Path(target_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(str(self.db_path), str(target))
        logger.info("Database backed up to %s", target)
        return target

    # ---- Categories ----

    def upsert_category(self, spider_id: str, name: str, link: str) -> int:
        """Insert a category, or refresh the link of the one with the same name.

        Returns:
            The category id, unchanged across repeated calls for one name.
        """
        with self._transaction() as conn:
            return self._upsert_category(conn, spider_id, name, link)

    def _upsert_category(self, conn: sqlite3.Connection, spider_id: str, name: str, link: str) -> int:
        row = conn.execute(
            "SELECT id, link FROM categories WHERE spider_id = ? AND name = ?",
            (spider_id, name),
        ).fetchone()
        now = _utcnow().isoformat()
        if row:
            # updated_at doubles as "last seen by a scrape"
            conn.execute(
                "UPDATE categories SET link = ?, updated_at = ? WHERE id = ?",
                (link, now, row["id"]),
            )
            if row["link"] != link:
                logger.debug("Category %s link updated: %s", name, link)
            return row["id"]

        category_id = self.ids.generate()
        conn.execute(
            "INSERT INTO categories (id, spider_id, name, link, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (category_id, spider_id, name, link, now, now),
        )
        logger.debug("Category %s inserted with id %d", name, category_id)
        return category_id

    def replace_categories(self, spider_id: str, entities: list[SortEntity]) -> list[CategoryRecord]:
        """Make `entities` the spider's full category set in a single transaction.

        Categories whose name is kept keep their id; the rest are deleted.
        """
        with self._transaction() as conn:
            kept = [
                self._upsert_category(conn, spider_id, entity.name, entity.link)
                for entity in entities
            ]
            placeholders = ", ".join("?" for _ in kept)
            query = "DELETE FROM categories WHERE spider_id = ?"
            if kept:
                query += f" AND id NOT IN ({placeholders})"
            removed = conn.execute(query, (spider_id, *kept)).rowcount
        if removed:
            logger.info("Categories of %s: %d stale entries removed", spider_id, removed)
        return self.list_categories(spider_id)

    def category_by_id(self, spider_id: str, category_id: int) -> Optional[CategoryRecord]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM categories WHERE spider_id = ? AND id = ?",
                (spider_id, category_id),
            ).fetchone()
            if not row:
                return None
            return self._row_to_category(row)

    def list_categories(self, spider_id: str) -> list[CategoryRecord]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM categories WHERE spider_id = ? ORDER BY created_at, id",
                (spider_id,),
            ).fetchall()
            return [self._row_to_category(r) for r in rows]

    def clear_categories(self, spider_id: str):
        with self._transaction() as conn:
            conn.execute("DELETE FROM categories WHERE spider_id = ?", (spider_id,))
        logger.info("Categories of %s cleared", spider_id)

    def _row_to_category(self, row) -> CategoryRecord:
        return CategoryRecord(
            id=row["id"], spider_id=row["spider_id"],
            name=row["name"], link=row["link"],
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
        )

    # ---- Novels ----

    def upsert_novel(
        self,
        spider_id: str,
        name: str,
        link: str,
        section_link: str,
        author: str,
        raw_id: str,
    ) -> int:
        """Insert a novel keyed by (name, author), refreshing links on conflict."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id, link, section_link, raw_id FROM novels "
                "WHERE spider_id = ? AND name = ? AND author = ?",
                (spider_id, name, author),
            ).fetchone()
            now = _utcnow().isoformat()
            if row:
                if (row["link"], row["section_link"], row["raw_id"]) != (link, section_link, raw_id):
                    conn.execute(
                        "UPDATE novels SET link = ?, section_link = ?, raw_id = ?, updated_at = ? "
                        "WHERE id = ?",
                        (link, section_link, raw_id, now, row["id"]),
                    )
                return row["id"]

            novel_id = self.ids.generate()
            conn.execute(
                "INSERT INTO novels (id, spider_id, raw_id, name, author, link, section_link, "
                "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (novel_id, spider_id, raw_id, name, author, link, section_link, now, now),
            )
            return novel_id

    def novel_by_id(self, spider_id: str, novel_id: int) -> Optional[NovelRecord]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM novels WHERE spider_id = ? AND id = ?",
                (spider_id, novel_id),
            ).fetchone()
            if not row:
                return None
            return NovelRecord(
                id=row["id"], spider_id=row["spider_id"], raw_id=row["raw_id"],
                name=row["name"], author=row["author"],
                link=row["link"], section_link=row["section_link"],
                created_at=_parse_ts(row["created_at"]),
                updated_at=_parse_ts(row["updated_at"]),
            )

    def count_novels(self, spider_id: str) -> int:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM novels WHERE spider_id = ?", (spider_id,)
            ).fetchone()
            return row["n"]
