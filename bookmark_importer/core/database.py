"""
SQLite-backed bookmark store.

Implements the BookmarkStore contract on a local SQLite file so imports
can run end to end without a hosted backend.
"""

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Union

from ..utils.error_handler import PersistenceError
from .store import BookmarkStore


class SQLiteBookmarkStore(BookmarkStore):
    """
    Bookmark store on a SQLite database file.

    Each operation opens its own connection, so a store instance holds no
    open handles between calls.

    Example:
        >>> store = SQLiteBookmarkStore(Path("bookmarks.db"))
        >>> bookmark_id = store.insert_bookmark({"user_id": "u1", "url": "https://a.com", "title": "A"})
        >>> store.find_bookmark_by_user_and_url("u1", "https://a.com") == bookmark_id
        True
    """

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS bookmarks (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        url TEXT NOT NULL,
        title TEXT NOT NULL CHECK (length(title) <= 500),
        description TEXT,
        favicon_url TEXT,
        domain TEXT,
        privacy_level TEXT NOT NULL DEFAULT 'public'
            CHECK (privacy_level IN ('public', 'private', 'subscribers')),
        created_at TIMESTAMP NOT NULL
    );

    CREATE TABLE IF NOT EXISTS collections (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        slug TEXT NOT NULL,
        description TEXT,
        privacy_level TEXT NOT NULL DEFAULT 'public'
            CHECK (privacy_level IN ('public', 'private', 'subscribers')),
        created_at TIMESTAMP NOT NULL,
        UNIQUE (user_id, slug)
    );

    CREATE TABLE IF NOT EXISTS tags (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        slug TEXT NOT NULL,
        created_by TEXT,
        created_at TIMESTAMP NOT NULL
    );

    CREATE TABLE IF NOT EXISTS bookmark_tags (
        bookmark_id TEXT NOT NULL REFERENCES bookmarks(id) ON DELETE CASCADE,
        tag_id TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
        PRIMARY KEY (bookmark_id, tag_id)
    );

    -- Dedup lookups hit (user_id, url)
    CREATE INDEX IF NOT EXISTS idx_bookmarks_user_url ON bookmarks(user_id, url);
    CREATE INDEX IF NOT EXISTS idx_bookmark_tags_tag ON bookmark_tags(tag_id);
    """

    BOOKMARK_COLUMNS = (
        "user_id",
        "url",
        "title",
        "description",
        "favicon_url",
        "domain",
        "privacy_level",
        "created_at",
    )
    COLLECTION_COLUMNS = ("user_id", "name", "slug", "description", "privacy_level")
    TAG_COLUMNS = ("name", "slug", "created_by")

    def __init__(self, db_path: Union[str, Path] = Path(".bookmark_import.db")):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.logger = logging.getLogger(__name__)
        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        try:
            with self._get_connection() as conn:
                conn.executescript(self.SCHEMA)
                conn.commit()
            self.logger.debug(f"Database initialized at {self.db_path}")

        except sqlite3.Error as e:
            self.logger.error(f"Failed to initialize database: {e}")
            raise PersistenceError(f"Failed to initialize database: {e}") from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get database connection."""
        conn = None
        try:
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        finally:
            if conn:
                conn.close()

    def _insert(self, table: str, columns, fields: Dict[str, Any]) -> str:
        row_id = str(uuid.uuid4())
        # Omitted columns fall back to their schema defaults
        values = {
            column: fields[column] for column in columns if fields.get(column) is not None
        }
        # Every table carries created_at; only bookmarks accept it from callers
        created_at = values.pop("created_at", None) or datetime.now(timezone.utc)
        if isinstance(created_at, datetime):
            created_at = created_at.isoformat()
        values["created_at"] = created_at

        names = ["id"] + list(values)
        placeholders = ", ".join("?" for _ in names)
        sql = f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders})"

        try:
            with self._get_connection() as conn:
                conn.execute(sql, [row_id] + list(values.values()))
                conn.commit()
        except sqlite3.Error as e:
            self.logger.debug(f"Insert into {table} rejected: {e}")
            raise PersistenceError(str(e)) from e

        return row_id

    def _find_id(self, sql: str, params) -> Optional[str]:
        try:
            with self._get_connection() as conn:
                row = conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(str(e)) from e
        return row["id"] if row else None

    # ============ BookmarkStore contract ============

    def insert_bookmark(self, fields: Dict[str, Any]) -> str:
        return self._insert("bookmarks", self.BOOKMARK_COLUMNS, fields)

    def find_bookmark_by_user_and_url(self, user_id: str, url: str) -> Optional[str]:
        return self._find_id(
            "SELECT id FROM bookmarks WHERE user_id = ? AND url = ? LIMIT 1",
            (user_id, url),
        )

    def insert_collection(self, fields: Dict[str, Any]) -> str:
        return self._insert("collections", self.COLLECTION_COLUMNS, fields)

    def find_collection_by_user_and_slug(self, user_id: str, slug: str) -> Optional[str]:
        return self._find_id(
            "SELECT id FROM collections WHERE user_id = ? AND slug = ? LIMIT 1",
            (user_id, slug),
        )

    def find_tag_by_name(self, name: str) -> Optional[str]:
        return self._find_id("SELECT id FROM tags WHERE name = ? LIMIT 1", (name,))

    def insert_tag(self, fields: Dict[str, Any]) -> str:
        return self._insert("tags", self.TAG_COLUMNS, fields)

    def insert_bookmark_tag_link(self, bookmark_id: str, tag_id: str) -> None:
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "INSERT INTO bookmark_tags (bookmark_id, tag_id) VALUES (?, ?)",
                    (bookmark_id, tag_id),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(str(e)) from e

    # ============ Query Methods ============

    def count_bookmarks(self, user_id: Optional[str] = None) -> int:
        """Number of stored bookmarks, optionally for one user."""
        with self._get_connection() as conn:
            if user_id is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM bookmarks").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM bookmarks WHERE user_id = ?", (user_id,)
                ).fetchone()
        return row["n"]

    def get_bookmark(self, bookmark_id: str) -> Optional[Dict[str, Any]]:
        """Stored bookmark row as a dictionary."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM bookmarks WHERE id = ?", (bookmark_id,)
            ).fetchone()
        return dict(row) if row else None

    def get_collection(self, collection_id: str) -> Optional[Dict[str, Any]]:
        """Stored collection row as a dictionary."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM collections WHERE id = ?", (collection_id,)
            ).fetchone()
        return dict(row) if row else None

    def get_tag_names_for_bookmark(self, bookmark_id: str) -> List[str]:
        """Names of the tags linked to a bookmark, alphabetically."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT t.name FROM tags t
                JOIN bookmark_tags bt ON bt.tag_id = t.id
                WHERE bt.bookmark_id = ?
                ORDER BY t.name
                """,
                (bookmark_id,),
            ).fetchall()
        return [row["name"] for row in rows]

    def get_statistics(self) -> Dict[str, int]:
        """Row counts per table."""
        stats = {}
        with self._get_connection() as conn:
            for table in ("bookmarks", "collections", "tags", "bookmark_tags"):
                row = conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()
                stats[table] = row["n"]
        return stats

    def __repr__(self) -> str:
        return f"SQLiteBookmarkStore(db_path={self.db_path})"
