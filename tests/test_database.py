"""
Tests for the SQLite bookmark store.
"""

from datetime import datetime, timezone

import pytest

from bookmark_importer.core.database import SQLiteBookmarkStore
from bookmark_importer.core.store import BookmarkStore
from bookmark_importer.utils.error_handler import PersistenceError


def _bookmark(url="https://example.com/", user_id="u1", **fields):
    return {"user_id": user_id, "url": url, "title": "Example", **fields}


class TestSQLiteBookmarkStore:
    """Test cases for SQLiteBookmarkStore."""

    def test_init_creates_database(self, temp_db_path):
        store = SQLiteBookmarkStore(temp_db_path)

        assert isinstance(store, BookmarkStore)
        assert temp_db_path.exists()
        assert store.get_statistics() == {
            "bookmarks": 0,
            "collections": 0,
            "tags": 0,
            "bookmark_tags": 0,
        }

    def test_reopen_keeps_rows(self, temp_db_path):
        SQLiteBookmarkStore(temp_db_path).insert_bookmark(_bookmark())

        assert SQLiteBookmarkStore(temp_db_path).count_bookmarks() == 1

    def test_insert_and_find_bookmark(self, store):
        bookmark_id = store.insert_bookmark(_bookmark())

        assert store.find_bookmark_by_user_and_url("u1", "https://example.com/") == bookmark_id
        assert store.find_bookmark_by_user_and_url("u2", "https://example.com/") is None
        assert store.find_bookmark_by_user_and_url("u1", "https://example.com") is None

    def test_bookmark_defaults(self, store):
        bookmark_id = store.insert_bookmark(_bookmark())
        row = store.get_bookmark(bookmark_id)

        assert row["privacy_level"] == "public"
        assert row["description"] is None
        assert row["created_at"]

    def test_created_at_from_fields(self, store):
        added = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        bookmark_id = store.insert_bookmark(_bookmark(created_at=added))

        assert store.get_bookmark(bookmark_id)["created_at"] == "2023-11-14T22:13:20+00:00"

    def test_same_url_twice_is_allowed(self, store):
        """The store does not enforce URL uniqueness."""
        store.insert_bookmark(_bookmark())
        store.insert_bookmark(_bookmark())

        assert store.count_bookmarks("u1") == 2

    def test_title_limit(self, store):
        with pytest.raises(PersistenceError):
            store.insert_bookmark(_bookmark(title="x" * 501))

    def test_invalid_privacy(self, store):
        with pytest.raises(PersistenceError):
            store.insert_bookmark(_bookmark(privacy_level="friends"))

    def test_collection_slug_unique_per_user(self, store):
        fields = {"user_id": "u1", "name": "Reading", "slug": "reading"}
        collection_id = store.insert_collection(fields)

        assert store.find_collection_by_user_and_slug("u1", "reading") == collection_id
        with pytest.raises(PersistenceError):
            store.insert_collection(fields)

        other_id = store.insert_collection({**fields, "user_id": "u2"})
        assert other_id != collection_id

    def test_tag_name_unique(self, store):
        tag_id = store.insert_tag({"name": "python", "slug": "python", "created_by": "u1"})

        assert store.find_tag_by_name("python") == tag_id
        assert store.find_tag_by_name("Python") is None
        with pytest.raises(PersistenceError):
            store.insert_tag({"name": "python", "slug": "python"})

    def test_tag_links(self, store):
        bookmark_id = store.insert_bookmark(_bookmark())
        news = store.insert_tag({"name": "news", "slug": "news"})
        daily = store.insert_tag({"name": "daily", "slug": "daily"})

        store.insert_bookmark_tag_link(bookmark_id, news)
        store.insert_bookmark_tag_link(bookmark_id, daily)

        assert store.get_tag_names_for_bookmark(bookmark_id) == ["daily", "news"]
        with pytest.raises(PersistenceError):
            store.insert_bookmark_tag_link(bookmark_id, news)

    def test_link_requires_existing_rows(self, store):
        with pytest.raises(PersistenceError):
            store.insert_bookmark_tag_link("missing-bookmark", "missing-tag")

    def test_missing_rows(self, store):
        assert store.get_bookmark("nope") is None
        assert store.get_collection("nope") is None
        assert store.get_tag_names_for_bookmark("nope") == []

    def test_statistics(self, store):
        store.insert_bookmark(_bookmark())
        store.insert_bookmark(_bookmark(user_id="u2"))
        store.insert_collection({"user_id": "u1", "name": "A", "slug": "a"})

        stats = store.get_statistics()

        assert stats["bookmarks"] == 2
        assert stats["collections"] == 1
        assert store.count_bookmarks("u2") == 1

    def test_repr(self, store, temp_db_path):
        assert repr(store) == f"SQLiteBookmarkStore(db_path={temp_db_path})"
