"""
Pytest configuration and shared fixtures for bookmark importer tests.

This module provides the fixtures shared across test modules: temporary
stores, sample export files and parsed results.
"""

import logging
from pathlib import Path

import pytest

from bookmark_importer.core.bookmark_html_parser import parse_browser_bookmarks
from bookmark_importer.core.data_models import ParseResult
from bookmark_importer.core.database import SQLiteBookmarkStore
from tests.fixtures.test_data import CHROME_EXPORT_HTML, READING_EXPORT_HTML

# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Path of a fresh SQLite database file."""
    return tmp_path / "test_bookmarks.db"


@pytest.fixture
def store(temp_db_path: Path) -> SQLiteBookmarkStore:
    """SQLite store on a temporary database."""
    return SQLiteBookmarkStore(temp_db_path)


# ============================================================================
# Export Fixtures
# ============================================================================


@pytest.fixture
def reading_result() -> ParseResult:
    """Parsed export with one "Reading" folder holding two links."""
    return parse_browser_bookmarks(READING_EXPORT_HTML)


@pytest.fixture
def chrome_result() -> ParseResult:
    """Parsed Chrome-style export with nested folders."""
    return parse_browser_bookmarks(CHROME_EXPORT_HTML)


@pytest.fixture
def export_file(tmp_path: Path) -> Path:
    """Chrome-style export written to disk."""
    path = tmp_path / "bookmarks.html"
    path.write_text(CHROME_EXPORT_HTML, encoding="utf-8")
    return path


# ============================================================================
# Logging Cleanup
# ============================================================================


@pytest.fixture
def reset_logging():
    """Remove the root handlers installed by setup_logging()."""
    root = logging.getLogger()
    saved_level = root.level
    yield
    for handler in root.handlers[:]:
        if type(handler) in (logging.FileHandler, logging.StreamHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)
