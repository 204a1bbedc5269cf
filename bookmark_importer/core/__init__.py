"""
Core bookmark import modules.

This package contains the export parser, the bookmark normalizer, the
store contract with its SQLite implementation, and the import service.
"""

from .bookmark_html_parser import (
    BrowserBookmarkParser,
    RegexFallbackStrategy,
    TreeWalkerStrategy,
    flatten_bookmarks,
    parse_browser_bookmarks,
    select_strategy,
)
from .data_models import (
    ImportOptions,
    ImportProgress,
    ImportResult,
    ParsedBookmark,
    ParsedFolder,
    ParseResult,
    PrivacyLevel,
    SourceType,
)
from .import_service import ImportService, build_import_response, import_browser_bookmarks

__all__ = [
    'BrowserBookmarkParser',
    'RegexFallbackStrategy',
    'TreeWalkerStrategy',
    'flatten_bookmarks',
    'parse_browser_bookmarks',
    'select_strategy',
    'ImportOptions',
    'ImportProgress',
    'ImportResult',
    'ParsedBookmark',
    'ParsedFolder',
    'ParseResult',
    'PrivacyLevel',
    'SourceType',
    'ImportService',
    'build_import_response',
    'import_browser_bookmarks',
]
