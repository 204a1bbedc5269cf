"""
Validation and sanitization helpers applied to parsed bookmarks.

All functions here are pure: no I/O and no logging.
"""

import re
from typing import List, Optional
from urllib.parse import urlparse

from ..utils.error_handler import URLValidationError
from .data_models import ParsedBookmark

ALLOWED_SCHEMES = frozenset({"http", "https", "ftp"})

# Matches the store's title column width
MAX_TITLE_LENGTH = 500

# Folder segments that carry no meaning as tags
IGNORED_TAG_SEGMENTS = frozenset({"root", "bookmarks"})

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def is_valid_url(url: Optional[str]) -> bool:
    """True when url parses with an http, https or ftp scheme and a host."""
    if not url or not isinstance(url, str):
        return False

    try:
        parsed = urlparse(url.strip())
        # Accessing port validates it; urlparse is otherwise lazy about it
        parsed.port
    except ValueError:
        return False

    if any(ch.isspace() for ch in parsed.netloc):
        return False

    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.netloc)


def sanitize_title(title: Optional[str]) -> str:
    """Trim and truncate a title to the store's field limit."""
    if not title:
        return ""
    return title.strip()[:MAX_TITLE_LENGTH]


def extract_domain(url: Optional[str]) -> Optional[str]:
    """Hostname of url, or None when it cannot be parsed."""
    if not url:
        return None

    try:
        hostname = urlparse(url.strip()).hostname
    except ValueError:
        return None

    return hostname or None


def tags_from_folder_path(folder_path: Optional[str]) -> List[str]:
    """
    Derive tag names from a folder path.

    "Personal/Tech/Development" -> ["personal", "tech", "development"]

    Order is kept and repeated segments are not removed.
    """
    if not folder_path:
        return []

    tags = []
    for part in folder_path.split("/"):
        part = part.strip().lower()
        if part and part not in IGNORED_TAG_SEGMENTS:
            tags.append(part)
    return tags


def slugify(name: str) -> str:
    """URL-safe slug for a collection name."""
    return _NON_SLUG_CHARS.sub("-", (name or "").lower()).strip("-")


def tag_slug(name: str) -> str:
    """Slug stored alongside a tag name; edges are left as they are."""
    return _NON_SLUG_CHARS.sub("-", (name or "").lower())


def validate_bookmark(bookmark: ParsedBookmark) -> None:
    """
    Check that a bookmark can be imported.

    Raises:
        URLValidationError: If the URL is not an http, https or ftp URL
    """
    if not is_valid_url(bookmark.url):
        raise URLValidationError(bookmark.url)
