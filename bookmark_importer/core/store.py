"""
Persistent store contract consumed by the import orchestrator.

Implementations raise PersistenceError when a write is rejected; lookups
return None when nothing matches.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class BookmarkStore(ABC):
    """Insert and lookup operations the importer needs from a backend."""

    @abstractmethod
    def insert_bookmark(self, fields: Dict[str, Any]) -> str:
        """Insert a bookmark row and return its id."""

    @abstractmethod
    def find_bookmark_by_user_and_url(self, user_id: str, url: str) -> Optional[str]:
        """Id of the user's bookmark with exactly this URL, if any."""

    @abstractmethod
    def insert_collection(self, fields: Dict[str, Any]) -> str:
        """Insert a collection row and return its id."""

    @abstractmethod
    def find_collection_by_user_and_slug(self, user_id: str, slug: str) -> Optional[str]:
        """Id of the user's collection with this slug, if any."""

    @abstractmethod
    def find_tag_by_name(self, name: str) -> Optional[str]:
        """Id of the tag with exactly this name, if any."""

    @abstractmethod
    def insert_tag(self, fields: Dict[str, Any]) -> str:
        """Insert a tag row and return its id."""

    @abstractmethod
    def insert_bookmark_tag_link(self, bookmark_id: str, tag_id: str) -> None:
        """Link a tag to a bookmark."""
