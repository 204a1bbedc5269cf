"""
Data models for the Bookmark Importer.

This module defines the structures that flow through the import pipeline:
the parsed folder tree produced from a browser export, the options that
drive one import run, and the progress and result records it reports.
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..utils.error_handler import ErrorCategory


class SourceType(Enum):
    """Browser that produced a bookmark export."""

    CHROME = "chrome"
    FIREFOX = "firefox"
    SAFARI = "safari"
    EDGE = "edge"
    NETSCAPE = "netscape"
    UNKNOWN = "unknown"


class PrivacyLevel(Enum):
    """Visibility stamped on imported bookmarks and collections."""

    PUBLIC = "public"
    PRIVATE = "private"
    SUBSCRIBERS = "subscribers"


@dataclass
class ParsedBookmark:
    """A single bookmark extracted from an export."""

    url: str
    title: str
    description: Optional[str] = None
    favicon_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    folder_path: Optional[str] = None  # e.g. "Personal/Tech/Development"
    added_date: Optional[datetime] = None
    icon: Optional[str] = None  # inline icon data from the browser


@dataclass
class ParsedFolder:
    """
    A folder of the parsed export.

    The synthetic root folder has an empty path; every other folder's path
    is its parent's path joined with its own name by "/".
    """

    name: str
    path: str
    parent_path: Optional[str] = None
    bookmarks: List[ParsedBookmark] = field(default_factory=list)
    subfolders: List["ParsedFolder"] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return not self.path or not self.name or self.name.lower() == "root"

    def count_bookmarks(self) -> int:
        """Number of bookmarks in this folder and all of its subfolders."""
        total = 0
        stack = [self]
        while stack:
            folder = stack.pop()
            total += len(folder.bookmarks)
            stack.extend(folder.subfolders)
        return total


@dataclass(frozen=True)
class ParseErrorRecord:
    """A malformed entry met while parsing."""

    line: int
    message: str


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one uploaded document."""

    bookmarks: Tuple[ParsedBookmark, ...]
    folders: Tuple[ParsedFolder, ...]
    total_count: int
    source_type: SourceType
    parse_errors: Tuple[ParseErrorRecord, ...] = ()

    def to_summary(self) -> Dict[str, Any]:
        return {
            "source_type": self.source_type.value,
            "total_count": self.total_count,
            "parse_errors": [asdict(e) for e in self.parse_errors],
        }


class ImportOptions(BaseModel):
    """Immutable configuration for one import run."""

    model_config = ConfigDict(frozen=True)

    skip_duplicates: bool = Field(
        default=True,
        description="Skip URLs the user already has",
    )
    auto_tag: bool = Field(
        default=True,
        description="Derive tags from folder path segments",
    )
    preserve_folders: bool = Field(
        default=True,
        description="Materialize top-level folders as collections",
    )
    default_privacy: PrivacyLevel = Field(
        default=PrivacyLevel.PUBLIC,
        description="Privacy stamped on created bookmarks and collections",
    )
    batch_size: int = Field(
        default=50,
        ge=1,
        le=10000,
        description="Bookmarks per processing chunk",
        json_schema_extra={
            "error_msg": "Batch size must be between 1 and 10000. "
            "Recommended: 50 for typical browser exports."
        },
    )


@dataclass
class ImportProgress:
    """Running counters of an import."""

    total: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    duplicates: int = 0
    current_item: Optional[str] = None

    def snapshot(self, current_item: Optional[str] = None) -> "ImportProgress":
        """Independent copy handed to progress observers."""
        return replace(
            self,
            current_item=current_item if current_item is not None else self.current_item,
        )

    @property
    def is_balanced(self) -> bool:
        """Every bookmark accounted for exactly once."""
        return self.total == self.successful + self.failed + self.skipped

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["current_item"] is None:
            del data["current_item"]
        return data


@dataclass(frozen=True)
class ImportErrorRecord:
    """A bookmark (or the run itself) that could not be imported."""

    url: str
    message: str
    category: ErrorCategory = ErrorCategory.UNEXPECTED

    def to_dict(self) -> Dict[str, str]:
        return {
            "url": self.url,
            "error": self.message,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class ImportResult:
    """Terminal output of an import run."""

    success: bool
    progress: ImportProgress
    imported_bookmark_ids: Tuple[str, ...] = ()
    created_tag_ids: Tuple[str, ...] = ()
    created_collection_ids: Tuple[str, ...] = ()
    errors: Tuple[ImportErrorRecord, ...] = ()

    @property
    def fatal(self) -> bool:
        return any(e.category is ErrorCategory.FATAL for e in self.errors)

    def to_dict(self, max_errors: Optional[int] = None) -> Dict[str, Any]:
        errors = self.errors if max_errors is None else self.errors[:max_errors]
        return {
            "success": self.success,
            "progress": self.progress.to_dict(),
            "imported_bookmark_ids": list(self.imported_bookmark_ids),
            "created_tag_ids": list(self.created_tag_ids),
            "created_collection_ids": list(self.created_collection_ids),
            "errors": [e.to_dict() for e in errors],
        }
