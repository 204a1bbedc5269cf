"""
Error taxonomy for the bookmark import pipeline.

This module holds every custom exception raised by the importer together
with the categories used to classify recorded import errors.
"""

from enum import Enum


# ============================================================================
# Unified Exception Hierarchy for Bookmark Importer
# ============================================================================
# All custom exceptions for the bookmark importer are defined here.
# Import these exceptions from bookmark_importer.utils.error_handler
# ============================================================================


class BookmarkImporterError(Exception):
    """Base exception for all bookmark importer errors."""

    pass


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(BookmarkImporterError):
    """General validation errors."""

    pass


class URLValidationError(ValidationError):
    """URL-specific validation errors."""

    def __init__(self, url: str, message: str = "Invalid URL format"):
        super().__init__(message)
        self.url = url


class DuplicateConflict(BookmarkImporterError):
    """Raised when a bookmark URL is already owned by the importing user."""

    def __init__(self, url: str, existing_id: str):
        super().__init__(f"Bookmark already exists: {url}")
        self.url = url
        self.existing_id = existing_id


# ============================================================================
# Configuration and Upload Errors
# ============================================================================


class ConfigurationError(BookmarkImporterError):
    """Configuration-related errors."""

    pass


class UploadError(BookmarkImporterError):
    """Uploaded file rejected before parsing (type, size, unreadable)."""

    pass


# ============================================================================
# Parsing Errors
# ============================================================================


class BookmarkParseError(BookmarkImporterError):
    """Raised when a document yields nothing importable."""

    def __init__(self, message: str, parse_errors=None):
        super().__init__(message)
        self.parse_errors = list(parse_errors or [])


# ============================================================================
# Persistence Errors
# ============================================================================


class PersistenceError(BookmarkImporterError):
    """The store rejected a write or could not answer a lookup."""

    pass


# ============================================================================
# Abort Paths
# ============================================================================


class FatalImportError(BookmarkImporterError):
    """Failure outside the per-bookmark error boundary."""

    pass


class ImportCancelledError(FatalImportError):
    """The caller asked for the import to stop."""

    pass


class ErrorCategory(Enum):
    """Categories of recorded import errors."""

    VALIDATION = "validation"
    PERSISTENCE = "persistence"
    UNEXPECTED = "unexpected"
    FATAL = "fatal"
    CANCELLED = "cancelled"


def categorize_exception(error: BaseException) -> ErrorCategory:
    """Map an exception onto the category used in import reports."""
    if isinstance(error, ImportCancelledError):
        return ErrorCategory.CANCELLED
    if isinstance(error, FatalImportError):
        return ErrorCategory.FATAL
    if isinstance(error, ValidationError):
        return ErrorCategory.VALIDATION
    if isinstance(error, PersistenceError):
        return ErrorCategory.PERSISTENCE
    return ErrorCategory.UNEXPECTED
