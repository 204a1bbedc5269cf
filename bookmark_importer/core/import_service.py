"""
Import orchestration for parsed browser bookmarks.

This module reconciles a ParseResult against a BookmarkStore: it
materializes top-level folders as collections, inserts bookmarks in
batches with per-user URL deduplication, links tags derived from folder
paths, and reports progress and partial failures.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..utils.error_handler import (
    DuplicateConflict,
    ErrorCategory,
    FatalImportError,
    ImportCancelledError,
    PersistenceError,
    ValidationError,
    categorize_exception,
)
from .data_models import (
    ImportErrorRecord,
    ImportOptions,
    ImportProgress,
    ImportResult,
    ParsedBookmark,
    ParsedFolder,
    ParseResult,
)
from .normalizer import (
    extract_domain,
    sanitize_title,
    slugify,
    tag_slug,
    tags_from_folder_path,
    validate_bookmark,
)
from .store import BookmarkStore

ProgressCallback = Callable[[ImportProgress], None]

FATAL_ERROR_KEY = "FATAL"
CANCELLED_ERROR_KEY = "CANCELLED"
EMPTY_SLUG_FALLBACK = "untitled-folder"

# Errors included in the response summary
MAX_RESPONSE_ERRORS = 10


class ImportService:
    """
    Imports one parsed bookmark export for one user.

    Instances are single-use: build one per import run. Everything runs
    sequentially on the calling thread; batches only bound how much work
    happens between cancellation checks and log lines.
    """

    def __init__(
        self,
        store: BookmarkStore,
        user_id: str,
        options: Optional[ImportOptions] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the import service.

        Args:
            store: Persistent store to reconcile against
            user_id: Owner of the imported bookmarks and collections
            options: Import configuration options
            cancel_event: Set it to stop the import between bookmarks
        """
        self.store = store
        self.user_id = user_id
        self.options = options or ImportOptions()
        self.cancel_event = cancel_event
        self.logger = logging.getLogger(__name__)

        self._used = False
        self._progress = ImportProgress()
        self._imported_ids: List[str] = []
        self._tag_ids: List[str] = []
        self._collection_ids: List[str] = []
        self._errors: List[ImportErrorRecord] = []

    def import_bookmarks(
        self,
        parse_result: ParseResult,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportResult:
        """
        Import bookmarks from a parse result.

        Args:
            parse_result: Parsed export to import
            on_progress: Called with a progress snapshot after every bookmark

        Returns:
            ImportResult; on a fatal error or cancellation it holds what
            was imported up to that point
        """
        if self._used:
            raise RuntimeError("ImportService instances are single-use")
        self._used = True

        self._progress.total = parse_result.total_count
        privacy = self.options.default_privacy.value

        self.logger.info(
            f"Starting import of {parse_result.total_count} bookmarks for user "
            f"{self.user_id} (skip_duplicates={self.options.skip_duplicates}, "
            f"auto_tag={self.options.auto_tag}, "
            f"preserve_folders={self.options.preserve_folders}, privacy={privacy})"
        )

        try:
            # Step 1: Create collections from top-level folders
            if self.options.preserve_folders:
                self._create_collections(parse_result.folders)

            # Step 2: Process bookmarks in batches
            bookmarks = parse_result.bookmarks
            batch_size = self.options.batch_size
            for start in range(0, len(bookmarks), batch_size):
                self._check_cancelled()
                batch = bookmarks[start : start + batch_size]
                self.logger.debug(
                    f"Processing batch {start // batch_size + 1}: "
                    f"bookmarks {start + 1}-{start + len(batch)}"
                )
                try:
                    self._process_batch(batch, on_progress)
                except FatalImportError:
                    raise
                except Exception as e:
                    # Only the per-bookmark boundary absorbs errors
                    raise FatalImportError(str(e) or "Fatal import error") from e

        except ImportCancelledError as e:
            self.logger.warning(f"Import cancelled: {e}")
            self._errors.append(
                ImportErrorRecord(CANCELLED_ERROR_KEY, str(e), ErrorCategory.CANCELLED)
            )
            return self._build_result(completed=False)

        except Exception as e:
            # FatalImportError from a batch, or a failure before the batches
            self.logger.error(f"Fatal import error: {e}", exc_info=True)
            self._errors.append(
                ImportErrorRecord(
                    FATAL_ERROR_KEY, str(e) or "Fatal import error", ErrorCategory.FATAL
                )
            )
            return self._build_result(completed=False)

        result = self._build_result(completed=True)
        progress = result.progress
        self.logger.info(
            f"Import completed: {progress.successful} imported, "
            f"{progress.failed} failed, {progress.skipped} skipped "
            f"({progress.duplicates} duplicates)"
        )
        return result

    def _process_batch(
        self, batch: Sequence[ParsedBookmark], on_progress: Optional[ProgressCallback]
    ) -> None:
        for bookmark in batch:
            self._check_cancelled()
            self._process_bookmark(bookmark, on_progress)

    def _process_bookmark(
        self, bookmark: ParsedBookmark, on_progress: Optional[ProgressCallback]
    ) -> None:
        """Import one bookmark; failures are counted, never raised."""
        progress = self._progress
        try:
            validate_bookmark(bookmark)

            if self.options.skip_duplicates:
                self._check_duplicate(bookmark.url)

            bookmark_id = self._insert_bookmark(bookmark)
            self._imported_ids.append(bookmark_id)
            progress.successful += 1

            if self.options.auto_tag:
                self._tag_bookmark(bookmark, bookmark_id)

        except ValidationError as e:
            progress.skipped += 1
            self._record_error(bookmark.url, e)

        except DuplicateConflict:
            progress.duplicates += 1
            progress.skipped += 1

        except PersistenceError as e:
            progress.failed += 1
            self._record_error(bookmark.url, e)
            self.logger.warning(f"Failed to import {bookmark.url}: {e}")

        except Exception as e:
            progress.failed += 1
            self._record_error(bookmark.url, e)
            self.logger.warning(f"Unexpected error importing {bookmark.url}: {e}")

        finally:
            progress.processed += 1
            progress.current_item = bookmark.title
            self._notify(on_progress, bookmark)

    def _check_duplicate(self, url: str) -> None:
        """
        Raise DuplicateConflict if the user already has this URL.

        A failed lookup is logged and treated as "not a duplicate".
        """
        try:
            existing_id = self.store.find_bookmark_by_user_and_url(self.user_id, url)
        except PersistenceError as e:
            self.logger.warning(f"Duplicate check failed for {url}: {e}")
            return

        if existing_id:
            raise DuplicateConflict(url, existing_id)

    def _insert_bookmark(self, bookmark: ParsedBookmark) -> str:
        fields = {
            "user_id": self.user_id,
            "url": bookmark.url,
            "title": sanitize_title(bookmark.title),
            "description": bookmark.description or None,
            "favicon_url": bookmark.favicon_url or None,
            "domain": extract_domain(bookmark.url),
            "privacy_level": self.options.default_privacy.value,
            "created_at": bookmark.added_date or datetime.now(timezone.utc),
        }

        bookmark_id = self.store.insert_bookmark(fields)
        if not bookmark_id:
            raise PersistenceError("Store returned no id for inserted bookmark")
        return bookmark_id

    def _tag_bookmark(self, bookmark: ParsedBookmark, bookmark_id: str) -> None:
        """
        Link folder-path tags (then the bookmark's own tags) to a bookmark.

        Each tag is handled on its own; a failure is logged and the next
        tag is tried.
        """
        names = tags_from_folder_path(bookmark.folder_path)
        names.extend(tag.strip().lower() for tag in bookmark.tags if tag.strip())

        linked = set()
        for name in names:
            if name in linked:
                continue
            linked.add(name)

            try:
                tag_id = self._find_or_create_tag(name)
                self._add_unique(self._tag_ids, tag_id)
                self.store.insert_bookmark_tag_link(bookmark_id, tag_id)
            except Exception as e:
                self.logger.warning(f"Could not tag {bookmark.url} with '{name}': {e}")

    def _find_or_create_tag(self, name: str) -> str:
        tag_id = self.store.find_tag_by_name(name)
        if tag_id:
            return tag_id

        try:
            return self.store.insert_tag(
                {"name": name, "slug": tag_slug(name), "created_by": self.user_id}
            )
        except PersistenceError:
            # Another import may have created it in the meantime
            tag_id = self.store.find_tag_by_name(name)
            if tag_id:
                return tag_id
            raise

    def _create_collections(self, folders: Sequence[ParsedFolder]) -> None:
        """
        Materialize top-level folders as collections.

        Existing (user, slug) collections are reused. Nested folders are not
        materialized; their bookmarks still carry the full folder path.
        """
        for folder in folders:
            if folder.is_root:
                continue

            slug = slugify(folder.name) or EMPTY_SLUG_FALLBACK
            try:
                collection_id = self.store.find_collection_by_user_and_slug(
                    self.user_id, slug
                )
                if collection_id:
                    self.logger.debug(f"Reusing collection '{slug}' for {folder.path}")
                else:
                    collection_id = self.store.insert_collection(
                        {
                            "user_id": self.user_id,
                            "name": folder.name,
                            "slug": slug,
                            "description": f"Imported from {folder.path}",
                            "privacy_level": self.options.default_privacy.value,
                        }
                    )
                self._add_unique(self._collection_ids, collection_id)

            except Exception as e:
                self.logger.warning(f"Could not create collection for '{folder.path}': {e}")

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ImportCancelledError(
                f"Import cancelled after {self._progress.processed} of "
                f"{self._progress.total} bookmarks"
            )

    def _notify(self, on_progress: Optional[ProgressCallback], bookmark: ParsedBookmark) -> None:
        if on_progress is None:
            return
        try:
            on_progress(self._progress.snapshot(current_item=bookmark.title))
        except Exception as e:
            self.logger.warning(f"Progress callback failed: {e}")

    def _record_error(self, url: str, error: Exception) -> None:
        message = str(error) or error.__class__.__name__
        self._errors.append(ImportErrorRecord(url, message, categorize_exception(error)))

    @staticmethod
    def _add_unique(ids: List[str], new_id: Optional[str]) -> None:
        if new_id and new_id not in ids:
            ids.append(new_id)

    def _build_result(self, completed: bool) -> ImportResult:
        return ImportResult(
            success=completed and self._progress.successful > 0,
            progress=self._progress.snapshot(),
            imported_bookmark_ids=tuple(self._imported_ids),
            created_tag_ids=tuple(self._tag_ids),
            created_collection_ids=tuple(self._collection_ids),
            errors=tuple(self._errors),
        )


# Convenience functions for simple use cases


def import_browser_bookmarks(
    user_id: str,
    parse_result: ParseResult,
    store: BookmarkStore,
    options: Optional[ImportOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ImportResult:
    """
    Import a parsed export for a user.

    Args:
        user_id: Owner of the imported rows
        parse_result: Parsed export
        store: Persistent store
        options: Import options (defaults apply when omitted)
        on_progress: Optional per-bookmark progress callback
        cancel_event: Optional event that stops the import when set

    Returns:
        ImportResult
    """
    service = ImportService(store, user_id, options, cancel_event=cancel_event)
    return service.import_bookmarks(parse_result, on_progress)


def build_import_response(
    parse_result: ParseResult,
    import_result: ImportResult,
    max_errors: int = MAX_RESPONSE_ERRORS,
) -> Dict[str, Any]:
    """
    Summarize a parse and import run for a client.

    Returns:
        Dictionary with the overall outcome, the parse summary and the
        import result trimmed to the first max_errors errors
    """
    return {
        "success": import_result.success,
        "message": (
            f"Import completed. {import_result.progress.successful} "
            "bookmarks imported successfully."
        ),
        "parse_result": parse_result.to_summary(),
        "import_result": {
            key: value
            for key, value in import_result.to_dict(max_errors=max_errors).items()
            if key != "success"
        },
    }
