"""
Browser bookmark export parser.

This module turns a Netscape bookmark file (the format Chrome, Firefox,
Safari and Edge all export) into a folder tree. Two strategies share one
interface:

* TreeWalkerStrategy walks the document tree built by BeautifulSoup and
  keeps the full folder nesting.
* RegexFallbackStrategy scans the raw text for links and headings. It is a
  degraded path: every bookmark lands in one synthetic root folder and the
  headings it finds become empty placeholder folders, so folder membership
  is lost.

select_strategy() picks between them from configuration and from which
tree builders bs4 has registered.
"""

import html
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag
from bs4.builder import builder_registry

from ..utils.error_handler import ConfigurationError
from .data_models import ParsedBookmark, ParsedFolder, ParseErrorRecord, ParseResult, SourceType
from .source_detector import detect_source_type

UNTITLED_FOLDER = "Untitled Folder"
ROOT_FOLDER_NAME = "Root"

# Headings the regex scan does not turn into placeholder folders
CONTAINER_HEADINGS = frozenset({"bookmarks", "bookmarks bar"})

ParseOutput = Tuple[List[ParsedFolder], List[ParseErrorRecord]]

logger = logging.getLogger(__name__)


def _parse_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """
    Parse a Unix timestamp attribute (seconds since epoch).

    Returns:
        Aware UTC datetime, or None if missing or malformed
    """
    if not timestamp_str:
        return None

    try:
        return datetime.fromtimestamp(int(timestamp_str.strip()), tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        logger.warning(f"Invalid timestamp format: {timestamp_str} - {e}")
        return None


def _split_tags(tags_attr: Optional[str]) -> List[str]:
    if not tags_attr:
        return []
    return [t.strip() for t in tags_attr.split(",") if t.strip()]


def _root_folder() -> ParsedFolder:
    return ParsedFolder(name=ROOT_FOLDER_NAME, path="")


def _join_path(parent_path: Optional[str], name: str) -> str:
    return f"{parent_path}/{name}" if parent_path else name


class BookmarkParserStrategy(ABC):
    """Converts raw export markup into (folders, errors)."""

    name = "base"

    @abstractmethod
    def parse(self, text: str) -> ParseOutput:
        """
        Parse an export.

        Args:
            text: Raw document text

        Returns:
            Tuple of the top-level folders and the parse errors met
        """


class TreeWalkerStrategy(BookmarkParserStrategy):
    """
    Walks nested <DL> lists of the parsed document.

    Unclosed <DT> and <p> tags make html.parser nest every following entry
    inside the previous one, while html5lib closes them. Entries of a list
    are therefore collected as every <DT> reachable from it without entering
    another <DL>, which reads both shapes the same way.
    """

    name = "tree"

    def __init__(self, tree_builder: str = "html.parser"):
        self.tree_builder = tree_builder
        self.logger = logging.getLogger(__name__)

    @classmethod
    def is_available(cls, tree_builder: str = "html.parser") -> bool:
        return builder_registry.lookup(tree_builder) is not None

    def parse(self, text: str) -> ParseOutput:
        errors: List[ParseErrorRecord] = []
        folders: List[ParsedFolder] = []

        soup = BeautifulSoup(text, self.tree_builder)
        main_dl = soup.find("dl")
        if main_dl is None:
            errors.append(
                ParseErrorRecord(0, "No bookmark structure found (missing <DL> tag)")
            )
            return folders, errors

        root = _root_folder()
        claimed = set()

        # Each work item is a list and the folder it fills (None for the top)
        stack: List[Tuple[Tag, Optional[ParsedFolder]]] = [(main_dl, None)]
        claimed.add(id(main_dl))

        while stack:
            dl, folder = stack.pop()
            pending = []

            for entry in self._iter_entries(dl, claimed):
                if entry.name == "dl":
                    # A list no entry owns is read as a nameless folder
                    subfolder = self._new_folder(UNTITLED_FOLDER, folder)
                    self._attach_folder(subfolder, folder, folders)
                    claimed.add(id(entry))
                    pending.append((entry, subfolder))
                    continue

                heading = entry.find("h3", recursive=False)
                link = entry.find("a", recursive=False)
                is_folder = self._is_folder_entry(entry)
                nested_dl = self._find_nested_list(entry) if is_folder else None

                if heading is not None or (is_folder and nested_dl is not None):
                    name = heading.get_text().strip() if heading is not None else ""
                    subfolder = self._new_folder(name or UNTITLED_FOLDER, folder)
                    self._attach_folder(subfolder, folder, folders)
                    if nested_dl is not None and id(nested_dl) not in claimed:
                        claimed.add(id(nested_dl))
                        pending.append((nested_dl, subfolder))
                elif link is not None:
                    bookmark = self._parse_bookmark_link(entry, link, folder, errors)
                    if bookmark is not None:
                        (folder or root).bookmarks.append(bookmark)

            # Reversed so lists are processed in document order
            stack.extend(reversed(pending))

        if root.bookmarks:
            folders.insert(0, root)

        errors.sort(key=lambda e: e.line)
        return folders, errors

    def _iter_entries(self, dl: Tag, claimed: set) -> List[Tag]:
        """<DT> entries of dl, plus stray <DL> lists no entry has claimed."""
        entries: List[Tag] = []
        stack = [child for child in reversed(list(dl.children)) if isinstance(child, Tag)]

        while stack:
            node = stack.pop()
            if node.name == "dl":
                # Nested lists are walked on their own; unclaimed ones are
                # reported so their bookmarks are not lost
                if id(node) not in claimed and not self._is_entry_list(node, entries):
                    entries.append(node)
                continue
            if node.name == "dt":
                entries.append(node)
            if node.name in ("a", "h3"):
                continue
            stack.extend(
                child for child in reversed(list(node.children)) if isinstance(child, Tag)
            )

        return entries

    def _is_entry_list(self, dl: Tag, entries: List[Tag]) -> bool:
        """True when dl belongs to a folder entry collected so far."""
        for entry in reversed(entries):
            if (
                entry.name == "dt"
                and self._is_folder_entry(entry)
                and self._find_nested_list(entry) is dl
            ):
                return True
        return False

    def _is_folder_entry(self, dt: Tag) -> bool:
        return (
            dt.find("h3", recursive=False) is not None
            or dt.find("a", recursive=False) is None
        )

    def _find_nested_list(self, dt: Tag) -> Optional[Tag]:
        """
        Find the <DL> holding a folder's contents.

        lxml closes a folder's <DT> inside the preceding bookmark's <DT>, so
        when the entry is the last one there the list follows that outer
        bookmark entry instead.

        Returns:
            The <DL> child of the entry (or of its <DD> description), else
            the <DL> right after the entry or its enclosing bookmark
            entries, else None
        """
        child = dt.find("dl", recursive=False)
        if child is None:
            dd = dt.find("dd", recursive=False)
            if dd is not None:
                child = dd.find("dl", recursive=False)
        if child is not None:
            return child

        node = dt
        while True:
            sibling = node.find_next_sibling()
            if sibling is not None:
                return sibling if sibling.name == "dl" else None
            parent = node.parent
            if parent is None or parent.name != "dt" or self._is_folder_entry(parent):
                return None
            node = parent

    def _new_folder(self, name: str, parent: Optional[ParsedFolder]) -> ParsedFolder:
        parent_path = parent.path if parent is not None else None
        return ParsedFolder(
            name=name,
            path=_join_path(parent_path, name),
            parent_path=parent_path,
        )

    def _attach_folder(
        self,
        subfolder: ParsedFolder,
        parent: Optional[ParsedFolder],
        top_level: List[ParsedFolder],
    ) -> None:
        if parent is None:
            top_level.append(subfolder)
        else:
            parent.subfolders.append(subfolder)

    def _parse_bookmark_link(
        self,
        entry: Tag,
        link: Tag,
        folder: Optional[ParsedFolder],
        errors: List[ParseErrorRecord],
    ) -> Optional[ParsedBookmark]:
        """
        Build a bookmark from an <A> element.

        Returns:
            ParsedBookmark, or None (with an error recorded) when the link
            has no href or no title
        """
        url = (link.get("href") or "").strip()
        title = link.get_text().strip()

        if not url or not title:
            line = getattr(link, "sourceline", None) or 0
            errors.append(ParseErrorRecord(line, "Invalid bookmark: missing URL or title"))
            self.logger.debug(f"Skipping bookmark without URL or title at line {line}")
            return None

        return ParsedBookmark(
            url=url,
            title=title,
            description=self._find_description(entry),
            favicon_url=link.get("icon_uri") or None,
            tags=_split_tags(link.get("tags")),
            folder_path=folder.path if folder is not None and folder.path else None,
            added_date=_parse_timestamp(link.get("add_date")),
            icon=link.get("icon") or None,
        )

    def _find_description(self, entry: Tag) -> Optional[str]:
        """Text of the <DD> that follows a bookmark, if any."""
        dd = entry.find("dd", recursive=False)
        if dd is None:
            sibling = entry.find_next_sibling()
            if sibling is not None and sibling.name == "dd":
                dd = sibling
        if dd is None:
            return None

        # Only the DD's own text; unclosed tags may nest later entries in it
        text = "".join(dd.find_all(string=True, recursive=False)).strip()
        return text or None


class RegexFallbackStrategy(BookmarkParserStrategy):
    """
    Linear text scan used when no tree builder is available.

    Bookmarks all go to a synthetic root folder; headings become empty
    placeholder folders. Folder membership is not recovered.
    """

    name = "regex"

    # Text groups stop at the next tag of the same kind so an unclosed
    # <A> or <H3> cannot swallow the rest of the document
    LINK_PATTERN = re.compile(
        r"<a\b([^>]*)>((?:(?!<a\b).)*?)</a\s*>", re.IGNORECASE | re.DOTALL
    )
    HEADING_PATTERN = re.compile(
        r"<h3\b[^>]*>((?:(?!<h3\b).)*?)</h3\s*>", re.IGNORECASE | re.DOTALL
    )
    ATTRIBUTE_PATTERN = re.compile(
        r"""([a-z_:-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""", re.IGNORECASE
    )
    TAG_PATTERN = re.compile(r"<[^>]+>")

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def parse(self, text: str) -> ParseOutput:
        errors: List[ParseErrorRecord] = []
        root = _root_folder()
        placeholders: List[ParsedFolder] = []

        lines = _LineCounter(text)
        for match in self.LINK_PATTERN.finditer(text):
            attrs = self._attributes(match.group(1))
            url = html.unescape(attrs.get("href", "")).strip()
            title = self._clean_text(match.group(2))

            if not url or not title:
                errors.append(
                    ParseErrorRecord(
                        lines.line_at(match.start()),
                        "Invalid bookmark: missing URL or title",
                    )
                )
                continue

            root.bookmarks.append(
                ParsedBookmark(
                    url=url,
                    title=title,
                    favicon_url=attrs.get("icon_uri") or None,
                    tags=_split_tags(attrs.get("tags")),
                    added_date=_parse_timestamp(attrs.get("add_date")),
                    icon=attrs.get("icon") or None,
                )
            )

        for match in self.HEADING_PATTERN.finditer(text):
            name = self._clean_text(match.group(1))
            if name and name.lower() not in CONTAINER_HEADINGS:
                placeholders.append(ParsedFolder(name=name, path=name))

        folders = placeholders
        if root.bookmarks:
            folders.insert(0, root)

        self.logger.debug(
            f"Regex scan found {len(root.bookmarks)} bookmarks and "
            f"{len(placeholders)} folder headings"
        )
        return folders, errors

    def _attributes(self, attr_text: str) -> Dict[str, str]:
        attrs = {}
        for match in self.ATTRIBUTE_PATTERN.finditer(attr_text):
            value = match.group(2) if match.group(2) is not None else match.group(3)
            attrs.setdefault(match.group(1).lower(), value)
        return attrs

    def _clean_text(self, fragment: str) -> str:
        return html.unescape(self.TAG_PATTERN.sub("", fragment)).strip()


class _LineCounter:
    """Maps increasing character offsets to 1-based line numbers."""

    def __init__(self, text: str):
        self.text = text
        self.offset = 0
        self.line = 1

    def line_at(self, position: int) -> int:
        if position < self.offset:
            self.offset, self.line = 0, 1
        self.line += self.text.count("\n", self.offset, position)
        self.offset = position
        return self.line


def flatten_bookmarks(folders: List[ParsedFolder]) -> List[ParsedBookmark]:
    """
    Flatten a folder tree into one ordered bookmark list.

    Pre-order: each folder's own bookmarks come before those of its
    subfolders, and siblings keep document order.
    """
    bookmarks: List[ParsedBookmark] = []
    stack = list(reversed(folders))

    while stack:
        folder = stack.pop()
        bookmarks.extend(folder.bookmarks)
        stack.extend(reversed(folder.subfolders))

    return bookmarks


def select_strategy(
    strategy: str = "auto", tree_builder: str = "html.parser"
) -> BookmarkParserStrategy:
    """
    Choose a parsing strategy.

    Args:
        strategy: "auto", "tree" or "regex"
        tree_builder: bs4 tree builder feature for the tree walker

    Returns:
        Strategy instance

    Raises:
        ConfigurationError: If "tree" is requested but the builder is not
            installed, or the strategy name is unknown
    """
    if strategy == "regex":
        return RegexFallbackStrategy()

    if strategy not in ("auto", "tree"):
        raise ConfigurationError(f"Unknown parser strategy: {strategy}")

    if TreeWalkerStrategy.is_available(tree_builder):
        return TreeWalkerStrategy(tree_builder)

    if strategy == "tree":
        raise ConfigurationError(
            f"Tree builder '{tree_builder}' is not available to BeautifulSoup"
        )

    logger.warning(
        f"Tree builder '{tree_builder}' not available, using regex fallback; "
        "folder structure will not be preserved"
    )
    return RegexFallbackStrategy()


class BrowserBookmarkParser:
    """
    Parser for browser bookmark exports.

    Detects the exporting browser, builds the folder tree with the chosen
    strategy and flattens it into a ParseResult.
    """

    def __init__(self, strategy: Optional[BookmarkParserStrategy] = None):
        """
        Initialize the parser.

        Args:
            strategy: Parsing strategy (defaults to select_strategy("auto"))
        """
        self.strategy = strategy or select_strategy()
        self.logger = logging.getLogger(__name__)

    def parse(self, text: str) -> ParseResult:
        """
        Parse an export document.

        Never raises for malformed input: unexpected failures are reported
        as a single parse error on an empty result.
        """
        try:
            source_type = detect_source_type(text)
            folders, errors = self.strategy.parse(text)
            bookmarks = flatten_bookmarks(folders)
        except Exception as e:
            self.logger.error(f"Fatal error parsing bookmark export: {e}")
            return ParseResult(
                bookmarks=(),
                folders=(),
                total_count=0,
                source_type=SourceType.UNKNOWN,
                parse_errors=(ParseErrorRecord(0, f"Fatal parsing error: {e}"),),
            )

        self.logger.info(
            f"Parsed {len(bookmarks)} bookmarks in {len(folders)} top-level folders "
            f"({source_type.value}, {self.strategy.name} strategy, "
            f"{len(errors)} errors)"
        )
        return ParseResult(
            bookmarks=tuple(bookmarks),
            folders=tuple(folders),
            total_count=len(bookmarks),
            source_type=source_type,
            parse_errors=tuple(errors),
        )


def parse_browser_bookmarks(
    text: str, strategy: str = "auto", tree_builder: str = "html.parser"
) -> ParseResult:
    """Parse an export with a strategy chosen by name."""
    return BrowserBookmarkParser(select_strategy(strategy, tree_builder)).parse(text)
