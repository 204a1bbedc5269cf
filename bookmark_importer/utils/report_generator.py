"""
Terminal reports for parse and import runs.

Renders parse summaries, folder trees and import outcomes with Rich, and
the same import outcome as markdown for saving alongside logs.
"""

from collections import defaultdict
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..core.data_models import ImportErrorRecord, ImportResult, ParsedFolder, ParseResult

# Error rows shown per category before eliding
MAX_ERRORS_PER_CATEGORY = 10


class ImportReportGenerator:
    """
    Builds reports for the CLI.

    Example:
        >>> reporter = ImportReportGenerator()
        >>> reporter.print_parse_summary(parse_result)
        >>> reporter.print_import_summary(import_result)
    """

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize the report generator.

        Args:
            console: Rich console to print to (a new one by default)
        """
        self.console = console or Console()

    # ============ Parse reports ============

    def print_parse_summary(self, parse_result: ParseResult, show_tree: bool = True) -> None:
        """Print source type, counts, the folder tree and parse errors."""
        table = Table(title="Parse Summary", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Source", parse_result.source_type.value)
        table.add_row("Bookmarks", str(parse_result.total_count))
        table.add_row("Top-level folders", str(len(parse_result.folders)))
        table.add_row("Parse errors", str(len(parse_result.parse_errors)))
        self.console.print(table)

        if show_tree and parse_result.folders:
            self.console.print(self.build_folder_tree(parse_result.folders))

        if parse_result.parse_errors:
            errors = Table(title="Parse Errors")
            errors.add_column("Line", justify="right")
            errors.add_column("Message")
            for error in parse_result.parse_errors:
                errors.add_row(str(error.line), error.message)
            self.console.print(errors)

    def build_folder_tree(self, folders: List[ParsedFolder]) -> Tree:
        """Rich tree of folders annotated with bookmark counts."""
        tree = Tree("[bold]Bookmarks[/bold]")
        stack = [(tree, folder) for folder in reversed(folders)]

        while stack:
            parent, folder = stack.pop()
            label = folder.name if folder.path else f"{folder.name} (unfiled)"
            node = parent.add(f"{label} [dim]({len(folder.bookmarks)})[/dim]")
            stack.extend((node, sub) for sub in reversed(folder.subfolders))

        return tree

    # ============ Import reports ============

    def print_import_summary(self, result: ImportResult) -> None:
        """Print counters, created ids and errors grouped by category."""
        progress = result.progress
        status = "[green]succeeded[/green]" if result.success else "[red]imported nothing[/red]"
        if result.fatal:
            status = "[red]aborted[/red]"

        self.console.print(
            Panel(
                f"Import {status}: {progress.successful} of {progress.total} bookmarks imported",
                title="Bookmark Import",
            )
        )

        counts = Table(title="Progress")
        for column in ("Total", "Processed", "Successful", "Failed", "Skipped", "Duplicates"):
            counts.add_column(column, justify="right")
        counts.add_row(
            str(progress.total),
            str(progress.processed),
            str(progress.successful),
            str(progress.failed),
            str(progress.skipped),
            str(progress.duplicates),
        )
        self.console.print(counts)
        if not progress.is_balanced:
            self.console.print(
                f"[yellow]{_unprocessed(progress)} bookmarks were not processed[/yellow]"
            )

        created = Table(title="Created", show_header=False)
        created.add_column("Kind", style="bold")
        created.add_column("Count", justify="right")
        created.add_row("Bookmarks", str(len(result.imported_bookmark_ids)))
        created.add_row("Tags", str(len(result.created_tag_ids)))
        created.add_row("Collections", str(len(result.created_collection_ids)))
        self.console.print(created)

        for category, errors in self.group_errors(result.errors).items():
            table = Table(title=f"Errors: {category} ({len(errors)})")
            table.add_column("URL", overflow="fold")
            table.add_column("Message")
            for error in errors[:MAX_ERRORS_PER_CATEGORY]:
                table.add_row(error.url, error.message)
            if len(errors) > MAX_ERRORS_PER_CATEGORY:
                table.add_row("...", f"{len(errors) - MAX_ERRORS_PER_CATEGORY} more")
            self.console.print(table)

    @staticmethod
    def group_errors(errors) -> Dict[str, List[ImportErrorRecord]]:
        """Errors keyed by category value, in first-seen order."""
        grouped: Dict[str, List[ImportErrorRecord]] = defaultdict(list)
        for error in errors:
            grouped[error.category.value].append(error)
        return dict(grouped)

    def to_markdown(self, parse_result: ParseResult, result: ImportResult) -> str:
        """Markdown version of the import report."""
        progress = result.progress
        lines = [
            "# Bookmark Import Report",
            "",
            f"- Source: {parse_result.source_type.value}",
            f"- Success: {'yes' if result.success else 'no'}",
            "",
            "| Total | Processed | Successful | Failed | Skipped | Duplicates |",
            "|---|---|---|---|---|---|",
            f"| {progress.total} | {progress.processed} | {progress.successful} "
            f"| {progress.failed} | {progress.skipped} | {progress.duplicates} |",
            "",
            f"Created {len(result.imported_bookmark_ids)} bookmarks, "
            f"{len(result.created_tag_ids)} tags and "
            f"{len(result.created_collection_ids)} collections.",
        ]

        if not progress.is_balanced:
            lines += ["", f"{_unprocessed(progress)} bookmarks were not processed."]

        if parse_result.parse_errors:
            lines += ["", "## Parse Errors", ""]
            lines += [f"- line {e.line}: {e.message}" for e in parse_result.parse_errors]

        for category, errors in self.group_errors(result.errors).items():
            lines += ["", f"## Errors: {category}", ""]
            lines += [f"- `{e.url}`: {e.message}" for e in errors]

        return "\n".join(lines) + "\n"


def _unprocessed(progress) -> int:
    return progress.total - progress.successful - progress.failed - progress.skipped
