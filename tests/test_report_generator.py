"""
Tests for the terminal and markdown import reports.
"""

from io import StringIO

import pytest
from rich.console import Console

from bookmark_importer.core.bookmark_html_parser import parse_browser_bookmarks
from bookmark_importer.core.data_models import (
    ImportErrorRecord,
    ImportProgress,
    ImportResult,
)
from bookmark_importer.core.import_service import import_browser_bookmarks
from bookmark_importer.utils.error_handler import ErrorCategory
from bookmark_importer.utils.report_generator import ImportReportGenerator
from tests.fixtures.test_data import BAD_LINKS_HTML, make_bookmark, make_parse_result


@pytest.fixture
def console():
    return Console(file=StringIO(), width=120)


@pytest.fixture
def reporter(console):
    return ImportReportGenerator(console)


def _output(console):
    return console.file.getvalue()


def _result(errors=(), success=True, successful=1):
    progress = ImportProgress(
        total=successful + len(errors),
        processed=successful + len(errors),
        successful=successful,
        skipped=len(errors),
    )
    return ImportResult(
        success=success,
        progress=progress,
        imported_bookmark_ids=tuple(f"b{i}" for i in range(successful)),
        errors=tuple(errors),
    )


class TestParseReports:
    """Test cases for parse summaries."""

    def test_parse_summary(self, reporter, console, chrome_result):
        reporter.print_parse_summary(chrome_result)
        output = _output(console)

        assert "Parse Summary" in output
        assert "netscape" in output
        assert "Machine Learning" in output
        assert "Other Folder" in output

    def test_parse_errors_listed(self, reporter, console):
        reporter.print_parse_summary(parse_browser_bookmarks(BAD_LINKS_HTML), show_tree=False)
        output = _output(console)

        assert "Parse Errors" in output
        assert "missing URL or title" in output

    def test_folder_tree_labels(self, reporter, console, chrome_result):
        console.print(reporter.build_folder_tree(list(chrome_result.folders)))
        output = _output(console)

        assert "Bookmarks bar (1)" in output
        assert "Machine Learning (2)" in output


class TestImportReports:
    """Test cases for import summaries."""

    def test_success_summary(self, reporter, console, store, reading_result):
        result = import_browser_bookmarks("u1", reading_result, store)

        reporter.print_import_summary(result)
        output = _output(console)

        assert "Import succeeded: 2 of 2 bookmarks imported" in output
        assert "Collections" in output
        assert "Errors" not in output

    def test_errors_grouped_by_category(self, reporter, console):
        errors = [
            ImportErrorRecord("bad-url", "Invalid URL format", ErrorCategory.VALIDATION),
            ImportErrorRecord("https://x.example.com/", "disk full", ErrorCategory.PERSISTENCE),
        ]
        reporter.print_import_summary(_result(errors))
        output = _output(console)

        assert "Errors: validation (1)" in output
        assert "Errors: persistence (1)" in output

    def test_long_error_lists_elided(self, reporter, console):
        errors = [
            ImportErrorRecord(f"bad-{i}", "Invalid URL format", ErrorCategory.VALIDATION)
            for i in range(13)
        ]
        reporter.print_import_summary(_result(errors))

        assert "3 more" in _output(console)

    def test_aborted_summary(self, reporter, console):
        errors = [ImportErrorRecord("FATAL", "boom", ErrorCategory.FATAL)]
        reporter.print_import_summary(_result(errors, success=False, successful=0))

        assert "Import aborted" in _output(console)

    def test_group_errors_keeps_order(self):
        errors = [
            ImportErrorRecord("a", "x", ErrorCategory.PERSISTENCE),
            ImportErrorRecord("b", "y", ErrorCategory.VALIDATION),
            ImportErrorRecord("c", "z", ErrorCategory.PERSISTENCE),
        ]

        grouped = ImportReportGenerator.group_errors(errors)

        assert list(grouped) == ["persistence", "validation"]
        assert [e.url for e in grouped["persistence"]] == ["a", "c"]

    def test_markdown(self, reporter):
        parse_result = make_parse_result([make_bookmark(), make_bookmark(url="bad")])
        errors = [ImportErrorRecord("bad", "Invalid URL format", ErrorCategory.VALIDATION)]

        markdown = reporter.to_markdown(parse_result, _result(errors))

        assert markdown.startswith("# Bookmark Import Report")
        assert "- Source: netscape" in markdown
        assert "| 2 | 2 | 1 | 0 | 1 | 0 |" in markdown
        assert "## Errors: validation" in markdown
        assert "- `bad`: Invalid URL format" in markdown

    def test_markdown_counts_unprocessed_bookmarks(self, reporter):
        parse_result = make_parse_result([make_bookmark(url=f"https://e.com/{i}") for i in range(5)])
        result = ImportResult(
            success=False,
            progress=ImportProgress(total=5, processed=2, successful=2),
            imported_bookmark_ids=("b0", "b1"),
            errors=(ImportErrorRecord("CANCELLED", "Import cancelled", ErrorCategory.CANCELLED),),
        )

        markdown = reporter.to_markdown(parse_result, result)

        assert "3 bookmarks were not processed." in markdown
        assert "## Errors: cancelled" in markdown

    def test_complete_run_has_no_unprocessed_line(self, reporter, console):
        reporter.print_import_summary(_result())

        assert "not processed" not in _output(console)
        assert "not processed" not in reporter.to_markdown(make_parse_result([make_bookmark()]), _result())

    def test_summary_counts_unprocessed_bookmarks(self, reporter, console):
        result = ImportResult(success=False, progress=ImportProgress(total=4, processed=1, successful=1))

        reporter.print_import_summary(result)

        assert "3 bookmarks were not processed" in _output(console)
