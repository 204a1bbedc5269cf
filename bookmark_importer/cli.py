"""
Command-line interface for the Bookmark Importer.

Parses browser bookmark exports and imports them into a local bookmark
store, reporting progress and partial failures.
"""

import argparse
import json
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from rich.console import Console
from tqdm import tqdm

from bookmark_importer import __version__
from bookmark_importer.config.pydantic_config import ConfigurationManager, ImporterConfig
from bookmark_importer.core.bookmark_html_parser import BrowserBookmarkParser, select_strategy
from bookmark_importer.core.data_models import ImportProgress, ImportResult, ParseResult, PrivacyLevel
from bookmark_importer.core.database import SQLiteBookmarkStore
from bookmark_importer.core.import_service import ImportService, build_import_response
from bookmark_importer.core.upload import ensure_importable, read_bookmark_file
from bookmark_importer.utils.error_handler import BookmarkImporterError, BookmarkParseError
from bookmark_importer.utils.logging_setup import setup_logging
from bookmark_importer.utils.report_generator import ImportReportGenerator

EXIT_OK = 0
EXIT_NOTHING_IMPORTED = 1
EXIT_USAGE = 2


class CLIInterface:
    """Command line interface for parsing and importing bookmark exports."""

    def __init__(self, console: Optional[Console] = None):
        self.parser = self._create_parser()
        self.console = console or Console()
        self.logger = logging.getLogger(__name__)

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog="bookmark-importer",
            description="Import browser bookmark exports (Netscape HTML format)",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  bookmark-importer parse bookmarks.html
  bookmark-importer import bookmarks.html --user-id alice
  bookmark-importer import bookmarks.html --user-id alice --privacy private \\
    --no-preserve-folders --batch-size 100
  bookmark-importer import bookmarks.html --user-id alice --json
  bookmark-importer import bookmarks.html --user-id alice --report import.md
  bookmark-importer --create-config bookmark_import.toml

Configuration:
  Settings are read from bookmark_import.toml (or .json), or from the file
  given with --config. Environment variables BOOKMARK_IMPORTER_DB_PATH and
  BOOKMARK_IMPORTER_LOG_LEVEL override the file; command-line flags
  override both.
            """,
        )

        parser.add_argument("--version", "-V", action="version", version=f"%(prog)s {__version__}")
        parser.add_argument("--config", "-c", type=Path, help="Configuration file (TOML or JSON)")
        parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
        parser.add_argument(
            "--create-config",
            type=Path,
            metavar="PATH",
            help="Write a sample configuration file (.toml or .json) and exit",
        )

        subparsers = parser.add_subparsers(dest="command")

        parse_cmd = subparsers.add_parser("parse", help="Parse an export and show its structure")
        self._add_common_arguments(parse_cmd)

        import_cmd = subparsers.add_parser("import", help="Import an export into the store")
        self._add_common_arguments(import_cmd)
        import_cmd.add_argument("--user-id", "-u", required=True, help="Owner of the imported bookmarks")
        import_cmd.add_argument("--db", type=Path, help="SQLite database file")
        import_cmd.add_argument(
            "--no-skip-duplicates",
            dest="skip_duplicates",
            action="store_false",
            default=None,
            help="Insert URLs the user already has",
        )
        import_cmd.add_argument(
            "--no-auto-tag",
            dest="auto_tag",
            action="store_false",
            default=None,
            help="Do not derive tags from folder names",
        )
        import_cmd.add_argument(
            "--no-preserve-folders",
            dest="preserve_folders",
            action="store_false",
            default=None,
            help="Do not create collections from top-level folders",
        )
        import_cmd.add_argument(
            "--privacy",
            choices=[level.value for level in PrivacyLevel],
            help="Privacy level for imported bookmarks and collections",
        )
        import_cmd.add_argument("--batch-size", type=int, help="Bookmarks per processing batch")
        import_cmd.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
        import_cmd.add_argument(
            "--report", type=Path, metavar="PATH", help="Also write a markdown import report"
        )

        return parser

    def _add_common_arguments(self, subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument("input", type=Path, help="Bookmark export (.html/.htm)")
        subparser.add_argument(
            "--strategy",
            choices=["auto", "tree", "regex"],
            help="Parsing strategy",
        )
        subparser.add_argument("--json", action="store_true", help="Print JSON instead of tables")

    def parse_args(self, args=None) -> argparse.Namespace:
        """Parse command line arguments."""
        return self.parser.parse_args(args)

    def run(self, args=None) -> int:
        """Run the CLI and return the exit code."""
        parsed = self.parse_args(args)

        if parsed.create_config:
            return self._handle_create_config(parsed.create_config)

        if not parsed.command:
            self.parser.print_help()
            return EXIT_USAGE

        try:
            manager = ConfigurationManager(parsed.config)
            manager.update_from_cli_args(vars(parsed))
        except (ValueError, FileNotFoundError) as e:
            self.console.print(f"[red]{e}[/red]")
            return EXIT_USAGE

        config = manager.config
        setup_logging(
            level=config.logging.level,
            log_file=config.logging.log_file,
            console_output=config.logging.console_output and parsed.verbose,
        )

        try:
            parse_result = self._parse_input(parsed.input, config)
            if parsed.command == "parse":
                return self._report_parse(parse_result, parsed.json)
            return self._run_import(parse_result, parsed, config)

        except BookmarkParseError as e:
            self.console.print(f"[red]{e}[/red]")
            for error in e.parse_errors:
                self.console.print(f"  line {error.line}: {error.message}")
            return EXIT_USAGE
        except BookmarkImporterError as e:
            self.logger.error(str(e))
            self.console.print(f"[red]Error: {e}[/red]")
            return EXIT_USAGE

    def _handle_create_config(self, output_path: Path) -> int:
        fmt = "json" if output_path.suffix.lower() == ".json" else "toml"
        try:
            ConfigurationManager.create_sample_config(output_path, fmt)
        except OSError as e:
            self.console.print(f"[red]Could not write {output_path}: {e}[/red]")
            return EXIT_USAGE
        self.console.print(f"Sample configuration written to {output_path}")
        return EXIT_OK

    def _parse_input(self, input_path: Path, config: ImporterConfig) -> ParseResult:
        text = read_bookmark_file(
            input_path,
            max_size_bytes=config.upload.max_file_size_bytes,
            allowed_extensions=config.upload.allowed_extensions,
        )
        strategy = select_strategy(config.parser.strategy, config.parser.tree_builder)
        return BrowserBookmarkParser(strategy).parse(text)

    def _report_parse(self, parse_result: ParseResult, as_json: bool) -> int:
        if as_json:
            print(json.dumps(parse_result.to_summary(), indent=2))
        else:
            ImportReportGenerator(self.console).print_parse_summary(parse_result)
        return EXIT_OK if parse_result.total_count else EXIT_NOTHING_IMPORTED

    def _run_import(
        self, parse_result: ParseResult, parsed: argparse.Namespace, config: ImporterConfig
    ) -> int:
        ensure_importable(parse_result)

        store = SQLiteBookmarkStore(config.storage.database_path)
        cancel_event = threading.Event()
        service = ImportService(
            store, parsed.user_id, config.import_options, cancel_event=cancel_event
        )

        show_progress = not (parsed.json or parsed.no_progress)
        bar = tqdm(total=parse_result.total_count, desc="Importing", unit="bookmark", disable=not show_progress)

        def on_progress(progress: ImportProgress) -> None:
            bar.update(1)
            bar.set_postfix(ok=progress.successful, skipped=progress.skipped, failed=progress.failed)

        # Ctrl-C stops the import between bookmarks instead of mid-write
        previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: cancel_event.set())
        try:
            result = service.import_bookmarks(parse_result, on_progress)
        finally:
            signal.signal(signal.SIGINT, previous_handler)
            bar.close()

        if parsed.json:
            print(json.dumps(build_import_response(parse_result, result), indent=2))
        else:
            ImportReportGenerator(self.console).print_import_summary(result)

        if parsed.report:
            self._write_report(parsed.report, parse_result, result)

        return EXIT_OK if result.success else EXIT_NOTHING_IMPORTED

    def _write_report(
        self, report_path: Path, parse_result: ParseResult, result: ImportResult
    ) -> None:
        markdown = ImportReportGenerator(self.console).to_markdown(parse_result, result)
        try:
            report_path.write_text(markdown, encoding="utf-8")
        except OSError as e:
            self.logger.error(f"Could not write report to {report_path}: {e}")
            self.console.print(f"[red]Could not write report to {report_path}: {e}[/red]")
            return
        self.logger.info(f"Import report written to {report_path}")


def main(args=None):
    """Main entry point for the CLI."""
    cli = CLIInterface()
    return cli.run(args)


if __name__ == "__main__":
    sys.exit(main())
