"""
Tests for the command-line interface.
"""

import json
from io import StringIO

import pytest
from rich.console import Console

from bookmark_importer import __version__
from bookmark_importer.cli import EXIT_NOTHING_IMPORTED, EXIT_OK, EXIT_USAGE, CLIInterface, main
from bookmark_importer.config.pydantic_config import ConfigurationManager
from bookmark_importer.core.database import SQLiteBookmarkStore
from tests.fixtures.test_data import ONLY_BAD_LINKS_HTML, READING_EXPORT_HTML


@pytest.fixture(autouse=True)
def isolated_run(tmp_path, monkeypatch, reset_logging):
    """Run every command from a scratch directory with a clean environment."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(ConfigurationManager.ENV_DATABASE_PATH, raising=False)
    monkeypatch.delenv(ConfigurationManager.ENV_LOG_LEVEL, raising=False)


@pytest.fixture
def cli():
    return CLIInterface(console=Console(file=StringIO(), width=120))


@pytest.fixture
def reading_file(tmp_path):
    path = tmp_path / "reading.html"
    path.write_text(READING_EXPORT_HTML, encoding="utf-8")
    return path


def _console_output(cli):
    return cli.console.file.getvalue()


class TestCLIInterface:
    """Test cases for CLIInterface."""

    def test_init(self, cli):
        assert cli.parser is not None
        assert hasattr(cli, "logger")

    def test_parse_arguments(self, cli):
        args = cli.parse_args(
            ["import", "bookmarks.html", "-u", "alice", "--privacy", "private", "--batch-size", "10"]
        )

        assert args.command == "import"
        assert args.user_id == "alice"
        assert args.privacy == "private"
        assert args.batch_size == 10
        assert args.skip_duplicates is None

    def test_import_requires_user(self, cli):
        with pytest.raises(SystemExit):
            cli.parse_args(["import", "bookmarks.html"])

    def test_version(self, cli, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.run(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command(self, cli):
        assert cli.run([]) == EXIT_USAGE


class TestParseCommand:
    """Test cases for the parse subcommand."""

    def test_parse_json(self, cli, export_file, capsys):
        assert cli.run(["parse", str(export_file), "--json"]) == EXIT_OK

        summary = json.loads(capsys.readouterr().out)
        assert summary == {"source_type": "netscape", "total_count": 4, "parse_errors": []}

    def test_parse_table(self, cli, export_file):
        assert cli.run(["parse", str(export_file)]) == EXIT_OK
        assert "Machine Learning" in _console_output(cli)

    def test_parse_nothing_found(self, cli, tmp_path):
        path = tmp_path / "empty.html"
        path.write_text(ONLY_BAD_LINKS_HTML)

        assert cli.run(["parse", str(path), "--json"]) == EXIT_NOTHING_IMPORTED

    def test_regex_strategy(self, cli, export_file, capsys):
        assert cli.run(["parse", str(export_file), "--strategy", "regex", "--json"]) == EXIT_OK
        assert json.loads(capsys.readouterr().out)["total_count"] == 4

    def test_missing_file(self, cli, tmp_path):
        assert cli.run(["parse", str(tmp_path / "missing.html")]) == EXIT_USAGE
        assert "File not found" in _console_output(cli)

    def test_wrong_extension(self, cli, tmp_path):
        path = tmp_path / "bookmarks.txt"
        path.write_text(READING_EXPORT_HTML)

        assert cli.run(["parse", str(path)]) == EXIT_USAGE
        assert "Invalid file type" in _console_output(cli)


class TestImportCommand:
    """Test cases for the import subcommand."""

    def test_import_json(self, cli, reading_file, tmp_path, capsys):
        db_path = tmp_path / "import.db"

        code = cli.run(["import", str(reading_file), "-u", "alice", "--db", str(db_path), "--json"])

        assert code == EXIT_OK
        response = json.loads(capsys.readouterr().out)
        assert response["success"] is True
        assert response["message"] == "Import completed. 2 bookmarks imported successfully."
        assert response["import_result"]["progress"]["successful"] == 2
        assert len(response["import_result"]["created_collection_ids"]) == 1
        assert SQLiteBookmarkStore(db_path).count_bookmarks("alice") == 2

    def test_import_options(self, cli, reading_file, tmp_path, capsys):
        db_path = tmp_path / "import.db"

        code = cli.run(
            [
                "import",
                str(reading_file),
                "-u",
                "alice",
                "--db",
                str(db_path),
                "--privacy",
                "private",
                "--no-preserve-folders",
                "--no-auto-tag",
                "--json",
            ]
        )

        assert code == EXIT_OK
        response = json.loads(capsys.readouterr().out)
        assert response["import_result"]["created_collection_ids"] == []
        assert response["import_result"]["created_tag_ids"] == []

        store = SQLiteBookmarkStore(db_path)
        bookmark_id = response["import_result"]["imported_bookmark_ids"][0]
        assert store.get_bookmark(bookmark_id)["privacy_level"] == "private"

    def test_reimport_imports_nothing(self, cli, reading_file, tmp_path, capsys):
        db_path = str(tmp_path / "import.db")
        args = ["import", str(reading_file), "-u", "alice", "--db", db_path, "--json"]

        assert cli.run(args) == EXIT_OK
        capsys.readouterr()

        assert CLIInterface(console=Console(file=StringIO())).run(args) == EXIT_NOTHING_IMPORTED
        response = json.loads(capsys.readouterr().out)
        assert response["import_result"]["progress"]["duplicates"] == 2

    def test_import_table_output(self, cli, reading_file, tmp_path):
        code = cli.run(
            ["import", str(reading_file), "-u", "alice", "--db", str(tmp_path / "t.db"), "--no-progress"]
        )

        assert code == EXIT_OK
        assert "Import succeeded" in _console_output(cli)

    def test_markdown_report(self, cli, reading_file, tmp_path):
        report = tmp_path / "import.md"

        code = cli.run(
            [
                "import",
                str(reading_file),
                "-u",
                "alice",
                "--db",
                str(tmp_path / "r.db"),
                "--no-progress",
                "--report",
                str(report),
            ]
        )

        assert code == EXIT_OK
        markdown = report.read_text(encoding="utf-8")
        assert markdown.startswith("# Bookmark Import Report")
        assert "| 2 | 2 | 2 | 0 | 0 | 0 |" in markdown
        assert "Created 2 bookmarks" in markdown

    def test_unwritable_report_keeps_exit_code(self, cli, reading_file, tmp_path):
        report = tmp_path / "missing" / "import.md"

        code = cli.run(
            ["import", str(reading_file), "-u", "alice", "--db", str(tmp_path / "r.db"),
             "--no-progress", "--report", str(report)]
        )

        assert code == EXIT_OK
        assert not report.exists()
        assert "Could not write report" in _console_output(cli)

    def test_unparseable_export(self, cli, tmp_path):
        path = tmp_path / "broken.html"
        path.write_text(ONLY_BAD_LINKS_HTML)

        code = cli.run(["import", str(path), "-u", "alice", "--db", str(tmp_path / "t.db")])

        assert code == EXIT_USAGE
        output = _console_output(cli)
        assert "Failed to parse bookmark file" in output
        assert "line 3: Invalid bookmark: missing URL or title" in output

    def test_invalid_batch_size(self, cli, reading_file):
        code = cli.run(["import", str(reading_file), "-u", "alice", "--batch-size", "0"])

        assert code == EXIT_USAGE
        assert "batch_size" in _console_output(cli)

    def test_config_file(self, cli, reading_file, tmp_path, capsys):
        config_path = tmp_path / "settings.toml"
        config_path.write_text(
            f'[storage]\ndatabase_path = "{(tmp_path / "from_config.db").as_posix()}"\n'
        )

        code = cli.run(["--config", str(config_path), "import", str(reading_file), "-u", "bob", "--json"])

        assert code == EXIT_OK
        assert SQLiteBookmarkStore(tmp_path / "from_config.db").count_bookmarks("bob") == 2


class TestCreateConfig:
    """Test cases for --create-config."""

    def test_create_toml(self, cli, tmp_path):
        path = tmp_path / "bookmark_import.toml"

        assert cli.run(["--create-config", str(path)]) == EXIT_OK
        assert path.exists()
        assert ConfigurationManager(path).config.import_options.batch_size == 50

    def test_create_json(self, cli, tmp_path):
        path = tmp_path / "bookmark_import.json"

        assert cli.run(["--create-config", str(path)]) == EXIT_OK
        assert json.loads(path.read_text())["parser"]["strategy"] == "auto"

    def test_unwritable_path(self, cli, tmp_path):
        path = tmp_path / "missing_dir" / "config.toml"

        assert cli.run(["--create-config", str(path)]) == EXIT_USAGE


def test_main(export_file, capsys):
    assert main(["parse", str(export_file), "--json"]) == EXIT_OK
    assert json.loads(capsys.readouterr().out)["total_count"] == 4
