"""
Pydantic-based configuration system for the Bookmark Importer.

Settings come from a TOML or JSON file, then environment variables, then
command-line arguments, each layer overriding the one before.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import toml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..core.data_models import ImportOptions


class ParserConfig(BaseModel):
    """Structural parser selection."""

    strategy: Literal["auto", "tree", "regex"] = Field(
        default="auto",
        description="Parsing strategy",
        json_schema_extra={
            "error_msg": "Parser strategy must be 'auto', 'tree' or 'regex'. "
            "'auto' uses the tree walker whenever its tree builder is installed."
        },
    )
    tree_builder: str = Field(
        default="html.parser",
        description="BeautifulSoup tree builder used by the tree walker",
        json_schema_extra={
            "error_msg": "Tree builder must be a BeautifulSoup feature name such "
            "as 'html.parser', 'lxml' or 'html5lib'."
        },
    )


class UploadConfig(BaseModel):
    """Accepted export files."""

    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum export size in megabytes",
        json_schema_extra={
            "error_msg": "Maximum file size must be between 1 and 100 MB. "
            "Browser exports rarely exceed 10 MB."
        },
    )
    allowed_extensions: List[str] = Field(
        default_factory=lambda: [".html", ".htm"],
        description="Accepted file extensions",
    )

    @field_validator("allowed_extensions")
    @classmethod
    def normalize_extensions(cls, v):
        """Lowercase extensions and make sure they start with a dot."""
        if not v:
            raise ValueError("At least one file extension must be allowed")
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


class StorageConfig(BaseModel):
    """Bookmark store location."""

    database_path: Path = Field(
        default=Path(".bookmark_import.db"),
        description="SQLite database file",
    )

    @field_validator("database_path", mode="before")
    @classmethod
    def validate_database_path(cls, v):
        """Ensure database path is a Path object."""
        if isinstance(v, str):
            return Path(v)
        return v


class LoggingConfig(BaseModel):
    """Logging output."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
        json_schema_extra={
            "error_msg": "Log level must be DEBUG, INFO, WARNING or ERROR."
        },
    )
    log_file: Optional[str] = Field(default=None, description="Log file name")
    console_output: bool = Field(default=True, description="Also log to stdout")

    @field_validator("level", mode="before")
    @classmethod
    def uppercase_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class ImporterConfig(BaseModel):
    """Main configuration model."""

    parser: ParserConfig = Field(default_factory=ParserConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    import_options: ImportOptions = Field(default_factory=ImportOptions)


class ConfigurationManager:
    """Manages loading and validation of configuration from multiple sources."""

    ENV_DATABASE_PATH = "BOOKMARK_IMPORTER_DB_PATH"
    ENV_LOG_LEVEL = "BOOKMARK_IMPORTER_LOG_LEVEL"

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file (TOML or JSON)
        """
        self._config: Optional[ImporterConfig] = None
        self._load_configuration(config_path)

    def _get_default_config_paths(self) -> List[Path]:
        """Get list of default configuration file paths to try."""
        if getattr(sys, "frozen", False):
            app_dir = Path(sys.executable).parent
            return [
                app_dir / "config" / "user_config.toml",
                app_dir / "config" / "user_config.json",
                app_dir / "bookmark_import.toml",
                app_dir / "bookmark_import.json",
            ]

        config_dir = Path(__file__).parent
        project_root = config_dir.parent.parent
        return [
            config_dir / "user_config.toml",
            config_dir / "user_config.json",
            project_root / "bookmark_import.toml",
            project_root / "bookmark_import.json",
        ]

    def _load_configuration(self, config_path: Optional[Path] = None) -> None:
        """Load configuration from file or use defaults."""
        config_data: Dict[str, Any] = {}

        if config_path:
            config_data = self._load_config_file(Path(config_path))
        else:
            for path in self._get_default_config_paths():
                if path.exists():
                    config_data = self._load_config_file(path)
                    break

        self._apply_env_overrides(config_data)

        try:
            self._config = ImporterConfig(**config_data)
        except ValidationError as e:
            raise ValueError(format_config_error(e))

    def _load_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Load configuration from TOML or JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        suffix = config_path.suffix.lower()
        if suffix not in (".toml", ".json"):
            raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

        try:
            if suffix == ".toml":
                return toml.load(config_path)
            with open(config_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (toml.TomlDecodeError, json.JSONDecodeError, OSError) as e:
            raise ValueError(f"Failed to load configuration from {config_path}: {e}")

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> None:
        """Environment variables override file settings."""
        db_path = os.getenv(self.ENV_DATABASE_PATH)
        if db_path:
            config_data.setdefault("storage", {})["database_path"] = db_path

        log_level = os.getenv(self.ENV_LOG_LEVEL)
        if log_level:
            config_data.setdefault("logging", {})["level"] = log_level

    def update_from_cli_args(self, args: Dict[str, Any]) -> None:
        """Update configuration from command-line arguments."""
        if not self._config:
            raise RuntimeError("Configuration not loaded")

        config_dict = self._config.model_dump()
        options = config_dict["import_options"]

        for key in ("skip_duplicates", "auto_tag", "preserve_folders", "batch_size"):
            if args.get(key) is not None:
                options[key] = args[key]

        if args.get("privacy"):
            options["default_privacy"] = args["privacy"]

        if args.get("strategy"):
            config_dict["parser"]["strategy"] = args["strategy"]

        if args.get("db"):
            config_dict["storage"]["database_path"] = args["db"]

        if args.get("verbose"):
            config_dict["logging"]["level"] = "DEBUG"

        try:
            self._config = ImporterConfig(**config_dict)
        except ValidationError as e:
            raise ValueError(format_config_error(e))

    @property
    def config(self) -> ImporterConfig:
        """Get the current configuration."""
        if not self._config:
            raise RuntimeError("Configuration not loaded")
        return self._config

    @staticmethod
    def create_sample_config(output_path: Path, format: str = "toml") -> None:
        """Create a sample configuration file."""
        sample_config = ImporterConfig().model_dump(mode="json")
        # TOML has no null
        if sample_config["logging"]["log_file"] is None:
            sample_config["logging"]["log_file"] = "bookmark_importer.log"

        output_path = Path(output_path)
        if format.lower() == "toml":
            with open(output_path, "w", encoding="utf-8") as f:
                toml.dump(sample_config, f)
        elif format.lower() == "json":
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(sample_config, f, indent=2)
        else:
            raise ValueError(f"Unsupported format: {format}")


def _format_error_location(location: tuple) -> str:
    """Dotted field path of an error location."""
    return ".".join(str(part) for part in location) or "configuration"


def _custom_error_message(location: tuple) -> Optional[str]:
    """Look up the error_msg hint declared on the failing field, if any."""
    model = ImporterConfig
    field_info = None
    for part in location:
        fields = getattr(model, "model_fields", None)
        if not fields or part not in fields:
            return None
        field_info = fields[part]
        model = field_info.annotation

    extra = field_info.json_schema_extra if field_info else None
    if isinstance(extra, dict):
        return extra.get("error_msg")
    return None


def format_config_error(error: Exception) -> str:
    """
    Convert a configuration error into a user-friendly message.

    Pydantic validation errors list every failing field with its hint.
    """
    if not isinstance(error, ValidationError):
        return f"Configuration error: {error}"

    lines = ["Configuration validation failed:"]
    for detail in error.errors():
        location = tuple(detail.get("loc", ()))
        field_path = _format_error_location(location)
        hint = _custom_error_message(location)
        lines.append(f"  - {field_path}: {detail.get('msg')}")
        if hint:
            lines.append(f"    {hint}")
    return "\n".join(lines)
