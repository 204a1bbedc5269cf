"""
Configuration for the Bookmark Importer.
"""

from .pydantic_config import (
    ConfigurationManager,
    ImporterConfig,
    LoggingConfig,
    ParserConfig,
    StorageConfig,
    UploadConfig,
    format_config_error,
)

__all__ = [
    "ConfigurationManager",
    "ImporterConfig",
    "LoggingConfig",
    "ParserConfig",
    "StorageConfig",
    "UploadConfig",
    "format_config_error",
]
