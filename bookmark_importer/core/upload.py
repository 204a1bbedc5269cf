"""
Upload checks applied before a bookmark export is parsed.

Rejects files with the wrong extension or over the size limit, decodes the
bytes with detected encoding, and refuses parse results with nothing to
import.
"""

import logging
from pathlib import Path
from typing import Iterable, Union

import chardet

from ..utils.error_handler import BookmarkParseError, UploadError
from .data_models import ParseResult

MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024  # 10MB
ALLOWED_EXTENSIONS = (".html", ".htm")

# Below this chardet confidence the file is decoded as UTF-8
MIN_ENCODING_CONFIDENCE = 0.7

logger = logging.getLogger(__name__)


def validate_upload(
    filename: str,
    size_bytes: int,
    max_size_bytes: int = MAX_FILE_SIZE_BYTES,
    allowed_extensions: Iterable[str] = ALLOWED_EXTENSIONS,
) -> None:
    """
    Check an uploaded file's name and size.

    Raises:
        UploadError: If the extension is not allowed or the file is too large
    """
    if not filename:
        raise UploadError("No file provided")

    allowed = tuple(ext.lower() for ext in allowed_extensions)
    if Path(filename).suffix.lower() not in allowed:
        raise UploadError(
            f"Invalid file type. Only {', '.join(allowed)} files are supported."
        )

    if size_bytes > max_size_bytes:
        raise UploadError(
            f"File too large. Maximum size is {max_size_bytes // (1024 * 1024)}MB."
        )


def decode_bookmark_bytes(data: bytes) -> str:
    """
    Decode an export using the detected encoding.

    Falls back to UTF-8 when detection is not confident; undecodable bytes
    are replaced rather than rejected.
    """
    if not data:
        return ""

    result = chardet.detect(data[:65536])
    encoding = result.get("encoding") or "utf-8"
    confidence = result.get("confidence") or 0.0

    logger.debug(f"Detected encoding: {encoding} (confidence: {confidence:.2f})")

    if confidence < MIN_ENCODING_CONFIDENCE:
        logger.warning(f"Low encoding confidence ({confidence:.2f}), using utf-8")
        encoding = "utf-8"

    try:
        return data.decode(encoding, errors="replace")
    except LookupError:
        logger.warning(f"Unknown encoding '{encoding}', using utf-8")
        return data.decode("utf-8", errors="replace")


def read_bookmark_file(
    file_path: Union[str, Path],
    max_size_bytes: int = MAX_FILE_SIZE_BYTES,
    allowed_extensions: Iterable[str] = ALLOWED_EXTENSIONS,
) -> str:
    """
    Validate and read a bookmark export from disk.

    Raises:
        UploadError: If the file is missing, unreadable, of the wrong type
            or too large
    """
    file_path = Path(file_path)

    if not file_path.is_file():
        raise UploadError(f"File not found: {file_path}")

    try:
        size = file_path.stat().st_size
        validate_upload(file_path.name, size, max_size_bytes, allowed_extensions)
        data = file_path.read_bytes()
    except OSError as e:
        raise UploadError(f"Error reading file: {e}") from e

    logger.info(f"Read {size} bytes from {file_path}")
    return decode_bookmark_bytes(data)


def ensure_importable(parse_result: ParseResult) -> None:
    """
    Refuse a document that produced parse errors and no bookmarks.

    Raises:
        BookmarkParseError: Carrying the parse errors
    """
    if parse_result.parse_errors and parse_result.total_count == 0:
        raise BookmarkParseError(
            "Failed to parse bookmark file", parse_result.parse_errors
        )
