"""
Best-effort detection of the browser that exported a bookmark file.
"""

from .data_models import SourceType

# Checked in order; every Netscape-format export mentions "netscape" in its
# DOCTYPE, so the browser-specific tokens must win over it.
SOURCE_TOKENS = (
    ("chrome", SourceType.CHROME),
    ("firefox", SourceType.FIREFOX),
    ("safari", SourceType.SAFARI),
    ("edge", SourceType.EDGE),
    ("netscape", SourceType.NETSCAPE),
)


def detect_source_type(text: str) -> SourceType:
    """
    Classify the exporting browser from raw document text.

    Args:
        text: Raw bookmark export

    Returns:
        First source whose token occurs in the text, else SourceType.UNKNOWN
    """
    if not text:
        return SourceType.UNKNOWN

    lowered = text.lower()
    for token, source in SOURCE_TOKENS:
        if token in lowered:
            return source

    return SourceType.UNKNOWN
