"""
Browser bookmark import pipeline.

Parses Netscape-format bookmark exports into a folder tree and imports them
into a bookmark store with deduplication, folder-derived tags and
collections.
"""

__version__ = "1.0.0"
