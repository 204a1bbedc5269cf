"""
Utility modules for bookmark importing.

This package contains the error taxonomy, logging setup and report
rendering used by the importer.
"""
