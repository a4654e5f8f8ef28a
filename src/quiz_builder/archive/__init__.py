"""
Quiz archive codec.

Public API:
    write_archive, export_archive: Document -> ZIP archive
    import_archive: ZIP archive -> stores
    suggested_filename: Download name for a quiz
"""

from .exporter import ExportStats, export_archive, write_archive
from .importer import ImportResult, import_archive
from .naming import suggested_filename

__all__ = [
    "ExportStats",
    "ImportResult",
    "export_archive",
    "import_archive",
    "suggested_filename",
    "write_archive",
]
