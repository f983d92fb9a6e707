"""Export package: bulk backup and settlement reports."""

from invoice_splitter.export.backup import (
    InvalidImportPayloadError,
    backup_filename,
    export_collection,
    parse_collection,
)
from invoice_splitter.export.report import build_report, report_filename

__all__ = [
    "InvalidImportPayloadError",
    "backup_filename",
    "build_report",
    "export_collection",
    "parse_collection",
    "report_filename",
]
