"""Services package."""

from invoice_splitter.services.extraction import (
    ExtractionError,
    ExtractionFailedError,
    ExtractionServiceInterface,
    GeminiExtractionService,
)
from invoice_splitter.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsProcessStorage,
    LocalFileProcessStorage,
    ProcessStorageInterface,
    RemoteSyncError,
    StorageError,
    StorageQuotaExceededError,
)

__all__ = [
    # Extraction services
    "ExtractionError",
    "ExtractionFailedError",
    "ExtractionServiceInterface",
    "GeminiExtractionService",
    # Storage services
    "AuditStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsProcessStorage",
    "LocalFileProcessStorage",
    "ProcessStorageInterface",
    "RemoteSyncError",
    "StorageError",
    "StorageQuotaExceededError",
]
