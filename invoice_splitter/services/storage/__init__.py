"""
Storage Services Package

Provides the abstract persistence contract and its two interchangeable
backends: a local JSON file and a Google Sheets cloud backup.
"""

from invoice_splitter.services.storage.interface import (
    AuditStorageInterface,
    ProcessStorageInterface,
    RemoteSyncError,
    StorageError,
    StorageQuotaExceededError,
)
from invoice_splitter.services.storage.local_file import LocalFileProcessStorage
from invoice_splitter.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsProcessStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ProcessStorageInterface",
    # Exceptions
    "RemoteSyncError",
    "StorageError",
    "StorageQuotaExceededError",
    # Implementations
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsProcessStorage",
    "LocalFileProcessStorage",
]
