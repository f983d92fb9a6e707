"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for persistence.
This allows us to:
1. Keep the collection on the local device and in the cloud with the
   same contract
2. Use temporary files or fakes for testing
3. Keep ledger logic decoupled from storage implementation

The contract is deliberately whole-collection: save overwrites
everything, load returns everything. Last writer wins; there is no merge.
"""

from abc import ABC, abstractmethod

from invoice_splitter.models.audit import AuditEvent
from invoice_splitter.models.ledger import Process


class ProcessStorageInterface(ABC):
    """
    Abstract interface for process collection storage.

    Any storage implementation (local file, Google Sheets, ...)
    must implement these methods.
    """

    @abstractmethod
    async def save(self, processes: list[Process]) -> bool:
        """
        Overwrite the stored collection.

        Args:
            processes: The complete collection

        Returns:
            True if saved successfully

        Raises:
            StorageQuotaExceededError: If the backend is out of space
            RemoteSyncError: If a remote backend could not be reached
            StorageError: For any other write failure
        """
        pass

    @abstractmethod
    async def load(self) -> list[Process]:
        """
        Read the stored collection.

        Returns:
            The stored processes (empty if nothing was ever saved locally)

        Raises:
            RemoteSyncError: If a remote backend could not be reached
            StorageError: If stored data is unreadable
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageQuotaExceededError(StorageError):
    """The local store has no room for the collection."""

    def __init__(self, required_bytes: int, quota_bytes: int):
        self.required_bytes = required_bytes
        self.quota_bytes = quota_bytes
        super().__init__(
            f"Local storage is full: {required_bytes} bytes needed, "
            f"{quota_bytes} bytes available"
        )


class RemoteSyncError(StorageError):
    """Could not talk to the remote backup (network or authorization)."""
    pass
