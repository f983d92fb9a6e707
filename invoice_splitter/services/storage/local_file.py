"""
Local Device Storage

Keeps the process collection as a single JSON file on this device.

DESIGN DECISION: The store has a fixed capacity. A write that would
exceed it is refused before the file is touched, so the last good copy
survives and the caller can keep working from memory.

Writes go to a temporary file that then replaces the real one, so a
crash mid-write never leaves a half-written collection behind.

An unreadable file is renamed to `<name>.corrupt-<timestamp>` on load,
so starting over with an empty history never destroys it.
"""

import datetime as dt
import os
from pathlib import Path
from typing import Optional, Union

import structlog

from invoice_splitter.config import get_settings
from invoice_splitter.export.backup import (
    InvalidImportPayloadError,
    export_collection,
    parse_collection,
)
from invoice_splitter.models.ledger import Process
from invoice_splitter.services.storage.interface import (
    ProcessStorageInterface,
    StorageError,
    StorageQuotaExceededError,
)


logger = structlog.get_logger(__name__)


class LocalFileProcessStorage(ProcessStorageInterface):
    """Capacity-limited JSON file storage."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        quota_bytes: Optional[int] = None,
    ):
        if path is None or quota_bytes is None:
            settings = get_settings().ledger
            path = path if path is not None else settings.local_storage_path
            quota_bytes = quota_bytes if quota_bytes is not None else settings.local_storage_quota_bytes

        self._path = Path(path).expanduser()
        self._quota_bytes = quota_bytes
        # Set when the existing file could not be read or moved aside
        self._write_blocked = False

    @property
    def path(self) -> Path:
        return self._path

    async def save(self, processes: list[Process]) -> bool:
        """Overwrite the stored collection, refusing writes above the quota."""
        if self._write_blocked:
            raise StorageError(
                f"Not saving: {self._path} holds unreadable history that was not moved aside"
            )

        payload = export_collection(processes, indent=None).encode("utf-8")
        if len(payload) > self._quota_bytes:
            raise StorageQuotaExceededError(len(payload), self._quota_bytes)

        temp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(payload)
            os.replace(temp_path, self._path)
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

        return True

    async def load(self) -> list[Process]:
        """Read the stored collection; a missing file means no history yet."""
        if not self._path.exists():
            return []

        try:
            payload = self._path.read_bytes()
        except OSError as e:
            self._write_blocked = True
            raise StorageError(f"Failed to read {self._path}: {e}")

        try:
            return parse_collection(payload)
        except InvalidImportPayloadError as e:
            aside = self._quarantine()
            raise StorageError(
                f"Stored history in {self._path} is unreadable ({e}); "
                f"the file was kept as {aside.name}"
            )

    def _quarantine(self) -> Path:
        """Move an unreadable history file aside so the next save cannot overwrite it."""
        stamp = dt.datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        aside = self._path.with_name(f"{self._path.name}.corrupt-{stamp}")
        try:
            os.replace(self._path, aside)
        except OSError as e:
            self._write_blocked = True
            raise StorageError(
                f"Stored history in {self._path} is unreadable and could not be moved aside: {e}"
            )
        logger.warning("local_history_quarantined", path=str(self._path), moved_to=str(aside))
        return aside

    async def clear(self) -> None:
        """Forget everything stored on this device."""
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {self._path}: {e}")
        self._write_blocked = False
