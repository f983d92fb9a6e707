"""
Google Sheets Backends

DESIGN DECISION: Google Sheets is used as the remote backup because:
1. Both partners can open the spreadsheet and see that a backup exists
2. No server or database setup required
3. Built-in durability (Google's infrastructure)

TRADEOFFS:
- A cell holds at most 50,000 characters, so the serialized collection
  (invoice PDFs included) is split into numbered chunks, one per row
- No transactions: a save overwrites the whole sheet in one call. Last
  writer wins; a save from another device is not merged

The audit log lives in a second worksheet of the same spreadsheet and
is append-only.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from invoice_splitter.config import get_settings
from invoice_splitter.export.backup import (
    InvalidImportPayloadError,
    export_collection,
    parse_collection,
)
from invoice_splitter.models.audit import AuditEvent, AuditEventType, AuditSeverity
from invoice_splitter.models.ledger import Process
from invoice_splitter.services.storage.interface import (
    AuditStorageInterface,
    ProcessStorageInterface,
    RemoteSyncError,
    StorageError,
)


logger = structlog.get_logger(__name__)

# Stay under the 50,000 character cell limit
CHUNK_SIZE = 45_000

BACKUP_COLUMNS = ["chunk_index", "payload"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Thin wrapper around one gspread spreadsheet.

    Authenticates lazily and creates missing worksheets on first use.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Authenticate with the service account credentials."""
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=["https://www.googleapis.com/auth/spreadsheets"],
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise RemoteSyncError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise RemoteSyncError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Open the spreadsheet named in settings."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise RemoteSyncError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_backup_sheet(self) -> gspread.Worksheet:
        """Get or create the Backup worksheet."""
        return self._get_or_create_sheet(
            self._settings.backup_sheet_name, BACKUP_COLUMNS, rows=100
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Return the audit worksheet, creating it with a header row if missing."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def split_payload(payload: str, chunk_size: int = CHUNK_SIZE) -> list[list[str]]:
    """Cut a payload into [index, text] rows."""
    return [
        [str(index), payload[start:start + chunk_size]]
        for index, start in enumerate(range(0, len(payload), chunk_size))
    ]


def join_payload(rows: list[list[str]]) -> str:
    """Reassemble rows written by split_payload, in index order."""
    chunks = []
    for row in rows:
        if len(row) < 2 or not row[0].strip():
            continue
        chunks.append((int(row[0]), row[1]))
    chunks.sort(key=lambda chunk: chunk[0])
    return "".join(text for _, text in chunks)


class GoogleSheetsProcessStorage(ProcessStorageInterface):
    """
    Remote backup of the whole process collection.

    The collection is serialized once and written as numbered chunks
    below a header row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_rows(self, rows: list[list[str]]) -> None:
        """
        Overwrite the backup in one update call.

        Rows left over from a longer previous backup are blanked in the
        same call, so a failed write leaves the previous backup intact.
        """
        sheet = self._client.get_backup_sheet()
        values = [BACKUP_COLUMNS, *rows]
        if sheet.row_count < len(values):
            sheet.add_rows(len(values) - sheet.row_count)
        values += [["", ""]] * (sheet.row_count - len(values))
        sheet.update(values=values, range_name="A1", value_input_option="RAW")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _read_rows(self) -> list[list[str]]:
        sheet = self._client.get_backup_sheet()
        return sheet.get_all_values()[1:]  # Skip header

    async def save(self, processes: list[Process]) -> bool:
        """Overwrite the cloud backup with the given collection."""
        rows = split_payload(export_collection(processes, indent=None))
        try:
            self._write_rows(rows)
        except RemoteSyncError:
            raise
        except Exception as e:
            raise RemoteSyncError(f"Failed to save cloud backup: {e}")
        return True

    async def load(self) -> list[Process]:
        """Download and validate the cloud backup."""
        try:
            rows = self._read_rows()
        except RemoteSyncError:
            raise
        except Exception as e:
            raise RemoteSyncError(f"Failed to download cloud backup: {e}")

        payload = join_payload(rows)
        if not payload:
            raise RemoteSyncError("No cloud backup found")

        try:
            return parse_collection(payload)
        except InvalidImportPayloadError as e:
            raise StorageError(f"Cloud backup is unreadable: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Audit trail kept in its own worksheet, one event per row.

    Rows are only ever appended.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Rebuild an AuditEvent from a worksheet row; short rows are padded."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Never raises."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning(
                "audit_append_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get recent events, newest first."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise RemoteSyncError(f"Failed to read audit log: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, KeyError) as e:
                logger.warning("audit_row_skipped", error=str(e))

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
