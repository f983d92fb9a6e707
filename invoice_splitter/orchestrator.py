"""
Main Orchestrator for Invoice Splitter

This module ties together all the components and defines the
end-to-end flows for:
1. Invoice Upload (document → validate → extract → validate → attach)
2. Cloud Backup (collection ⇄ Google Sheets)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Extraction output only reaches the ledger through the repository
- A process that was closed or deleted while the extraction was in
  flight never receives its result
- Every step is audited

Failures of the outside services are turned into (result, message)
pairs for the user; nothing in the collection changes when they fail.
"""

from typing import Optional
from uuid import UUID

from invoice_splitter.audit import AuditLogger, create_correlation_id
from invoice_splitter.models.ledger import Invoice, PersonKey
from invoice_splitter.repository import ProcessRepository
from invoice_splitter.services.extraction import (
    ExtractionFailedError,
    ExtractionServiceInterface,
    GeminiExtractionService,
)
from invoice_splitter.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsProcessStorage,
    LocalFileProcessStorage,
    ProcessStorageInterface,
    RemoteSyncError,
    StorageError,
)
from invoice_splitter.validation import StatementValidator


class InvoiceUploadFlow:
    """
    Orchestrates the invoice upload flow.

    Flow:
    1. Check the document (size, type) and that the process is open
    2. Extract → Send to the extraction service (the only wait)
    3. Validate → Warnings for totals and dates, errors for empty output
    4. Re-check → The process must still exist and be open
    5. Attach → Invoice and its transactions go into the process

    A failed or discarded upload leaves the collection untouched.
    """

    def __init__(
        self,
        repository: ProcessRepository,
        extractor: Optional[ExtractionServiceInterface] = None,
        validator: Optional[StatementValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._extractor = extractor or GeminiExtractionService()
        self._validator = validator or StatementValidator()
        self._audit_logger = audit_logger or AuditLogger()

    async def upload_invoice(
        self,
        process_id: str,
        document: bytes,
        original_name: str,
        payer: PersonKey,
        mime_type: str = "application/pdf",
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Invoice], str]:
        """
        Upload one invoice into an open process.

        Returns:
            (invoice, message). invoice is None when nothing was added;
            the message then says why.
        """
        correlation_id = correlation_id or create_correlation_id()

        document_check = self._validator.validate_document(document, mime_type)
        if document_check.has_errors:
            return None, self._validator.get_user_friendly_summary(document_check)

        process = self._repository.find(process_id)
        if process is None:
            return None, "This process no longer exists."
        if not process.is_open:
            message = f"Process '{process.name}' is closed; invoices can no longer be added."
            await self._audit_logger.log_invalid_transition(process_id, message)
            return None, message

        # Extract
        try:
            statement = await self._extractor.extract(document, mime_type)
        except ExtractionFailedError as e:
            await self._audit_logger.log_extraction_failed(str(e), correlation_id)
            return None, f"Could not read the invoice: {e}. Please try again."

        await self._audit_logger.log_extraction_completed(
            transaction_count=len(statement.transactions),
            detected_total=statement.detected_total,
            correlation_id=correlation_id,
        )

        validation = self._validator.validate(statement)
        if validation.has_errors:
            return None, self._validator.get_user_friendly_summary(validation)

        # The process may have been closed or deleted while we waited
        process = self._repository.find(process_id)
        if process is None or not process.is_open:
            await self._audit_logger.log_upload_discarded(process_id, correlation_id)
            return None, (
                "The process was closed or deleted while the invoice was being read; "
                "the extracted transactions were discarded."
            )

        invoice = await self._repository.add_invoice(
            process_id,
            statement,
            payer,
            original_name,
            document,
            mime_type=mime_type,
        )
        await self._audit_logger.log_invoice_uploaded(
            process_id=process_id,
            invoice_id=invoice.id,
            file_name=invoice.file_name,
            transaction_count=len(statement.transactions),
            correlation_id=correlation_id,
        )

        message = f"✅ {len(statement.transactions)} transactions imported from {original_name}."
        if validation.warnings:
            message += "\n\n" + self._validator.get_user_friendly_summary(validation)
        return invoice, message


class CloudBackupFlow:
    """
    Saves the collection to, and restores it from, the remote backup.

    Remote failures are reported with the service's own detail; the local
    collection is only replaced after a complete, valid download.
    """

    def __init__(
        self,
        repository: ProcessRepository,
        remote_storage: ProcessStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._remote = remote_storage
        self._audit_logger = audit_logger or AuditLogger()

    async def backup(self) -> tuple[bool, str]:
        """Overwrite the cloud backup with the current collection."""
        processes = self._repository.processes
        try:
            await self._remote.save(processes)
        except (RemoteSyncError, StorageError) as e:
            await self._audit_logger.log_remote_sync_failed("save", str(e))
            return False, f"Cloud backup failed: {e}"

        await self._audit_logger.log_remote_backup(saved=True, process_count=len(processes))
        return True, f"☁️ Backup saved ({len(processes)} processes)."

    async def restore(self) -> tuple[bool, str]:
        """Replace the local collection with the cloud backup."""
        try:
            processes = await self._remote.load()
        except (RemoteSyncError, StorageError) as e:
            await self._audit_logger.log_remote_sync_failed("load", str(e))
            return False, f"Cloud restore failed: {e}"

        problems = await self._repository.replace_all(processes, source="cloud")
        await self._audit_logger.log_remote_backup(saved=False, process_count=len(processes))

        message = f"☁️ Restored {len(processes)} processes from the cloud backup."
        if problems:
            message += "\n⚠️ " + "\n⚠️ ".join(problems)
        return True, message


def create_app_components(
    use_cloud: bool = True,
) -> tuple[ProcessRepository, InvoiceUploadFlow, Optional[CloudBackupFlow]]:
    """
    Factory function to create all application components.

    The repository is returned unloaded; await repository.load() before use.

    Args:
        use_cloud: Whether to initialize the Google Sheets backup and
                  audit log. Set to False to run with local storage only.

    Returns:
        (repository, invoice_upload_flow, cloud_backup_flow)
    """
    remote_storage = None
    audit_logger = AuditLogger()  # Local-only logging

    if use_cloud:
        sheets_client = GoogleSheetsClient()
        remote_storage = GoogleSheetsProcessStorage(sheets_client)
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))

    repository = ProcessRepository(LocalFileProcessStorage(), audit_logger=audit_logger)

    upload_flow = InvoiceUploadFlow(
        repository=repository,
        audit_logger=audit_logger,
    )

    backup_flow = None
    if remote_storage is not None:
        backup_flow = CloudBackupFlow(
            repository=repository,
            remote_storage=remote_storage,
            audit_logger=audit_logger,
        )

    return repository, upload_flow, backup_flow
