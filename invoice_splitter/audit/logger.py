"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Traceability of who closed, deleted or imported what
2. Debugging capability when a balance looks wrong

The audit logger:
- Async, so ledger actions never wait on the remote sheet
- A failed write is logged locally and reported as False, never raised
- Supports correlation IDs to trace the steps of one upload
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from invoice_splitter.models.audit import AuditEvent, AuditEventBuilder
from invoice_splitter.models.ledger import Assignment, PersonKey
from invoice_splitter.services.storage import AuditStorageInterface


# JSON lines on stdout for every audit event
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Records ledger actions.

    Logs events both to:
    1. A structlog JSON line
    2. An append-only audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Where events are persisted.
                    None keeps the trail in the local log only.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Write the event to the local log, then to storage when configured.

        Returns False only when a configured storage rejected the event.
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # the ledger action already happened
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # -------------------------------------------------------------------------
    # Process lifecycle
    # -------------------------------------------------------------------------

    async def log_process_created(self, process_id: str, name: str) -> None:
        await self.log(AuditEventBuilder.process_created(process_id, name))

    async def log_process_closed_with_proof(self, process_id: str, file_name: str) -> None:
        await self.log(AuditEventBuilder.process_closed_with_proof(process_id, file_name))

    async def log_process_closed_with_balance(
        self,
        process_id: str,
        debtor: PersonKey,
        amount: Decimal,
    ) -> None:
        await self.log(AuditEventBuilder.process_closed_with_balance(
            process_id=process_id,
            debtor=debtor.value,
            amount=str(amount),
        ))

    async def log_process_deleted(self, process_id: str, unlinked: list[str]) -> None:
        await self.log(AuditEventBuilder.process_deleted(process_id, unlinked))

    async def log_invalid_transition(self, process_id: str, reason: str) -> None:
        """Log a rejected lifecycle or editing action."""
        await self.log(AuditEventBuilder.invalid_transition(process_id, reason))

    # -------------------------------------------------------------------------
    # Carry-over
    # -------------------------------------------------------------------------

    async def log_pending_debt_offered(self, source_id: str, target_id: str) -> None:
        await self.log(AuditEventBuilder.pending_debt_offered(source_id, target_id))

    async def log_pending_debt_imported(
        self,
        source_id: str,
        target_id: str,
        transaction_id: str,
        amount: Decimal,
    ) -> None:
        await self.log(AuditEventBuilder.pending_debt_imported(
            source_id=source_id,
            target_id=target_id,
            transaction_id=transaction_id,
            amount=str(amount),
        ))

    async def log_pending_debt_declined(self, source_id: str) -> None:
        await self.log(AuditEventBuilder.pending_debt_declined(source_id))

    # -------------------------------------------------------------------------
    # Invoice upload
    # -------------------------------------------------------------------------

    async def log_extraction_completed(
        self,
        transaction_count: int,
        detected_total: Optional[Decimal],
        correlation_id: UUID,
    ) -> None:
        """Log extraction completion."""
        await self.log(AuditEventBuilder.extraction_completed(
            transaction_count=transaction_count,
            detected_total=str(detected_total) if detected_total is not None else None,
            correlation_id=correlation_id,
        ))

    async def log_extraction_failed(self, error_message: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.extraction_failed(error_message, correlation_id))

    async def log_upload_discarded(self, process_id: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.upload_discarded(process_id, correlation_id))

    async def log_invoice_uploaded(
        self,
        process_id: str,
        invoice_id: str,
        file_name: str,
        transaction_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.invoice_uploaded(
            process_id=process_id,
            invoice_id=invoice_id,
            file_name=file_name,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Transaction edits
    # -------------------------------------------------------------------------

    async def log_transaction_added(
        self,
        process_id: str,
        transaction_id: str,
        amount: Decimal,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            process_id, transaction_id, str(amount)
        ))

    async def log_assignment_updated(
        self,
        process_id: str,
        transaction_id: str,
        assignment: Assignment,
    ) -> None:
        await self.log(AuditEventBuilder.assignment_updated(
            process_id, transaction_id, assignment.value
        ))

    async def log_transaction_deleted(self, process_id: str, transaction_id: str) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(process_id, transaction_id))

    # -------------------------------------------------------------------------
    # Collection and storage
    # -------------------------------------------------------------------------

    async def log_collection_imported(self, process_count: int, source: str) -> None:
        await self.log(AuditEventBuilder.collection_imported(process_count, source))

    async def log_collection_reset(self) -> None:
        await self.log(AuditEventBuilder.collection_reset())

    async def log_storage_warning(self, error_message: str) -> None:
        await self.log(AuditEventBuilder.storage_warning(error_message))

    async def log_remote_backup(self, saved: bool, process_count: int) -> None:
        await self.log(AuditEventBuilder.remote_backup(saved, process_count))

    async def log_remote_sync_failed(self, operation: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.remote_sync_failed(operation, error_message))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    New id tying together the events of one upload or backup.

    Use this at the start of a new user action (e.g., invoice upload).
    Hand it to every log_* call of that operation.
    """
    return uuid4()
