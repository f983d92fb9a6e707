"""
Audit Models for Invoice Splitter

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Traceability of who owed what, and when it was carried over
2. Debugging information when an upload or backup goes wrong
3. Ability to reconstruct how a settlement was reached

DESIGN DECISION: The audit trail only grows. Events are never edited or removed.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Process lifecycle
    PROCESS_CREATED = "process_created"
    PROCESS_CLOSED_WITH_PROOF = "process_closed_with_proof"
    PROCESS_CLOSED_WITH_BALANCE = "process_closed_with_balance"
    PROCESS_DELETED = "process_deleted"
    INVALID_TRANSITION_REJECTED = "invalid_transition_rejected"

    # Carry-over
    PENDING_DEBT_OFFERED = "pending_debt_offered"
    PENDING_DEBT_IMPORTED = "pending_debt_imported"
    PENDING_DEBT_DECLINED = "pending_debt_declined"

    # Invoices and transactions
    INVOICE_UPLOADED = "invoice_uploaded"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    UPLOAD_DISCARDED = "upload_discarded"
    TRANSACTION_ADDED = "transaction_added"
    ASSIGNMENT_UPDATED = "assignment_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Persistence
    COLLECTION_IMPORTED = "collection_imported"
    COLLECTION_RESET = "collection_reset"
    STORAGE_WARNING = "storage_warning"
    REMOTE_BACKUP_SAVED = "remote_backup_saved"
    REMOTE_BACKUP_LOADED = "remote_backup_loaded"
    REMOTE_SYNC_FAILED = "remote_sync_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """How serious an audit event is."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    One recorded ledger action, rejection or failure.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Which process, invoice or transaction it concerns
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'process', 'transaction', 'invoice')"
    )
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one invoice upload)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Flatten into one row of the audit worksheet.

        Column order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Factory methods for every ledger audit event.

    Usage:
        event = AuditEventBuilder.process_created(process_id, name)
        event = AuditEventBuilder.pending_debt_imported(source_id, target_id, ...)
    """

    @staticmethod
    def process_created(process_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROCESS_CREATED,
            entity_type="process",
            entity_id=process_id,
            description=f"Process created: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def process_closed_with_proof(process_id: str, file_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROCESS_CLOSED_WITH_PROOF,
            entity_type="process",
            entity_id=process_id,
            description=f"Process closed with proof of payment: {file_name}",
            details={"file_name": file_name},
            is_user_action=True,
        )

    @staticmethod
    def process_closed_with_balance(
        process_id: str,
        debtor: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROCESS_CLOSED_WITH_BALANCE,
            entity_type="process",
            entity_id=process_id,
            description=f"Process closed with {debtor} owing {amount}",
            details={"debtor": debtor, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def process_deleted(process_id: str, unlinked: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROCESS_DELETED,
            entity_type="process",
            entity_id=process_id,
            description=(
                f"Process deleted; {len(unlinked)} carried balance(s) reopened"
            ),
            details={"reopened_process_ids": unlinked},
            is_user_action=True,
        )

    @staticmethod
    def invalid_transition(process_id: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVALID_TRANSITION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="process",
            entity_id=process_id,
            description="Rejected an invalid process transition",
            error_message=reason,
        )

    @staticmethod
    def pending_debt_offered(source_id: str, target_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PENDING_DEBT_OFFERED,
            entity_type="process",
            entity_id=source_id,
            description="Pending balance offered for import",
            details={"target_process_id": target_id},
        )

    @staticmethod
    def pending_debt_imported(
        source_id: str,
        target_id: str,
        transaction_id: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PENDING_DEBT_IMPORTED,
            entity_type="process",
            entity_id=source_id,
            description=f"Pending balance of {amount} imported",
            details={
                "target_process_id": target_id,
                "transaction_id": transaction_id,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def pending_debt_declined(source_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PENDING_DEBT_DECLINED,
            entity_type="process",
            entity_id=source_id,
            description="Pending balance import declined",
            is_user_action=True,
        )

    @staticmethod
    def invoice_uploaded(
        process_id: str,
        invoice_id: str,
        file_name: str,
        transaction_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVOICE_UPLOADED,
            entity_type="invoice",
            entity_id=invoice_id,
            correlation_id=correlation_id,
            description=f"Invoice uploaded: {file_name}",
            details={
                "process_id": process_id,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def extraction_completed(
        transaction_count: int,
        detected_total: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Extraction returned {transaction_count} transactions",
            details={"detected_total": detected_total},
        )

    @staticmethod
    def extraction_failed(error_message: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            correlation_id=correlation_id,
            description="Invoice extraction failed",
            error_message=error_message,
        )

    @staticmethod
    def upload_discarded(process_id: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UPLOAD_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type="process",
            entity_id=process_id,
            correlation_id=correlation_id,
            description="Extraction result discarded: process no longer open",
        )

    @staticmethod
    def transaction_added(
        process_id: str,
        transaction_id: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Manual transaction added: {amount}",
            details={"process_id": process_id, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def assignment_updated(
        process_id: str,
        transaction_id: str,
        assignment: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSIGNMENT_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction assigned to {assignment}",
            details={"process_id": process_id, "assignment": assignment},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(process_id: str, transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
            details={"process_id": process_id},
            is_user_action=True,
        )

    @staticmethod
    def collection_imported(process_count: int, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_IMPORTED,
            entity_type="collection",
            description=f"Replaced collection with {process_count} processes from {source}",
            details={"process_count": process_count, "source": source},
            is_user_action=True,
        )

    @staticmethod
    def collection_reset() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="collection",
            description="All processes were erased",
            is_user_action=True,
        )

    @staticmethod
    def storage_warning(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_WARNING,
            severity=AuditSeverity.WARNING,
            entity_type="collection",
            description="Local save failed; changes kept in memory only",
            error_message=error_message,
        )

    @staticmethod
    def remote_backup(saved: bool, process_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.REMOTE_BACKUP_SAVED
                if saved
                else AuditEventType.REMOTE_BACKUP_LOADED
            ),
            entity_type="collection",
            description=(
                f"Cloud backup {'saved' if saved else 'loaded'} "
                f"({process_count} processes)"
            ),
            details={"process_count": process_count},
            is_user_action=True,
        )

    @staticmethod
    def remote_sync_failed(operation: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="collection",
            description=f"Cloud backup {operation} failed",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
