"""
Data Models Package

This package contains all Pydantic models used in Invoice Splitter.
All data flowing through the system must conform to these schemas.
"""

from invoice_splitter.models.ledger import (
    DEFAULT_CATEGORY,
    Assignment,
    ClosingBalance,
    ExtractedStatement,
    ExtractedTransaction,
    Invoice,
    PersonKey,
    PersonProfile,
    Process,
    ProcessStatus,
    ProofOfPayment,
    Transaction,
    TransactionSource,
    ValidationIssue,
    ValidationResult,
)
from invoice_splitter.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_CATEGORY",
    "Assignment",
    "ClosingBalance",
    "ExtractedStatement",
    "ExtractedTransaction",
    "Invoice",
    "PersonKey",
    "PersonProfile",
    "Process",
    "ProcessStatus",
    "ProofOfPayment",
    "Transaction",
    "TransactionSource",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
