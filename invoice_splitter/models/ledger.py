"""
Core Data Models for Invoice Splitter

These models define the strict schemas for the settlement ledger.
They are designed to:
1. Enforce type safety at runtime
2. Reject impossible process states on construction and on import
3. Serialize to the same camelCase JSON the backups have always used

DESIGN DECISION: Money is Decimal in memory and a plain JSON number on
the wire. Backups written by older versions of the app (floats, camelCase
keys, upper-case enum values) load without conversion.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


DEFAULT_CATEGORY = "Other"

MAX_DESCRIPTION_LENGTH = 500

Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


def new_id(prefix: str) -> str:
    """Generate a short unique identifier with a readable prefix."""
    return f"{prefix}-{uuid4().hex[:12]}"


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def truncate_description(text: str) -> str:
    return text[:MAX_DESCRIPTION_LENGTH].rstrip()


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class PersonKey(str, Enum):
    """The two participants sharing the invoices."""
    PERSON_A = "PERSON_A"
    PERSON_B = "PERSON_B"

    @property
    def other(self) -> "PersonKey":
        return PersonKey.PERSON_B if self is PersonKey.PERSON_A else PersonKey.PERSON_A


class Assignment(str, Enum):
    """Who bears the cost of a transaction."""
    PERSON_A = "PERSON_A"
    PERSON_B = "PERSON_B"
    SPLIT = "SPLIT"  # 50/50

    @classmethod
    def for_person(cls, person: PersonKey) -> "Assignment":
        return cls(person.value)

    @property
    def person(self) -> Optional[PersonKey]:
        """The single person bearing the cost, or None for SPLIT."""
        if self is Assignment.SPLIT:
            return None
        return PersonKey(self.value)


class TransactionSource(str, Enum):
    """Where a transaction came from."""
    PDF = "PDF"
    MANUAL = "MANUAL"
    CARRYOVER = "CARRYOVER"  # Imported balance from a previous process


class ProcessStatus(str, Enum):
    """
    Process status.

    CRITICAL: There is no way back from CLOSED.
    """
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class LedgerModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# PARTICIPANTS
# =============================================================================

class PersonProfile(LedgerModel):
    """Display identity of a participant. Supplied by configuration."""

    key: PersonKey
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default="#64748b")


# =============================================================================
# CORE LEDGER MODELS
# =============================================================================

class Transaction(LedgerModel):
    """
    One expense or credit line.

    CRITICAL: CARRYOVER transactions represent an obligation that crossed
    a process boundary. They are never reassigned or deleted by the
    editing operations.
    """

    id: str = Field(default_factory=lambda: new_id("tx"))
    date: dt.date
    description: str
    amount: Money = Field(
        ...,
        description="Signed amount; negative means credit/refund"
    )
    assignment: Assignment = Assignment.SPLIT
    payer: PersonKey = Field(
        ...,
        description="Whose invoice/account the transaction was billed to"
    )
    source: TransactionSource
    source_invoice_id: Optional[str] = None
    category: str = Field(default=DEFAULT_CATEGORY, max_length=100)

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v):
        """Categories are free-form; missing or blank means 'Other'."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_CATEGORY
        return v

    @field_validator('description')
    @classmethod
    def cap_description(cls, v: str) -> str:
        return truncate_description(v)

    @property
    def is_protected(self) -> bool:
        return self.source == TransactionSource.CARRYOVER


class Invoice(LedgerModel):
    """
    A single uploaded bill document.

    Owned by exactly one process; never referenced across processes.
    """

    id: str = Field(default_factory=lambda: new_id("inv"))
    file_name: str = Field(..., min_length=1, description="Generated file name")
    original_name: str = Field(..., description="Name of the uploaded file")
    payer: PersonKey
    upload_date: dt.datetime = Field(default_factory=utcnow)
    total_amount: Money = Field(
        ...,
        description="Sum of the invoice's transactions unless a total was detected"
    )
    file_data: str = Field(
        default="",
        description="Base64 data URL of the document"
    )


class ProofOfPayment(LedgerModel):
    """Document showing the parties settled directly."""

    file_name: str = Field(..., min_length=1)
    date: dt.datetime = Field(default_factory=utcnow)
    file_data: str = Field(..., min_length=1)


class ClosingBalance(LedgerModel):
    """Unpaid balance recorded when a process is closed without settling."""

    debtor: PersonKey
    amount: Money = Field(..., gt=0)

    @property
    def creditor(self) -> PersonKey:
        return self.debtor.other


class Process(LedgerModel):
    """
    One billing cycle (e.g. a calendar month).

    State rules:
    - OPEN: no closing information at all
    - CLOSED: proof of payment OR closing balance OR neither, never both
    - carried_over_to_process_id only makes sense with a closing balance
    """

    id: str = Field(default_factory=lambda: new_id("proc"))
    name: str = Field(..., min_length=1, max_length=200)
    created_at: dt.datetime = Field(default_factory=utcnow)
    status: ProcessStatus = ProcessStatus.OPEN
    closed_at: Optional[dt.datetime] = None
    transactions: list[Transaction] = Field(default_factory=list)
    invoices: list[Invoice] = Field(default_factory=list)
    proof_of_payment: Optional[ProofOfPayment] = None
    closing_balance: Optional[ClosingBalance] = None
    carried_over_to_process_id: Optional[str] = Field(
        default=None,
        description="Process that absorbed this process's closing balance"
    )

    @model_validator(mode='after')
    def validate_closure_state(self) -> 'Process':
        """Reject states the lifecycle can never produce."""
        if self.proof_of_payment and self.closing_balance:
            raise ValueError(
                "A process cannot have both a proof of payment and a closing balance"
            )

        if self.status == ProcessStatus.OPEN and (
            self.proof_of_payment
            or self.closing_balance
            or self.closed_at
            or self.carried_over_to_process_id
        ):
            raise ValueError("An open process cannot carry closing information")

        if self.carried_over_to_process_id and not self.closing_balance:
            raise ValueError("Only a process with a closing balance can be carried over")

        return self

    @property
    def is_open(self) -> bool:
        return self.status == ProcessStatus.OPEN

    @property
    def is_pending_debt(self) -> bool:
        """Closed with an unpaid balance that no later process has absorbed."""
        return (
            self.status == ProcessStatus.CLOSED
            and self.closing_balance is not None
            and not self.carried_over_to_process_id
        )

    @property
    def total(self) -> Decimal:
        return sum((tx.amount for tx in self.transactions), Decimal("0"))

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((tx for tx in self.transactions if tx.id == transaction_id), None)

    def find_invoice(self, invoice_id: str) -> Optional[Invoice]:
        return next((inv for inv in self.invoices if inv.id == invoice_id), None)


# =============================================================================
# EXTRACTION MODELS
# =============================================================================

class ExtractedTransaction(LedgerModel):
    """
    A transaction line as read by the extraction service.

    CRITICAL: This is PROPOSED data. Ids, payer, assignment and source
    are assigned by the ledger, never taken from the service.
    """

    date: dt.date
    description: str = Field(..., min_length=1)
    amount: Money
    category: str = Field(default=DEFAULT_CATEGORY, max_length=100)

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_CATEGORY
        return v

    @field_validator('description')
    @classmethod
    def cap_description(cls, v: str) -> str:
        """Long merchant lines are cut, never a reason to reject the statement."""
        return truncate_description(v)


class ExtractedStatement(LedgerModel):
    """What the extraction service read from one invoice document."""

    detected_total: Optional[Money] = Field(
        default=None,
        description="Total printed on the invoice; advisory only"
    )
    transactions: list[ExtractedTransaction] = Field(default_factory=list)

    @property
    def transactions_sum(self) -> Decimal:
        return sum((tx.amount for tx in self.transactions), Decimal("0"))

    @property
    def invoice_total(self) -> Decimal:
        """The detected total when present, else the sum of the lines."""
        if self.detected_total is not None:
            return self.detected_total
        return self.transactions_sum


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'empty', 'total_mismatch', 'future_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of validating an extracted statement."""

    validated_at: dt.datetime = Field(default_factory=utcnow)
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
