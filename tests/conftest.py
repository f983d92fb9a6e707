"""
Shared fixtures and fakes.

No test talks to Gemini or Google Sheets; the collaborators are
replaced by the in-memory fakes below.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

import pytest

from invoice_splitter.audit import AuditLogger
from invoice_splitter.models.audit import AuditEvent
from invoice_splitter.models.ledger import (
    Assignment,
    ExtractedStatement,
    PersonKey,
    PersonProfile,
    Process,
    Transaction,
    TransactionSource,
)
from invoice_splitter.repository import ProcessRepository
from invoice_splitter.services.extraction import ExtractionServiceInterface
from invoice_splitter.services.storage import (
    AuditStorageInterface,
    ProcessStorageInterface,
)


PEOPLE = {
    PersonKey.PERSON_A: PersonProfile(key=PersonKey.PERSON_A, name="Ana", color="#3b82f6"),
    PersonKey.PERSON_B: PersonProfile(key=PersonKey.PERSON_B, name="Bruno", color="#ec4899"),
}

PDF_BYTES = b"%PDF-1.4 fake invoice"


def make_tx(
    amount,
    payer: PersonKey = PersonKey.PERSON_A,
    assignment: Assignment = Assignment.SPLIT,
    description: str = "Groceries",
    date: Optional[dt.date] = None,
    source: TransactionSource = TransactionSource.MANUAL,
    category: Optional[str] = None,
) -> Transaction:
    return Transaction(
        date=date or dt.date(2026, 10, 1),
        description=description,
        amount=Decimal(str(amount)),
        payer=payer,
        assignment=assignment,
        source=source,
        category=category,
    )


def make_process(name: str = "October 2026", transactions=None) -> Process:
    return Process(name=name, transactions=transactions or [])


class InMemoryProcessStorage(ProcessStorageInterface):
    """Keeps every saved collection; can be told to fail."""

    def __init__(self, processes=None, fail_with: Optional[Exception] = None):
        self.saved: list[list[Process]] = []
        self._stored = list(processes or [])
        self.fail_with = fail_with

    async def save(self, processes: list[Process]) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        self._stored = list(processes)
        self.saved.append(list(processes))
        return True

    async def load(self) -> list[Process]:
        if self.fail_with is not None:
            raise self.fail_with
        return list(self._stored)


class RecordingAuditStorage(AuditStorageInterface):
    """Collects audit events in memory."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]

    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]


class FakeExtractor(ExtractionServiceInterface):
    """Returns a canned statement, raises a canned error, or runs a hook first."""

    def __init__(self, statement=None, error: Optional[Exception] = None, before_return=None):
        self._statement = statement
        self._error = error
        self._before_return = before_return
        self.calls = 0

    async def extract(self, document: bytes, mime_type: str = "application/pdf") -> ExtractedStatement:
        self.calls += 1
        if self._before_return is not None:
            await self._before_return()
        if self._error is not None:
            raise self._error
        return self._statement


@pytest.fixture
def audit_storage() -> RecordingAuditStorage:
    return RecordingAuditStorage()


@pytest.fixture
def storage() -> InMemoryProcessStorage:
    return InMemoryProcessStorage()


@pytest.fixture
def repository(storage, audit_storage) -> ProcessRepository:
    return ProcessRepository(
        storage,
        audit_logger=AuditLogger(audit_storage),
        people=PEOPLE,
    )
