"""
Tests for the upload and cloud backup flows.

The extraction service and the remote backup are fakes.
"""

import asyncio
import datetime as dt
from decimal import Decimal

import pytest

from invoice_splitter.audit import AuditLogger
from invoice_splitter.config.settings import LedgerSettings
from invoice_splitter.models.ledger import (
    Assignment,
    ExtractedStatement,
    ExtractedTransaction,
    PersonKey,
    TransactionSource,
)
from invoice_splitter.orchestrator import CloudBackupFlow, InvoiceUploadFlow
from invoice_splitter.repository import ProcessRepository
from invoice_splitter.services.extraction import ExtractionFailedError
from invoice_splitter.services.storage import RemoteSyncError
from invoice_splitter.validation import StatementValidator

from conftest import PDF_BYTES, PEOPLE, FakeExtractor, InMemoryProcessStorage


A = PersonKey.PERSON_A
B = PersonKey.PERSON_B


def run(coro):
    return asyncio.run(coro)


def statement(*amounts, detected_total=None):
    today = dt.date.today()
    return ExtractedStatement(
        detected_total=detected_total,
        transactions=[
            ExtractedTransaction(date=today, description=f"Line {i}", amount=Decimal(str(a)))
            for i, a in enumerate(amounts)
        ],
    )


@pytest.fixture
def validator():
    return StatementValidator(LedgerSettings(max_upload_size_mb=1))


def make_flow(repository, validator, audit_storage, extractor):
    return InvoiceUploadFlow(
        repository=repository,
        extractor=extractor,
        validator=validator,
        audit_logger=AuditLogger(audit_storage),
    )


class TestInvoiceUploadFlow:
    """Tests for InvoiceUploadFlow.upload_invoice."""

    def test_successful_upload(self, repository, validator, audit_storage):
        process, _ = run(repository.create_process("October"))
        extractor = FakeExtractor(statement(60, 40, detected_total=Decimal("100")))
        flow = make_flow(repository, validator, audit_storage, extractor)

        invoice, message = run(flow.upload_invoice(process.id, PDF_BYTES, "Fatura.pdf", payer=B))

        assert invoice is not None
        assert "2 transactions" in message
        stored = repository.get(process.id)
        assert stored.invoices[0].id == invoice.id
        assert invoice.total_amount == Decimal("100")
        assert "_BRUNO_" in invoice.file_name
        assert all(tx.payer == B and tx.assignment == Assignment.SPLIT for tx in stored.transactions)
        assert all(tx.source == TransactionSource.PDF for tx in stored.transactions)
        assert "extraction_completed" in audit_storage.types()
        assert "invoice_uploaded" in audit_storage.types()

    def test_warnings_are_reported(self, repository, validator, audit_storage):
        process, _ = run(repository.create_process("October"))
        extractor = FakeExtractor(statement(60, detected_total=Decimal("100")))
        flow = make_flow(repository, validator, audit_storage, extractor)

        invoice, message = run(flow.upload_invoice(process.id, PDF_BYTES, "Fatura.pdf", payer=A))

        assert invoice is not None
        assert "Please verify" in message

    def test_extraction_failure_changes_nothing(self, repository, validator, audit_storage):
        process, _ = run(repository.create_process("October"))
        extractor = FakeExtractor(error=ExtractionFailedError("empty response"))
        flow = make_flow(repository, validator, audit_storage, extractor)

        invoice, message = run(flow.upload_invoice(process.id, PDF_BYTES, "Fatura.pdf", payer=A))

        assert invoice is None
        assert "empty response" in message
        assert repository.get(process.id).transactions == []
        assert "extraction_failed" in audit_storage.types()

    def test_closed_process_is_not_sent_for_extraction(self, repository, validator, audit_storage):
        process, _ = run(repository.create_process("October"))
        run(repository.close_with_proof(process.id, "receipt.pdf", PDF_BYTES))
        extractor = FakeExtractor(statement(10))
        flow = make_flow(repository, validator, audit_storage, extractor)

        invoice, _ = run(flow.upload_invoice(process.id, PDF_BYTES, "Fatura.pdf", payer=A))

        assert invoice is None
        assert extractor.calls == 0

    def test_oversized_document_rejected(self, repository, validator, audit_storage):
        process, _ = run(repository.create_process("October"))
        extractor = FakeExtractor(statement(10))
        flow = make_flow(repository, validator, audit_storage, extractor)

        invoice, message = run(flow.upload_invoice(
            process.id, b"x" * (2 * 1024 * 1024), "huge.pdf", payer=A
        ))

        assert invoice is None
        assert "limit" in message
        assert extractor.calls == 0

    def test_result_discarded_if_process_closed_meanwhile(self, repository, validator, audit_storage):
        process, _ = run(repository.create_process("October"))

        async def close_while_reading():
            await repository.close_with_proof(process.id, "receipt.pdf", PDF_BYTES)

        extractor = FakeExtractor(statement(10), before_return=close_while_reading)
        flow = make_flow(repository, validator, audit_storage, extractor)

        invoice, message = run(flow.upload_invoice(process.id, PDF_BYTES, "Fatura.pdf", payer=A))

        assert invoice is None
        assert "discarded" in message
        assert repository.get(process.id).transactions == []
        assert "upload_discarded" in audit_storage.types()

    def test_result_discarded_if_process_deleted_meanwhile(self, repository, validator, audit_storage):
        process, _ = run(repository.create_process("October"))

        async def delete_while_reading():
            await repository.delete_process(process.id)

        extractor = FakeExtractor(statement(10), before_return=delete_while_reading)
        flow = make_flow(repository, validator, audit_storage, extractor)

        invoice, _ = run(flow.upload_invoice(process.id, PDF_BYTES, "Fatura.pdf", payer=A))

        assert invoice is None
        assert repository.processes == []


class TestCloudBackupFlow:
    """Tests for CloudBackupFlow."""

    def test_backup_then_restore_elsewhere(self, repository, audit_storage):
        run(repository.create_process("October"))
        remote = InMemoryProcessStorage()
        flow = CloudBackupFlow(repository, remote, AuditLogger(audit_storage))

        ok, message = run(flow.backup())
        assert ok is True
        assert "1 processes" in message

        other = ProcessRepository(InMemoryProcessStorage(), AuditLogger(audit_storage), people=PEOPLE)
        ok, message = run(CloudBackupFlow(other, remote, AuditLogger(audit_storage)).restore())

        assert ok is True
        assert [p.name for p in other.processes] == ["October"]
        assert "remote_backup_saved" in audit_storage.types()
        assert "remote_backup_loaded" in audit_storage.types()

    def test_remote_failure_is_reported(self, repository, audit_storage):
        run(repository.create_process("October"))
        remote = InMemoryProcessStorage(fail_with=RemoteSyncError("permission denied"))
        flow = CloudBackupFlow(repository, remote, AuditLogger(audit_storage))

        ok, message = run(flow.backup())
        assert ok is False
        assert "permission denied" in message

        ok, message = run(flow.restore())
        assert ok is False
        assert [p.name for p in repository.processes] == ["October"]
        assert "remote_sync_failed" in audit_storage.types()
