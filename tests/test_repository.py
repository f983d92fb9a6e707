"""
Tests for the process repository.

Storage and the audit log are in-memory fakes; async methods are
driven with asyncio.run.
"""

import asyncio
import datetime as dt
from decimal import Decimal

import pytest

from invoice_splitter.audit import AuditLogger
from invoice_splitter.export import InvalidImportPayloadError, export_collection
from invoice_splitter.ledger import (
    InvalidStateTransitionError,
    ProcessNotFoundError,
    ProtectedTransactionError,
)
from invoice_splitter.models.ledger import (
    Assignment,
    PersonKey,
    ProcessStatus,
    TransactionSource,
)
from invoice_splitter.repository import ProcessRepository
from invoice_splitter.services.storage import (
    LocalFileProcessStorage,
    StorageError,
    StorageQuotaExceededError,
)

from conftest import PDF_BYTES, PEOPLE, InMemoryProcessStorage, make_process, make_tx


A = PersonKey.PERSON_A
B = PersonKey.PERSON_B


def run(coro):
    return asyncio.run(coro)


async def close_month_with_debt(repository, name="Month1", amount=300):
    """Create a process where B paid `amount` split and leave A's half pending."""
    process, _ = await repository.create_process(name)
    await repository.add_manual_transaction(
        process.id, "Rent", amount, dt.date(2026, 10, 1), payer=B
    )
    return await repository.request_carry_over(process.id)


class TestPersistence:
    """Every mutation is saved; failures become warnings."""

    def test_load_existing_collection(self, audit_storage):
        stored = [make_process("Stored")]
        repository = ProcessRepository(
            InMemoryProcessStorage(stored), AuditLogger(audit_storage), people=PEOPLE
        )

        loaded = run(repository.load())
        assert [p.name for p in loaded] == ["Stored"]

    def test_unreadable_store_starts_empty(self, audit_storage):
        repository = ProcessRepository(
            InMemoryProcessStorage(fail_with=StorageError("corrupt")),
            AuditLogger(audit_storage),
            people=PEOPLE,
        )

        assert run(repository.load()) == []
        warnings = repository.drain_warnings()
        assert len(warnings) == 1
        assert "corrupt" in warnings[0]

    def test_unreadable_history_survives_next_save(self, tmp_path, audit_storage):
        path = tmp_path / "processes.json"
        truncated = export_collection([make_process("October")])[:-20].encode("utf-8")
        path.write_bytes(truncated)
        local = LocalFileProcessStorage(path, quota_bytes=1_000_000)
        repository = ProcessRepository(
            local,
            AuditLogger(audit_storage),
            people=PEOPLE,
        )

        assert run(repository.load()) == []
        run(repository.create_process("New"))

        kept = list(tmp_path.glob("processes.json.corrupt-*"))
        assert len(kept) == 1
        assert kept[0].read_bytes() == truncated
        assert [p.name for p in run(local.load())] == ["New"]
        assert "unreadable" in repository.drain_warnings()[0]

    def test_mutations_are_saved(self, repository, storage):
        process, _ = run(repository.create_process("October 2026"))
        run(repository.add_manual_transaction(process.id, "Rent", 100, dt.date(2026, 10, 1), payer=A))

        assert len(storage.saved) == 2
        assert storage.saved[-1][0].transactions[0].description == "Rent"

    def test_quota_exceeded_keeps_state_and_warns(self, repository, storage, audit_storage):
        storage.fail_with = StorageQuotaExceededError(required_bytes=10_000, quota_bytes=5_000)

        process, _ = run(repository.create_process("October 2026"))

        assert repository.get(process.id).name == "October 2026"
        warnings = repository.drain_warnings()
        assert len(warnings) == 1
        assert "Local storage is full" in warnings[0]
        assert repository.drain_warnings() == []
        assert "storage_warning" in audit_storage.types()

    def test_rejected_transition_is_not_saved(self, repository, storage, audit_storage):
        process, _ = run(repository.create_process("October 2026"))
        run(repository.close_with_proof(process.id, "receipt.pdf", PDF_BYTES))
        saves = len(storage.saved)

        with pytest.raises(InvalidStateTransitionError):
            run(repository.add_manual_transaction(process.id, "Late", 5, dt.date(2026, 10, 1), payer=A))

        assert len(storage.saved) == saves
        assert "invalid_transition_rejected" in audit_storage.types()

    def test_unknown_process(self, repository):
        with pytest.raises(ProcessNotFoundError):
            repository.get("proc-missing")
        assert repository.find("proc-missing") is None
        assert repository.can_close("proc-missing") is False


class TestCarryOverFlow:
    """Creating a process offers the pending debt."""

    def test_offer_and_accept(self, repository, audit_storage):
        month1 = run(close_month_with_debt(repository))
        assert month1.closing_balance.debtor == A

        month2, offer = run(repository.create_process("Month2"))
        assert offer.id == month1.id
        assert "pending_debt_offered" in audit_storage.types()

        tx = run(repository.accept_pending_debt(month2.id, month1.id))

        assert repository.get(month1.id).carried_over_to_process_id == month2.id
        assert repository.get(month2.id).transactions[0].id == tx.id
        assert tx.source == TransactionSource.CARRYOVER
        assert repository.settlement(month2.id).amount == Decimal("150.00")
        assert repository.pending_debt_offer() is None

    def test_declined_debt_is_offered_again(self, repository, audit_storage):
        month1 = run(close_month_with_debt(repository))

        _, offer = run(repository.create_process("Month2"))
        run(repository.decline_pending_debt(offer.id))
        _, offer_again = run(repository.create_process("Month3"))

        assert offer_again.id == month1.id
        assert "pending_debt_declined" in audit_storage.types()

    def test_no_offer_without_debt(self, repository):
        _, offer = run(repository.create_process("Month1"))
        assert offer is None

    def test_deleting_target_reopens_debt(self, repository):
        month1 = run(close_month_with_debt(repository))
        month2, _ = run(repository.create_process("Month2"))
        run(repository.accept_pending_debt(month2.id, month1.id))

        unlinked = run(repository.delete_process(month2.id))

        assert unlinked == [month1.id]
        assert repository.get(month1.id).carried_over_to_process_id is None
        assert repository.pending_debt_offer().id == month1.id

    def test_carried_transaction_is_protected(self, repository):
        month1 = run(close_month_with_debt(repository))
        month2, _ = run(repository.create_process("Month2"))
        tx = run(repository.accept_pending_debt(month2.id, month1.id))

        with pytest.raises(ProtectedTransactionError):
            run(repository.delete_transaction(month2.id, tx.id))


class TestLifecycle:
    """Closing through the repository."""

    def test_close_with_balance(self, repository, audit_storage):
        process, _ = run(repository.create_process("Month1"))
        run(repository.add_manual_transaction(process.id, "Dinner", 100, dt.date(2026, 10, 1), payer=A))

        assert repository.can_close(process.id) is True
        closed = run(repository.close_with_balance(process.id, B, "50"))

        assert closed.status == ProcessStatus.CLOSED
        assert closed.closing_balance.amount == Decimal("50.00")
        assert repository.can_close(process.id) is False
        assert "process_closed_with_balance" in audit_storage.types()

    def test_edit_then_close(self, repository):
        process, _ = run(repository.create_process("Month1"))
        tx = run(repository.add_manual_transaction(process.id, "Dinner", 100, dt.date(2026, 10, 1), payer=A))
        run(repository.update_assignment(process.id, tx.id, Assignment.PERSON_B))

        assert repository.settlement(process.id).amount == Decimal("100.00")

        run(repository.delete_transaction(process.id, tx.id))
        assert repository.settlement(process.id).is_settled is True

    def test_close_with_proof(self, repository):
        process, _ = run(repository.create_process("Month1"))
        closed = run(repository.close_with_proof(process.id, "pix.png", b"\x89PNG", "image/png"))

        assert closed.proof_of_payment.file_data.startswith("data:image/png;base64,")

    def test_report(self, repository):
        process, _ = run(repository.create_process("Month1"))
        run(repository.add_manual_transaction(process.id, "Dinner", 100, dt.date(2026, 10, 1), payer=A))

        report = repository.report(process.id)
        assert "Share Ana" in report
        assert "Bruno PAYS" in report


class TestWholeCollection:
    """Import, export and reset."""

    def test_import_replaces_collection(self, repository, storage, audit_storage):
        run(repository.create_process("Old"))
        payload = export_collection([make_process("Imported A"), make_process("Imported B")])

        problems = run(repository.import_collection(payload))

        assert problems == []
        assert [p.name for p in repository.processes] == ["Imported A", "Imported B"]
        assert [p.name for p in storage.saved[-1]] == ["Imported A", "Imported B"]
        assert "collection_imported" in audit_storage.types()

    def test_invalid_import_changes_nothing(self, repository, storage):
        run(repository.create_process("Keep me"))
        saves = len(storage.saved)

        with pytest.raises(InvalidImportPayloadError):
            run(repository.import_collection('{"not": "a list"}'))

        assert [p.name for p in repository.processes] == ["Keep me"]
        assert len(storage.saved) == saves

    def test_import_reports_broken_links(self, repository):
        process = make_process("Month1", transactions=[make_tx(300, payer=B)])
        payload = export_collection([process]).replace(
            '"carriedOverToProcessId": null', '"carriedOverToProcessId": "proc-gone"'
        ).replace('"status": "OPEN"', '"status": "CLOSED"').replace(
            '"closingBalance": null', '"closingBalance": {"debtor": "PERSON_A", "amount": 150}'
        )

        problems = run(repository.import_collection(payload))
        assert len(problems) == 1

    def test_export_round_trip(self, repository):
        run(repository.create_process("Month1"))
        exported = repository.export_collection()
        assert '"name": "Month1"' in exported

    def test_reset(self, repository, storage, audit_storage):
        run(repository.create_process("Month1"))
        run(repository.reset())

        assert repository.processes == []
        assert storage.saved[-1] == []
        assert "collection_reset" in audit_storage.types()
