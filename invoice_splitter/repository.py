"""
Process Repository

DESIGN DECISION: The repository is the ONLY owner of the process
collection. Every mutation goes through the same three steps:

1. Run a pure ledger transition on the current collection
2. Replace the collection with the result
3. Explicitly persist the whole collection

If a transition raises, nothing is replaced and nothing is written.
If the write fails (full or broken local store), the new state is kept
in memory and a warning is queued for the user instead of failing the
action.

IMPORTANT BOUNDARIES:
- No ledger rules live here; they live in invoice_splitter.ledger
- No network calls; extraction and cloud backup are the flows' business
"""

import datetime as dt
from decimal import Decimal
from typing import Optional, Union

import structlog

from invoice_splitter import ledger
from invoice_splitter.audit import AuditLogger
from invoice_splitter.config import get_settings
from invoice_splitter.export.backup import export_collection, parse_collection
from invoice_splitter.export.report import build_report
from invoice_splitter.ledger import InvalidStateTransitionError, Settlement
from invoice_splitter.models.ledger import (
    Assignment,
    ExtractedStatement,
    Invoice,
    PersonKey,
    PersonProfile,
    Process,
    Transaction,
)
from invoice_splitter.services.storage import (
    ProcessStorageInterface,
    StorageError,
    StorageQuotaExceededError,
)


logger = structlog.get_logger(__name__)


class ProcessRepository:
    """
    In-memory process collection backed by a storage interface.

    Usage:
        repository = ProcessRepository(LocalFileProcessStorage())
        await repository.load()
        process, offer = await repository.create_process("October 2026")
    """

    def __init__(
        self,
        storage: ProcessStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        people: Optional[dict[PersonKey, PersonProfile]] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._people = people or get_settings().ledger.people()
        self._processes: list[Process] = []
        self._warnings: list[str] = []

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    @property
    def processes(self) -> list[Process]:
        """The collection, newest process first."""
        return list(self._processes)

    @property
    def people(self) -> dict[PersonKey, PersonProfile]:
        return dict(self._people)

    def get(self, process_id: str) -> Process:
        """
        Raises:
            ProcessNotFoundError: If no such process exists
        """
        return ledger.get_process(self._processes, process_id)

    def find(self, process_id: str) -> Optional[Process]:
        return next((p for p in self._processes if p.id == process_id), None)

    def settlement(self, process_id: str) -> Settlement:
        return ledger.calculate_settlement(self.get(process_id).transactions)

    def can_close(self, process_id: str) -> bool:
        process = self.find(process_id)
        return process is not None and ledger.can_close(process)

    def pending_debt_offer(self, exclude_id: Optional[str] = None) -> Optional[Process]:
        """The pending debt to offer next, or None."""
        return ledger.find_pending_debt(self._processes, exclude_id=exclude_id)

    def export_collection(self) -> str:
        return export_collection(self._processes)

    def report(self, process_id: str) -> str:
        """CSV settlement report of one process."""
        return build_report(self.get(process_id).transactions, self._people)

    def drain_warnings(self) -> list[str]:
        """Return and forget queued storage warnings."""
        warnings, self._warnings = self._warnings, []
        return warnings

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def load(self) -> list[Process]:
        """Load the stored collection. An unreadable store starts empty."""
        try:
            self._processes = await self._storage.load()
        except StorageError as e:
            self._processes = []
            await self._warn(f"Saved history could not be loaded: {e}")

        for problem in ledger.check_links(self._processes):
            logger.warning("carry_over_link_inconsistent", problem=problem)

        return self.processes

    async def _warn(self, message: str) -> None:
        self._warnings.append(message)
        await self._audit.log_storage_warning(message)

    async def _persist(self) -> None:
        try:
            await self._storage.save(self._processes)
        except StorageQuotaExceededError as e:
            await self._warn(
                f"{e}. Your changes are kept until the app is closed; "
                "export a backup or delete old processes."
            )
        except StorageError as e:
            await self._warn(f"Changes could not be saved: {e}")

    async def _commit(self, processes: list[Process]) -> None:
        self._processes = processes
        await self._persist()

    async def _run(self, transition, *args, **kwargs):
        """Run a ledger transition on the current collection, auditing rejections."""
        try:
            return transition(self._processes, *args, **kwargs)
        except InvalidStateTransitionError as e:
            await self._audit.log_invalid_transition(e.process_id, str(e))
            raise

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def create_process(
        self,
        name: Optional[str] = None,
    ) -> tuple[Process, Optional[Process]]:
        """
        Create a new open process at the head of the collection.

        Returns:
            (new_process, pending_debt_to_offer_or_None)
        """
        processes, process = ledger.create_process(
            self._processes, name or ledger.default_process_name()
        )
        await self._commit(processes)
        await self._audit.log_process_created(process.id, process.name)

        offer = self.pending_debt_offer(exclude_id=process.id)
        if offer is not None:
            await self._audit.log_pending_debt_offered(offer.id, process.id)

        return process, offer

    async def close_with_proof(
        self,
        process_id: str,
        file_name: str,
        document: bytes,
        mime_type: str = "application/pdf",
    ) -> Process:
        processes = await self._run(
            ledger.close_with_proof, process_id, file_name, document, mime_type
        )
        await self._commit(processes)
        await self._audit.log_process_closed_with_proof(process_id, file_name)
        return self.get(process_id)

    async def close_with_balance(
        self,
        process_id: str,
        debtor: PersonKey,
        amount: Union[Decimal, float, str],
    ) -> Process:
        processes = await self._run(ledger.close_with_balance, process_id, debtor, amount)
        await self._commit(processes)

        closed = self.get(process_id)
        await self._audit.log_process_closed_with_balance(
            process_id, closed.closing_balance.debtor, closed.closing_balance.amount
        )
        return closed

    async def request_carry_over(self, process_id: str) -> Process:
        """Close the process with its current balance left pending."""
        processes = await self._run(ledger.request_carry_over, process_id)
        await self._commit(processes)

        closed = self.get(process_id)
        await self._audit.log_process_closed_with_balance(
            process_id, closed.closing_balance.debtor, closed.closing_balance.amount
        )
        return closed

    async def delete_process(self, process_id: str) -> list[str]:
        """
        Delete a process. Debts carried into it become pending again.

        Returns the ids of the processes whose link was cleared.
        """
        processes, unlinked = await self._run(ledger.delete_process, process_id)
        await self._commit(processes)
        await self._audit.log_process_deleted(process_id, unlinked)
        return unlinked

    # -------------------------------------------------------------------------
    # Carry-over
    # -------------------------------------------------------------------------

    async def accept_pending_debt(
        self,
        target_id: str,
        source_id: str,
        today: Optional[dt.date] = None,
    ) -> Transaction:
        """Import a pending balance; the link and the transaction land together."""
        processes, transaction = await self._run(
            ledger.accept_pending_debt, target_id, source_id, today
        )
        await self._commit(processes)
        await self._audit.log_pending_debt_imported(
            source_id, target_id, transaction.id, transaction.amount
        )
        return transaction

    async def decline_pending_debt(self, source_id: str) -> None:
        """Leave the debt pending; it will be offered again next time."""
        self.get(source_id)
        await self._audit.log_pending_debt_declined(source_id)

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    async def add_invoice(
        self,
        process_id: str,
        statement: ExtractedStatement,
        payer: PersonKey,
        original_name: str,
        document: bytes,
        mime_type: str = "application/pdf",
    ) -> Invoice:
        processes, invoice = await self._run(
            ledger.add_invoice,
            process_id,
            statement,
            payer,
            original_name,
            document,
            mime_type=mime_type,
            payer_name=self._people[payer].name,
        )
        await self._commit(processes)
        return invoice

    async def add_manual_transaction(
        self,
        process_id: str,
        description: str,
        amount: Union[Decimal, float, str],
        date: dt.date,
        payer: PersonKey,
        assignment: Assignment = Assignment.SPLIT,
        category: Optional[str] = None,
    ) -> Transaction:
        processes, transaction = await self._run(
            ledger.add_manual_transaction,
            process_id,
            description,
            amount,
            date,
            payer,
            assignment=assignment,
            category=category,
        )
        await self._commit(processes)
        await self._audit.log_transaction_added(process_id, transaction.id, transaction.amount)
        return transaction

    async def update_assignment(
        self,
        process_id: str,
        transaction_id: str,
        assignment: Assignment,
    ) -> None:
        processes = await self._run(
            ledger.update_assignment, process_id, transaction_id, assignment
        )
        await self._commit(processes)
        await self._audit.log_assignment_updated(process_id, transaction_id, assignment)

    async def delete_transaction(self, process_id: str, transaction_id: str) -> None:
        processes = await self._run(ledger.delete_transaction, process_id, transaction_id)
        await self._commit(processes)
        await self._audit.log_transaction_deleted(process_id, transaction_id)

    # -------------------------------------------------------------------------
    # Whole collection
    # -------------------------------------------------------------------------

    async def replace_all(self, processes: list[Process], source: str) -> list[str]:
        """
        Replace the whole collection (backup restore or file import).

        Returns carry-over link problems found in the new collection; they
        are reported, not repaired.
        """
        problems = ledger.check_links(processes)
        await self._commit(list(processes))
        await self._audit.log_collection_imported(len(processes), source)
        return problems

    async def import_collection(self, payload: Union[str, bytes]) -> list[str]:
        """
        Replace the collection with a downloaded backup file.

        Raises:
            InvalidImportPayloadError: If the payload is not a valid
                collection; the current collection is left untouched
        """
        return await self.replace_all(parse_collection(payload), source="file")

    async def reset(self) -> None:
        """Erase every process."""
        await self._commit([])
        await self._audit.log_collection_reset()
