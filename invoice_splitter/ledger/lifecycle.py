"""
Process Lifecycle State Machine

    OPEN ──(proof of payment)──────────▶ CLOSED(proof)
      │
      └──(carry-over request)──────────▶ CLOSED(pending balance)

Both closed states are terminal. After closing, the only field that
may still change is carried_over_to_process_id, and only through the
carry-over linker.

DESIGN DECISION: The carry-over amount offered by a caller is never
trusted. The settlement is recomputed from the current transactions and
the request is rejected unless it matches within tolerance.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional, Union

from invoice_splitter.ledger.balance import (
    DEFAULT_PARTIES,
    SETTLEMENT_TOLERANCE,
    calculate_settlement,
    to_decimal,
)
from invoice_splitter.ledger.collection import (
    get_process,
    replace_process,
    require_open,
)
from invoice_splitter.ledger.entries import encode_document
from invoice_splitter.ledger.errors import InvalidStateTransitionError
from invoice_splitter.models.ledger import (
    PersonKey,
    Process,
    ProcessStatus,
    ProofOfPayment,
    utcnow,
)


def default_process_name(now: Optional[dt.datetime] = None) -> str:
    """Suggested name for a new cycle, e.g. 'October 2026'."""
    now = now or utcnow()
    return now.strftime("%B %Y").capitalize()


def create_process(
    processes: list[Process],
    name: str,
    now: Optional[dt.datetime] = None,
) -> tuple[list[Process], Process]:
    """Create an empty OPEN process at the head of the collection."""
    if not name or not name.strip():
        raise ValueError("A process needs a name")

    process = Process(name=name, created_at=now or utcnow())
    return [process, *processes], process


def can_close(process: Process) -> bool:
    return process.is_open


def close_with_proof(
    processes: list[Process],
    process_id: str,
    file_name: str,
    document: bytes,
    mime_type: str = "application/pdf",
    now: Optional[dt.datetime] = None,
) -> list[Process]:
    """
    Close a process because the parties settled directly.

    The document is encoded before anything changes: an empty or unreadable
    document leaves the process exactly as it was.
    """
    process = get_process(processes, process_id)
    require_open(process, "close with proof of payment")

    now = now or utcnow()
    proof = ProofOfPayment(
        file_name=file_name,
        date=now,
        file_data=encode_document(document, mime_type),
    )

    updated = process.model_copy(update={
        "status": ProcessStatus.CLOSED,
        "closed_at": now,
        "proof_of_payment": proof,
    })
    return replace_process(processes, updated)


def close_with_balance(
    processes: list[Process],
    process_id: str,
    debtor: Union[PersonKey, str],
    amount: Union[Decimal, float, str],
    now: Optional[dt.datetime] = None,
    parties: tuple[PersonKey, ...] = DEFAULT_PARTIES,
) -> list[Process]:
    """
    Close a process leaving its balance to be carried into a later one.

    Raises:
        InvalidStateTransitionError: If the process is not open, is already
            settled, or the requested debtor/amount no longer match the
            current transactions
    """
    debtor = PersonKey(debtor)
    process = get_process(processes, process_id)
    require_open(process, "carry over the balance")

    settlement = calculate_settlement(process.transactions, parties)
    if settlement.is_settled:
        raise InvalidStateTransitionError(
            process.id,
            f"Process '{process.name}' is already settled; there is nothing to carry over",
        )

    if settlement.debtor != debtor:
        raise InvalidStateTransitionError(
            process.id,
            f"The current debtor is {settlement.debtor.value}, not {debtor.value}",
        )

    if abs(settlement.amount - to_decimal(amount)) >= SETTLEMENT_TOLERANCE:
        raise InvalidStateTransitionError(
            process.id,
            f"Requested amount {amount} does not match the current balance {settlement.amount}",
        )

    updated = process.model_copy(update={
        "status": ProcessStatus.CLOSED,
        "closed_at": now or utcnow(),
        "closing_balance": settlement.closing_balance(),
    })
    return replace_process(processes, updated)


def request_carry_over(
    processes: list[Process],
    process_id: str,
    now: Optional[dt.datetime] = None,
    parties: tuple[PersonKey, ...] = DEFAULT_PARTIES,
) -> list[Process]:
    """Close with whatever balance the calculator reports right now."""
    process = get_process(processes, process_id)
    require_open(process, "carry over the balance")

    settlement = calculate_settlement(process.transactions, parties)
    if settlement.debtor is None:
        raise InvalidStateTransitionError(
            process.id,
            f"Process '{process.name}' is already settled; there is nothing to carry over",
        )
    return close_with_balance(
        processes,
        process_id,
        debtor=settlement.debtor,
        amount=settlement.amount,
        now=now,
        parties=parties,
    )
