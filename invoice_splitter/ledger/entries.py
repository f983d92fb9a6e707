"""
Transaction and Invoice Editing

Pure functions that add, reassign and delete entries of an open process.
Each takes the process collection and returns a new one; the input list
and its processes are never modified.

IMPORTANT BOUNDARIES:
1. Only OPEN processes can be edited
2. CARRYOVER transactions are read-only
3. Ids, payer, assignment and source of extracted lines are assigned
   here, never taken from the extraction service
"""

import base64
import datetime as dt
import re
from decimal import Decimal
from typing import Optional, Union

from invoice_splitter.ledger.balance import ZERO, to_decimal
from invoice_splitter.ledger.collection import (
    get_process,
    replace_process,
    require_open,
)
from invoice_splitter.ledger.errors import (
    ProtectedTransactionError,
    TransactionNotFoundError,
)
from invoice_splitter.models.ledger import (
    Assignment,
    ExtractedStatement,
    Invoice,
    PersonKey,
    Process,
    Transaction,
    TransactionSource,
    new_id,
    utcnow,
)


def encode_document(document: bytes, mime_type: str = "application/pdf") -> str:
    """
    Encode a document as a base64 data URL.

    Raises:
        ValueError: If the document is empty
    """
    if not document:
        raise ValueError("The document is empty")
    encoded = base64.b64encode(document).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_document(data_url: str) -> bytes:
    """Inverse of encode_document. Plain base64 is accepted too."""
    _, _, payload = data_url.rpartition(",")
    return base64.b64decode(payload)


def generate_file_name(
    original_name: str,
    payer_name: str,
    now: Optional[dt.datetime] = None,
) -> str:
    """
    Build a collision-resistant name for an uploaded invoice.

    Example: "Fatura Nubank.pdf" paid by Marco -> "FaturaNubank_MARCO_837492.pdf"
    """
    now = now or utcnow()
    stem, dot, extension = original_name.rpartition(".")
    if not dot:
        stem, extension = original_name, "pdf"
    safe_stem = re.sub(r"[^a-zA-Z0-9_-]", "", stem) or "invoice"
    safe_payer = re.sub(r"[^A-Z0-9_-]", "", payer_name.upper()) or "PAYER"
    stamp = str(int(now.timestamp() * 1000))[-6:]
    return f"{safe_stem}_{safe_payer}_{stamp}.{extension or 'pdf'}"


def add_invoice(
    processes: list[Process],
    process_id: str,
    statement: ExtractedStatement,
    payer: PersonKey,
    original_name: str,
    document: bytes,
    mime_type: str = "application/pdf",
    payer_name: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> tuple[list[Process], Invoice]:
    """
    Attach an extracted invoice and its transactions to an open process.

    The invoice total is the detected total when the service found one,
    otherwise the sum of the extracted lines. New transactions default to
    SPLIT and are appended after the existing ones.
    """
    process = get_process(processes, process_id)
    require_open(process, "add an invoice")
    now = now or utcnow()

    invoice = Invoice(
        file_name=generate_file_name(original_name, payer_name or payer.value, now),
        original_name=original_name,
        payer=payer,
        upload_date=now,
        total_amount=statement.invoice_total,
        file_data=encode_document(document, mime_type),
    )

    new_transactions = [
        Transaction(
            id=new_id("tx"),
            date=line.date,
            description=line.description,
            amount=line.amount,
            category=line.category,
            assignment=Assignment.SPLIT,
            payer=payer,
            source=TransactionSource.PDF,
            source_invoice_id=invoice.id,
        )
        for line in statement.transactions
    ]

    updated = process.model_copy(update={
        "invoices": [*process.invoices, invoice],
        "transactions": [*process.transactions, *new_transactions],
    })
    return replace_process(processes, updated), invoice


def add_manual_transaction(
    processes: list[Process],
    process_id: str,
    description: str,
    amount: Union[Decimal, float, str],
    date: dt.date,
    payer: PersonKey,
    assignment: Assignment = Assignment.SPLIT,
    category: Optional[str] = None,
) -> tuple[list[Process], Transaction]:
    """Add a hand-entered transaction at the top of an open process."""
    process = get_process(processes, process_id)
    require_open(process, "add a transaction")
    if not description or not description.strip():
        raise ValueError("A manual transaction needs a description")

    transaction = Transaction(
        id=new_id("manual"),
        date=date,
        description=description,
        amount=to_decimal(amount),
        assignment=assignment,
        payer=payer,
        source=TransactionSource.MANUAL,
        category=category,
    )
    updated = process.model_copy(update={
        "transactions": [transaction, *process.transactions],
    })
    return replace_process(processes, updated), transaction


def _editable_transaction(process: Process, transaction_id: str) -> Transaction:
    transaction = process.find_transaction(transaction_id)
    if transaction is None:
        raise TransactionNotFoundError(process.id, transaction_id)
    if transaction.is_protected:
        raise ProtectedTransactionError(transaction_id)
    return transaction


def update_assignment(
    processes: list[Process],
    process_id: str,
    transaction_id: str,
    assignment: Assignment,
) -> list[Process]:
    """Change who bears the cost of a transaction."""
    process = get_process(processes, process_id)
    require_open(process, "reassign a transaction")
    _editable_transaction(process, transaction_id)

    updated = process.model_copy(update={
        "transactions": [
            tx.model_copy(update={"assignment": assignment}) if tx.id == transaction_id else tx
            for tx in process.transactions
        ],
    })
    return replace_process(processes, updated)


def delete_transaction(
    processes: list[Process],
    process_id: str,
    transaction_id: str,
) -> list[Process]:
    """
    Remove a transaction.

    If it came from an invoice, that invoice's total drops by the
    transaction amount, never below zero.
    """
    process = get_process(processes, process_id)
    require_open(process, "delete a transaction")
    doomed = _editable_transaction(process, transaction_id)

    invoices = process.invoices
    if doomed.source_invoice_id:
        invoices = [
            inv.model_copy(update={
                "total_amount": max(ZERO, inv.total_amount - doomed.amount),
            }) if inv.id == doomed.source_invoice_id else inv
            for inv in process.invoices
        ]

    updated = process.model_copy(update={
        "invoices": invoices,
        "transactions": [tx for tx in process.transactions if tx.id != transaction_id],
    })
    return replace_process(processes, updated)
