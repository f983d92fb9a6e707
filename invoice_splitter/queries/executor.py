"""
Transaction Queries

DESIGN DECISION: Queries are DETERMINISTIC read-only views over the
collection. They never modify a process and never estimate: totals are
plain sums of stored amounts.

Provided views:
- filter_transactions: search text, payer and category filters
- category_breakdown: spending per category, largest first
- summarize_history: one line per process for the history list
"""

from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel

from invoice_splitter.ledger.balance import calculate_settlement
from invoice_splitter.models.ledger import (
    DEFAULT_CATEGORY,
    PersonKey,
    Process,
    ProcessStatus,
    Transaction,
)


class CategoryTotal(BaseModel):
    """One slice of the category breakdown."""

    category: str
    total: Decimal


class ProcessSummary(BaseModel):
    """One row of the history list."""

    process_id: str
    name: str
    status: ProcessStatus
    transaction_count: int
    total: Decimal
    debtor: Optional[PersonKey] = None
    amount_due: Decimal = Decimal("0")
    has_proof_of_payment: bool = False
    carried_over_to_process_id: Optional[str] = None


def _amount_texts(amount: Decimal) -> tuple[str, str]:
    # Both "12.5" and "12.50" should match a search for the amount
    return format(amount.normalize(), "f"), f"{amount:.2f}"


def _matches_search(tx: Transaction, term: str) -> bool:
    term = term.lower()
    return (
        term in tx.description.lower()
        or any(term in text for text in _amount_texts(tx.amount))
        or term in tx.date.isoformat()
    )


def _matches_category(tx: Transaction, category: str) -> bool:
    # "Other" also covers entries stored without a category
    if category == DEFAULT_CATEGORY:
        return not tx.category or tx.category == DEFAULT_CATEGORY
    return (tx.category or DEFAULT_CATEGORY) == category


def filter_transactions(
    transactions: Iterable[Transaction],
    search: Optional[str] = None,
    payer: Optional[PersonKey] = None,
    category: Optional[str] = None,
) -> list[Transaction]:
    """
    Filter transactions for display, newest date first.

    Args:
        search: Case-insensitive text matched against description,
            amount and ISO date
        payer: Only transactions paid by this person
        category: Only transactions in this category
    """
    results = []
    for tx in transactions:
        if payer is not None and tx.payer != payer:
            continue
        if category and not _matches_category(tx, category):
            continue
        if search and search.strip() and not _matches_search(tx, search.strip()):
            continue
        results.append(tx)

    # Stable sort keeps collection order for equal dates
    return sorted(results, key=lambda tx: tx.date, reverse=True)


def category_breakdown(
    transactions: Iterable[Transaction],
    top_n: int = 5,
) -> list[CategoryTotal]:
    """
    Spending per category, largest first.

    Payments and credits (amounts <= 0) are left out. When there are more
    than top_n + 1 categories, everything after the first top_n is folded
    into a single "Other" slice.
    """
    grouped: dict[str, Decimal] = {}
    for tx in transactions:
        if tx.amount <= 0:
            continue
        name = tx.category or DEFAULT_CATEGORY
        grouped[name] = grouped.get(name, Decimal("0")) + tx.amount

    slices = sorted(
        (CategoryTotal(category=name, total=total) for name, total in grouped.items()),
        key=lambda s: s.total,
        reverse=True,
    )

    if len(slices) > top_n + 1:
        tail = sum((s.total for s in slices[top_n:]), Decimal("0"))
        slices = slices[:top_n] + [CategoryTotal(category=DEFAULT_CATEGORY, total=tail)]

    return slices


def process_total(process: Process) -> Decimal:
    """Sum of all transaction amounts of a process."""
    return process.total


def summarize_history(processes: Iterable[Process]) -> list[ProcessSummary]:
    """Summaries in collection order (newest process first)."""
    summaries = []
    for process in processes:
        if process.closing_balance is not None:
            debtor = process.closing_balance.debtor
            amount_due = process.closing_balance.amount
        elif process.is_open:
            settlement = calculate_settlement(process.transactions)
            debtor = settlement.debtor
            amount_due = settlement.amount
        else:
            debtor = None
            amount_due = Decimal("0")

        summaries.append(ProcessSummary(
            process_id=process.id,
            name=process.name,
            status=process.status,
            transaction_count=len(process.transactions),
            total=process.total,
            debtor=debtor,
            amount_due=amount_due,
            has_proof_of_payment=process.proof_of_payment is not None,
            carried_over_to_process_id=process.carried_over_to_process_id,
        ))
    return summaries
