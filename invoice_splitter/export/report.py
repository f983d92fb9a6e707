"""
CSV Settlement Report

One row per transaction followed by a summary block with totals, what
each person paid, each fair share and the final adjustment.

Text fields are always quoted (inner quotes doubled), so descriptions
with commas or quotes survive a round trip through a spreadsheet.
"""

import csv
import datetime as dt
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from invoice_splitter.config import get_settings
from invoice_splitter.ledger.balance import (
    CENT,
    DEFAULT_PARTIES,
    calculate_settlement,
    split_evenly,
)
from invoice_splitter.models.ledger import (
    DEFAULT_CATEGORY,
    PersonKey,
    PersonProfile,
    Transaction,
    TransactionSource,
)


SOURCE_LABELS = {
    TransactionSource.MANUAL: "Manual",
    TransactionSource.CARRYOVER: "Previous balance",
    TransactionSource.PDF: "PDF invoice",
}

SPLIT_LABEL = "Split"


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _shares(tx: Transaction, parties: tuple[PersonKey, ...]) -> dict[PersonKey, Decimal]:
    assignee = tx.assignment.person
    if assignee is None:
        return split_evenly(tx.amount, parties)
    return {p: tx.amount if p == assignee else Decimal("0") for p in parties}


def build_report(
    transactions: Iterable[Transaction],
    people: Optional[dict[PersonKey, PersonProfile]] = None,
) -> str:
    """Render the settlement report of a list of transactions as CSV text."""
    people = people or get_settings().ledger.people()
    parties = DEFAULT_PARTIES
    transactions = list(transactions)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")

    writer.writerow(
        ["Date", "Description", "Category", "Source", "Paid by", "Assigned to", "Amount"]
        + [f"Share {people[p].name}" for p in parties]
    )

    for tx in transactions:
        assignee = tx.assignment.person
        shares = _shares(tx, parties)
        writer.writerow(
            [
                tx.date.isoformat(),
                tx.description,
                tx.category or DEFAULT_CATEGORY,
                SOURCE_LABELS[tx.source],
                people[tx.payer].name,
                people[assignee].name if assignee else SPLIT_LABEL,
                _money(tx.amount),
            ]
            + [_money(shares[p]) for p in parties]
        )

    settlement = calculate_settlement(transactions, parties)

    writer.writerow([])
    writer.writerow(["SUMMARY"])
    writer.writerow(["Total spent", _money(settlement.total)])
    for p in parties:
        writer.writerow([f"Paid by {people[p].name}", _money(settlement.paid[p])])
    for p in parties:
        writer.writerow([f"Fair share {people[p].name}", _money(settlement.share[p])])

    writer.writerow(["FINAL ADJUSTMENT"])
    for p in parties:
        balance = settlement.balance_of(p)
        direction = "RECEIVES" if balance >= 0 else "PAYS"
        writer.writerow([f"{people[p].name} {direction}", _money(abs(balance))])

    return buffer.getvalue()


def report_filename(today: Optional[dt.date] = None) -> str:
    today = today or dt.date.today()
    return f"invoice_report_{today.isoformat()}.csv"
