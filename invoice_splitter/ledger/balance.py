"""
Balance Calculator

Pure function of a transaction list: who paid what, who should have
paid what, and who owes whom.

    paid[payer]      += amount
    share[assignee]  += amount          (single assignee)
    share[each]      += amount / n      (SPLIT)
    balance[p]        = paid[p] - share[p]

Positive balance: the person is owed money. Negative: the person owes.

The split hands any division remainder to the last party, so the shares
of a transaction always add back up to its amount and the balances of
all parties sum to exactly zero, credits included.

DESIGN DECISION: Nothing here is cached. Debtor, creditor and amount are
derived from the transactions every time they are asked for.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from pydantic import BaseModel

from invoice_splitter.models.ledger import (
    ClosingBalance,
    PersonKey,
    Transaction,
)


SETTLEMENT_TOLERANCE = Decimal("0.01")
CENT = Decimal("0.01")
DEFAULT_PARTIES = (PersonKey.PERSON_A, PersonKey.PERSON_B)

ZERO = Decimal("0")


def to_decimal(value: Union[Decimal, float, int, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def is_settled(balance: Union[Decimal, float, int, str]) -> bool:
    """A balance under one cent (in absolute value) counts as zero."""
    return abs(to_decimal(balance)) < SETTLEMENT_TOLERANCE


def split_evenly(
    amount: Decimal,
    parties: tuple[PersonKey, ...],
) -> dict[PersonKey, Decimal]:
    """Split an amount across parties without losing anything to rounding."""
    portion = amount / len(parties)
    shares = {p: portion for p in parties[:-1]}
    shares[parties[-1]] = amount - portion * (len(parties) - 1)
    return shares


class Settlement(BaseModel):
    """Result of a balance calculation."""

    total: Decimal
    paid: dict[PersonKey, Decimal]
    share: dict[PersonKey, Decimal]

    @property
    def balance(self) -> dict[PersonKey, Decimal]:
        return {p: self.paid[p] - self.share[p] for p in self.paid}

    def balance_of(self, person: PersonKey) -> Decimal:
        return self.paid[person] - self.share[person]

    @property
    def is_settled(self) -> bool:
        return all(is_settled(v) for v in self.balance.values())

    @property
    def debtor(self) -> Optional[PersonKey]:
        """The party with the most negative balance, None when settled."""
        if self.is_settled:
            return None
        balances = self.balance
        return min(balances, key=balances.get)

    @property
    def creditor(self) -> Optional[PersonKey]:
        if self.is_settled:
            return None
        balances = self.balance
        return max(balances, key=balances.get)

    @property
    def amount(self) -> Decimal:
        """What the debtor owes, rounded to cents. Zero when settled."""
        debtor = self.debtor
        if debtor is None:
            return ZERO
        return abs(self.balance_of(debtor)).quantize(CENT, rounding=ROUND_HALF_UP)

    def closing_balance(self) -> Optional[ClosingBalance]:
        debtor = self.debtor
        if debtor is None:
            return None
        return ClosingBalance(debtor=debtor, amount=self.amount)


def calculate_settlement(
    transactions: Iterable[Transaction],
    parties: tuple[PersonKey, ...] = DEFAULT_PARTIES,
) -> Settlement:
    """
    Compute paid amounts, fair shares and balances.

    Raises:
        ValueError: If a transaction names a party outside `parties`
    """
    if not parties:
        raise ValueError("At least one party is required")

    total = ZERO
    paid = {p: ZERO for p in parties}
    share = {p: ZERO for p in parties}

    for tx in transactions:
        if tx.payer not in paid:
            raise ValueError(f"Transaction {tx.id} was paid by unknown party {tx.payer}")

        total += tx.amount
        paid[tx.payer] += tx.amount

        assignee = tx.assignment.person
        if assignee is None:
            for party, portion in split_evenly(tx.amount, parties).items():
                share[party] += portion
        elif assignee in share:
            share[assignee] += tx.amount
        else:
            raise ValueError(f"Transaction {tx.id} is assigned to unknown party {assignee}")

    return Settlement(total=total, paid=paid, share=share)
