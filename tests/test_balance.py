"""
Tests for the balance calculator.
"""

from decimal import Decimal

import pytest

from invoice_splitter.ledger.balance import (
    calculate_settlement,
    is_settled,
    split_evenly,
)
from invoice_splitter.models.ledger import Assignment, ClosingBalance, PersonKey

from conftest import make_tx


A = PersonKey.PERSON_A
B = PersonKey.PERSON_B


class TestSettlement:
    """Tests for calculate_settlement."""

    def test_split_purchase_is_symmetric(self):
        """One split purchase paid by A: A is owed half, B owes half."""
        settlement = calculate_settlement([make_tx(100, payer=A)])

        assert settlement.balance_of(A) == Decimal("50")
        assert settlement.balance_of(B) == Decimal("-50")
        assert settlement.debtor == B
        assert settlement.creditor == A
        assert settlement.amount == Decimal("50.00")

    def test_single_assignee_bears_full_cost(self):
        settlement = calculate_settlement([
            make_tx(100, payer=A, assignment=Assignment.PERSON_B),
        ])

        assert settlement.share[B] == Decimal("100")
        assert settlement.share[A] == Decimal("0")
        assert settlement.debtor == B
        assert settlement.amount == Decimal("100.00")

    def test_balances_sum_to_zero_with_credits(self):
        """Payments and refunds are negative amounts and still balance."""
        settlement = calculate_settlement([
            make_tx("33.33", payer=A),
            make_tx("-10.01", payer=B),
            make_tx("7.77", payer=B, assignment=Assignment.PERSON_A),
            make_tx("0.01", payer=A),
        ])

        assert sum(settlement.balance.values()) == Decimal("0")
        assert settlement.total == Decimal("31.10")

    def test_empty_process_is_settled(self):
        settlement = calculate_settlement([])

        assert settlement.is_settled is True
        assert settlement.debtor is None
        assert settlement.creditor is None
        assert settlement.amount == Decimal("0")
        assert settlement.closing_balance() is None

    def test_even_spending_is_settled(self):
        settlement = calculate_settlement([
            make_tx(80, payer=A),
            make_tx(80, payer=B),
        ])
        assert settlement.is_settled is True

    def test_closing_balance_matches_debtor(self):
        settlement = calculate_settlement([make_tx(300, payer=B)])

        closing = settlement.closing_balance()
        assert isinstance(closing, ClosingBalance)
        assert closing.debtor == A
        assert closing.creditor == B
        assert closing.amount == Decimal("150.00")

    def test_amount_rounds_half_up_to_cents(self):
        settlement = calculate_settlement([make_tx("0.03", payer=A)])

        assert settlement.balance_of(B) == Decimal("-0.015")
        assert settlement.amount == Decimal("0.02")

    def test_unknown_payer_rejected(self):
        with pytest.raises(ValueError):
            calculate_settlement([make_tx(10, payer=B)], parties=(A,))

    def test_no_parties_rejected(self):
        with pytest.raises(ValueError):
            calculate_settlement([], parties=())


class TestTolerance:
    """Tests for the one-cent settlement tolerance."""

    def test_below_one_cent_is_settled(self):
        assert is_settled(Decimal("0.004")) is True
        assert is_settled(Decimal("-0.009")) is True

    def test_one_cent_or_more_is_not_settled(self):
        assert is_settled(Decimal("0.02")) is False
        assert is_settled(Decimal("0.01")) is False
        assert is_settled(Decimal("-0.01")) is False

    def test_accepts_floats_and_strings(self):
        assert is_settled(0.004) is True
        assert is_settled("0.5") is False


class TestSplitEvenly:
    """Tests for split_evenly."""

    def test_two_way_split(self):
        shares = split_evenly(Decimal("100"), (A, B))
        assert shares == {A: Decimal("50"), B: Decimal("50")}

    def test_shares_add_back_to_amount(self):
        for amount in ("0.01", "33.33", "-10.01", "1234.57"):
            shares = split_evenly(Decimal(amount), (A, B))
            assert sum(shares.values()) == Decimal(amount)
