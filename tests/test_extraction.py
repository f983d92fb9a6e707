"""
Tests for parsing the extraction service's answer.

No test calls Gemini.
"""

import datetime as dt
from decimal import Decimal

import pytest

from invoice_splitter.services.extraction import (
    ExtractionError,
    ExtractionFailedError,
    parse_extraction_response,
)
from invoice_splitter.services.extraction.gemini_service import strip_code_fences


VALID_ANSWER = """
{
  "detectedTotal": 1234.56,
  "transactions": [
    {"date": "2026-09-28", "description": "Previous balance", "amount": 1000.00, "category": "Financial"},
    {"date": "2026-10-02", "description": "Supermarket", "amount": 284.56, "category": "Groceries"},
    {"date": "2026-10-03", "description": "Payment received", "amount": -50.00}
  ]
}
"""


class TestParseExtractionResponse:
    """Tests for parse_extraction_response."""

    def test_valid_answer(self):
        statement = parse_extraction_response(VALID_ANSWER)

        assert statement.detected_total == Decimal("1234.56")
        assert len(statement.transactions) == 3
        assert statement.transactions[1].date == dt.date(2026, 10, 2)
        assert statement.transactions[2].amount == Decimal("-50.00")
        assert statement.transactions_sum == Decimal("1234.56")

    def test_missing_category_becomes_other(self):
        statement = parse_extraction_response(VALID_ANSWER)
        assert statement.transactions[2].category == "Other"

    def test_markdown_fences_are_removed(self):
        fenced = "```json\n" + VALID_ANSWER + "\n```"
        statement = parse_extraction_response(fenced)
        assert len(statement.transactions) == 3

    def test_detected_total_is_optional(self):
        statement = parse_extraction_response(
            '{"transactions": [{"date": "2026-10-02", "description": "Taxi", "amount": 20}]}'
        )
        assert statement.detected_total is None
        assert statement.invoice_total == Decimal("20")

    def test_long_description_is_truncated(self):
        long_line = "MERCHANT " * 100
        statement = parse_extraction_response(
            '{"transactions": [{"date": "2026-10-02", "description": "%s", "amount": 20}]}' % long_line
        )
        description = statement.transactions[0].description
        assert len(description) <= 500
        assert description.startswith("MERCHANT MERCHANT")

    @pytest.mark.parametrize("answer", [None, "", "   "])
    def test_empty_answer(self, answer):
        with pytest.raises(ExtractionFailedError):
            parse_extraction_response(answer)

    def test_invalid_json(self):
        with pytest.raises(ExtractionFailedError, match="invalid JSON"):
            parse_extraction_response('{"transactions": [')

    def test_wrong_structure(self):
        with pytest.raises(ExtractionFailedError):
            parse_extraction_response("[1, 2, 3]")

    def test_invalid_field(self):
        with pytest.raises(ExtractionFailedError):
            parse_extraction_response(
                '{"transactions": [{"date": "not a date", "description": "X", "amount": 1}]}'
            )

    def test_no_transactions(self):
        with pytest.raises(ExtractionFailedError, match="No transactions"):
            parse_extraction_response('{"detectedTotal": 10, "transactions": []}')

    def test_failure_is_an_extraction_error(self):
        assert issubclass(ExtractionFailedError, ExtractionError)


class TestStripCodeFences:
    def test_plain_text_unchanged(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'
