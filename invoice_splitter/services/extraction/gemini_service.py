"""
Invoice Extraction using Gemini

DESIGN DECISION: A generative model reads the credit-card invoice
because invoice layouts differ between banks and change without notice.
The model is asked for JSON only, with a fixed schema, at a low
temperature.

This service handles:
1. Sending the document inline with the extraction instructions
2. Retrying transient API failures
3. Cleaning and parsing the JSON answer into an ExtractedStatement

CRITICAL: The result is PROPOSED data. The ledger assigns ids, payer,
assignment and source; the detected total is advisory.
"""

import json
from typing import Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from invoice_splitter.config import get_settings
from invoice_splitter.models.ledger import ExtractedStatement
from invoice_splitter.services.extraction.interface import (
    ExtractionFailedError,
    ExtractionServiceInterface,
)


logger = structlog.get_logger(__name__)


EXTRACTION_PROMPT = """You are a financial data extraction specialist reading a credit-card invoice.

GOAL
Return JSON whose transaction amounts add up EXACTLY to the invoice total (detectedTotal).

1. DATE RULE (avoid double counting)
Invoices usually start with a summary box (totals grouped by category) followed by
the itemized list. For every line ask: "Does this line have its own transaction date?"
- Yes: it is a transaction, include it.
- No: it is a summary or subtotal, ignore it. The only exception is a
  "previous balance" line.

2. NEVER include summary lines such as
- "Fees and charges" / "Total charges"
- "Domestic purchases" / "International purchases"
- "Invoice total" / "Amount due" / "Subtotal"
- "Credits on this invoice" / "Minimum payment"

3. CALCULATION
- Previous balance: if present, add it as the first transaction (positive amount).
  Without a date, use the invoice opening date.
- Payments and credits ("payment received", "credit", values shown with a minus sign)
  are NEGATIVE numbers.
- Purchases and fees: every dated line with an amount, including small taxes.

Check: previous balance + purchases and fees - payments and credits == detectedTotal.

4. RESPONSE (raw JSON only)
{
  "detectedTotal": 0.00,
  "transactions": [
    {
      "date": "YYYY-MM-DD",
      "description": "Clean merchant name",
      "amount": 0.00,
      "category": "One of: Groceries, Restaurants, Transport, Digital Services, Travel, Health, Education, Leisure, Services, Financial, Other"
    }
  ]
}
If a line has no year, infer it from the invoice due date.
Before answering, add the amounts. If the sum is larger than detectedTotal you probably
included a summary line; remove it and add again."""


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model sometimes wraps JSON in."""
    return text.replace("```json", "").replace("```", "").strip()


def parse_extraction_response(text: Optional[str]) -> ExtractedStatement:
    """
    Turn the model's answer into an ExtractedStatement.

    Raises:
        ExtractionFailedError: If the answer is empty, not JSON, does not
            match the schema, or lists no transactions
    """
    if not text or not text.strip():
        raise ExtractionFailedError("The document could not be read: empty response")

    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ExtractionFailedError(f"The extraction service returned invalid JSON: {e}")

    if not isinstance(data, dict):
        raise ExtractionFailedError("The extraction service returned an unexpected structure")

    try:
        statement = ExtractedStatement.model_validate(data)
    except ValidationError as e:
        raise ExtractionFailedError(
            f"The extraction service returned {e.error_count()} invalid field(s)"
        )

    if not statement.transactions:
        raise ExtractionFailedError("No transactions were found in the document")

    return statement


class GeminiExtractionService(ExtractionServiceInterface):
    """
    Extraction backed by Google Gemini.

    IMPORTANT BOUNDARIES:
    1. This service ONLY reads documents; it never touches the ledger
    2. Malformed answers are rejected loudly, never patched up
    """

    def __init__(self):
        self._settings = get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            },
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, document: bytes, mime_type: str) -> str:
        response = await self._model.generate_content_async([
            {"mime_type": mime_type, "data": document},
            EXTRACTION_PROMPT,
        ])
        return response.text

    async def extract(
        self,
        document: bytes,
        mime_type: str = "application/pdf",
    ) -> ExtractedStatement:
        """Send the document to Gemini and parse the answer."""
        try:
            text = await self._generate(document, mime_type)
        except Exception as e:
            logger.error("gemini_extraction_failed", error=str(e))
            raise ExtractionFailedError(f"The extraction service is unavailable: {e}")

        statement = parse_extraction_response(text)
        logger.info(
            "gemini_extraction_completed",
            transaction_count=len(statement.transactions),
            detected_total=str(statement.detected_total),
        )
        return statement
