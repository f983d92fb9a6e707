"""
Extraction Service Interface

The ledger consumes one capability from the outside world:

    extract(document) -> {detectedTotal?, transactions: [{date, description, amount, category}]}

Anything that can read an invoice document and produce that shape can
be plugged in.
"""

from abc import ABC, abstractmethod

from invoice_splitter.models.ledger import ExtractedStatement


class ExtractionError(Exception):
    """Base exception for extraction errors."""
    pass


class ExtractionFailedError(ExtractionError):
    """The service returned malformed or empty output. Safe to retry."""
    pass


class ExtractionServiceInterface(ABC):
    """Reads an invoice document into proposed transactions."""

    @abstractmethod
    async def extract(
        self,
        document: bytes,
        mime_type: str = "application/pdf",
    ) -> ExtractedStatement:
        """
        Extract transactions from a document.

        Raises:
            ExtractionFailedError: If nothing usable could be read
        """
        pass
