"""Extraction services package."""

from invoice_splitter.services.extraction.interface import (
    ExtractionError,
    ExtractionFailedError,
    ExtractionServiceInterface,
)
from invoice_splitter.services.extraction.gemini_service import (
    GeminiExtractionService,
    parse_extraction_response,
)

__all__ = [
    "ExtractionError",
    "ExtractionFailedError",
    "ExtractionServiceInterface",
    "GeminiExtractionService",
    "parse_extraction_response",
]
