"""Validation package."""

from invoice_splitter.validation.validator import SUPPORTED_MIME_TYPES, StatementValidator

__all__ = ["SUPPORTED_MIME_TYPES", "StatementValidator"]
