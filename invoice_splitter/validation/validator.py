"""
Two-Stage Validation of Invoice Uploads

DESIGN DECISION: Validation happens at two points of an upload:

STAGE 1 - DOCUMENT VALIDATION (before extraction):
- Empty files
- Files above the upload size limit
- Unsupported document types
- This avoids paying for an extraction that cannot succeed

STAGE 2 - STATEMENT VALIDATION (after extraction):
- Detected total vs sum of the extracted lines
- Future and very old dates
- Zero amounts
- This catches summary lines the model should have skipped

IMPORTANT: Validation NEVER silently fixes issues.
Statement issues are warnings; the user reviews and edits the lines.
"""

from datetime import date, timedelta
from typing import Optional

from invoice_splitter.config import get_settings
from invoice_splitter.config.settings import LedgerSettings
from invoice_splitter.ledger.balance import SETTLEMENT_TOLERANCE
from invoice_splitter.models.ledger import (
    ExtractedStatement,
    ValidationIssue,
    ValidationResult,
)


SUPPORTED_MIME_TYPES = frozenset({
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
})


class StatementValidator:
    """
    Validates invoice documents and what was extracted from them.

    Stage 1 runs on raw bytes; stage 2 on the ExtractedStatement.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def validate_document(self, document: bytes, mime_type: str) -> ValidationResult:
        """
        Stage 1: document validation.

        Every issue here is an error; the upload must not proceed.
        """
        issues = []

        if not document:
            issues.append(ValidationIssue(
                field="document",
                issue_type="empty",
                message="The selected file is empty",
                severity="error",
                suggested_fix="Choose the invoice file again",
            ))
        elif len(document) > self._settings.max_upload_size_bytes:
            size_mb = len(document) / (1024 * 1024)
            issues.append(ValidationIssue(
                field="document",
                issue_type="too_large",
                message=(
                    f"File is {size_mb:.1f} MB; the limit is "
                    f"{self._settings.max_upload_size_mb} MB"
                ),
                severity="error",
                suggested_fix="Upload a smaller export of the invoice",
            ))

        if mime_type not in SUPPORTED_MIME_TYPES:
            issues.append(ValidationIssue(
                field="mime_type",
                issue_type="unsupported_type",
                message=f"Unsupported file type: {mime_type}",
                severity="error",
                suggested_fix="Upload the invoice as a PDF",
            ))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def validate(
        self,
        statement: ExtractedStatement,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Stage 2: statement validation.

        Checks:
        - At least one transaction
        - Detected total matches the sum of the lines
        - Future dates (with tolerance) and dates older than two years
        - Zero amounts
        """
        issues = []
        today = today or date.today()

        if not statement.transactions:
            issues.append(ValidationIssue(
                field="transactions",
                issue_type="empty",
                message="No transactions were extracted from this invoice",
                severity="error",
                suggested_fix="Try the upload again or add the lines manually",
            ))

        # Total mismatch usually means a summary line slipped in
        if statement.detected_total is not None and statement.transactions:
            difference = statement.detected_total - statement.transactions_sum
            if abs(difference) >= SETTLEMENT_TOLERANCE:
                symbol = self._settings.currency_symbol
                issues.append(ValidationIssue(
                    field="detected_total",
                    issue_type="total_mismatch",
                    message=(
                        f"Invoice total ({symbol} {statement.detected_total:.2f}) differs "
                        f"from the sum of the lines ({symbol} {statement.transactions_sum:.2f}) "
                        f"by {symbol} {difference:.2f}"
                    ),
                    severity="warning",
                    suggested_fix="Look for subtotal or summary lines and delete them",
                ))

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        min_reasonable_date = today - timedelta(days=365 * 2)

        for tx in statement.transactions:
            if tx.date > max_future_date:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message=f"'{tx.description}' is dated in the future ({tx.date})",
                    severity="warning",
                    suggested_fix="Please verify the date is correct",
                ))
            elif tx.date < min_reasonable_date:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="suspicious_date",
                    message=f"'{tx.description}' has an unusually old date ({tx.date})",
                    severity="warning",
                    suggested_fix="Please verify the date was read correctly",
                ))

            if tx.amount == 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="zero_amount",
                    message=f"'{tx.description}' has a zero amount",
                    severity="warning",
                    suggested_fix="Delete the line if it is not a real charge",
                ))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to the two partners.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ This invoice cannot be used:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
