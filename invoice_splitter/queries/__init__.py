"""Query package."""

from invoice_splitter.queries.executor import (
    CategoryTotal,
    ProcessSummary,
    category_breakdown,
    filter_transactions,
    process_total,
    summarize_history,
)

__all__ = [
    "CategoryTotal",
    "ProcessSummary",
    "category_breakdown",
    "filter_transactions",
    "process_total",
    "summarize_history",
]
