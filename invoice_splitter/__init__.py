"""
Invoice Splitter - Source Package

A household expense-splitting ledger for two people sharing
credit-card invoices.

DESIGN PRINCIPLES:
1. AI extracts → Human assigns → System settles
2. Balances are always recomputed, never cached
3. No silent debt loss (a carried balance is never orphaned)
4. Every mutation is persisted and auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Invoice Splitter Team"
