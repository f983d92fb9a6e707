"""
Ledger Errors

Raised by the pure transition functions. Every one of them is raised
before any change is made, so a caller that catches them still holds
an untouched collection.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ProcessNotFoundError(LedgerError):
    """No process with the given id exists in the collection."""

    def __init__(self, process_id: str):
        self.process_id = process_id
        super().__init__(f"Process not found: {process_id}")


class TransactionNotFoundError(LedgerError):
    """No transaction with the given id exists in the process."""

    def __init__(self, process_id: str, transaction_id: str):
        self.process_id = process_id
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} not found in process {process_id}"
        )


class InvalidStateTransitionError(LedgerError):
    """The process is not in the state the operation requires."""

    def __init__(self, process_id: Optional[str], message: str):
        self.process_id = process_id
        super().__init__(message)


class ProtectedTransactionError(LedgerError):
    """Carried-over balances cannot be reassigned or deleted."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} is a carried-over balance and cannot be changed"
        )
