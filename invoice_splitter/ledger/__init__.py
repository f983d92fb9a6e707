"""
Settlement Ledger Core

Pure, I/O-free transition logic over the process collection:
balance calculation, entry editing, the process lifecycle and
carry-over linking.
"""

from invoice_splitter.ledger.balance import (
    DEFAULT_PARTIES,
    SETTLEMENT_TOLERANCE,
    Settlement,
    calculate_settlement,
    is_settled,
)
from invoice_splitter.ledger.carryover import (
    accept_pending_debt,
    carry_over_description,
    check_links,
    delete_process,
    find_pending_debt,
    find_pending_debts,
)
from invoice_splitter.ledger.collection import get_process
from invoice_splitter.ledger.entries import (
    add_invoice,
    add_manual_transaction,
    decode_document,
    delete_transaction,
    encode_document,
    generate_file_name,
    update_assignment,
)
from invoice_splitter.ledger.errors import (
    InvalidStateTransitionError,
    LedgerError,
    ProcessNotFoundError,
    ProtectedTransactionError,
    TransactionNotFoundError,
)
from invoice_splitter.ledger.lifecycle import (
    can_close,
    close_with_balance,
    close_with_proof,
    create_process,
    default_process_name,
    request_carry_over,
)

__all__ = [
    # Balance
    "DEFAULT_PARTIES",
    "SETTLEMENT_TOLERANCE",
    "Settlement",
    "calculate_settlement",
    "is_settled",
    # Carry-over
    "accept_pending_debt",
    "carry_over_description",
    "check_links",
    "delete_process",
    "find_pending_debt",
    "find_pending_debts",
    # Entries
    "add_invoice",
    "add_manual_transaction",
    "decode_document",
    "delete_transaction",
    "encode_document",
    "generate_file_name",
    "get_process",
    "update_assignment",
    # Lifecycle
    "can_close",
    "close_with_balance",
    "close_with_proof",
    "create_process",
    "default_process_name",
    "request_carry_over",
    # Errors
    "InvalidStateTransitionError",
    "LedgerError",
    "ProcessNotFoundError",
    "ProtectedTransactionError",
    "TransactionNotFoundError",
]
