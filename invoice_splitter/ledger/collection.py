"""Lookup and replacement helpers over the process collection."""

from invoice_splitter.ledger.errors import (
    InvalidStateTransitionError,
    ProcessNotFoundError,
)
from invoice_splitter.models.ledger import Process


def get_process(processes: list[Process], process_id: str) -> Process:
    for process in processes:
        if process.id == process_id:
            return process
    raise ProcessNotFoundError(process_id)


def require_open(process: Process, action: str) -> None:
    if not process.is_open:
        raise InvalidStateTransitionError(
            process.id,
            f"Cannot {action}: process '{process.name}' is already closed",
        )


def replace_process(processes: list[Process], updated: Process) -> list[Process]:
    """Return a new collection with `updated` in place of the process with its id."""
    return [updated if p.id == updated.id else p for p in processes]
