"""
Carry-Over Linker

A process closed with an unpaid balance is a *pending debt* until a later
process absorbs it. Absorbing means two things that only ever happen
together, in one returned collection:

1. A CARRYOVER transaction lands in the new process
   (payer = creditor, assignment = debtor, amount = carried amount)
2. The closed process records the new process's id

If the absorbing process is deleted, the link is cleared in the same
update and the debt becomes pending again. The creditor's claim is
never lost silently.

DESIGN DECISION: When several debts are pending, the first one in
collection order is offered. New processes are prepended, so this is
the most recently created pending process. The others stay pending
and are offered on later creations.
"""

import datetime as dt
from typing import Optional

from invoice_splitter.ledger.collection import (
    get_process,
    require_open,
)
from invoice_splitter.ledger.errors import InvalidStateTransitionError
from invoice_splitter.models.ledger import (
    DEFAULT_CATEGORY,
    Assignment,
    Process,
    Transaction,
    TransactionSource,
    new_id,
    utcnow,
)


def carry_over_description(process_name: str) -> str:
    return f"Previous balance ({process_name})"


def find_pending_debts(processes: list[Process]) -> list[Process]:
    """Every closed process whose balance has not been carried anywhere."""
    return [p for p in processes if p.is_pending_debt]


def find_pending_debt(
    processes: list[Process],
    exclude_id: Optional[str] = None,
) -> Optional[Process]:
    """The single pending debt to offer, or None."""
    for process in processes:
        if process.is_pending_debt and process.id != exclude_id:
            return process
    return None


def accept_pending_debt(
    processes: list[Process],
    target_id: str,
    source_id: str,
    today: Optional[dt.date] = None,
) -> tuple[list[Process], Transaction]:
    """
    Import the pending balance of `source_id` into the open `target_id`.

    Raises:
        InvalidStateTransitionError: If the source is not (or no longer) a
            pending debt, or the target is not open
    """
    source = get_process(processes, source_id)
    target = get_process(processes, target_id)

    if not source.is_pending_debt:
        raise InvalidStateTransitionError(
            source.id,
            f"Process '{source.name}' has no pending balance to carry over",
        )
    require_open(target, "import a previous balance")

    balance = source.closing_balance
    transaction = Transaction(
        id=new_id("carry"),
        date=today or utcnow().date(),
        description=carry_over_description(source.name),
        amount=balance.amount,
        payer=balance.creditor,
        assignment=Assignment.for_person(balance.debtor),
        source=TransactionSource.CARRYOVER,
        category=DEFAULT_CATEGORY,
    )

    updated_target = target.model_copy(update={
        "transactions": [transaction, *target.transactions],
    })
    updated_source = source.model_copy(update={
        "carried_over_to_process_id": target.id,
    })

    def _swap(process: Process) -> Process:
        if process.id == target.id:
            return updated_target
        if process.id == source.id:
            return updated_source
        return process

    return [_swap(p) for p in processes], transaction


def delete_process(
    processes: list[Process],
    process_id: str,
) -> tuple[list[Process], list[str]]:
    """
    Remove a process and reopen every debt that had been carried into it.

    Returns:
        (new_collection, ids_of_processes_whose_link_was_cleared)
    """
    get_process(processes, process_id)

    remaining = []
    unlinked = []
    for process in processes:
        if process.id == process_id:
            continue
        if process.carried_over_to_process_id == process_id:
            process = process.model_copy(update={"carried_over_to_process_id": None})
            unlinked.append(process.id)
        remaining.append(process)

    return remaining, unlinked


def check_links(processes: list[Process]) -> list[str]:
    """
    Report carry-over links that point nowhere or at a process that does
    not hold the matching CARRYOVER transaction.
    """
    by_id = {p.id: p for p in processes}
    problems = []

    for process in processes:
        target_id = process.carried_over_to_process_id
        if not target_id:
            continue

        target = by_id.get(target_id)
        if target is None:
            problems.append(
                f"'{process.name}' is linked to missing process {target_id}"
            )
            continue

        marker = f"({process.name})"
        if not any(
            tx.source == TransactionSource.CARRYOVER and marker in tx.description
            for tx in target.transactions
        ):
            problems.append(
                f"'{target.name}' has no carried-over balance from '{process.name}'"
            )

    return problems
