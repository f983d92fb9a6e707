"""
Bulk Export / Import of the Process Collection

The whole collection is one JSON array of processes, the same document
used by local persistence, the cloud backup and the downloadable backup
file.

Import is all-or-nothing: the payload must be a JSON array and every
element must be a valid process, otherwise nothing is replaced.
"""

import datetime as dt
import json
from typing import Optional, Union

from pydantic import TypeAdapter, ValidationError

from invoice_splitter.models.ledger import Process


_PROCESS_LIST = TypeAdapter(list[Process])


class InvalidImportPayloadError(Exception):
    """The payload is not a valid array of processes."""
    pass


def export_collection(processes: list[Process], indent: Optional[int] = 2) -> str:
    """Serialize the collection to a JSON array (camelCase keys)."""
    return _PROCESS_LIST.dump_json(processes, by_alias=True, indent=indent).decode("utf-8")


def parse_collection(payload: Union[str, bytes]) -> list[Process]:
    """
    Parse and validate a serialized collection.

    Raises:
        InvalidImportPayloadError: If the payload is not JSON, not an array,
            or any element is not a valid process
    """
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise InvalidImportPayloadError(f"Backup is not valid JSON: {e}")

    if not isinstance(data, list):
        raise InvalidImportPayloadError(
            f"Backup must be a list of processes, got {type(data).__name__}"
        )

    try:
        processes = _PROCESS_LIST.validate_python(data)
    except ValidationError as e:
        raise InvalidImportPayloadError(
            f"Backup contains {e.error_count()} invalid field(s): {e.errors()[0]['msg']}"
        )

    ids = [p.id for p in processes]
    if len(ids) != len(set(ids)):
        raise InvalidImportPayloadError("Backup contains duplicate process ids")

    return processes


def backup_filename(today: Optional[dt.date] = None) -> str:
    today = today or dt.date.today()
    return f"invoice_splitter_backup_{today.isoformat()}.json"
