"""Per-row results passed from the mappers to the batch loops."""

import logging
from typing import Any, List, NamedTuple, Union

from sqlalchemy.exc import SQLAlchemyError

from kimai_import.constants.row_errors import RowErrorCode, explain_error
from kimai_import.schemas.import_data import ImportRow, RowStatus

log = logging.getLogger(__name__)


class Ok(NamedTuple):
    entity: Any


class Err(NamedTuple):
    errors: List[str]


RowOutcome = Union[Ok, Err]


class RowError(Exception):
    """Raised inside a mapper only, turned into ``Err`` before it returns."""

    def __init__(self, messages):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


def persist(store, entity) -> RowOutcome:
    """Saves ``entity``; a store failure is rolled back and becomes a row error."""
    try:
        store.save(entity)
    except SQLAlchemyError as e:
        store.rollback()
        detail = str(getattr(e, "orig", None) or e)
        log.error(f"Failed to save {entity!r}: {detail}")
        return Err([explain_error(RowErrorCode.SAVE_FAILED, {"error_detail": detail})])
    return Ok(entity)


def apply_outcome(row: ImportRow, outcome: RowOutcome, dry_run: bool) -> None:
    if isinstance(outcome, Err):
        for message in outcome.errors:
            row.add_error(message)
        return
    row.status = RowStatus.SKIPPED if dry_run else RowStatus.PERSISTED
