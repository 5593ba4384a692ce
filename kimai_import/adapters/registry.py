"""All supported input formats and the header based format selection."""

import logging
from typing import List, Optional, Sequence

from kimai_import.adapters.base import FormatAdapter
from kimai_import.adapters.customers import customer_adapter, grandtotal_adapter, project_adapter
from kimai_import.adapters.timesheet import timesheet_adapter
from kimai_import.adapters.vendors import clockify_adapter, toggl_adapter
from kimai_import.exceptions import AmbiguousFormatError, MissingColumnsError

log = logging.getLogger(__name__)

ADAPTERS: List[FormatAdapter] = [
    timesheet_adapter,
    clockify_adapter,
    toggl_adapter,
    customer_adapter,
    grandtotal_adapter,
    project_adapter,
]


def get_adapter(name: str) -> FormatAdapter:
    for adapter in ADAPTERS:
        if adapter.name == name:
            return adapter
    raise AmbiguousFormatError()


def select_adapter(header: Sequence[str], name: Optional[str] = None) -> FormatAdapter:
    """
    Returns the adapter for ``header``.

    With an explicit ``name`` the header must satisfy that adapter, otherwise
    exactly one registered adapter has to claim it.
    """
    if name:
        adapter = get_adapter(name)
        invalid = adapter.missing_columns(header) | adapter.conflicting_columns(header)
        if invalid:
            raise MissingColumnsError(invalid)
        return adapter

    candidates = [adapter for adapter in ADAPTERS if adapter.supports(header)]
    if len(candidates) == 1:
        log.debug(f"Detected import format '{candidates[0].name}' for header {list(header)}")
        return candidates[0]
    if candidates:
        raise AmbiguousFormatError([adapter.name for adapter in candidates])
    raise AmbiguousFormatError()
