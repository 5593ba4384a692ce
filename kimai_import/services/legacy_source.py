"""Read-only access to the tables of a Kimai v1 installation."""

import logging
import re
from itertools import zip_longest
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import MetaData, Table, create_engine, func, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from kimai_import.exceptions import LegacySourceError

log = logging.getLogger(__name__)

MIN_VERSION = "1.0.1"
MIN_REVISION = "1388"

REQUIRED_TABLES = (
    "preferences",
    "users",
    "customers",
    "projects",
    "activities",
    "projects_activities",
    "timeSheet",
    "fixedRates",
    "rates",
    "groups",
    "groups_customers",
    "groups_projects",
    "groups_users",
    "groups_activities",
)

# Ordering of the special version parts; unknown words sort below "dev".
_SPECIAL_PARTS = {"dev": 0, "alpha": 1, "a": 1, "beta": 2, "b": 2, "rc": 3, "#": 4, "pl": 5, "p": 5}


def _canonical_parts(version: str) -> List[str]:
    version = re.sub(r"[-_+]", ".", str(version).strip())
    version = re.sub(r"(?<=\d)(?=[^\d.])|(?<=[^\d.])(?=\d)", ".", version)
    return [part for part in version.split(".") if part != ""]


def _rank(part: str) -> int:
    if part.isdigit():
        return _SPECIAL_PARTS["#"]
    return _SPECIAL_PARTS.get(part.lower(), -1)


def _cmp(left, right) -> int:
    return (left > right) - (left < right)


def compare_versions(left: str, right: str) -> int:
    """-1, 0 or 1, ordering versions like ``1.0.1``, ``1.0rc1`` or ``1388``."""
    for a, b in zip_longest(_canonical_parts(left), _canonical_parts(right)):
        if a is None:
            return -1 if b.isdigit() else _cmp(_SPECIAL_PARTS["#"], _rank(b))
        if b is None:
            return 1 if a.isdigit() else _cmp(_rank(a), _SPECIAL_PARTS["#"])
        if a.isdigit() and b.isdigit():
            result = _cmp(int(a), int(b))
        else:
            result = _cmp(_rank(a), _rank(b))
        if result != 0:
            return result
    return 0


class LegacySource:
    """
    Reflected tables of one Kimai v1 instance, identified by its table prefix.

    Several instances may live in the same database, so one engine can be
    shared between sources with different prefixes. Nothing here writes.
    """

    def __init__(self, url: Optional[str] = None, prefix: str = "kimai_", engine: Optional[Engine] = None):
        if engine is None and url is None:
            raise ValueError("Either url or engine is required")
        self.engine = engine if engine is not None else create_engine(url)
        self.prefix = prefix
        self.metadata = MetaData()
        self._tables: Dict[str, Table] = {}

    def table(self, name: str) -> Table:
        full_name = self.prefix + name
        if full_name not in self._tables:
            self._tables[full_name] = Table(full_name, self.metadata, autoload_with=self.engine)
        return self._tables[full_name]

    def fetch_all(self, name: str, **where: Any) -> List[Dict[str, Any]]:
        table = self.table(name)
        query = select(table)
        for column, value in where.items():
            query = query.where(table.c[column] == value)
        with self.engine.connect() as connection:
            return [dict(row._mapping) for row in connection.execute(query)]

    def iterate(self, name: str) -> Iterator[Dict[str, Any]]:
        """Streams all rows of a table, for the big ones."""
        table = self.table(name)
        with self.engine.connect() as connection:
            result = connection.execution_options(stream_results=True).execute(select(table))
            for row in result:
                yield dict(row._mapping)

    def count(self, name: str) -> int:
        table = self.table(name)
        with self.engine.connect() as connection:
            return connection.execute(select(func.count()).select_from(table)).scalar_one()

    def get_option(self, option: str) -> Optional[str]:
        table = self.table("configuration")
        with self.engine.connect() as connection:
            value = connection.execute(
                select(table.c["value"]).where(table.c["option"] == option)
            ).scalar()
        return None if value is None else str(value)

    def check_version(self) -> None:
        """Raises LegacySourceError unless this is a complete and recent Kimai v1 database."""
        try:
            version = self.get_option("version") or "0.0"
            revision = self.get_option("revision") or "0"
        except SQLAlchemyError as e:
            log.debug(f"Reading {self.prefix}configuration failed: {e}")
            raise LegacySourceError(
                f'Cannot read from table "{self.prefix}configuration", make sure that your prefix "{self.prefix}" is correct.'
            )

        if compare_versions(MIN_VERSION, version) > 0:
            raise LegacySourceError(
                "Import can only performed from an up-to-date Kimai version: "
                f"Needs at least {MIN_VERSION} but found {version}"
            )

        if compare_versions(MIN_REVISION, revision) > 0:
            raise LegacySourceError(
                "Import can only performed from an up-to-date Kimai version: "
                f"Database revision needs to be {MIN_REVISION} but found {revision}"
            )

        existing = set(inspect(self.engine).get_table_names())
        required = [self.prefix + name for name in REQUIRED_TABLES]
        if not all(name in existing for name in required):
            raise LegacySourceError(
                "Import cannot be started, missing tables. Required are: " + ", ".join(required)
            )

        log.info(f"Kimai v1 database with prefix '{self.prefix}' has version {version}, revision {revision}")
