"""Migration records as reported by the server, and their linear order."""

from __future__ import annotations

import dataclasses
import enum
from collections import defaultdict
from typing import Any, Iterable, Union

from edgeql_http import Connection
from migration_errors import AmbiguousPrefixError


class GeneratedBy(enum.Enum):
    DEV_MODE = "DevMode"
    DDL_STATEMENT = "DDLStatement"


@dataclasses.dataclass(frozen=True)
class UnknownGeneratedBy:
    """A generator tag this client does not know about yet."""

    raw: str


def parse_generated_by(raw: str | None) -> Union[GeneratedBy, UnknownGeneratedBy, None]:
    if raw is None:
        return None
    try:
        return GeneratedBy(raw)
    except ValueError:
        return UnknownGeneratedBy(raw)


@dataclasses.dataclass(frozen=True)
class DBMigration:
    name: str
    script: str = ""
    parent_names: tuple[str, ...] = ()
    generated_by: Union[GeneratedBy, UnknownGeneratedBy, None] = None

    @property
    def is_root(self) -> bool:
        return not self.parent_names

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "DBMigration":
        return cls(
            name=row["name"],
            script=row.get("script") or "",
            parent_names=tuple(row.get("parent_names") or ()),
            generated_by=parse_generated_by(row.get("generated_by")),
        )


def linearize_db_migrations(migrations: Iterable[DBMigration]) -> dict[str, DBMigration]:
    """Order migration records so that parents come before children.

    Traversal is depth-first over a stack seeded with the roots in input
    order: the most recently discovered child is visited next. A child is
    pushed once every parent that is present in the input has been emitted,
    so a merge record follows all of its known parents. Parent names missing
    from the input are ignored; records unreachable from a root are dropped.
    """
    records = list(migrations)
    index_by_name = {m.name: idx for idx, m in enumerate(records)}

    children: dict[str, list[int]] = defaultdict(list)
    pending: list[int] = []
    for idx, item in enumerate(records):
        known = {p for p in item.parent_names if p in index_by_name}
        pending.append(len(known))
        for parent in known:
            children[parent].append(idx)

    output: dict[str, DBMigration] = {}
    stack = [idx for idx, item in enumerate(records) if item.is_root]
    while stack:
        item = records[stack.pop()]
        if item.name in output:
            continue
        output[item.name] = item
        for child in children.pop(item.name, []):
            pending[child] -= 1
            if pending[child] == 0 and records[child].name not in output:
                stack.append(child)
    return output


READ_ALL_QUERY = """
    SELECT schema::Migration {
        name,
        script := .script if <bool>$0 else "",
        parent_names := .parents.name,
        generated_by,
    }
    FILTER
        <bool>$1
        OR .generated_by ?!= schema::MigrationGeneratedBy.DevMode
"""

FIND_BY_PREFIX_QUERY = """
    SELECT schema::Migration {
        name,
        script,
        parent_names := .parents.name,
        generated_by,
    }
    FILTER .name LIKE <str>$0
"""

LAST_MIGRATION_QUERY = """
    WITH Last := (SELECT schema::Migration
                  FILTER NOT EXISTS .<parents[IS schema::Migration])
    SELECT Last.name
"""


def read_all(conn: Connection, fetch_script: bool, include_dev_mode: bool) -> dict[str, DBMigration]:
    rows = conn.query(READ_ALL_QUERY, (fetch_script, include_dev_mode))
    return linearize_db_migrations(DBMigration.from_row(row) for row in rows)


def find_by_prefix(conn: Connection, prefix: str) -> DBMigration | None:
    rows = conn.query(FIND_BY_PREFIX_QUERY, (f"{prefix}%",))
    if not rows:
        return None
    if len(rows) > 1:
        raise AmbiguousPrefixError(prefix, sorted(row["name"] for row in rows))
    return DBMigration.from_row(rows[0])


def last_migration_name(conn: Connection) -> str | None:
    return conn.query_row_opt(LAST_MIGRATION_QUERY)
