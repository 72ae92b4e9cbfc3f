"""In-memory stand-in for a server connection, recording every statement."""

from __future__ import annotations

import json
from typing import Any, Sequence

import db_migration
from create_migration import DESCRIBE_QUERY
from migration_errors import ProtocolError


def describe(confirmed: list[str], proposed: list[dict] | None = None) -> str:
    return json.dumps({"confirmed": confirmed, "proposed": proposed or []})


def proposal(*texts: str, confidence: float = 1.0, inputs: list[dict] | None = None) -> dict:
    return {
        "statements": [{"text": t, "required_user_input": inputs or []} for t in texts],
        "confidence": confidence,
        "prompt": "did you create object type 'default::Foo'?",
    }


class FakeConnection:
    def __init__(
        self,
        migrations: list[dict] | None = None,
        descriptions: list[str] | None = None,
        tip: str | None = None,
        fail_on: dict[str, BaseException] | None = None,
    ) -> None:
        self.migrations = list(migrations or [])
        self.descriptions = list(descriptions or [])
        self.tip = tip
        self.fail_on = dict(fail_on or {})
        self.executed: list[str] = []
        self.queries: list[tuple[str, tuple]] = []

    def execute(self, statement: str) -> None:
        self.executed.append(statement)
        for prefix, exc in self.fail_on.items():
            if statement.startswith(prefix):
                raise exc

    def query(self, statement: str, params: Sequence[Any] = ()) -> list[Any]:
        self.queries.append((statement, tuple(params)))
        if statement == db_migration.READ_ALL_QUERY:
            return list(self.migrations)
        if statement == db_migration.FIND_BY_PREFIX_QUERY:
            prefix = params[0].rstrip("%")
            return [m for m in self.migrations if m["name"].startswith(prefix)]
        raise ProtocolError(f"unexpected query: {statement}")

    def query_row(self, statement: str, params: Sequence[Any] = ()) -> Any:
        self.queries.append((statement, tuple(params)))
        if statement == DESCRIBE_QUERY:
            if not self.descriptions:
                raise ProtocolError("no migration in progress")
            if len(self.descriptions) > 1:
                return self.descriptions.pop(0)
            return self.descriptions[0]
        raise ProtocolError(f"unexpected query: {statement}")

    def query_row_opt(self, statement: str, params: Sequence[Any] = ()) -> Any | None:
        self.queries.append((statement, tuple(params)))
        if statement == db_migration.LAST_MIGRATION_QUERY:
            return self.tip
        raise ProtocolError(f"unexpected query: {statement}")
