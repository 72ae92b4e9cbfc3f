#!/usr/bin/env python3
"""Create the next migration script from the schema directory.

The server is asked to migrate speculatively to the schema found in
`<schema-dir>/*.esdl`; statements it proposes with high confidence are
applied until it has nothing left to propose, the confirmed statements are
written to `<schema-dir>/migrations/NNNNN.edgeql`, and the speculative
migration is aborted.

Usage:
    python create_migration.py --non-interactive [--schema-dir DIR] [--url URL]
"""

from __future__ import annotations

import argparse
import contextlib
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any, Iterator

import db_migration
import migration_file
from edgeql_http import Connection, HttpConnection
from md_render import render
from migration_context import Context, from_config
from migration_errors import (
    CombinedError,
    HistoryMismatchError,
    MigrationError,
    NotImplementedInteractiveError,
    ProtocolError,
    TooManyRoundsError,
    UserInputRequiredError,
)
from schema_files import gen_start_migration
from sourcemap import SourceMap

SAFE_CONFIDENCE = 0.99999
DESCRIBE_QUERY = "DESCRIBE CURRENT MIGRATION AS JSON"
ABORT_MIGRATION = "ABORT MIGRATION"


@dataclasses.dataclass
class RequiredUserInput:
    name: str
    prompt: str


@dataclasses.dataclass
class StatementProposal:
    text: str
    required_user_input: list[RequiredUserInput] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class Proposal:
    statements: list[StatementProposal]
    confidence: float
    prompt: str | None = None


@dataclasses.dataclass
class CurrentMigration:
    confirmed: list[str]
    proposed: list[Proposal]

    @classmethod
    def from_json(cls, data: Any) -> "CurrentMigration":
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError as exc:
                raise ProtocolError(f"malformed migration description: {exc}") from exc
        try:
            return cls(
                confirmed=list(data["confirmed"]),
                proposed=[
                    Proposal(
                        statements=[
                            StatementProposal(
                                text=s["text"],
                                required_user_input=[
                                    RequiredUserInput(name=i["name"], prompt=i["prompt"])
                                    for i in s.get("required_user_input") or []
                                ],
                            )
                            for s in p["statements"]
                        ],
                        confidence=float(p["confidence"]),
                        prompt=p.get("prompt"),
                    )
                    for p in data["proposed"]
                ],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ProtocolError(f"malformed migration description: {exc!r}") from exc


@dataclasses.dataclass
class CreatedMigration:
    path: Path
    id: str
    parent_id: str
    statements: list[str]


def describe_current_migration(conn: Connection) -> CurrentMigration:
    return CurrentMigration.from_json(conn.query_row(DESCRIBE_QUERY))


def run_non_interactive(conn: Connection, round_limit: int) -> CurrentMigration:
    """Apply safe proposals until the server has nothing left to propose."""
    for _ in range(round_limit):
        descr = describe_current_migration(conn)
        if not descr.proposed:
            return descr
        for proposal in descr.proposed:
            if proposal.confidence < SAFE_CONFIDENCE:
                continue
            for statement in proposal.statements:
                if statement.required_user_input:
                    for item in statement.required_user_input:
                        print(f"[input] Input required: {item.prompt}", file=sys.stderr)
                    raise UserInputRequiredError(
                        statement.text, [item.prompt for item in statement.required_user_input]
                    )
                conn.execute(statement.text)
    raise TooManyRoundsError(round_limit)


def start_migration(conn: Connection, text: str, sourcemap: SourceMap) -> None:
    try:
        conn.execute(text)
    except ProtocolError as exc:
        location = sourcemap.translate(exc.line) if exc.line is not None else None
        if location is None:
            raise
        source, line = location
        raise ProtocolError(f"{source}:{line}: {exc.message}", exc.line) from exc


@contextlib.contextmanager
def speculative_migration(conn: Connection, text: str, sourcemap: SourceMap) -> Iterator[None]:
    """Start a migration to ``text`` and abort it however the block exits."""
    start_migration(conn, text, sourcemap)
    try:
        yield
    except Exception as exc:
        try:
            conn.execute(ABORT_MIGRATION)
        except Exception as abort_exc:
            raise CombinedError(exc, abort_exc) from exc
        raise
    except BaseException:
        # interrupted: still try to abort, but let the interruption through
        try:
            conn.execute(ABORT_MIGRATION)
        except Exception as abort_exc:
            print(f"[abort] ABORT MIGRATION failed: {abort_exc}", file=sys.stderr)
        raise
    conn.execute(ABORT_MIGRATION)


def check_history(conn: Connection, ctx: Context) -> dict[str, migration_file.MigrationFile]:
    """Return the local history if the server is at its tip."""
    local = migration_file.read_all(ctx.migrations_dir, validate=True)
    applied = db_migration.read_all(conn, fetch_script=False, include_dev_mode=True)
    db_tip = next(reversed(applied), None)
    fs_tip = next(reversed(local), None)
    if db_tip != fs_tip:
        raise HistoryMismatchError(db_tip, fs_tip)
    return local


def create(conn: Connection, ctx: Context, non_interactive: bool = True) -> CreatedMigration:
    local = check_history(conn, ctx)
    if not non_interactive:
        raise NotImplementedInteractiveError()
    text, sourcemap = gen_start_migration(ctx.schema_dir)
    index = len(local) + 1

    with speculative_migration(conn, text, sourcemap):
        descr = run_non_interactive(conn, ctx.describe_round_limit)
        parent = db_migration.last_migration_name(conn) or migration_file.INITIAL_PARENT
        statements = descr.confirmed
        migration_id = migration_file.statements_id(parent, statements)
        path = migration_file.write_migration(ctx.migrations_dir, index, migration_id, parent, statements)
    return CreatedMigration(path=path, id=migration_id, parent_id=parent, statements=statements)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a migration script from the schema directory")
    parser.add_argument("--config", help="YAML project config (default: migrations.yaml if present)")
    parser.add_argument("--schema-dir", help="Directory with *.esdl files (default: dbschema)")
    parser.add_argument("--url", help="Server base URL")
    parser.add_argument("--database", help="Database name")
    parser.add_argument("--round-limit", type=int, help="Maximum number of describe rounds")
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Apply only statements the server is confident about, never prompt",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        ctx = from_config(
            Path(args.config) if args.config else None,
            schema_dir=args.schema_dir,
            url=args.url,
            database=args.database,
            round_limit=args.round_limit,
        )
        conn = HttpConnection(ctx.url, ctx.database, ctx.timeout)
        created = create(conn, ctx, non_interactive=args.non_interactive)
    except MigrationError as exc:
        print(render(f"error: {exc}"), end="", file=sys.stderr)
        return 1

    if not created.statements:
        print("[create] No schema changes detected, wrote an empty migration", file=sys.stderr)
    print(f"Created {created.path}, id: {created.id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
