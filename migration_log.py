#!/usr/bin/env python3
"""Show migration history from the filesystem or from the server.

Usage:
    python migration_log.py --from-fs [--schema-dir DIR]
    python migration_log.py --from-db [--include-dev-mode] [--url URL]
    python migration_log.py --show PREFIX [--url URL]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import db_migration
import migration_file
from edgeql_http import HttpConnection
from md_render import render
from migration_context import from_config
from migration_errors import MigrationError


def format_db_migration(migration: db_migration.DBMigration) -> str:
    lines = [f"name: {migration.name}"]
    lines.append("parents: " + (", ".join(migration.parent_names) or "(root)"))
    generated_by = migration.generated_by
    if generated_by is not None:
        tag = generated_by.value if isinstance(generated_by, db_migration.GeneratedBy) else generated_by.raw
        lines.append(f"generated by: {tag}")
    if migration.script:
        lines.append("")
        lines.append(migration.script.rstrip())
    return "\n".join(lines) + "\n"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Show migration history")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--from-fs", action="store_true", help="List migrations in the schema directory")
    source.add_argument("--from-db", action="store_true", help="List migrations applied on the server")
    source.add_argument("--show", metavar="PREFIX", help="Print the server migration whose name starts with PREFIX")
    parser.add_argument("--include-dev-mode", action="store_true", help="Also list dev-mode migrations")
    parser.add_argument("--config", help="YAML project config (default: migrations.yaml if present)")
    parser.add_argument("--schema-dir", help="Directory with *.esdl files (default: dbschema)")
    parser.add_argument("--url", help="Server base URL")
    parser.add_argument("--database", help="Database name")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        ctx = from_config(
            Path(args.config) if args.config else None,
            schema_dir=args.schema_dir,
            url=args.url,
            database=args.database,
        )
        if args.from_fs:
            for migration in migration_file.read_all(ctx.migrations_dir, validate=False).values():
                print(migration.id)
            return 0

        conn = HttpConnection(ctx.url, ctx.database, ctx.timeout)
        if args.from_db:
            for name in db_migration.read_all(conn, fetch_script=False, include_dev_mode=args.include_dev_mode):
                print(name)
            return 0

        migration = db_migration.find_by_prefix(conn, args.show)
    except MigrationError as exc:
        print(render(f"error: {exc}"), end="", file=sys.stderr)
        return 1

    if migration is None:
        print(f"[log] no migration matches prefix {args.show!r}", file=sys.stderr)
        return 1
    print(format_db_migration(migration), end="")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
