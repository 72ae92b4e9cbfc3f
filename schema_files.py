"""Collect `*.esdl` schema files into a single START MIGRATION block."""

from __future__ import annotations

from pathlib import Path

from edgeql_tokens import full_statement, is_empty, skip_insignificant, tokenize
from migration_errors import IncompleteStatementError, MigrationIOError, SchemaSyntaxError, TokenizerError
from sourcemap import PREFIX, SUFFIX, Builder, SourceMap

SCHEMA_SUFFIX = ".esdl"
START_MIGRATION_PREFIX = "START MIGRATION TO {"
START_MIGRATION_SUFFIX = "};"


def check_complete_statements(text: str, path: Path) -> None:
    offset = 0
    while True:
        shift = full_statement(text[offset:])
        if shift is None:
            break
        offset += shift
    rest = text[offset:]
    if is_empty(rest):
        return
    try:
        for _ in tokenize(rest):
            pass
    except TokenizerError as exc:
        line = text.count("\n", 0, offset + exc.offset) + 1
        raise SchemaSyntaxError(path, line, exc.message) from exc
    start = offset + skip_insignificant(rest)
    raise IncompleteStatementError(path, text.count("\n", 0, start) + 1)


def read_schema_file(path: Path) -> str:
    try:
        data = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MigrationIOError("read schema file", path, exc) from exc
    check_complete_statements(data, path)
    return data


def list_schema_files(schema_dir: Path) -> list[Path]:
    try:
        entries = list(schema_dir.iterdir())
    except OSError as exc:
        raise MigrationIOError("read schema in", schema_dir, exc) from exc
    files = [
        p
        for p in entries
        if not p.name.startswith(".") and p.name.endswith(SCHEMA_SUFFIX) and p.is_file()
    ]
    # Directory order differs between platforms.
    return sorted(files, key=lambda p: p.name)


def gen_start_migration(schema_dir: Path) -> tuple[str, SourceMap]:
    bld = Builder()
    bld.add_lines(PREFIX, START_MIGRATION_PREFIX)
    for path in list_schema_files(schema_dir):
        bld.add_lines(path, read_schema_file(path))
    bld.add_lines(SUFFIX, START_MIGRATION_SUFFIX)
    return bld.done()
