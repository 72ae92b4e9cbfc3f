"""Migration scripts on disk: `<schema-dir>/migrations/NNNNN.edgeql`."""

from __future__ import annotations

import dataclasses
import os
import re
from pathlib import Path
from typing import Sequence

from migration_errors import InvalidMigrationFileError, MigrationIOError, TokenizerError
from migration_hash import Hasher, make_migration_id

MIGRATIONS_SUBDIR = "migrations"
INITIAL_PARENT = "initial"
STATEMENT_INDENT = "  "

_FILENAME_RE = re.compile(r"^(\d+)\.edgeql$")
_MIGRATION_RE = re.compile(
    r"^\s*CREATE\s+MIGRATION\s+(\S+)\s+ONTO\s+(\S+)\s*\{(.*)\}\s*;\s*$",
    flags=re.S,
)


@dataclasses.dataclass(frozen=True)
class MigrationFile:
    path: Path
    index: int
    id: str
    parent_id: str
    body: str


def migrations_dir(schema_dir: Path) -> Path:
    return schema_dir / MIGRATIONS_SUBDIR


def migration_path(directory: Path, index: int) -> Path:
    return directory / f"{index:05d}.edgeql"


def temp_path(path: Path) -> Path:
    return path.with_name(f".~{path.name}.tmp")


def terminate_statements(statements: Sequence[str]) -> list[str]:
    return [statement + ";" for statement in statements]


def statements_id(parent_id: str, statements: Sequence[str]) -> str:
    """Id of a migration with these confirmed (unterminated) statements."""
    return make_migration_id(parent_id, terminate_statements(statements))


def render_migration(migration_id: str, parent_id: str, statements: Sequence[str]) -> str:
    lines = [f"CREATE MIGRATION {migration_id}", f"    ONTO {parent_id}", "{"]
    for statement in terminate_statements(statements):
        for line in statement.split("\n"):
            lines.append(f"{STATEMENT_INDENT}{line}")
    lines.append("};")
    return "\n".join(lines) + "\n"


def unindent_body(body: str) -> str:
    """Undo the indent the writer puts in front of every statement line.

    Lines inside multi-line string literals were indented too, so this has to
    run before the body is hashed.
    """
    return "\n".join(
        line[len(STATEMENT_INDENT):] if line.startswith(STATEMENT_INDENT) else line
        for line in body.split("\n")
    )


def write_migration(
    directory: Path,
    index: int,
    migration_id: str,
    parent_id: str,
    statements: Sequence[str],
) -> Path:
    """Write a migration script so readers only ever see complete files.

    ``statements`` are the confirmed statements without terminators; each one
    gets its semicolon here. Content goes to a hidden temp file next to the
    target, which is then renamed over the target.
    """
    path = migration_path(directory, index)
    tmp = temp_path(path)
    content = render_migration(migration_id, parent_id, statements)

    if not path.exists():
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise MigrationIOError("create migrations directory", directory, exc) from exc
    try:
        tmp.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        raise MigrationIOError("remove stale temp file", tmp, exc) from exc

    try:
        with open(tmp, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
    except OSError as exc:
        raise MigrationIOError("write migration file", tmp, exc) from exc
    try:
        os.replace(tmp, path)
    except OSError as exc:
        raise MigrationIOError("write migration file", path, exc) from exc
    return path


def parse_migration_file(path: Path, index: int) -> MigrationFile:
    try:
        with open(path, encoding="utf-8", newline="") as fh:
            text = fh.read()
    except OSError as exc:
        raise MigrationIOError("read migration file", path, exc) from exc
    m = _MIGRATION_RE.match(text)
    if not m:
        raise InvalidMigrationFileError(path, "expected `CREATE MIGRATION <id> ONTO <parent> { ... };`")
    return MigrationFile(path=path, index=index, id=m.group(1), parent_id=m.group(2), body=m.group(3))


def read_all(directory: Path, validate: bool) -> dict[str, MigrationFile]:
    """Read the local migration history in sequence order, keyed by id."""
    if not directory.exists():
        return {}
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise MigrationIOError("read migrations in", directory, exc) from exc

    numbered: list[tuple[int, Path]] = []
    for path in entries:
        m = _FILENAME_RE.match(path.name)
        if m and path.is_file():
            numbered.append((int(m.group(1)), path))
    numbered.sort()

    result: dict[str, MigrationFile] = {}
    parent = INITIAL_PARENT
    for expected, (index, path) in enumerate(numbered, 1):
        if index != expected:
            raise InvalidMigrationFileError(path, f"expected migration number {expected}, found {index}")
        migration = parse_migration_file(path, index)
        if migration.parent_id != parent:
            raise InvalidMigrationFileError(
                path, f"migration is based on {migration.parent_id} but the previous one is {parent}"
            )
        if validate:
            hasher = Hasher(migration.parent_id)
            try:
                hasher.source(unindent_body(migration.body))
            except TokenizerError as exc:
                raise InvalidMigrationFileError(path, str(exc)) from exc
            actual = hasher.make_id()
            if actual != migration.id:
                raise InvalidMigrationFileError(
                    path, f"migration name should be {actual!r} but {migration.id!r} is used instead"
                )
        if migration.id in result:
            raise InvalidMigrationFileError(path, f"duplicate migration name {migration.id}")
        result[migration.id] = migration
        parent = migration.id
    return result
