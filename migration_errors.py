"""Exception hierarchy for the migration tools."""

from __future__ import annotations

from pathlib import Path


class MigrationError(Exception):
    """Base for every error the migration tools report."""


class MigrationIOError(MigrationError):
    """A filesystem operation failed on a specific path."""

    def __init__(self, action: str, path: Path | str, cause: OSError | None = None) -> None:
        self.action = action
        self.path = Path(path)
        self.cause = cause
        message = f"could not {action} {self.path}"
        if cause is not None:
            message += f": {cause.strerror or cause}"
        super().__init__(message)


class ProtocolError(MigrationError):
    """The database connection reported a failure.

    ``line`` is the 1-based line of the statement the server pointed at, when
    it reported one.
    """

    def __init__(self, message: str, line: int | None = None) -> None:
        self.message = message
        self.line = line
        super().__init__(message)


class ValidationError(MigrationError):
    """Input (schema files, history, config) is not acceptable."""


class TokenizerError(ValidationError):
    def __init__(self, message: str, offset: int) -> None:
        self.message = message
        self.offset = offset
        super().__init__(f"{message} at offset {offset}")


class IncompleteStatementError(ValidationError):
    def __init__(self, path: Path, line: int) -> None:
        self.path = path
        self.line = line
        super().__init__(
            f"could not read schema file {path}: final statement does not end with a semicolon "
            f"(statement starts at line {line})"
        )


class SchemaSyntaxError(ValidationError):
    def __init__(self, path: Path, line: int, reason: str) -> None:
        self.path = path
        self.line = line
        self.reason = reason
        super().__init__(f"could not read schema file {path}: {reason} at line {line}")


class InvalidMigrationFileError(ValidationError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"invalid migration file {path}: {reason}")


class HistoryMismatchError(ValidationError):
    def __init__(self, db_tip: str | None, fs_tip: str | None) -> None:
        self.db_tip = db_tip
        self.fs_tip = fs_tip
        super().__init__(
            "Database must be updated to the last migration on the filesystem "
            "for `create-migration`. Run:\n  edgedb migrate"
        )


class AmbiguousPrefixError(ValidationError):
    def __init__(self, prefix: str, names: list[str]) -> None:
        self.prefix = prefix
        self.names = names
        super().__init__(f"more than one migration matches prefix {prefix!r}")


class ConfigError(ValidationError):
    pass


class UserInputRequiredError(MigrationError):
    """A high-confidence statement needs input nobody can give in non-interactive mode."""

    def __init__(self, statement: str, prompts: list[str]) -> None:
        self.statement = statement
        self.prompts = prompts
        super().__init__(f"cannot apply `{statement}` without user input")


class TooManyRoundsError(MigrationError):
    def __init__(self, rounds: int) -> None:
        self.rounds = rounds
        super().__init__(
            f"migration was not resolved after {rounds} describe rounds; "
            "the remaining proposals need a decision that cannot be made automatically"
        )


class NotImplementedInteractiveError(MigrationError):
    def __init__(self) -> None:
        super().__init__(
            "interactive mode is not implemented yet, try:\n  edgedb-create-migration --non-interactive"
        )


class CombinedError(MigrationError):
    """Creation failed and aborting the speculative migration failed too."""

    def __init__(self, primary: BaseException, abort_error: BaseException) -> None:
        self.primary = primary
        self.abort_error = abort_error
        super().__init__(f"{primary}\n(additionally, ABORT MIGRATION failed: {abort_error})")
