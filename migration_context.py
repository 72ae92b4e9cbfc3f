"""Project settings for the migration commands.

Settings come from an optional YAML file (``migrations.yaml`` by default)
and can be overridden on the command line::

    schema_dir: dbschema
    describe_round_limit: 100
    server:
      url: http://localhost:10706
      database: edgedb
      timeout: 30
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any

import yaml

from migration_errors import ConfigError, MigrationIOError
from migration_file import migrations_dir

DEFAULT_CONFIG = "migrations.yaml"
DEFAULT_SCHEMA_DIR = "dbschema"
DEFAULT_ROUND_LIMIT = 100
DEFAULT_URL = "http://localhost:10706"
DEFAULT_DATABASE = "edgedb"
DEFAULT_TIMEOUT = 30.0


@dataclasses.dataclass
class Context:
    schema_dir: Path
    describe_round_limit: int = DEFAULT_ROUND_LIMIT
    url: str = DEFAULT_URL
    database: str = DEFAULT_DATABASE
    timeout: float = DEFAULT_TIMEOUT

    @property
    def migrations_dir(self) -> Path:
        return migrations_dir(self.schema_dir)


def load_config(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise MigrationIOError("read config", path, exc) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    server = raw.get("server") or {}
    if not isinstance(server, dict):
        raise ConfigError(f"{path}: `server` must be a mapping")
    return raw


def _positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"`{name}` must be a positive integer, got {value!r}")
    return value


def from_config(
    config_path: Path | None = None,
    *,
    schema_dir: str | None = None,
    url: str | None = None,
    database: str | None = None,
    round_limit: int | None = None,
) -> Context:
    """Build a Context from the config file (if any) and explicit overrides."""
    cfg: dict[str, Any] = {}
    base = Path.cwd()
    if config_path is None and Path(DEFAULT_CONFIG).exists():
        config_path = Path(DEFAULT_CONFIG)
    if config_path is not None:
        cfg = load_config(config_path)
        base = config_path.resolve().parent

    server = cfg.get("server") or {}
    if schema_dir is not None:
        resolved_schema_dir = Path(schema_dir)
    else:
        resolved_schema_dir = base / cfg.get("schema_dir", DEFAULT_SCHEMA_DIR)

    timeout = server.get("timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(f"`server.timeout` must be a positive number, got {timeout!r}")

    return Context(
        schema_dir=resolved_schema_dir,
        describe_round_limit=_positive_int(
            round_limit if round_limit is not None else cfg.get("describe_round_limit", DEFAULT_ROUND_LIMIT),
            "describe_round_limit",
        ),
        url=url or server.get("url", DEFAULT_URL),
        database=database or server.get("database", DEFAULT_DATABASE),
        timeout=float(timeout),
    )
