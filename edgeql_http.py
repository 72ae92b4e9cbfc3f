"""Database connection used by the migration commands.

`Connection` is the capability the migration code relies on; `HttpConnection`
implements it on top of the server's HTTP EdgeQL endpoint.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Protocol, Sequence

from migration_errors import ProtocolError

SESSION_HEADER = "X-EdgeDB-Session"


class Connection(Protocol):
    def execute(self, statement: str) -> None:
        """Run a statement, discarding its result."""

    def query(self, statement: str, params: Sequence[Any] = ()) -> list[Any]:
        """Return every row of the result."""

    def query_row(self, statement: str, params: Sequence[Any] = ()) -> Any:
        """Return the single row of the result; fail if there is none."""

    def query_row_opt(self, statement: str, params: Sequence[Any] = ()) -> Any | None:
        """Return the single row of the result, or None."""


class HttpConnection:
    def __init__(self, url: str, database: str, timeout: float = 30) -> None:
        base = url.rstrip("/")
        self.endpoint = f"{base}/db/{urllib.parse.quote(database)}/edgeql"
        self.timeout = timeout
        self.session: str | None = None

    def _post(self, statement: str, params: Sequence[Any]) -> list[Any]:
        body = {"query": statement}
        if params:
            body["variables"] = {str(idx): value for idx, value in enumerate(params)}
        req = urllib.request.Request(
            self.endpoint,
            data=json.dumps(body).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        if self.session:
            req.add_header(SESSION_HEADER, self.session)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                self.session = resp.headers.get(SESSION_HEADER) or self.session
                payload = json.loads(resp.read().decode("utf-8") or "{}")
        except urllib.error.HTTPError as e:
            payload = _error_payload(e)
        except (urllib.error.URLError, OSError) as e:
            raise ProtocolError(f"error connecting to {self.endpoint}: {e}") from e
        except ValueError as e:
            raise ProtocolError(f"malformed response from {self.endpoint}: {e}") from e

        if not isinstance(payload, dict):
            raise ProtocolError(f"malformed response from {self.endpoint}: expected a JSON object")
        error = payload.get("error")
        if error:
            if not isinstance(error, dict):
                raise ProtocolError(str(error))
            line = error.get("line")
            raise ProtocolError(error.get("message", "unknown error"), line if isinstance(line, int) else None)
        return list(payload.get("data") or [])

    def execute(self, statement: str) -> None:
        self._post(statement, ())

    def query(self, statement: str, params: Sequence[Any] = ()) -> list[Any]:
        return self._post(statement, params)

    def query_row(self, statement: str, params: Sequence[Any] = ()) -> Any:
        rows = self._post(statement, params)
        if not rows:
            raise ProtocolError("query returned no rows where exactly one was expected")
        return rows[0]

    def query_row_opt(self, statement: str, params: Sequence[Any] = ()) -> Any | None:
        rows = self._post(statement, params)
        return rows[0] if rows else None


def _error_payload(e: urllib.error.HTTPError) -> dict:
    try:
        payload = json.loads(e.read().decode("utf-8"))
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return payload
    return {"error": {"message": f"HTTP {e.code}: {e.reason}"}}
