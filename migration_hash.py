"""Content-addressed migration ids.

The id covers the parent id and the token stream of every statement, so
two migrations written independently from the same parent with the same
statements get the same name regardless of formatting or comments. The
byte layout fed to the digest must never change: ids already recorded by
servers are checked against it.
"""

from __future__ import annotations

import base64
import hashlib
from typing import Iterable

from edgeql_tokens import tokenize

ID_PREFIX = "m1"


class Hasher:
    def __init__(self, parent_id: str) -> None:
        self._digest = hashlib.sha256()
        self._digest.update(b"CREATE\0MIGRATION\0ONTO\0")
        self._digest.update(parent_id.encode("utf-8"))
        self._digest.update(b"\0{\0")

    def source(self, statement: str) -> None:
        # Tokenize everything first so a bad statement leaves the digest untouched.
        tokens = list(tokenize(statement))
        for token in tokens:
            self._digest.update(token.value.encode("utf-8"))
            self._digest.update(b"\0")

    def make_id(self) -> str:
        digest = self._digest.copy()
        digest.update(b"}\0")
        encoded = base64.b32encode(digest.digest()).decode("ascii").rstrip("=").lower()
        return ID_PREFIX + encoded


def make_migration_id(parent_id: str, statements: Iterable[str]) -> str:
    hasher = Hasher(parent_id)
    for statement in statements:
        hasher.source(statement)
    return hasher.make_id()
