"""Minimal EdgeQL tokenizer.

Only as much of the language as is needed to find statement boundaries in
schema files and to canonicalize statements for migration ids: quoted
constructs are recognised so that semicolons and braces inside them are not
mistaken for structure, whitespace and comments are dropped.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Iterator

from migration_errors import TokenizerError


@dataclasses.dataclass(frozen=True)
class Token:
    kind: str
    value: str
    offset: int


_INSIGNIFICANT = re.compile(r"(?:\s+|#[^\n]*)+")
_STRING_START = re.compile(r"(rb|br|r|b)?(['\"])")
_DOLLAR_QUOTE = re.compile(r"\$(?:[^\W\d]\w*)?\$")
_PARAM = re.compile(r"\$(?:[^\W\d]\w*|\d+)")
_NUMBER = re.compile(r"\d[\d_]*(?:\.\d[\d_]*)?(?:[eE][+-]?\d+)?n?")
_IDENT = re.compile(r"[^\W\d]\w*")

# Longest first.
_OPERATORS = ("?!=", "?=", "??", "::", ":=", "->", "!=", "<=", ">=", "++", "//", ".<", "+=", "-=")
_PUNCTUATION = frozenset("{}()[];,.:<>=+-*/%^@?|&!")

_OPENING = frozenset("{([")
_CLOSING = frozenset("})]")


def skip_insignificant(text: str, pos: int = 0) -> int:
    """Return the first offset at or after ``pos`` that is not whitespace or a comment."""
    m = _INSIGNIFICANT.match(text, pos)
    return m.end() if m else pos


def _scan_string(text: str, start: int, body_start: int, quote: str, raw: bool) -> int:
    idx = body_start
    n = len(text)
    while idx < n:
        ch = text[idx]
        if ch == "\\" and not raw:
            idx += 2
            continue
        if ch == quote:
            return idx + 1
        idx += 1
    raise TokenizerError("unterminated string", start)


def _scan_backtick(text: str, start: int) -> int:
    idx = start + 1
    while True:
        end = text.find("`", idx)
        if end < 0:
            raise TokenizerError("unterminated backtick name", start)
        if text.startswith("``", end):
            idx = end + 2
            continue
        return end + 1


def tokenize(text: str) -> Iterator[Token]:
    pos = 0
    n = len(text)
    while True:
        pos = skip_insignificant(text, pos)
        if pos >= n:
            return
        ch = text[pos]

        m = _STRING_START.match(text, pos)
        if m:
            prefix = m.group(1) or ""
            end = _scan_string(text, pos, m.end(), m.group(2), raw="r" in prefix)
            yield Token("string", text[pos:end], pos)
            pos = end
            continue

        if ch == "`":
            end = _scan_backtick(text, pos)
            yield Token("ident", text[pos:end], pos)
            pos = end
            continue

        if ch == "$":
            m = _DOLLAR_QUOTE.match(text, pos)
            if m:
                close = text.find(m.group(0), m.end())
                if close < 0:
                    raise TokenizerError("unterminated dollar-quoted string", pos)
                end = close + len(m.group(0))
                yield Token("string", text[pos:end], pos)
                pos = end
                continue
            m = _PARAM.match(text, pos)
            if not m:
                raise TokenizerError("bare `$`", pos)
            yield Token("param", m.group(0), pos)
            pos = m.end()
            continue

        m = _NUMBER.match(text, pos)
        if m:
            yield Token("number", m.group(0), pos)
            pos = m.end()
            continue

        m = _IDENT.match(text, pos)
        if m:
            yield Token("ident", m.group(0), pos)
            pos = m.end()
            continue

        op = next((o for o in _OPERATORS if text.startswith(o, pos)), None)
        if op:
            yield Token("op", op, pos)
            pos += len(op)
            continue

        if ch in _PUNCTUATION:
            yield Token("op", ch, pos)
            pos += 1
            continue

        raise TokenizerError(f"unexpected character {ch!r}", pos)


def full_statement(text: str) -> int | None:
    """Length of the first complete top-level statement in ``text``.

    A statement ends at a semicolon outside of any bracket nesting. Returns
    None if ``text`` holds no complete statement (including when it cannot be
    tokenized before such a semicolon is reached).
    """
    depth = 0
    try:
        for token in tokenize(text):
            if token.kind != "op":
                continue
            if token.value in _OPENING:
                depth += 1
            elif token.value in _CLOSING:
                depth = max(0, depth - 1)
            elif token.value == ";" and depth == 0:
                return token.offset + 1
    except TokenizerError:
        return None
    return None


def is_empty(text: str) -> bool:
    return skip_insignificant(text) >= len(text)
