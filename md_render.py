"""Plain-text rendering of the markdown snippets shown to users."""

from __future__ import annotations


def prepare_markdown(text: str) -> str:
    """Strip the indentation common to all non-blank lines."""
    lines = text.splitlines()
    indents = [len(line) - len(line.lstrip()) for line in lines if line.strip()]
    min_indent = min(indents, default=0)
    if min_indent == 0:
        return text
    return "".join(line[min_indent:] + "\n" for line in lines)


def render(text: str) -> str:
    return prepare_markdown(text).strip("\n") + "\n"
