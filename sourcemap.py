"""Line-level source map for text assembled from several chunks."""

from __future__ import annotations

import bisect
import dataclasses
import re
from pathlib import Path
from typing import Union

PREFIX = "<prefix>"
SUFFIX = "<suffix>"

Source = Union[str, Path]

_LINE = re.compile(r"[^\n]*\n|[^\n]+\Z")


@dataclasses.dataclass(frozen=True)
class SourceMapEntry:
    source: Source
    start_output_line: int
    original_line_offset: int = 0


@dataclasses.dataclass(frozen=True)
class SourceMap:
    entries: tuple[SourceMapEntry, ...]
    total_lines: int

    def translate(self, output_line: int) -> tuple[Source, int] | None:
        """Map a 1-based output line to ``(source, 1-based line within source)``."""
        if output_line < 1 or output_line > self.total_lines or not self.entries:
            return None
        starts = [e.start_output_line for e in self.entries]
        idx = bisect.bisect_right(starts, output_line) - 1
        entry = self.entries[idx]
        return entry.source, output_line - entry.start_output_line + entry.original_line_offset + 1


class Builder:
    def __init__(self) -> None:
        self._chunks: list[str] = []
        self._entries: list[SourceMapEntry] = []
        self._next_line = 1

    def add_lines(self, source: Source, text: str, first_line: int = 1) -> None:
        """Append ``text``, whose first line is line ``first_line`` of ``source``."""
        lines = _LINE.findall(text)
        if not lines:
            return
        if not lines[-1].endswith("\n"):
            lines[-1] += "\n"
        self._entries.append(SourceMapEntry(source, self._next_line, first_line - 1))
        self._chunks.extend(lines)
        self._next_line += len(lines)

    def done(self) -> tuple[str, SourceMap]:
        return "".join(self._chunks), SourceMap(tuple(self._entries), self._next_line - 1)
