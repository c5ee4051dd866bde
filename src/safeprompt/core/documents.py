"""
Document snapshots and text edits.

A Document is owned by the host; SafePrompt only reads it. Edits produced by
quick fixes are plain values applied with ``apply_edits``.
"""

import re
from typing import List, Sequence
from dataclasses import dataclass, field

from .diagnostics import Range


LINE_SPLIT_RE = re.compile(r'\r?\n')


def split_lines(text: str) -> List[str]:
    """Split text into physical lines on ``\\n`` or ``\\r\\n``."""
    return LINE_SPLIT_RE.split(text)


@dataclass(frozen=True)
class Document:
    """Identified, versioned text snapshot."""
    uri: str
    language_id: str
    text: str
    version: int = 0
    lines: List[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'lines', split_lines(self.text))

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line_at(self, line: int) -> str:
        """Return the text of a line, or an empty string when out of range."""
        if 0 <= line < len(self.lines):
            return self.lines[line]
        return ''

    def with_text(self, text: str) -> 'Document':
        """Return the next version of this document with new text."""
        return Document(self.uri, self.language_id, text, self.version + 1)


@dataclass(frozen=True)
class Position:
    line: int
    character: int


@dataclass(frozen=True)
class TextEdit:
    """Replace ``range`` with ``new_text``; an empty range is an insertion."""
    range: Range
    new_text: str

    @classmethod
    def replace(cls, range: Range, new_text: str) -> 'TextEdit':
        return cls(range, new_text)

    @classmethod
    def insert(cls, position: Position, new_text: str) -> 'TextEdit':
        return cls(
            Range(position.line, position.character, position.line, position.character),
            new_text,
        )

    def to_dict(self):
        return {"range": self.range.to_dict(), "new_text": self.new_text}


def _offset_at(text: str, line: int, character: int) -> int:
    """Convert a position to a string offset, clamped to the text."""
    offset = 0
    for index, match in enumerate(LINE_SPLIT_RE.finditer(text)):
        if index == line:
            return min(offset + character, match.start())
        offset = match.end()
    if line > text.count('\n'):
        return len(text)
    return min(offset + character, len(text))


def apply_edits(text: str, edits: Sequence[TextEdit]) -> str:
    """
    Apply non-overlapping edits to text.

    Edits are applied from the end of the text backwards so earlier offsets
    stay valid.
    """
    spans = []
    for edit in edits:
        start = _offset_at(text, edit.range.start_line, edit.range.start_col)
        end = _offset_at(text, edit.range.end_line, edit.range.end_col)
        spans.append((start, end, edit.new_text))

    for start, end, new_text in sorted(spans, key=lambda s: (s[0], s[1]), reverse=True):
        text = text[:start] + new_text + text[end:]
    return text
