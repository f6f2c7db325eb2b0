# pchtml — JSX-flavoured HTML templating for static site builds
# Copyright (C) 2024-2026 Dr Horst Herb
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Balanced-region scanners for brackets and tags.

Both scanners walk the text left to right as a small state machine
(:class:`ScanState`) with an explicit depth counter and only report
*top-level* regions.  A delimiter preceded by an odd run of backslashes is
literal text and never changes state or depth.

Usage::

    find_brackets("a {x} b {y + {z: 1}.z}")   # two Region spans
    find_tags(markup, "_card")                # every top-level <_card> fragment
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from pchtml.errors import SourceLocation, UnterminatedRegionError

logger = logging.getLogger(__name__)

ESCAPE = "\\"

_UNESCAPE_PATTERN = re.compile(r"\\([{}<>\\])")

# Private-use stand-ins for escape sequences, two characters wide like the
# escapes they replace so source offsets are unchanged
_ESCAPE_MARK = "\ue000"
_STAND_INS = {"{": "\ue001", "}": "\ue002", "<": "\ue003", ">": "\ue004", "\\": "\ue005"}
_RESTORE_TABLE = {ord(_ESCAPE_MARK): None, **{ord(v): k for k, v in _STAND_INS.items()}}

# Elements that never take a closing tag; only consulted by unfiltered scans
VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})


class ScanState(Enum):
    LITERAL = "literal"
    IN_BRACKET = "in_bracket"
    IN_TAG = "in_tag"


class TagKind(Enum):
    OPENING = "opening"
    CLOSING = "closing"
    SELF_CLOSING = "self_closing"


@dataclass(frozen=True)
class Region:
    """A matched top-level span of the scanned text.

    Attributes:
        start: Offset of the opening delimiter.
        end: Offset one past the closing delimiter.
        text: The matched source, delimiters included.
    """

    start: int
    end: int
    text: str

    @property
    def content(self) -> str:
        """Text strictly between the outer delimiters of a bracket region."""
        return self.text[1:-1]


def is_escaped(text: str, index: int) -> bool:
    """Return ``True`` if ``text[index]`` follows an unescaped backslash."""
    count = 0
    index -= 1
    while index >= 0 and text[index] == ESCAPE:
        count += 1
        index -= 1
    return count % 2 == 1


def unescape(text: str) -> str:
    """Drop the backslash from ``\\{ \\} \\< \\> \\\\`` escape sequences."""
    return _UNESCAPE_PATTERN.sub(r"\1", text)


def protect_escapes(text: str) -> str:
    """Swap every escape sequence of template *text* for inert stand-ins.

    The stand-ins are invisible to the bracket and tag scanners, and text
    inserted later (context values, evaluated expressions) is never
    mistaken for an escape.  :func:`restore_escapes` yields the literal
    delimiters.
    """
    return _UNESCAPE_PATTERN.sub(
        lambda match: _ESCAPE_MARK + _STAND_INS[match.group(1)], text,
    )


def restore_escapes(text: str) -> str:
    """Turn stand-ins from :func:`protect_escapes` into literal delimiters."""
    return text.translate(_RESTORE_TABLE)


def _unterminated(text: str, start: int, delimiter: str, strict: bool) -> None:
    if strict:
        raise UnterminatedRegionError(
            f"Unterminated {delimiter!r} region",
            delimiter=delimiter,
            location=SourceLocation.from_offset(text, start),
        )
    logger.debug("Skipping unterminated %r region at offset %d", delimiter, start)


# ---------------------------------------------------------------------------
# Brackets
# ---------------------------------------------------------------------------


def find_brackets(
    text: str,
    open_: str = "{",
    close: str = "}",
    *,
    strict: bool = False,
) -> list[Region]:
    """Return every top-level balanced ``open_ ... close`` region.

    A stray ``close`` at top level is literal text.  An ``open_`` that is
    never balanced yields no region; with *strict* it raises
    :class:`~pchtml.errors.UnterminatedRegionError` instead.
    """
    regions: list[Region] = []
    state = ScanState.LITERAL
    depth = 0
    start = 0

    for index, char in enumerate(text):
        if char != open_ and char != close:
            continue
        if is_escaped(text, index):
            continue

        if state is ScanState.LITERAL:
            if char == open_:
                state = ScanState.IN_BRACKET
                start = index
        elif char == open_:
            depth += 1
        elif depth:
            depth -= 1
        else:
            regions.append(Region(start, index + 1, text[start : index + 1]))
            state = ScanState.LITERAL

    if state is ScanState.IN_BRACKET:
        _unterminated(text, start, open_, strict)
    return regions


def scan_brackets(text: str, open_: str = "{", close: str = "}") -> list[str]:
    """Return the raw contents of every top-level bracket region, in order."""
    return [region.content for region in find_brackets(text, open_, close)]


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def _is_name_char(char: str) -> bool:
    return char.isalnum() or char in "_-:."


def _opens_tag(text: str, index: int, name: str | None) -> bool:
    """Whether the ``<`` at *index* starts a tag this scan tracks."""
    after = index + 1
    if after >= len(text):
        return False
    if name is None:
        char = text[after]
        if char == "/":
            return after + 1 < len(text) and (
                text[after + 1].isalpha() or text[after + 1] == "_"
            )
        return char.isalpha() or char in "_!"

    if text[after] == "/":
        after += 1
    if not text.startswith(name, after):
        return False
    boundary = after + len(name)
    return boundary >= len(text) or not _is_name_char(text[boundary])


def tag_end(text: str, index: int) -> int | None:
    """Return the offset of the ``>`` closing the tag that starts at *index*.

    Quoted attribute values and ``{...}`` groups may contain ``>``.
    Returns ``None`` if the tag never closes.
    """
    if text.startswith("<!--", index):
        end = text.find("-->", index + 4)
        return None if end == -1 else end + 2

    quote = ""
    braces = 0
    for position in range(index + 1, len(text)):
        char = text[position]
        if quote:
            if char == quote:
                quote = ""
            continue
        if char not in "\"'{}>" or is_escaped(text, position):
            continue
        if char in "\"'":
            if braces or text[index + 1 : position].rstrip().endswith("="):
                quote = char
        elif char == "{":
            braces += 1
        elif char == "}":
            braces = max(0, braces - 1)
        elif not braces:
            return position
    return None


def tag_name(fragment: str) -> str:
    """Return the element name of the tag that starts *fragment*."""
    start = 2 if fragment.startswith("</") else 1
    end = start
    while end < len(fragment) and _is_name_char(fragment[end]):
        end += 1
    return fragment[start:end]


def _tag_kind(text: str, index: int, end: int, name: str | None) -> TagKind:
    if text[index + 1] == "/":
        return TagKind.CLOSING
    if text[end - 1] == "/":
        return TagKind.SELF_CLOSING
    if name is None:
        if text[index + 1] == "!":
            return TagKind.SELF_CLOSING
        if tag_name(text[index:end]).lower() in VOID_ELEMENTS:
            return TagKind.SELF_CLOSING
    return TagKind.OPENING


def _next_tracked_tag(text: str, position: int, name: str | None) -> int:
    while True:
        position = text.find("<", position)
        if position == -1:
            return -1
        if not is_escaped(text, position) and _opens_tag(text, position, name):
            return position
        position += 1


def _balance_from(text: str, index: int, name: str | None) -> Region | None:
    """Walk tracked tags from *index* until depth returns to zero."""
    depth = 0
    position = index
    while True:
        # ScanState.IN_TAG: find where this tag ends
        end = tag_end(text, position)
        if end is None:
            return None
        kind = _tag_kind(text, position, end, name)
        if kind is TagKind.OPENING:
            depth += 1
        elif kind is TagKind.CLOSING:
            depth -= 1
        if depth <= 0:
            return Region(index, end + 1, text[index : end + 1])

        # ScanState.LITERAL: content between tags, only tracked tags matter
        position = _next_tracked_tag(text, end + 1, name)
        if position == -1:
            return None


def match_tag_at(text: str, index: int, name: str | None = None) -> Region | None:
    """Match one balanced tag fragment starting exactly at *index*.

    Returns ``None`` if no tracked opening tag starts there or if it is
    never balanced.
    """
    if index >= len(text) or text[index] != "<" or is_escaped(text, index):
        return None
    if not _opens_tag(text, index, name) or text[index + 1] == "/":
        return None
    return _balance_from(text, index, name)


def find_tags(
    text: str,
    name: str | None = None,
    *,
    strict: bool = False,
) -> list[Region]:
    """Return every top-level balanced tag fragment.

    With *name*, only ``<name ...>`` and ``</name>`` tags are tracked and
    unrelated markup in between is not balanced against.  Stray closing
    tags at top level are ignored.  An opening tag that never balances ends
    the scan (or raises in *strict* mode).
    """
    regions: list[Region] = []
    index = _next_tracked_tag(text, 0, name)
    while index != -1:
        if text[index + 1] == "/":
            end = tag_end(text, index)
            if end is None:
                break
            index = _next_tracked_tag(text, end + 1, name)
            continue

        region = _balance_from(text, index, name)
        if region is None:
            _unterminated(text, index, "<", strict)
            break
        regions.append(region)
        index = _next_tracked_tag(text, region.end, name)
    return regions


def scan_tags(text: str, name: str | None = None) -> list[str]:
    """Return every top-level tag fragment as source text, in order."""
    return [region.text for region in find_tags(text, name)]
