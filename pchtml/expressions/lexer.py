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

"""Tokenizer for expression source.

Markup embedded in an expression is protected here: a ``<`` standing where
an operand is expected and opening a balanced tag (found with the tag
scanner) becomes a single ``MARKUP`` token holding the fragment verbatim.
Anywhere else ``<`` is the less-than operator.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pchtml.errors import ExpressionError
from pchtml.scanner import match_tag_at


class TokenType(Enum):
    NUMBER = "number"
    STRING = "string"
    TEMPLATE = "template"
    MARKUP = "markup"
    NAME = "name"
    PUNCT = "punct"
    EOF = "eof"


@dataclass
class Token:
    type: TokenType
    value: Any
    position: int


@dataclass
class TemplatePart:
    """A ``${...}`` interpolation inside a template literal."""

    source: str
    offset: int


# Longest first
PUNCTUATORS = (
    "===", "!==", "...",
    "**", "==", "!=", "<=", ">=", "&&", "||", "??", "?.", "=>",
    "+", "-", "*", "/", "%", "<", ">", "!", "?", ":", ".", ",",
    "(", ")", "[", "]", "{", "}",
)

# After these a "<" compares instead of opening markup
_OPERAND_ENDINGS = {")", "]", "}"}

_NUMBER_PATTERN = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def _is_digit(char: str) -> bool:
    return len(char) == 1 and "0" <= char <= "9"


_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0",
}


class Lexer:
    def __init__(self, source: str) -> None:
        self.source = source
        self.position = 0
        self.tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        source = self.source
        while self.position < len(source):
            char = source[self.position]
            start = self.position
            if char.isspace():
                self.position += 1
            elif source.startswith("/*", start) or source.startswith("//", start):
                self._skip_comment()
            elif _is_digit(char) or (char == "." and _is_digit(source[start + 1 : start + 2])):
                self._push(TokenType.NUMBER, self._read_number(), start)
            elif char.isalpha() or char in "_$":
                self._push(TokenType.NAME, self._read_name(), start)
            elif char in "'\"":
                self._push(TokenType.STRING, self._read_string(char), start)
            elif char == "`":
                self._push(TokenType.TEMPLATE, self._read_template(), start)
            elif char == "<" and self._expects_operand() and self._read_markup():
                continue
            else:
                self._push(TokenType.PUNCT, self._read_punctuator(), start)
        self._push(TokenType.EOF, None, len(source))
        return self.tokens

    def _push(self, type_: TokenType, value: Any, position: int) -> None:
        self.tokens.append(Token(type_, value, position))

    def _error(self, message: str, position: int) -> ExpressionError:
        return ExpressionError(message, expression=self.source, position=position)

    def _expects_operand(self) -> bool:
        if not self.tokens:
            return True
        last = self.tokens[-1]
        if last.type is TokenType.PUNCT:
            return last.value not in _OPERAND_ENDINGS
        return last.type is TokenType.NAME and last.value == "typeof"

    def _skip_comment(self) -> None:
        source = self.source
        if source.startswith("//", self.position):
            end = source.find("\n", self.position)
            self.position = len(source) if end == -1 else end + 1
            return
        end = source.find("*/", self.position + 2)
        if end == -1:
            raise self._error("Unterminated comment", self.position)
        self.position = end + 2

    def _read_markup(self) -> bool:
        region = match_tag_at(self.source, self.position)
        if region is None:
            return False
        self._push(TokenType.MARKUP, region.text, self.position)
        self.position = region.end
        return True

    def _read_number(self) -> int | float:
        match = _NUMBER_PATTERN.match(self.source, self.position)
        text = match.group()
        self.position = match.end()
        if "." in text or "e" in text or "E" in text:
            return float(text)
        return int(text)

    def _read_name(self) -> str:
        end = self.position
        source = self.source
        while end < len(source) and (source[end].isalnum() or source[end] in "_$"):
            end += 1
        name = source[self.position : end]
        self.position = end
        return name

    def _read_escape(self, position: int) -> tuple[str, int]:
        """Decode the escape whose backslash sits just before *position*."""
        source = self.source
        if position >= len(source):
            raise self._error("Unterminated escape sequence", position - 1)
        char = source[position]
        if char in "ux":
            width = 4 if char == "u" else 2
            digits = source[position + 1 : position + 1 + width]
            if len(digits) == width and all(d in "0123456789abcdefABCDEF" for d in digits):
                return chr(int(digits, 16)), position + 1 + width
            raise self._error("Invalid escape sequence", position - 1)
        if char == "\n":
            return "", position + 1
        return _SIMPLE_ESCAPES.get(char, char), position + 1

    def _read_string(self, quote: str) -> str:
        source = self.source
        start = self.position
        position = start + 1
        chars: list[str] = []
        while position < len(source):
            char = source[position]
            if char == quote:
                self.position = position + 1
                return "".join(chars)
            if char == "\\":
                decoded, position = self._read_escape(position + 1)
                chars.append(decoded)
                continue
            chars.append(char)
            position += 1
        raise self._error("Unterminated string literal", start)

    def _read_template(self) -> list[str | TemplatePart]:
        source = self.source
        start = self.position
        position = start + 1
        parts: list[str | TemplatePart] = []
        chars: list[str] = []
        while position < len(source):
            char = source[position]
            if char == "`":
                parts.append("".join(chars))
                self.position = position + 1
                return parts
            if char == "\\":
                decoded, position = self._read_escape(position + 1)
                chars.append(decoded)
                continue
            if char == "$" and source.startswith("{", position + 1):
                parts.append("".join(chars))
                chars = []
                end = self._interpolation_end(position + 2)
                parts.append(TemplatePart(source[position + 2 : end], position + 2))
                position = end + 1
                continue
            chars.append(char)
            position += 1
        raise self._error("Unterminated template literal", start)

    def _interpolation_end(self, position: int) -> int:
        """Return the offset of the ``}`` closing a ``${`` interpolation."""
        source = self.source
        start = position
        depth = 0
        while position < len(source):
            char = source[position]
            if char in "'\"`":
                position = self._skip_quoted(position)
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                if not depth:
                    return position
                depth -= 1
            position += 1
        raise self._error("Unterminated template interpolation", start - 2)

    def _skip_quoted(self, position: int) -> int:
        source = self.source
        quote = source[position]
        position += 1
        while position < len(source):
            if source[position] == "\\":
                position += 2
                continue
            if source[position] == quote:
                return position + 1
            position += 1
        raise self._error("Unterminated string literal", position)

    def _read_punctuator(self) -> str:
        source = self.source
        position = self.position
        for punct in PUNCTUATORS:
            if not source.startswith(punct, position):
                continue
            # "a?.5:1" is a conditional, not optional chaining
            if punct == "?." and _is_digit(source[position + 2 : position + 3]):
                continue
            self.position = position + len(punct)
            return punct
        raise self._error(f"Unexpected character {source[position]!r}", position)


def tokenize(source: str) -> list[Token]:
    return Lexer(source).tokenize()
