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

"""Expression syntax tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass
class Literal:
    value: Any


@dataclass
class TemplateLiteral:
    """Backtick string; ``parts`` alternates raw text and expressions."""

    parts: list[Union[str, Node]] = field(default_factory=list)


@dataclass
class MarkupLiteral:
    """Markup written directly in an expression, kept verbatim.

    Its own ``{...}`` regions are evaluated when the literal is evaluated.
    """

    source: str


@dataclass
class Identifier:
    name: str


@dataclass
class Spread:
    argument: Node


@dataclass
class ArrayLiteral:
    elements: list[Node] = field(default_factory=list)


@dataclass
class Property:
    key: Node
    value: Node


@dataclass
class ObjectLiteral:
    entries: list[Union[Property, Spread]] = field(default_factory=list)


@dataclass
class Member:
    target: Node
    key: Node
    optional: bool = False


@dataclass
class Call:
    callee: Node
    arguments: list[Node] = field(default_factory=list)
    optional: bool = False


@dataclass
class OptionalChain:
    """Boundary of a chain containing ``?.``; short-circuits to undefined."""

    expression: Node


@dataclass
class Unary:
    operator: str
    operand: Node


@dataclass
class Binary:
    operator: str
    left: Node
    right: Node


@dataclass
class Logical:
    operator: str  # "&&", "||" or "??"
    left: Node
    right: Node


@dataclass
class Conditional:
    test: Node
    consequent: Node
    alternate: Node


@dataclass
class Arrow:
    params: list[str]
    body: Node


Node = Union[
    Literal, TemplateLiteral, MarkupLiteral, Identifier, Spread, ArrayLiteral,
    ObjectLiteral, Member, Call, OptionalChain, Unary, Binary, Logical,
    Conditional, Arrow,
]
