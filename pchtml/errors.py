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

"""Typed render errors.

Every failure inside a render call is raised as a :class:`RenderError`
subclass.  The renderer turns them into a
:class:`~pchtml.renderer.RenderResult` instead of returning blank output,
so the build pipeline can decide per page whether to skip or abort.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """Position of a failure inside the template text being rendered.

    Attributes:
        offset: Zero-based character offset.
        line: One-based line number.
        column: One-based column number.
    """

    offset: int
    line: int
    column: int

    @classmethod
    def from_offset(cls, text: str, offset: int) -> SourceLocation:
        offset = max(0, min(offset, len(text)))
        line = text.count("\n", 0, offset) + 1
        line_start = text.rfind("\n", 0, offset) + 1
        return cls(offset=offset, line=line, column=offset - line_start + 1)

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


class RenderError(Exception):
    """Base class for all template rendering failures."""

    kind = "render"

    def __init__(
        self,
        message: str,
        *,
        location: SourceLocation | None = None,
        partial: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = location
        self.partial = partial

    def __str__(self) -> str:
        text = self.message
        if self.partial:
            text = f"{text} (in partial {self.partial!r}"
            text += f" at {self.location})" if self.location else ")"
        elif self.location:
            text = f"{text} (at {self.location})"
        return text


class ExpressionError(RenderError):
    """Syntax or runtime failure while evaluating a ``{...}`` expression."""

    kind = "expression"

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        position: int | None = None,
        location: SourceLocation | None = None,
        partial: str | None = None,
    ) -> None:
        super().__init__(message, location=location, partial=partial)
        self.expression = expression
        # Offset inside ``expression`` for lexer/parser errors
        self.position = position


class UnterminatedRegionError(RenderError):
    """A bracket or tag region was opened but never balanced (strict mode)."""

    kind = "unterminated_region"

    def __init__(
        self,
        message: str,
        *,
        delimiter: str,
        location: SourceLocation | None = None,
        partial: str | None = None,
    ) -> None:
        super().__init__(message, location=location, partial=partial)
        self.delimiter = delimiter


class UnknownPartialError(RenderError):
    """A ``<_name>`` invocation refers to a partial missing from the registry."""

    kind = "unknown_partial"

    def __init__(
        self,
        name: str,
        *,
        location: SourceLocation | None = None,
        partial: str | None = None,
    ) -> None:
        super().__init__(
            f"Unknown partial {name!r}", location=location, partial=partial,
        )
        self.name = name


class CyclicPartialError(RenderError):
    """Partial expansion recursed past the configured depth limit."""

    kind = "cyclic_partial"

    def __init__(self, chain: list[str], limit: int) -> None:
        shown = " -> ".join(chain[:8])
        if len(chain) > 8:
            shown += " -> ..."
        super().__init__(
            f"Partial recursion exceeded depth {limit}: {shown}",
            partial=chain[-1] if chain else None,
        )
        self.chain = list(chain)
        self.limit = limit
