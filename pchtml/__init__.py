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

"""JSX-flavoured HTML templating for static site builds.

Templates mix literal markup with ``{expression}`` regions and
``<_partial attr="value">contents</_partial>`` invocations:

- **Expressions** use a JavaScript-like syntax evaluated by a restricted
  interpreter (``{items.map(i => <li>{i}</li>).join('')}``)
- **Partials** are named templates expanded recursively with the caller's
  context, their attributes and their inner ``contents``
- **Escapes** ``\\{ \\} \\< \\>`` keep delimiters literal

Usage::

    from pchtml import render

    result = render("<p>{greeting}, {name}!</p>", {"greeting": "Hi", "name": "Amy"})
    print(result.unwrap())
"""

from pchtml.config import RenderOptions
from pchtml.errors import (
    CyclicPartialError,
    ExpressionError,
    RenderError,
    SourceLocation,
    UnknownPartialError,
    UnterminatedRegionError,
)
from pchtml.registry import PartialRegistry, partial_name
from pchtml.renderer import Page, Renderer, RenderResult, render

__all__ = [
    "CyclicPartialError",
    "ExpressionError",
    "Page",
    "PartialRegistry",
    "RenderError",
    "RenderOptions",
    "RenderResult",
    "Renderer",
    "SourceLocation",
    "UnknownPartialError",
    "UnterminatedRegionError",
    "partial_name",
    "render",
]
