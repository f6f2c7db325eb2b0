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

"""JavaScript-flavoured expression language used inside ``{...}`` regions.

Expressions are parsed into a small syntax tree and interpreted; nothing is
handed to Python's ``eval``.  The language covers literals, member access,
optional chaining, arrow functions, the usual operators and a whitelist of
array, string and number methods.

Usage::

    from pchtml.expressions import evaluate, render_value

    value = evaluate("items.map(i => i * 2)", {"items": [1, 2]})   # [2, 4]
    render_value(value)                                            # '[2,4]'
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pchtml.config import DEFAULT_MAX_STEPS
from pchtml.expressions.interpreter import Closure, Interpreter
from pchtml.expressions.parser import parse
from pchtml.expressions.values import UNDEFINED, render_value, to_json


def evaluate(
    source: str,
    context: Mapping[str, Any] | None = None,
    *,
    helpers: Mapping[str, Callable[..., Any]] | None = None,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> Any:
    """Evaluate a single expression against *context* and return its value."""
    interpreter = Interpreter(helpers=helpers, max_steps=max_steps)
    return interpreter.evaluate(source, interpreter.scope(context))


__all__ = [
    "Closure",
    "Interpreter",
    "UNDEFINED",
    "evaluate",
    "parse",
    "render_value",
    "to_json",
]
