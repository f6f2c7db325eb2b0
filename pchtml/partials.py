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

"""Expansion of ``<_name ...>...</_name>`` partial invocations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pchtml.attributes import inner_contents, parse_attributes
from pchtml.scanner import find_tags

logger = logging.getLogger(__name__)

CONTENTS_KEY = "contents"

RenderBody = Callable[[str, Mapping[str, Any]], str]


def invocation_context(
    fragment: str, context: Mapping[str, Any],
) -> dict[str, Any]:
    """Scope for one invocation: outer context, then attributes, then contents."""
    scope = dict(context)
    scope.update(parse_attributes(fragment))
    scope[CONTENTS_KEY] = inner_contents(fragment)
    return scope


def expand_partial(
    markup: str,
    name: str,
    body: str,
    context: Mapping[str, Any],
    render_body: RenderBody,
    *,
    strict: bool = False,
) -> str:
    """Replace every top-level invocation of partial *name* in *markup*.

    Each matched fragment is replaced in place by
    ``render_body(body, context + attributes + {"contents": inner})``.
    Invocations nested inside another invocation's contents are left for
    the rendered body to expand.
    """
    logger.debug("Replacing partial %s", name)
    regions = find_tags(markup, f"_{name}", strict=strict)
    logger.debug("Found %d %s invocations", len(regions), name)
    if not regions:
        return markup

    pieces: list[str] = []
    cursor = 0
    for region in regions:
        pieces.append(markup[cursor : region.start])
        pieces.append(render_body(body, invocation_context(region.text, context)))
        cursor = region.end
    pieces.append(markup[cursor:])
    return "".join(pieces)
