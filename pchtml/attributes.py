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

"""Attribute extraction for partial invocation tags."""

from __future__ import annotations

import json
import re
from typing import Any

from pchtml.scanner import tag_end

_ATTRIBUTE_PATTERN = re.compile(
    r"""\s([\w-]+)=(?:"([^"]*)"|'([^']*)')"""
)


def opening_segment(fragment: str) -> str:
    """Return the opening tag of *fragment*, ``<`` through ``>``."""
    end = tag_end(fragment, 0)
    return fragment if end is None else fragment[: end + 1]


def inner_contents(fragment: str) -> str:
    """Return the text between the opening tag and the last ``<``.

    Self-closing fragments have no inner text and give ``""``.
    """
    end = tag_end(fragment, 0)
    if end is None:
        return ""
    last_open = fragment.rfind("<")
    if last_open <= end:
        return ""
    return fragment[end + 1 : last_open]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_value(raw: str) -> Any:
    """Decode an attribute value as JSON, falling back to the raw text."""
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        return raw


def parse_attributes(fragment: str) -> dict[str, Any]:
    """Extract ``key="value"`` pairs from the opening tag of *fragment*.

    Values are JSON-decoded where possible, so ``count="3"`` yields ``3``
    and ``tags='["a", "b"]'`` yields a list.  Later duplicates win.
    """
    attributes: dict[str, Any] = {}
    for key, double_quoted, single_quoted in _ATTRIBUTE_PATTERN.findall(
        opening_segment(fragment)
    ):
        raw = double_quoted if double_quoted or not single_quoted else single_quoted
        attributes[key] = parse_value(raw)
    return attributes
