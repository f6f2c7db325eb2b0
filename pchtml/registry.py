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

"""Immutable registry of named partial templates.

A registry maps a partial name (no ``_`` prefix, no file extension) to
its raw template body.  Registries are never mutated; the ``with_*``
methods return new snapshots, so a render call holding one registry is
unaffected by later registrations.

Usage::

    from pchtml.registry import PartialRegistry, partial_name

    registry = PartialRegistry({"card": "<div>{contents}</div>"})
    registry = registry.with_partial(partial_name("footer.pchtml"), "<footer/>")
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from pathlib import PurePath
from types import MappingProxyType

_NAME_PATTERN = re.compile(r"[A-Za-z0-9][\w-]*")


def validate_name(name: str) -> str:
    """Return *name* if it is usable as a partial name, else raise ValueError."""
    if not isinstance(name, str) or not _NAME_PATTERN.fullmatch(name):
        raise ValueError(
            f"Invalid partial name {name!r}: expected a letter or digit "
            "followed by letters, digits, '_' or '-'"
        )
    return name


def partial_name(filename: str) -> str:
    """Derive a partial name from a file name: ``"card.pchtml"`` -> ``"card"``."""
    return PurePath(filename).name.split(".")[0]


class PartialRegistry(Mapping[str, str]):
    """Read-only mapping of partial name to template body."""

    def __init__(self, partials: Mapping[str, str] | None = None) -> None:
        entries: dict[str, str] = {}
        for name, body in (partials or {}).items():
            if not isinstance(body, str):
                raise TypeError(f"Partial {name!r} body must be a string")
            entries[validate_name(name)] = body
        self._partials = MappingProxyType(entries)

    @classmethod
    def coerce(cls, partials: Mapping[str, str] | None) -> PartialRegistry:
        if isinstance(partials, cls):
            return partials
        return cls(partials)

    def __getitem__(self, name: str) -> str:
        return self._partials[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._partials)

    def __len__(self) -> int:
        return len(self._partials)

    def __repr__(self) -> str:
        return f"PartialRegistry({sorted(self._partials)!r})"

    def with_partial(self, name: str, body: str) -> PartialRegistry:
        """Return a copy with *name* added or replaced."""
        return PartialRegistry({**self._partials, name: body})

    def without(self, name: str) -> PartialRegistry:
        """Return a copy without *name*; raises KeyError if it is absent."""
        if name not in self._partials:
            raise KeyError(name)
        return PartialRegistry(
            {key: body for key, body in self._partials.items() if key != name}
        )
