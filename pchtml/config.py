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

"""Render options.

Options are passed explicitly by the caller.  :meth:`RenderOptions.from_env`
is a convenience for build scripts that prefer environment configuration::

    PCHTML_STRICT=1 PCHTML_MAX_PARTIAL_DEPTH=16 python build.py
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_MAX_PARTIAL_DEPTH = 64
DEFAULT_MAX_STEPS = 1_000_000

ENV_STRICT = "PCHTML_STRICT"
ENV_MAX_PARTIAL_DEPTH = "PCHTML_MAX_PARTIAL_DEPTH"
ENV_MAX_STEPS = "PCHTML_MAX_STEPS"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RenderOptions:
    """Engine behaviour switches.

    Attributes:
        strict: Raise :class:`~pchtml.errors.UnterminatedRegionError` for
            unbalanced ``{`` or tag regions instead of leaving them as
            literal text.
        max_partial_depth: Maximum nesting of partial invocations before
            :class:`~pchtml.errors.CyclicPartialError` is raised.
        max_steps: Evaluation step budget per render call.
    """

    strict: bool = False
    max_partial_depth: int = DEFAULT_MAX_PARTIAL_DEPTH
    max_steps: int = DEFAULT_MAX_STEPS

    def __post_init__(self) -> None:
        if self.max_partial_depth < 1:
            raise ValueError("max_partial_depth must be at least 1")
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RenderOptions:
        """Build options from ``PCHTML_*`` environment variables.

        Unset variables keep their defaults.  Raises :class:`ValueError`
        if a numeric variable is not an integer.
        """
        env = os.environ if environ is None else environ
        strict = env.get(ENV_STRICT, "").strip().lower() in _TRUE_VALUES
        return cls(
            strict=strict,
            max_partial_depth=_int_from_env(
                env, ENV_MAX_PARTIAL_DEPTH, DEFAULT_MAX_PARTIAL_DEPTH,
            ),
            max_steps=_int_from_env(env, ENV_MAX_STEPS, DEFAULT_MAX_STEPS),
        )


def _int_from_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw.replace("_", ""))
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
