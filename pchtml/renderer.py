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

"""Render orchestration.

A render call runs two passes over the template:

1. **Expression pass**: every top-level ``{...}`` region is evaluated
   against the context and replaced by its text.
2. **Partial pass**: for every registered partial, each top-level
   ``<_name>`` invocation is replaced by the partial body rendered with
   ``context + attributes + {"contents": ...}``.  Partial bodies go
   through the same two passes, so partials nest to any depth up to
   :attr:`~pchtml.config.RenderOptions.max_partial_depth`.

Escape sequences are swapped for inert stand-ins before each pass and
turned into literal delimiters once, on the final output of the top-level
call, so backslashes in inserted values are never consumed.  Failures come
back as a :class:`RenderResult` carrying a typed
:class:`~pchtml.errors.RenderError`.

Usage::

    from pchtml import Renderer

    renderer = Renderer({"box": "<h1>{title}</h1><p>{contents}</p>"})
    result = renderer.render('<_box title="Hi">World</_box>')
    html = result.unwrap()
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from functools import partial as bind
from typing import Any

from pchtml.config import RenderOptions
from pchtml.errors import (
    CyclicPartialError,
    RenderError,
    SourceLocation,
    UnknownPartialError,
)
from pchtml.expressions import Interpreter
from pchtml.partials import expand_partial
from pchtml.registry import PartialRegistry
from pchtml.scanner import (
    find_brackets,
    is_escaped,
    protect_escapes,
    restore_escapes,
)

logger = logging.getLogger(__name__)

_INVOCATION_PATTERN = re.compile(r"<_([A-Za-z0-9][\w-]*)")

Helpers = Mapping[str, Callable[..., Any]]


@dataclass(frozen=True)
class RenderResult:
    """Outcome of one render call: output text or the error that stopped it."""

    output: str | None = None
    error: RenderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        """Return the output, raising the stored error if the render failed."""
        if self.error is not None:
            raise self.error
        return self.output

    def value_or(self, default: str = "") -> str:
        return default if self.error is not None else self.output


@dataclass
class Page:
    """One page of a batch build."""

    name: str
    template: str
    context: Mapping[str, Any] = field(default_factory=dict)


class _RenderCall:
    """State of a single top-level render: interpreter and partial stack."""

    def __init__(
        self,
        registry: PartialRegistry,
        options: RenderOptions,
        helpers: Helpers | None,
    ) -> None:
        self.registry = registry
        self.options = options
        self.interpreter = Interpreter(
            helpers=helpers, max_steps=options.max_steps, strict=options.strict,
        )
        self.stack: list[str] = []

    def run(self, template: str, context: Mapping[str, Any]) -> str:
        return restore_escapes(self.process(template, context))

    def process(self, template: str, context: Mapping[str, Any]) -> str:
        template = protect_escapes(template)
        self._check_invocations(template, raw=True)
        output = self.interpreter.interpolate(template, self.interpreter.scope(context))
        for name, body in self.registry.items():
            output = expand_partial(
                output, name, body, context, bind(self._render_partial, name),
                strict=self.options.strict,
            )
        # Invocations produced by expressions only show up after both passes
        self._check_invocations(output, raw=False)
        return output

    def _render_partial(self, name: str, body: str, context: Mapping[str, Any]) -> str:
        if len(self.stack) >= self.options.max_partial_depth:
            raise CyclicPartialError([*self.stack, name], self.options.max_partial_depth)
        self.stack.append(name)
        try:
            return self.process(body, context)
        except RenderError as exc:
            if exc.partial is None:
                exc.partial = name
            raise
        finally:
            self.stack.pop()

    def _check_invocations(self, text: str, *, raw: bool) -> None:
        # In raw template text, expression regions are skipped: only what they
        # evaluate to can invoke a partial
        regions = find_brackets(text) if raw else []
        for match in _INVOCATION_PATTERN.finditer(text):
            name = match.group(1)
            if name in self.registry or is_escaped(text, match.start()):
                continue
            if any(region.start <= match.start() < region.end for region in regions):
                continue
            location = SourceLocation.from_offset(text, match.start()) if raw else None
            raise UnknownPartialError(name, location=location)


def _render(
    template: str,
    context: Mapping[str, Any],
    registry: PartialRegistry,
    options: RenderOptions,
    helpers: Helpers | None,
) -> RenderResult:
    logger.debug("Start render (%d chars, %d partials)", len(template), len(registry))
    call = _RenderCall(registry, options, helpers)
    try:
        output = call.run(template, context)
    except RenderError as exc:
        logger.warning("Failed to render template: %s", exc)
        return RenderResult(error=exc)
    logger.debug(
        "Render complete (%d chars, %d evaluation steps)",
        len(output), call.interpreter.steps,
    )
    return RenderResult(output=output)


def render(
    template: str,
    context: Mapping[str, Any] | None = None,
    partials: Mapping[str, str] | None = None,
    *,
    options: RenderOptions | None = None,
    helpers: Helpers | None = None,
) -> RenderResult:
    """Render *template* once.

    Args:
        template: Template text.
        context: Variables visible to expressions.
        partials: Partial name to body; a :class:`PartialRegistry` is used
            as is, any other mapping is snapshotted first.
        options: Engine switches; defaults to :class:`RenderOptions()`.
        helpers: Extra callables available to expressions by name.

    Returns:
        A :class:`RenderResult`; rendering failures never raise.
    """
    return _render(
        template,
        context if context is not None else {},
        PartialRegistry.coerce(partials),
        options or RenderOptions(),
        helpers,
    )


class Renderer:
    """Long-lived renderer for a site build.

    Holds the partial registry, site-wide ``globals`` (merged over each
    page context, so globals win) and helpers.  The registry can be swapped
    while renders run in other threads; each call works on the snapshot it
    read at start.
    """

    def __init__(
        self,
        partials: Mapping[str, str] | None = None,
        *,
        globals: Mapping[str, Any] | None = None,
        helpers: Helpers | None = None,
        options: RenderOptions | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._partials = PartialRegistry.coerce(partials)
        self.globals = dict(globals or {})
        self.helpers = dict(helpers or {})
        self.options = options or RenderOptions()
        for name, helper in self.helpers.items():
            if not callable(helper):
                raise TypeError(f"Helper {name!r} is not callable")

    @property
    def partials(self) -> PartialRegistry:
        """Current registry snapshot."""
        with self._lock:
            return self._partials

    def register_partial(self, name: str, body: str) -> None:
        with self._lock:
            self._partials = self._partials.with_partial(name, body)
        logger.info("Registered partial %s", name)

    def unregister_partial(self, name: str) -> None:
        with self._lock:
            self._partials = self._partials.without(name)
        logger.info("Unregistered partial %s", name)

    def replace_partials(self, partials: Mapping[str, str]) -> None:
        """Swap the whole registry, e.g. after reloading a partials directory."""
        registry = PartialRegistry.coerce(partials)
        with self._lock:
            self._partials = registry
        logger.info("Replaced partials (%d registered)", len(registry))

    def render(
        self, template: str, context: Mapping[str, Any] | None = None,
    ) -> RenderResult:
        return self._render_with(self.partials, template, context)

    def render_pages(
        self, pages: Iterable[Page], *, fail_fast: bool = False,
    ) -> dict[str, RenderResult]:
        """Render a batch of pages against one registry snapshot.

        Every page gets its own result.  With *fail_fast* the first failing
        page's error is raised and the remaining pages are not rendered.
        """
        registry = self.partials
        results: dict[str, RenderResult] = {}
        for page in pages:
            result = self._render_with(registry, page.template, page.context)
            if not result.ok:
                logger.warning("Page %s failed: %s", page.name, result.error)
                if fail_fast:
                    raise result.error
            results[page.name] = result
        failed = sum(1 for result in results.values() if not result.ok)
        logger.info("Rendered %d pages (%d failed)", len(results), failed)
        return results

    def _render_with(
        self,
        registry: PartialRegistry,
        template: str,
        context: Mapping[str, Any] | None,
    ) -> RenderResult:
        merged = {**(context or {}), **self.globals}
        return _render(template, merged, registry, self.options, self.helpers)
