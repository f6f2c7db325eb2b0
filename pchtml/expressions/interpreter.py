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

"""Tree-walking interpreter for parsed expressions.

One :class:`Interpreter` serves one render call.  It memoizes parsed
expression source for that call only and counts evaluation steps against
a budget, so a runaway expression fails with
:class:`~pchtml.errors.ExpressionError` instead of hanging the build.

Context keys are read-only bindings.  The scope chain, innermost first, is:
arrow parameters, the render context, helpers, built-ins.
"""

from __future__ import annotations

import logging
from collections import ChainMap
from collections.abc import Callable, Mapping
from typing import Any

from pchtml.config import DEFAULT_MAX_STEPS
from pchtml.errors import ExpressionError, SourceLocation
from pchtml.expressions.builtins import BoundMethod, Builtin, build_globals, get_member
from pchtml.expressions.nodes import (
    ArrayLiteral,
    Arrow,
    Binary,
    Call,
    Conditional,
    Identifier,
    Literal,
    Logical,
    MarkupLiteral,
    Member,
    Node,
    ObjectLiteral,
    OptionalChain,
    Spread,
    TemplateLiteral,
    Unary,
)
from pchtml.expressions.parser import parse
from pchtml.expressions.values import (
    UNDEFINED,
    JSFunction,
    add,
    compare,
    divide,
    is_array,
    is_nullish,
    loose_equals,
    power,
    remainder,
    render_value,
    strict_equals,
    to_number,
    to_property_key,
    to_string,
    truthy,
    type_of,
)
from pchtml.scanner import find_brackets

logger = logging.getLogger(__name__)

# Python failures raised while parsing or inside built-ins
_RUNTIME_ERRORS = (
    AttributeError, TypeError, ValueError, ArithmeticError, KeyError, IndexError,
    RecursionError,
)


class Closure(JSFunction):
    """An arrow function together with the scope it was created in."""

    def __init__(self, node: Arrow, scope: ChainMap) -> None:
        self.node = node
        self.scope = scope


class _ShortCircuit(Exception):
    """Unwinds an optional chain whose receiver is null or undefined."""


def _describe(node: Node) -> str:
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, Member) and isinstance(node.key, Literal):
        return f"{_describe(node.target)}.{node.key.value}"
    return "expression"


def _iterate(value: Any) -> list:
    if is_array(value) or isinstance(value, str):
        return list(value)
    raise TypeError(f"{to_string(value)} is not iterable")


class Interpreter:
    """Evaluates expression source against a scope.

    Args:
        helpers: Extra callables exposed by name, shadowing built-ins.
        max_steps: Evaluation step budget shared by every expression this
            interpreter evaluates.
        strict: Raise on unterminated ``{`` regions inside markup literals
            instead of leaving them as text.
    """

    def __init__(
        self,
        *,
        helpers: Mapping[str, Callable[..., Any]] | None = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        strict: bool = False,
    ) -> None:
        self.globals = build_globals(helpers)
        self.max_steps = max_steps
        self.strict = strict
        self.steps = 0
        self._parsed: dict[str, Node] = {}
        self._handlers: dict[type, Callable[[Any, ChainMap], Any]] = {
            Literal: self._literal,
            TemplateLiteral: self._template,
            MarkupLiteral: self._markup,
            Identifier: self._identifier,
            ArrayLiteral: self._array,
            ObjectLiteral: self._object,
            Member: self._member,
            Call: self._call,
            OptionalChain: self._optional_chain,
            Unary: self._unary,
            Binary: self._binary,
            Logical: self._logical,
            Conditional: self._conditional,
            Arrow: self._arrow,
        }

    def scope(self, context: Mapping[str, Any] | None = None) -> ChainMap:
        """Build the top-level scope for *context*."""
        return ChainMap(context if context is not None else {}, self.globals)

    def parse(self, source: str) -> Node:
        node = self._parsed.get(source)
        if node is None:
            node = self._parsed[source] = parse(source)
        return node

    def evaluate(self, source: str, scope: ChainMap) -> Any:
        """Evaluate one expression and return its raw value."""
        try:
            return self._eval(self.parse(source), scope)
        except ExpressionError as exc:
            if exc.expression is None:
                exc.expression = source
            raise
        except _RUNTIME_ERRORS as exc:
            raise ExpressionError(
                str(exc) or type(exc).__name__, expression=source,
            ) from exc

    def interpolate(self, text: str, scope: ChainMap, *, locate: bool = True) -> str:
        """Replace every top-level ``{...}`` region of *text* by its value.

        Identical regions are evaluated once.  Substitution is positional,
        so a value that happens to contain another region's source text is
        never rewritten.
        """
        regions = find_brackets(text, strict=self.strict)
        if not regions:
            return text

        rendered: dict[str, str] = {}
        pieces: list[str] = []
        cursor = 0
        for region in regions:
            source = region.content
            if source not in rendered:
                try:
                    rendered[source] = render_value(self.evaluate(source, scope))
                except ExpressionError as exc:
                    if locate and exc.location is None:
                        exc.location = SourceLocation.from_offset(text, region.start)
                    raise
            pieces.append(text[cursor : region.start])
            pieces.append(rendered[source])
            cursor = region.end
        pieces.append(text[cursor:])
        logger.debug("Evaluated %d expressions (%d distinct)", len(regions), len(rendered))
        return "".join(pieces)

    def call(self, fn: Any, args: list) -> Any:
        """Invoke an expression-level function with positional *args*."""
        if isinstance(fn, Closure):
            params = fn.node.params
            bindings = {
                name: args[index] if index < len(args) else UNDEFINED
                for index, name in enumerate(params)
            }
            return self._eval(fn.node.body, fn.scope.new_child(bindings))
        if isinstance(fn, (Builtin, BoundMethod)):
            return fn.invoke(self.call, args)
        raise TypeError(f"{to_string(fn)} is not a function")

    # -- evaluation --------------------------------------------------------

    def _eval(self, node: Node, scope: ChainMap) -> Any:
        self.steps += 1
        if self.steps > self.max_steps:
            raise ExpressionError(
                f"Evaluation step budget exceeded ({self.max_steps} steps)"
            )
        return self._handlers[type(node)](node, scope)

    def _literal(self, node: Literal, scope: ChainMap) -> Any:
        return node.value

    def _template(self, node: TemplateLiteral, scope: ChainMap) -> str:
        return "".join(
            part if isinstance(part, str) else to_string(self._eval(part, scope))
            for part in node.parts
        )

    def _markup(self, node: MarkupLiteral, scope: ChainMap) -> str:
        return self.interpolate(node.source, scope, locate=False)

    def _identifier(self, node: Identifier, scope: ChainMap) -> Any:
        try:
            return scope[node.name]
        except KeyError:
            raise ExpressionError(f"{node.name} is not defined") from None

    def _spread_into(self, items: list, node: Node, scope: ChainMap) -> None:
        if isinstance(node, Spread):
            items.extend(_iterate(self._eval(node.argument, scope)))
        else:
            items.append(self._eval(node, scope))

    def _array(self, node: ArrayLiteral, scope: ChainMap) -> list:
        items: list = []
        for element in node.elements:
            self._spread_into(items, element, scope)
        return items

    def _object(self, node: ObjectLiteral, scope: ChainMap) -> dict:
        result: dict[str, Any] = {}
        for entry in node.entries:
            if isinstance(entry, Spread):
                value = self._eval(entry.argument, scope)
                if isinstance(value, Mapping):
                    result.update((to_property_key(k), v) for k, v in value.items())
                elif is_array(value) or isinstance(value, str):
                    result.update((str(i), v) for i, v in enumerate(value))
                continue
            key = to_property_key(self._eval(entry.key, scope))
            result[key] = self._eval(entry.value, scope)
        return result

    def _member(self, node: Member, scope: ChainMap) -> Any:
        target = self._eval(node.target, scope)
        if node.optional and is_nullish(target):
            raise _ShortCircuit
        return get_member(target, self._eval(node.key, scope))

    def _call(self, node: Call, scope: ChainMap) -> Any:
        fn = self._eval(node.callee, scope)
        if node.optional and is_nullish(fn):
            raise _ShortCircuit
        args: list = []
        for argument in node.arguments:
            self._spread_into(args, argument, scope)
        if not isinstance(fn, JSFunction):
            raise ExpressionError(f"{_describe(node.callee)} is not a function")
        return self.call(fn, args)

    def _optional_chain(self, node: OptionalChain, scope: ChainMap) -> Any:
        try:
            return self._eval(node.expression, scope)
        except _ShortCircuit:
            return UNDEFINED

    def _unary(self, node: Unary, scope: ChainMap) -> Any:
        if node.operator == "typeof":
            operand = node.operand
            if isinstance(operand, Identifier) and operand.name not in scope:
                return "undefined"
            return type_of(self._eval(operand, scope))
        value = self._eval(node.operand, scope)
        if node.operator == "!":
            return not truthy(value)
        if node.operator == "-":
            return -to_number(value)
        return to_number(value)

    def _binary(self, node: Binary, scope: ChainMap) -> Any:
        left = self._eval(node.left, scope)
        right = self._eval(node.right, scope)
        operator = node.operator
        if operator == "+":
            return add(left, right)
        if operator == "-":
            return to_number(left) - to_number(right)
        if operator == "*":
            return to_number(left) * to_number(right)
        if operator == "/":
            return divide(left, right)
        if operator == "%":
            return remainder(left, right)
        if operator == "**":
            return power(left, right)
        if operator == "===":
            return strict_equals(left, right)
        if operator == "!==":
            return not strict_equals(left, right)
        if operator == "==":
            return loose_equals(left, right)
        if operator == "!=":
            return not loose_equals(left, right)
        return compare(operator, left, right)

    def _logical(self, node: Logical, scope: ChainMap) -> Any:
        left = self._eval(node.left, scope)
        if node.operator == "&&":
            return self._eval(node.right, scope) if truthy(left) else left
        if node.operator == "||":
            return left if truthy(left) else self._eval(node.right, scope)
        return self._eval(node.right, scope) if is_nullish(left) else left

    def _conditional(self, node: Conditional, scope: ChainMap) -> Any:
        if truthy(self._eval(node.test, scope)):
            return self._eval(node.consequent, scope)
        return self._eval(node.alternate, scope)

    def _arrow(self, node: Arrow, scope: ChainMap) -> Closure:
        return Closure(node, scope)
