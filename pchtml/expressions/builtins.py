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

"""Whitelisted globals and methods callable from expressions.

Only what is registered here (plus arrow functions and caller-supplied
helpers) can be called.  Every implementation takes ``call`` first: the
interpreter's ``call(fn, args)`` used to invoke callbacks such as the
function passed to ``map``.

Usage::

    scope_globals = build_globals({"money": lambda v: f"${v:,.2f}"})
    method = get_member([1, 2, 3], "join")   # BoundMethod
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Callable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from functools import cmp_to_key
from typing import Any
from urllib.parse import quote

from markupsafe import escape as html_escape

from pchtml.errors import ExpressionError
from pchtml.expressions.values import (
    UNDEFINED,
    JSFunction,
    format_number,
    is_array,
    is_nullish,
    is_number,
    power,
    render_value,
    same_value_zero,
    strict_equals,
    to_integer,
    to_json,
    to_number,
    to_property_key,
    to_index,
    to_string,
    truthy,
)

Call = Callable[[Any, list], Any]


class Builtin(JSFunction):
    """A named Python function exposed to expressions."""

    def __init__(self, name: str, func: Callable[..., Any]) -> None:
        self.name = name
        self.func = func

    def invoke(self, call: Call, args: list) -> Any:
        return self.func(call, *args)

    def __repr__(self) -> str:
        return f"Builtin({self.name!r})"


class BoundMethod(JSFunction):
    """A string, array or number method bound to its receiver."""

    def __init__(self, name: str, target: Any, impl: Callable[..., Any]) -> None:
        self.name = name
        self.target = target
        self.impl = impl

    def invoke(self, call: Call, args: list) -> Any:
        return self.impl(call, self.target, *args)


def _require_function(value: Any) -> JSFunction:
    if not isinstance(value, JSFunction):
        raise TypeError(f"{to_string(value)} is not a function")
    return value


def _relative_index(value: Any, length: int, default: int) -> int:
    if value is UNDEFINED:
        return default
    index = to_integer(value)
    if index < 0:
        return max(length + index, 0)
    return min(index, length)


def _at(sequence: Any, index: Any = UNDEFINED) -> Any:
    position = to_integer(index)
    if position < 0:
        position += len(sequence)
    if 0 <= position < len(sequence):
        return sequence[position]
    return UNDEFINED


# ---------------------------------------------------------------------------
# Array methods
# ---------------------------------------------------------------------------


def _map(call, items, fn=UNDEFINED, *_):
    _require_function(fn)
    return [call(fn, [item, index, items]) for index, item in enumerate(items)]


def _filter(call, items, fn=UNDEFINED, *_):
    _require_function(fn)
    return [
        item for index, item in enumerate(items)
        if truthy(call(fn, [item, index, items]))
    ]


def _find(call, items, fn=UNDEFINED, *_):
    _require_function(fn)
    for index, item in enumerate(items):
        if truthy(call(fn, [item, index, items])):
            return item
    return UNDEFINED


def _find_index(call, items, fn=UNDEFINED, *_):
    _require_function(fn)
    for index, item in enumerate(items):
        if truthy(call(fn, [item, index, items])):
            return index
    return -1


def _some(call, items, fn=UNDEFINED, *_):
    _require_function(fn)
    return any(truthy(call(fn, [item, index, items])) for index, item in enumerate(items))


def _every(call, items, fn=UNDEFINED, *_):
    _require_function(fn)
    return all(truthy(call(fn, [item, index, items])) for index, item in enumerate(items))


def _for_each(call, items, fn=UNDEFINED, *_):
    _require_function(fn)
    for index, item in enumerate(items):
        call(fn, [item, index, items])
    return UNDEFINED


def _reduce(call, items, fn=UNDEFINED, *initial):
    _require_function(fn)
    if initial:
        accumulator, start = initial[0], 0
    elif items:
        accumulator, start = items[0], 1
    else:
        raise TypeError("Reduce of empty array with no initial value")
    for index in range(start, len(items)):
        accumulator = call(fn, [accumulator, items[index], index, items])
    return accumulator


def _flatten(items, depth: int) -> list:
    flat: list = []
    for item in items:
        if is_array(item) and depth > 0:
            flat.extend(_flatten(item, depth - 1))
        else:
            flat.append(item)
    return flat


def _flat(call, items, depth=UNDEFINED, *_):
    return _flatten(items, to_integer(depth, default=1))


def _flat_map(call, items, fn=UNDEFINED, *_):
    return _flatten(_map(call, items, fn), 1)


def _join(call, items, separator=UNDEFINED, *_):
    separator = "," if separator is UNDEFINED else to_string(separator)
    return separator.join("" if is_nullish(item) else to_string(item) for item in items)


def _array_slice(call, items, start=UNDEFINED, end=UNDEFINED, *_):
    length = len(items)
    begin = _relative_index(start, length, 0)
    finish = _relative_index(end, length, length)
    return list(items[begin:finish])


def _array_includes(call, items, value=UNDEFINED, start=UNDEFINED, *_):
    begin = _relative_index(start, len(items), 0)
    return any(same_value_zero(item, value) for item in items[begin:])


def _array_index_of(call, items, value=UNDEFINED, start=UNDEFINED, *_):
    begin = _relative_index(start, len(items), 0)
    for index in range(begin, len(items)):
        if strict_equals(items[index], value):
            return index
    return -1


def _array_concat(call, items, *others):
    result = list(items)
    for other in others:
        if is_array(other):
            result.extend(other)
        else:
            result.append(other)
    return result


def _reverse(call, items, *_):
    # Returns a copy; context data is never mutated
    return list(reversed(items))


def _default_compare(left: Any, right: Any) -> int:
    if left is UNDEFINED or right is UNDEFINED:
        return (left is UNDEFINED) - (right is UNDEFINED)
    left, right = to_string(left), to_string(right)
    return (left > right) - (left < right)


def _sort(call, items, compare=UNDEFINED, *_):
    if compare is UNDEFINED:
        return sorted(items, key=cmp_to_key(_default_compare))
    _require_function(compare)

    def ordering(left: Any, right: Any) -> int:
        result = to_number(call(compare, [left, right]))
        if math.isnan(result):
            return 0
        return (result > 0) - (result < 0)

    return sorted(items, key=cmp_to_key(ordering))


def _array_at(call, items, index=UNDEFINED, *_):
    return _at(items, index)


ARRAY_METHODS: dict[str, Callable[..., Any]] = {
    "map": _map,
    "filter": _filter,
    "find": _find,
    "findIndex": _find_index,
    "some": _some,
    "every": _every,
    "forEach": _for_each,
    "reduce": _reduce,
    "flat": _flat,
    "flatMap": _flat_map,
    "join": _join,
    "slice": _array_slice,
    "includes": _array_includes,
    "indexOf": _array_index_of,
    "concat": _array_concat,
    "reverse": _reverse,
    "sort": _sort,
    "at": _array_at,
    "toString": lambda call, items, *_: _join(call, items),
}


# ---------------------------------------------------------------------------
# String methods
# ---------------------------------------------------------------------------


def _occurrences(text: str, pattern: str, first_only: bool) -> list[int]:
    if not pattern:
        positions = list(range(len(text) + 1))
        return positions[:1] if first_only else positions
    positions = []
    index = text.find(pattern)
    while index != -1:
        positions.append(index)
        if first_only:
            break
        index = text.find(pattern, index + len(pattern))
    return positions


def _replace_occurrences(call, text, pattern, replacement, first_only):
    pattern = to_string(pattern)
    pieces: list[str] = []
    cursor = 0
    for index in _occurrences(text, pattern, first_only):
        pieces.append(text[cursor:index])
        if isinstance(replacement, JSFunction):
            pieces.append(to_string(call(replacement, [pattern, index, text])))
        else:
            pieces.append(to_string(replacement))
        cursor = index + len(pattern)
    pieces.append(text[cursor:])
    return "".join(pieces)


def _replace(call, text, pattern=UNDEFINED, replacement=UNDEFINED, *_):
    return _replace_occurrences(call, text, pattern, replacement, True)


def _replace_all(call, text, pattern=UNDEFINED, replacement=UNDEFINED, *_):
    return _replace_occurrences(call, text, pattern, replacement, False)


def _split(call, text, separator=UNDEFINED, limit=UNDEFINED, *_):
    if separator is UNDEFINED:
        parts = [text]
    else:
        separator = to_string(separator)
        parts = list(text) if not separator else text.split(separator)
    if limit is not UNDEFINED:
        parts = parts[: max(to_integer(limit), 0)]
    return parts


def _string_includes(call, text, search=UNDEFINED, start=UNDEFINED, *_):
    return to_string(search) in text[max(to_integer(start), 0):]


def _starts_with(call, text, search=UNDEFINED, start=UNDEFINED, *_):
    return text.startswith(to_string(search), max(to_integer(start), 0))


def _ends_with(call, text, search=UNDEFINED, end=UNDEFINED, *_):
    finish = len(text) if end is UNDEFINED else max(to_integer(end), 0)
    return text[:finish].endswith(to_string(search))


def _string_index_of(call, text, search=UNDEFINED, start=UNDEFINED, *_):
    return text.find(to_string(search), min(max(to_integer(start), 0), len(text)))


def _last_index_of(call, text, search=UNDEFINED, *_):
    return text.rfind(to_string(search))


def _string_slice(call, text, start=UNDEFINED, end=UNDEFINED, *_):
    length = len(text)
    return text[_relative_index(start, length, 0) : _relative_index(end, length, length)]


def _substring(call, text, start=UNDEFINED, end=UNDEFINED, *_):
    length = len(text)
    begin = min(max(to_integer(start), 0), length)
    finish = length if end is UNDEFINED else min(max(to_integer(end), 0), length)
    if begin > finish:
        begin, finish = finish, begin
    return text[begin:finish]


def _padding(text: str, length: Any, fill: Any) -> str:
    target = to_integer(length)
    fill = " " if fill is UNDEFINED else to_string(fill)
    needed = target - len(text)
    if needed <= 0 or not fill:
        return ""
    return (fill * (needed // len(fill) + 1))[:needed]


def _pad_start(call, text, length=UNDEFINED, fill=UNDEFINED, *_):
    return _padding(text, length, fill) + text


def _pad_end(call, text, length=UNDEFINED, fill=UNDEFINED, *_):
    return text + _padding(text, length, fill)


def _repeat(call, text, count=UNDEFINED, *_):
    times = to_integer(count)
    if times < 0:
        raise ValueError(f"Invalid count value: {times}")
    return text * times


def _char_at(call, text, index=UNDEFINED, *_):
    position = to_integer(index)
    return text[position] if 0 <= position < len(text) else ""


def _string_at(call, text, index=UNDEFINED, *_):
    return _at(text, index)


def _string_concat(call, text, *others):
    return text + "".join(to_string(other) for other in others)


STRING_METHODS: dict[str, Callable[..., Any]] = {
    "toUpperCase": lambda call, text, *_: text.upper(),
    "toLowerCase": lambda call, text, *_: text.lower(),
    "trim": lambda call, text, *_: text.strip(),
    "trimStart": lambda call, text, *_: text.lstrip(),
    "trimEnd": lambda call, text, *_: text.rstrip(),
    "split": _split,
    "replace": _replace,
    "replaceAll": _replace_all,
    "includes": _string_includes,
    "startsWith": _starts_with,
    "endsWith": _ends_with,
    "indexOf": _string_index_of,
    "lastIndexOf": _last_index_of,
    "slice": _string_slice,
    "substring": _substring,
    "padStart": _pad_start,
    "padEnd": _pad_end,
    "repeat": _repeat,
    "charAt": _char_at,
    "at": _string_at,
    "concat": _string_concat,
    "toString": lambda call, text, *_: text,
}


# ---------------------------------------------------------------------------
# Number methods
# ---------------------------------------------------------------------------

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_fixed(call, value, digits=UNDEFINED, *_):
    places = to_integer(digits)
    if not 0 <= places <= 100:
        raise ValueError("toFixed() digits argument must be between 0 and 100")
    if isinstance(value, float) and (math.isnan(value) or abs(value) >= 1e21):
        return format_number(value)
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _number_to_string(call, value, radix=UNDEFINED, *_):
    base = 10 if radix is UNDEFINED else to_integer(radix)
    if not 2 <= base <= 36:
        raise ValueError("toString() radix must be between 2 and 36")
    if base == 10 or not float(value).is_integer():
        return format_number(value)
    number = int(value)
    digits = []
    magnitude = abs(number)
    while True:
        magnitude, digit = divmod(magnitude, base)
        digits.append(_DIGITS[digit])
        if not magnitude:
            break
    return ("-" if number < 0 else "") + "".join(reversed(digits))


NUMBER_METHODS: dict[str, Callable[..., Any]] = {
    "toFixed": _to_fixed,
    "toString": _number_to_string,
}


def get_member(target: Any, key: Any) -> Any:
    """Property access: ``target[key]`` with JavaScript semantics."""
    name = to_property_key(key)
    if is_nullish(target):
        raise TypeError(
            f"Cannot read properties of {to_string(target)} (reading '{name}')"
        )
    if isinstance(target, Mapping):
        return target.get(name, UNDEFINED)
    if isinstance(target, str) or is_array(target):
        if name == "length":
            return len(target)
        index = to_index(key)
        if index is not None:
            return target[index] if 0 <= index < len(target) else UNDEFINED
        methods = STRING_METHODS if isinstance(target, str) else ARRAY_METHODS
        method = methods.get(name)
        return UNDEFINED if method is None else BoundMethod(name, target, method)
    if isinstance(target, bool):
        if name == "toString":
            return BoundMethod(name, target, lambda call, value, *_: to_string(value))
        return UNDEFINED
    if is_number(target):
        method = NUMBER_METHODS.get(name)
        return UNDEFINED if method is None else BoundMethod(name, target, method)
    if isinstance(target, JSFunction) and name == "name":
        return target.name
    return UNDEFINED


# ---------------------------------------------------------------------------
# Globals
# ---------------------------------------------------------------------------


def _unary_math(func: Callable[[float], Any]) -> Callable[..., Any]:
    def apply(call, value=UNDEFINED, *_):
        number = to_number(value)
        if math.isnan(number):
            return math.nan
        return func(number)

    return apply


def _integral(func: Callable[[float], int]) -> Callable[[float], Any]:
    def apply(number):
        return number if math.isinf(number) else func(number)

    return apply


def _sign(number):
    if number > 0:
        return 1
    if number < 0:
        return -1
    return number


def _sqrt(number):
    if number < 0:
        return math.nan
    return math.inf if math.isinf(number) else math.sqrt(number)


def _extreme(pick: Callable[..., Any], empty: float) -> Callable[..., Any]:
    def apply(call, *values):
        numbers = [to_number(value) for value in values]
        if any(math.isnan(number) for number in numbers):
            return math.nan
        return pick(numbers) if numbers else empty

    return apply


def _math() -> dict[str, Any]:
    return {
        "abs": Builtin("abs", _unary_math(abs)),
        "ceil": Builtin("ceil", _unary_math(_integral(math.ceil))),
        "floor": Builtin("floor", _unary_math(_integral(math.floor))),
        "trunc": Builtin("trunc", _unary_math(_integral(math.trunc))),
        "round": Builtin("round", _unary_math(_integral(lambda n: math.floor(n + 0.5)))),
        "sign": Builtin("sign", _unary_math(_sign)),
        "sqrt": Builtin("sqrt", _unary_math(_sqrt)),
        "max": Builtin("max", _extreme(max, -math.inf)),
        "min": Builtin("min", _extreme(min, math.inf)),
        "pow": Builtin("pow", lambda call, base=UNDEFINED, exponent=UNDEFINED, *_: power(base, exponent)),
        "PI": math.pi,
        "E": math.e,
    }


def _stringify(call, value=UNDEFINED, replacer=UNDEFINED, indent=UNDEFINED, *_):
    if value is UNDEFINED or isinstance(value, JSFunction):
        return UNDEFINED
    if is_number(indent):
        indent = min(max(to_integer(indent), 0), 10) or None
    elif isinstance(indent, str):
        indent = indent[:10] or None
    else:
        indent = None
    return to_json(value, indent=indent)


def _parse_json(call, text=UNDEFINED, *_):
    return json.loads(to_string(text))


def _object_keys(value: Any) -> list[str]:
    if isinstance(value, Mapping):
        return [to_property_key(key) for key in value]
    if is_array(value) or isinstance(value, str):
        return [str(index) for index in range(len(value))]
    return []


def _object_entries(call, value=UNDEFINED, *_):
    if isinstance(value, Mapping):
        return [[to_property_key(key), item] for key, item in value.items()]
    if is_array(value) or isinstance(value, str):
        return [[str(index), item] for index, item in enumerate(value)]
    return []


def _from_entries(call, entries=UNDEFINED, *_):
    if not is_array(entries):
        raise TypeError(f"{to_string(entries)} is not iterable")
    result = {}
    for entry in entries:
        if not is_array(entry):
            raise TypeError(f"Iterator value {to_string(entry)} is not an entry object")
        key = entry[0] if entry else UNDEFINED
        result[to_property_key(key)] = entry[1] if len(entry) > 1 else UNDEFINED
    return result


def _array_from(call, value=UNDEFINED, fn=UNDEFINED, *_):
    if isinstance(value, str) or is_array(value):
        items = list(value)
    else:
        items = []
    if fn is UNDEFINED:
        return items
    return _map(call, items, fn)


_FLOAT_PATTERN = re.compile(r"[+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)")


def _parse_int(call, text=UNDEFINED, radix=UNDEFINED, *_):
    text = to_string(text).strip()
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    base = to_integer(radix)
    if base in (0, 16) and text[:2].lower() == "0x":
        text, base = text[2:], 16
    base = base or 10
    if not 2 <= base <= 36:
        return math.nan
    digits = 0
    for char in text:
        if char.lower() not in _DIGITS[:base]:
            break
        digits += 1
    if not digits:
        return math.nan
    return sign * int(text[:digits], base)


def _parse_float(call, text=UNDEFINED, *_):
    match = _FLOAT_PATTERN.match(to_string(text).strip())
    if match is None:
        return math.nan
    return to_number(match.group())


def _is_nan(call, value=UNDEFINED, *_):
    number = to_number(value)
    return isinstance(number, float) and math.isnan(number)


def _escape(call, value=UNDEFINED, *_):
    return str(html_escape(render_value(value)))


def _helper(name: str, func: Callable[..., Any]) -> Builtin:
    if not callable(func):
        raise TypeError(f"Helper {name!r} is not callable")

    def invoke(call, *args):
        try:
            return func(*(None if arg is UNDEFINED else arg for arg in args))
        except ExpressionError:
            raise
        except Exception as exc:
            raise ExpressionError(f"Helper {name!r} failed: {exc}") from exc

    return Builtin(name, invoke)


def build_globals(helpers: Mapping[str, Callable[..., Any]] | None = None) -> dict[str, Any]:
    """Return the global bindings visible to every expression.

    *helpers* are plain Python callables; they receive ``None`` for
    ``undefined`` arguments and shadow built-ins of the same name.
    """
    bindings: dict[str, Any] = {
        "undefined": UNDEFINED,
        "NaN": math.nan,
        "Infinity": math.inf,
        "Math": _math(),
        "JSON": {
            "stringify": Builtin("stringify", _stringify),
            "parse": Builtin("parse", _parse_json),
        },
        "Object": {
            "keys": Builtin("keys", lambda call, value=UNDEFINED, *_: _object_keys(value)),
            "values": Builtin(
                "values",
                lambda call, value=UNDEFINED, *_: [
                    item for key, item in _object_entries(call, value)
                ],
            ),
            "entries": Builtin("entries", _object_entries),
            "fromEntries": Builtin("fromEntries", _from_entries),
        },
        "Array": {
            "isArray": Builtin("isArray", lambda call, value=UNDEFINED, *_: is_array(value)),
            "from": Builtin("from", _array_from),
        },
        "String": Builtin(
            "String", lambda call, *args: to_string(args[0]) if args else "",
        ),
        "Number": Builtin(
            "Number", lambda call, *args: to_number(args[0]) if args else 0,
        ),
        "Boolean": Builtin("Boolean", lambda call, value=UNDEFINED, *_: truthy(value)),
        "parseInt": Builtin("parseInt", _parse_int),
        "parseFloat": Builtin("parseFloat", _parse_float),
        "isNaN": Builtin("isNaN", _is_nan),
        "encodeURIComponent": Builtin(
            "encodeURIComponent",
            lambda call, value=UNDEFINED, *_: quote(to_string(value), safe="-_.!~*'()"),
        ),
        "concat": Builtin(
            "concat", lambda call, *args: "".join(render_value(arg) for arg in args),
        ),
        "escape": Builtin("escape", _escape),
    }
    for name, func in (helpers or {}).items():
        bindings[name] = _helper(name, func)
    return bindings
