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

"""Value model and JS-style conversions for the expression language.

Expression values are plain Python objects: ``str``, ``int``/``float``,
``bool``, ``None`` (JSON ``null``), ``list`` and ``dict``.  Two extras
exist only while evaluating: the :data:`UNDEFINED` sentinel (missing
properties, the ``undefined`` literal) and :class:`JSFunction` instances.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from typing import Any


class _Undefined:
    __slots__ = ()

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


class JSFunction:
    """Marker base for every value the interpreter may call."""

    name = "anonymous"


_EXPONENT_PADDING = re.compile(r"e([+-])0*(\d)")


def is_nullish(value: Any) -> bool:
    return value is None or value is UNDEFINED


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def format_number(value: int | float) -> str:
    """Format a number the way JavaScript prints it (``2``, not ``2.0``)."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return _EXPONENT_PADDING.sub(r"e\1\2", repr(value))


def to_string(value: Any) -> str:
    """JavaScript ``String(value)``."""
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return value
    if is_number(value):
        return format_number(value)
    if is_array(value):
        return ",".join("" if is_nullish(item) else to_string(item) for item in value)
    if isinstance(value, Mapping):
        return "[object Object]"
    if isinstance(value, JSFunction):
        return f"function {value.name}() {{ [native code] }}"
    return str(value)


def to_number(value: Any) -> int | float:
    """JavaScript ``Number(value)``."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if "_" in text:
            return math.nan
        try:
            return int(text)
        except ValueError:
            pass
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        if text.lower().lstrip("+-") in ("inf", "infinity", "nan"):
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    if is_array(value) and not value:
        return 0
    return math.nan


def truthy(value: Any) -> bool:
    """JavaScript truthiness: empty arrays and objects are truthy."""
    if is_nullish(value):
        return False
    if isinstance(value, (list, tuple, Mapping, JSFunction)):
        return True
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def type_of(value: Any) -> str:
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, JSFunction):
        return "function"
    return "object"


def strict_equals(left: Any, right: Any) -> bool:
    """JavaScript ``===``; arrays and objects compare by identity."""
    if is_nullish(left) or is_nullish(right):
        return left is right
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return left is right


def loose_equals(left: Any, right: Any) -> bool:
    """JavaScript ``==`` for the primitive types the language knows."""
    if is_nullish(left) or is_nullish(right):
        return is_nullish(left) and is_nullish(right)
    if isinstance(left, bool):
        left = int(left)
    if isinstance(right, bool):
        right = int(right)
    if is_number(left) and isinstance(right, str):
        return left == to_number(right)
    if isinstance(left, str) and is_number(right):
        return to_number(left) == right
    return strict_equals(left, right)


def same_value_zero(left: Any, right: Any) -> bool:
    """Equality used by ``includes``: like ``===`` but ``NaN`` equals ``NaN``."""
    if (
        isinstance(left, float) and isinstance(right, float)
        and math.isnan(left) and math.isnan(right)
    ):
        return True
    return strict_equals(left, right)


def to_property_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if is_number(key):
        return format_number(key)
    return to_string(key)


def to_index(key: Any) -> int | None:
    """Return *key* as an array index, or ``None`` if it is not one."""
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, float) and key.is_integer():
        return int(key)
    if isinstance(key, str) and key.isascii() and key.isdigit():
        return int(key)
    return None


def to_integer(value: Any, default: int = 0) -> int:
    """JavaScript ``ToIntegerOrInfinity`` clamped to a Python int."""
    if value is UNDEFINED:
        return default
    number = to_number(value)
    if isinstance(number, int):
        return number
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 2**53 if number > 0 else -(2**53)
    return int(number)


def _json_ready(value: Any) -> Any:
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        if value.is_integer() and abs(value) < 1e21:
            return int(value)
        return value
    if is_array(value):
        return [_json_ready(item) for item in value]
    if isinstance(value, Mapping):
        return {
            to_property_key(key): _json_ready(item)
            for key, item in value.items()
            if item is not UNDEFINED and not isinstance(item, JSFunction)
        }
    if value is UNDEFINED or isinstance(value, JSFunction):
        return None
    return value


def to_json(value: Any, indent: int | str | None = None) -> str:
    """JavaScript ``JSON.stringify`` for JSON-compatible values."""
    if indent is None or indent == 0 or indent == "":
        return json.dumps(
            _json_ready(value), ensure_ascii=False, separators=(",", ":"),
        )
    return json.dumps(_json_ready(value), ensure_ascii=False, indent=indent)


def render_value(value: Any) -> str:
    """Convert an expression result to the text inserted into the output.

    ``null``/``undefined`` render as nothing, arrays and objects as compact
    JSON, everything else as JavaScript would print it.
    """
    if is_nullish(value):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple, Mapping)):
        return to_json(value)
    return to_string(value)


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


def _is_primitive(value: Any) -> bool:
    return not isinstance(value, (list, tuple, Mapping, JSFunction))


def add(left: Any, right: Any) -> Any:
    """JavaScript ``+``: string concatenation if either side is not a number."""
    if (
        isinstance(left, str) or isinstance(right, str)
        or not _is_primitive(left) or not _is_primitive(right)
    ):
        return to_string(left) + to_string(right)
    return to_number(left) + to_number(right)


def divide(left: Any, right: Any) -> float:
    left, right = to_number(left), to_number(right)
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1, right)
    return left / right


def remainder(left: Any, right: Any) -> int | float:
    """JavaScript ``%``: the result takes the sign of the dividend."""
    left, right = to_number(left), to_number(right)
    if isinstance(left, int) and isinstance(right, int):
        if right == 0:
            return math.nan
        result = abs(left) % abs(right)
        return -result if left < 0 else result
    if right == 0 or math.isnan(left) or math.isnan(right) or math.isinf(left):
        return math.nan
    if math.isinf(right):
        return left
    return math.fmod(left, right)


def power(base: Any, exponent: Any) -> int | float:
    base, exponent = to_number(base), to_number(exponent)
    if math.isnan(base) or math.isnan(exponent):
        return math.nan
    try:
        result = float(base) ** float(exponent)
    except ZeroDivisionError:
        return math.inf
    except OverflowError:
        return math.inf if base > 0 or float(exponent) % 2 == 0 else -math.inf
    if isinstance(result, complex):
        return math.nan
    if (
        isinstance(base, int) and isinstance(exponent, int) and exponent >= 0
        and abs(result) < 2**53
    ):
        return base**exponent
    return result


def compare(operator: str, left: Any, right: Any) -> bool:
    """JavaScript relational operators: strings compare as text, else as numbers."""
    if not (isinstance(left, str) and isinstance(right, str)):
        left, right = to_number(left), to_number(right)
        if math.isnan(left) or math.isnan(right):
            return False
    if operator == "<":
        return left < right
    if operator == ">":
        return left > right
    if operator == "<=":
        return left <= right
    return left >= right
