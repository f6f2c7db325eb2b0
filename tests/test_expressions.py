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

"""Tests for pchtml.expressions."""

import math

import pytest

from pchtml.errors import ExpressionError
from pchtml.expressions import UNDEFINED, Interpreter, evaluate, render_value
from pchtml.expressions.lexer import TokenType, tokenize
from pchtml.expressions.nodes import Arrow, Binary, Call, MarkupLiteral, OptionalChain
from pchtml.expressions.parser import parse
from pchtml.expressions.values import to_number, truthy


class TestLexer:
    def test_less_than_after_operand_is_operator(self):
        tokens = tokenize("a < b")
        assert [t.type for t in tokens] == [
            TokenType.NAME, TokenType.PUNCT, TokenType.NAME, TokenType.EOF,
        ]

    def test_markup_in_operand_position(self):
        tokens = tokenize("x ? <p>{y}</p> : ''")
        assert tokens[2].type is TokenType.MARKUP
        assert tokens[2].value == "<p>{y}</p>"

    def test_string_escapes(self):
        tokens = tokenize(r"'a\'b\nA'")
        assert tokens[0].value == "a'b\nA"

    def test_numbers(self):
        values = [t.value for t in tokenize("1 2.5 1e3 .5")[:-1]]
        assert values == [1, 2.5, 1000.0, 0.5]
        assert isinstance(values[0], int)

    def test_optional_chain_not_confused_with_conditional(self):
        tokens = tokenize("a?.5:1")
        assert [t.value for t in tokens[:-1]] == ["a", "?", 0.5, ":", 1]

    def test_comments_skipped(self):
        assert [t.type for t in tokenize("/* note */ 1")] == [TokenType.NUMBER, TokenType.EOF]

    def test_unterminated_string(self):
        with pytest.raises(ExpressionError, match="Unterminated string"):
            tokenize("'abc")

    def test_assignment_rejected(self):
        with pytest.raises(ExpressionError, match="Unexpected character"):
            tokenize("a = 1")

    def test_only_ascii_digits_start_numbers(self):
        with pytest.raises(ExpressionError, match="Unexpected character"):
            tokenize("\u00b2")


class TestParser:
    def test_precedence(self):
        node = parse("1 + 2 * 3")
        assert isinstance(node, Binary)
        assert node.operator == "+"
        assert isinstance(node.right, Binary)
        assert node.right.operator == "*"

    def test_arrow_with_params(self):
        node = parse("(a, b) => a + b")
        assert isinstance(node, Arrow)
        assert node.params == ["a", "b"]

    def test_optional_chain_wrapped(self):
        assert isinstance(parse("a?.b.c"), OptionalChain)

    def test_markup_literal(self):
        node = parse("items.map(i => <li>{i}</li>)")
        assert isinstance(node, Call)
        assert isinstance(node.arguments[0].body, MarkupLiteral)

    def test_block_body_rejected(self):
        with pytest.raises(ExpressionError, match="expression bodies"):
            parse("x => { return 1 }")

    def test_unsupported_keyword(self):
        with pytest.raises(ExpressionError, match="'new' is not supported"):
            parse("new Date()")

    def test_error_position(self):
        with pytest.raises(ExpressionError) as exc_info:
            parse("1 +")
        assert exc_info.value.position == 3
        assert exc_info.value.expression == "1 +"

    def test_trailing_tokens(self):
        with pytest.raises(ExpressionError, match="Unexpected token"):
            parse("1 2")


class TestOperators:
    def test_arithmetic(self):
        assert evaluate("1 + 2 * 3") == 7
        assert evaluate("(1 + 2) * 3") == 9
        assert evaluate("7 / 2") == 3.5
        assert evaluate("7 % 3") == 1
        assert evaluate("-7 % 3") == -1

    def test_power_is_right_associative(self):
        assert evaluate("2 ** 3 ** 2") == 512

    def test_division_by_zero(self):
        assert evaluate("1 / 0") == math.inf
        assert math.isnan(evaluate("0 / 0"))

    def test_string_concatenation(self):
        assert evaluate("'a' + 1") == "a1"
        assert evaluate("1 + '1'") == "11"
        assert evaluate("'x' + null") == "xnull"

    def test_comparison(self):
        assert evaluate("2 < 10") is True
        assert evaluate("'2' < '10'") is False
        assert evaluate("a < b", {"a": 1, "b": 2}) is True

    def test_equality(self):
        assert evaluate("1 == '1'") is True
        assert evaluate("1 === '1'") is False
        assert evaluate("null == undefined") is True
        assert evaluate("null === undefined") is False

    def test_logical(self):
        assert evaluate("0 || 'x'") == "x"
        assert evaluate("0 ?? 'x'") == 0
        assert evaluate("null ?? 'x'") == "x"
        assert evaluate("'' && 1") == ""

    def test_conditional(self):
        assert evaluate("a > 1 ? 'big' : 'small'", {"a": 2}) == "big"
        assert evaluate("a ? b ? 1 : 2 : 3", {"a": True, "b": False}) == 2

    def test_typeof(self):
        assert evaluate("typeof missing") == "undefined"
        assert evaluate("typeof 1") == "number"
        assert evaluate("typeof (x => x)") == "function"


class TestMembers:
    def test_property_and_index(self):
        context = {"user": {"name": "Amy"}, "items": [1, 2]}
        assert evaluate("user.name", context) == "Amy"
        assert evaluate("user['name']", context) == "Amy"
        assert evaluate("items[1]", context) == 2
        assert evaluate("items.length", context) == 2

    def test_missing_property_is_undefined(self):
        assert evaluate("user.missing", {"user": {}}) is UNDEFINED

    def test_optional_chaining(self):
        assert evaluate("user?.address?.street", {"user": None}) is UNDEFINED
        assert evaluate("user.address?.street", {"user": {}}) is UNDEFINED
        assert evaluate("fn?.()", {"fn": None}) is UNDEFINED

    def test_null_property_access_fails(self):
        with pytest.raises(ExpressionError, match="Cannot read properties of null"):
            evaluate("user.name", {"user": None})

    def test_undefined_identifier(self):
        with pytest.raises(ExpressionError, match="missing is not defined"):
            evaluate("missing")

    def test_internals_not_reachable(self):
        assert evaluate("''.__class__") is UNDEFINED
        assert evaluate("items.constructor", {"items": []}) is UNDEFINED

    def test_negative_index_is_undefined(self):
        assert evaluate("items[-1]", {"items": ["a", "b"]}) is UNDEFINED
        assert evaluate("'ab'[-1]") is UNDEFINED
        assert evaluate("items['-1']", {"items": ["a", "b"]}) is UNDEFINED

    def test_calling_non_function(self):
        with pytest.raises(ExpressionError, match="name is not a function"):
            evaluate("name()", {"name": "x"})


class TestFunctions:
    def test_map_with_arrow(self):
        assert evaluate("items.map(i => i * 2)", {"items": [1, 2, 3]}) == [2, 4, 6]

    def test_map_with_index(self):
        source = "items.map((x, i) => i + ':' + x).join(',')"
        assert evaluate(source, {"items": ["a", "b"]}) == "0:a,1:b"

    def test_filter_reduce(self):
        source = "items.filter(n => n % 2).reduce((a, b) => a + b, 0)"
        assert evaluate(source, {"items": [1, 2, 3, 4, 5]}) == 9

    def test_reduce_empty_without_initial(self):
        with pytest.raises(ExpressionError, match="Reduce of empty array"):
            evaluate("[].reduce((a, b) => a + b)")

    def test_sort_does_not_mutate_context(self):
        items = [3, 1, 2]
        assert evaluate("items.sort((a, b) => a - b)", {"items": items}) == [1, 2, 3]
        assert items == [3, 1, 2]

    def test_default_sort_is_textual(self):
        assert evaluate("[10, 9, 1].sort()") == [1, 10, 9]

    def test_closures_capture_scope(self):
        source = "xs.map(x => ys.map(y => x + y))"
        assert evaluate(source, {"xs": [1, 2], "ys": [10]}) == [[11], [12]]

    def test_template_literal(self):
        assert evaluate("`Hi ${name}!`", {"name": "Amy"}) == "Hi Amy!"
        assert evaluate("`${ {a: 1}.a }`") == "1"

    def test_markup_literal_evaluates_regions(self):
        source = "items.map(i => <li>{i}</li>).join('')"
        assert evaluate(source, {"items": ["a", "b"]}) == "<li>a</li><li>b</li>"

    def test_literals(self):
        context = {"base": {"x": 1}, "a": 3, "items": [1, 2], "k": "z"}
        assert evaluate("{...base, b: 2, a}", context) == {"x": 1, "b": 2, "a": 3}
        assert evaluate("[0, ...items]", context) == [0, 1, 2]
        assert evaluate("({[k]: 1})", context) == {"z": 1}

    def test_empty_expression(self):
        assert evaluate("") is UNDEFINED
        assert evaluate("/* note */") is UNDEFINED


class TestBuiltins:
    def test_math(self):
        assert evaluate("Math.max(1, 5, 3)") == 5
        assert evaluate("Math.round(2.5)") == 3
        assert evaluate("Math.floor(-1.5)") == -2

    def test_json(self):
        assert evaluate("JSON.stringify({a: [1, 2]})") == '{"a":[1,2]}'
        assert evaluate("JSON.parse('[1, 2]')") == [1, 2]
        with pytest.raises(ExpressionError):
            evaluate("JSON.parse('{bad')")

    def test_object(self):
        assert evaluate("Object.keys(o).join('|')", {"o": {"a": 1, "b": 2}}) == "a|b"
        assert evaluate("Object.entries({a: 1})") == [["a", 1]]

    def test_string_methods(self):
        assert evaluate("'Hello'.toUpperCase()") == "HELLO"
        assert evaluate("' x '.trim()") == "x"
        assert evaluate("'a-b-c'.split('-')") == ["a", "b", "c"]
        assert evaluate("'abc'.slice(-2)") == "bc"
        assert evaluate("'5'.padStart(3, '0')") == "005"
        assert evaluate("'aXbX'.replace('X', '-')") == "a-bX"
        assert evaluate("'aXbX'.replaceAll('X', '-')") == "a-b-"
        assert evaluate("'abc'.includes('b')") is True

    def test_number_methods(self):
        assert evaluate("(2.5).toFixed(0)") == "3"
        assert evaluate("(3.14159).toFixed(2)") == "3.14"
        assert evaluate("(255).toString(16)") == "ff"

    def test_conversions(self):
        assert evaluate("parseInt('42px')") == 42
        assert evaluate("parseInt('0x1f')") == 31
        assert evaluate("parseFloat('3.5em')") == 3.5
        assert evaluate("isNaN('abc')") is True
        assert evaluate("String(12)") == "12"
        assert evaluate("Number('7')") == 7

    def test_encode_and_escape(self):
        assert evaluate("encodeURIComponent('a b&c')") == "a%20b%26c"
        assert evaluate("escape(s)", {"s": "<b>&</b>"}) == "&lt;b&gt;&amp;&lt;/b&gt;"

    def test_concat(self):
        assert evaluate("concat('a', 1, true)") == "a1true"

    def test_helpers(self):
        helpers = {"money": lambda value: f"${value:.2f}"}
        assert evaluate("money(5)", helpers=helpers) == "$5.00"

    def test_failing_helper_raises_expression_error(self):
        helpers = {"shout": lambda value: value.upper()}
        with pytest.raises(ExpressionError, match="Helper 'shout' failed"):
            evaluate("shout(n)", {"n": 3}, helpers=helpers)

    def test_context_shadows_builtins(self):
        assert evaluate("Math", {"Math": "mine"}) == "mine"

    def test_non_callable_helper_rejected(self):
        with pytest.raises(TypeError):
            Interpreter(helpers={"bad": 3})


class TestBudget:
    def test_step_budget(self):
        source = "items.map(i => items.map(j => i * j))"
        with pytest.raises(ExpressionError, match="step budget"):
            evaluate(source, {"items": list(range(100))}, max_steps=1000)

    def test_budget_shared_across_expressions(self):
        interpreter = Interpreter(max_steps=5)
        scope = interpreter.scope({})
        interpreter.evaluate("1 + 2", scope)
        with pytest.raises(ExpressionError):
            interpreter.evaluate("1 + 2", scope)

    def test_excessive_nesting_raises_expression_error(self):
        source = "(" * 1000 + "1" + ")" * 1000
        with pytest.raises(ExpressionError):
            evaluate(source)


class TestInterpolate:
    def test_positional_substitution(self):
        interpreter = Interpreter()
        scope = interpreter.scope({"a": "{a}"})
        assert interpreter.interpolate("{a}-{a}", scope) == "{a}-{a}"

    def test_error_location(self):
        interpreter = Interpreter()
        with pytest.raises(ExpressionError) as exc_info:
            interpreter.interpolate("<p>\n  {missing}</p>", interpreter.scope({}))
        assert exc_info.value.location.line == 2
        assert exc_info.value.location.column == 3


class TestRenderValue:
    def test_primitives(self):
        assert render_value(None) == ""
        assert render_value(UNDEFINED) == ""
        assert render_value(True) == "true"
        assert render_value(2.0) == "2"
        assert render_value(0.1 + 0.2) == "0.30000000000000004"
        assert render_value(1.5e-7) == "1.5e-7"
        assert render_value(float("nan")) == "NaN"

    def test_collections_as_json(self):
        assert render_value([1, "a"]) == '[1,"a"]'
        assert render_value({"a": None}) == '{"a":null}'


class TestConversions:
    def test_to_number(self):
        assert to_number("") == 0
        assert to_number(" 12 ") == 12
        assert math.isnan(to_number("1_000"))
        assert math.isnan(to_number("abc"))

    def test_truthy(self):
        assert truthy([]) is True
        assert truthy({}) is True
        assert truthy("") is False
        assert truthy(float("nan")) is False
        assert truthy(UNDEFINED) is False
