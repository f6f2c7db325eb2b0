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

"""Tests for pchtml.partials."""

import logging

import pytest

from pchtml.errors import UnterminatedRegionError
from pchtml.partials import expand_partial, invocation_context


def _echo(body, context):
    return f"{body}|{context['title']}|{context['contents']}"


class TestInvocationContext:
    def test_attributes_override_outer_context(self):
        context = invocation_context('<_a title="inner"/>', {"title": "outer", "x": 1})
        assert context == {"title": "inner", "x": 1, "contents": ""}

    def test_contents_wins_over_attribute(self):
        context = invocation_context('<_a contents="attr">inner</_a>', {})
        assert context["contents"] == "inner"

    def test_outer_context_not_mutated(self):
        outer = {"x": 1}
        invocation_context('<_a y="2">z</_a>', outer)
        assert outer == {"x": 1}


class TestExpandPartial:
    def test_replaces_invocation(self):
        output = expand_partial(
            '<_box title="Hi">World</_box>', "box", "<h1>{title}</h1>", {}, _echo,
        )
        assert output == "<h1>{title}</h1>|Hi|World"

    def test_each_invocation_replaced_in_place(self):
        calls = []

        def render_body(body, context):
            calls.append(context["n"])
            return str(len(calls))

        output = expand_partial(
            '<_a n="1"/> middle <_a n="2"/>', "a", "", {}, render_body,
        )
        assert output == "1 middle 2"
        assert calls == [1, 2]

    def test_output_not_rescanned(self):
        output = expand_partial("<_a/>", "a", "", {}, lambda body, context: "<_a/>")
        assert output == "<_a/>"

    def test_other_partials_untouched(self):
        markup = "<_other/> <_a/>"
        output = expand_partial(markup, "a", "", {}, lambda body, context: "A")
        assert output == "<_other/> A"

    def test_no_invocations_is_identity(self):
        markup = "<p>nothing here</p>"
        assert expand_partial(markup, "a", "x", {}, _echo) is markup

    def test_nested_invocation_passed_as_contents(self):
        seen = []

        def render_body(body, context):
            seen.append(context["contents"])
            return "X"

        output = expand_partial("<_a><_a>in</_a></_a>", "a", "", {}, render_body)
        assert output == "X"
        assert seen == ["<_a>in</_a>"]

    def test_strict_unterminated(self):
        with pytest.raises(UnterminatedRegionError):
            expand_partial("<_a>open", "a", "", {}, _echo, strict=True)

    def test_logs_invocation_count(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="pchtml.partials"):
            expand_partial("<_a/><_a/>", "a", "", {}, lambda body, context: "")
        assert "Found 2 a invocations" in caplog.text
