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

"""Tests for pchtml.attributes."""

from pchtml.attributes import inner_contents, opening_segment, parse_attributes, parse_value


class TestParseAttributes:
    def test_json_values(self):
        fragment = (
            '<_box title="Hi" count="3" flag="true" empty="null" '
            "tags='[\"a\", \"b\"]'>x</_box>"
        )
        assert parse_attributes(fragment) == {
            "title": "Hi",
            "count": 3,
            "flag": True,
            "empty": None,
            "tags": ["a", "b"],
        }

    def test_no_attributes(self):
        assert parse_attributes("<_box>x</_box>") == {}

    def test_last_duplicate_wins(self):
        assert parse_attributes('<_a k="1" k="2"/>') == {"k": 2}

    def test_only_opening_segment(self):
        assert parse_attributes('<_a x="1"><_b y="2"/></_a>') == {"x": 1}

    def test_hyphenated_key(self):
        assert parse_attributes('<_a data-id="7"/>') == {"data-id": 7}

    def test_quoted_json_string(self):
        assert parse_attributes("<_a name='\"quoted\"'/>") == {"name": "quoted"}

    def test_keys_are_case_sensitive(self):
        assert parse_attributes('<_a Title="A" title="b"/>') == {"Title": "A", "title": "b"}

    def test_object_value(self):
        assert parse_attributes("<_a meta='{\"n\": 1}'/>") == {"meta": {"n": 1}}


class TestParseValue:
    def test_plain_text_falls_back(self):
        assert parse_value("hello world") == "hello world"

    def test_non_json_constants_stay_text(self):
        assert parse_value("NaN") == "NaN"
        assert parse_value("Infinity") == "Infinity"

    def test_number(self):
        assert parse_value("2.5") == 2.5


class TestSegments:
    def test_opening_segment(self):
        assert opening_segment('<_a x="1">y</_a>') == '<_a x="1">'

    def test_inner_contents(self):
        assert inner_contents('<_a x="1">hello <b>w</b></_a>') == "hello <b>w</b>"

    def test_inner_contents_multiline(self):
        assert inner_contents("<_a>\nline1\nline2\n</_a>") == "\nline1\nline2\n"

    def test_self_closing_has_no_contents(self):
        assert inner_contents('<_a x="1"/>') == ""

    def test_gt_in_attribute_not_part_of_contents(self):
        assert inner_contents('<_a x="a>b">c</_a>') == "c"
