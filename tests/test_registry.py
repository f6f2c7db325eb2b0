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

"""Tests for pchtml.registry."""

import pytest

from pchtml.registry import PartialRegistry, partial_name, validate_name


class TestPartialRegistry:
    def test_mapping_interface(self):
        registry = PartialRegistry({"box": "<b>{contents}</b>"})
        assert registry["box"] == "<b>{contents}</b>"
        assert "box" in registry
        assert len(registry) == 1
        assert list(registry) == ["box"]

    def test_is_read_only(self):
        registry = PartialRegistry({"box": "x"})
        with pytest.raises(TypeError):
            registry["other"] = "y"

    def test_snapshot_isolated_from_source(self):
        source = {"box": "x"}
        registry = PartialRegistry(source)
        source["box"] = "changed"
        assert registry["box"] == "x"

    def test_with_partial_returns_new_registry(self):
        registry = PartialRegistry({"a": "1"})
        updated = registry.with_partial("b", "2")
        assert "b" in updated
        assert "b" not in registry

    def test_without(self):
        registry = PartialRegistry({"a": "1", "b": "2"})
        assert list(registry.without("a")) == ["b"]
        with pytest.raises(KeyError):
            registry.without("missing")

    def test_coerce_keeps_instance(self):
        registry = PartialRegistry({"a": "1"})
        assert PartialRegistry.coerce(registry) is registry
        assert PartialRegistry.coerce(None) == {}

    def test_body_must_be_string(self):
        with pytest.raises(TypeError):
            PartialRegistry({"a": 1})


class TestNames:
    @pytest.mark.parametrize("name", ["box", "Box2", "site-header", "card_item", "404"])
    def test_valid_names(self, name):
        assert validate_name(name) == name

    @pytest.mark.parametrize("name", ["", "_box", "a b", "bad.name", "-x"])
    def test_invalid_names(self, name):
        with pytest.raises(ValueError):
            validate_name(name)

    def test_invalid_name_rejected_by_registry(self):
        with pytest.raises(ValueError):
            PartialRegistry({"_box": "x"})

    def test_partial_name_from_filename(self):
        assert partial_name("card.pchtml") == "card"
        assert partial_name("partials/footer.min.html") == "footer"
        assert partial_name("header") == "header"
