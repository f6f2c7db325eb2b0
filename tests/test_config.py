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

"""Tests for pchtml.config."""

import dataclasses

import pytest

from pchtml.config import DEFAULT_MAX_PARTIAL_DEPTH, DEFAULT_MAX_STEPS, RenderOptions


class TestRenderOptions:
    def test_defaults(self):
        options = RenderOptions()
        assert options.strict is False
        assert options.max_partial_depth == DEFAULT_MAX_PARTIAL_DEPTH == 64
        assert options.max_steps == DEFAULT_MAX_STEPS

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            RenderOptions().strict = True

    @pytest.mark.parametrize("field", ["max_partial_depth", "max_steps"])
    def test_limits_must_be_positive(self, field):
        with pytest.raises(ValueError):
            RenderOptions(**{field: 0})


class TestFromEnv:
    def test_empty_environment_gives_defaults(self):
        assert RenderOptions.from_env({}) == RenderOptions()

    def test_reads_variables(self):
        options = RenderOptions.from_env({
            "PCHTML_STRICT": "yes",
            "PCHTML_MAX_PARTIAL_DEPTH": "8",
            "PCHTML_MAX_STEPS": "1_000",
        })
        assert options == RenderOptions(strict=True, max_partial_depth=8, max_steps=1000)

    def test_strict_false_values(self):
        assert RenderOptions.from_env({"PCHTML_STRICT": "0"}).strict is False

    def test_malformed_number(self):
        with pytest.raises(ValueError, match="PCHTML_MAX_STEPS"):
            RenderOptions.from_env({"PCHTML_MAX_STEPS": "many"})

    def test_process_environment(self, monkeypatch):
        monkeypatch.setenv("PCHTML_STRICT", "true")
        monkeypatch.delenv("PCHTML_MAX_STEPS", raising=False)
        monkeypatch.delenv("PCHTML_MAX_PARTIAL_DEPTH", raising=False)
        options = RenderOptions.from_env()
        assert options.strict is True
        assert options.max_steps == DEFAULT_MAX_STEPS
