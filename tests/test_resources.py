# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Tests for the tracked resource group set."""

import pytest

from e2e_runner.resources import ResourceGroupSet


class TestResourceGroupSet:
    def test_add_keeps_insertion_order(self):
        groups = ResourceGroupSet()
        assert groups.add("rg-b")
        assert groups.add("rg-a")
        assert groups.snapshot() == ("rg-b", "rg-a")
        assert list(groups) == ["rg-b", "rg-a"]

    def test_add_is_deduplicated(self):
        groups = ResourceGroupSet()
        groups.add("rg-a")
        assert groups.add("rg-a") is False
        assert len(groups) == 1
        assert "rg-a" in groups
        assert "rg-b" not in groups

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            ResourceGroupSet().add("")

    def test_snapshot_is_detached(self):
        groups = ResourceGroupSet()
        groups.add("rg-a")
        snapshot = groups.snapshot()
        groups.add("rg-b")
        assert snapshot == ("rg-a",)
