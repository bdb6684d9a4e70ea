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

"""Record of the resource groups created during a run."""

from __future__ import annotations

import threading
from collections.abc import Iterator


class ResourceGroupSet:
    """Ordered, append-only set of resource group names.

    ``add`` is the only way a group enters scope. The main sequence appends while
    provisioning; teardown and the signal handler only read, through a snapshot.
    """

    def __init__(self) -> None:
        self._groups: list[str] = []
        self._lock = threading.RLock()

    def add(self, name: str) -> bool:
        """Track a resource group.

        Args:
            name: Resource group name.

        Returns:
            True if the group was newly tracked, False if it already was.

        Raises:
            ValueError: If the name is empty.
        """
        if not name:
            raise ValueError("resource group name must not be empty")
        with self._lock:
            if name in self._groups:
                return False
            self._groups.append(name)
            return True

    def snapshot(self) -> tuple[str, ...]:
        """Return the tracked groups in insertion order."""
        with self._lock:
            return tuple(self._groups)

    def __contains__(self, name: object) -> bool:
        return name in self.snapshot()

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self.snapshot())

    def __repr__(self) -> str:
        return f"ResourceGroupSet({list(self.snapshot())!r})"
