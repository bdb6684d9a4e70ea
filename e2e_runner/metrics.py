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

"""Run metrics point: timings for provisioning, tests, and the whole run."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path

from e2e_runner import logger


@dataclass
class Point:
    """Single metrics point describing one run.

    Attributes:
        orchestrator: Cluster orchestrator type.
        location: Azure region.
        cluster_definition: Cluster definition template used.
        subscription_id: Azure subscription the run used.
        start_time: Epoch seconds when the run started.
        provision_duration: Seconds spent provisioning, once known.
        provision_succeeded: Whether provisioning succeeded, once known.
        test_duration: Seconds spent in the test suite, once known.
        test_succeeded: Whether the test suite passed, once known.
        total_duration: Seconds from start to teardown.
    """

    orchestrator: str
    location: str
    cluster_definition: str
    subscription_id: str
    start_time: float = field(default_factory=time.time)
    provision_duration: float | None = None
    provision_succeeded: bool | None = None
    test_duration: float | None = None
    test_succeeded: bool | None = None
    total_duration: float | None = None
    _provision_start: float | None = field(default=None, repr=False)
    _test_start: float | None = field(default=None, repr=False)

    def record_provision_start(self) -> None:
        self._provision_start = time.time()

    def record_provision_end(self, succeeded: bool) -> None:
        if self._provision_start is not None:
            self.provision_duration = time.time() - self._provision_start
        self.provision_succeeded = succeeded

    def record_test_start(self) -> None:
        self._test_start = time.time()

    def record_test_end(self, succeeded: bool) -> None:
        if self._test_start is not None:
            self.test_duration = time.time() - self._test_start
        self.test_succeeded = succeeded

    def record_total_time(self) -> None:
        self.total_duration = time.time() - self.start_time

    def to_dict(self) -> dict:
        return {key: value for key, value in asdict(self).items() if not key.startswith("_")}

    def write(self, path: Path | None = None) -> None:
        """Append the point as one JSON line to ``path``, or log it when no sink is set."""
        line = json.dumps(self.to_dict(), sort_keys=True)
        if path is None:
            logger.info("Run metrics: %s", line)
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a") as f:
            f.write(line + "\n")


def build_point(orchestrator: str, location: str, cluster_definition: str, subscription_id: str) -> Point:
    return Point(
        orchestrator=orchestrator,
        location=location,
        cluster_definition=cluster_definition,
        subscription_id=subscription_id,
    )
