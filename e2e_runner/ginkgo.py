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

"""Ginkgo test-suite runner."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import sh
from rich.panel import Panel

from e2e_runner import console
from e2e_runner.config import RunConfig
from e2e_runner.constants import GINKGO_SLOW_SPEC_THRESHOLD, REL_TEST_DIR
from e2e_runner.context import RunContext
from e2e_runner.errors import TestSuiteError
from e2e_runner.metrics import Point
from e2e_runner.utils import command_error, require_command


class GinkgoRunner:
    """Runs the orchestrator's ginkgo suite against a resolved cluster."""

    def __init__(self, cfg: RunConfig, point: Point | None, test_dir: Path, env: dict[str, str]) -> None:
        self.cfg = cfg
        self.point = point
        self.test_dir = test_dir
        self.env = env

    def args(self) -> list[str]:
        args = ["-slowSpecThreshold", str(GINKGO_SLOW_SPEC_THRESHOLD), "-r", "-v"]
        if self.cfg.ginkgo_focus:
            args += ["--focus", self.cfg.ginkgo_focus]
        if self.cfg.ginkgo_skip:
            args += ["--skip", self.cfg.ginkgo_skip]
        return [*args, str(self.test_dir)]

    def run(self) -> None:
        """Run the suite, streaming its output.

        Raises:
            TestSuiteError: If the suite fails or exceeds the run timeout.
        """
        console.print(Panel.fit(f"Running test suite {self.test_dir.name}", style="bold blue"))
        if self.point is not None:
            self.point.record_test_start()
        try:
            sh.ginkgo(
                *self.args(),
                _env=self.env,
                _out=sys.stdout,
                _err=sys.stderr,
                _timeout=self.cfg.timeout.total_seconds(),
            )
        except sh.ErrorReturnCode as err:
            self._record(False)
            raise TestSuiteError(f"Test suite failed: {command_error(err)}") from err
        except sh.TimeoutException as err:
            self._record(False)
            raise TestSuiteError(f"Test suite exceeded timeout of {self.cfg.timeout}") from err
        self._record(True)
        console.print("[green]✅ Test suite passed[/green]")

    def _record(self, succeeded: bool) -> None:
        if self.point is not None:
            self.point.record_test_end(succeeded)


def build_ginkgo_runner(ctx: RunContext) -> GinkgoRunner:
    """Build the runner for the configured orchestrator.

    Raises:
        TestSuiteError: If ginkgo is missing or the suite directory does not exist.
    """
    cfg = ctx.cfg
    test_dir = ctx.cwd / REL_TEST_DIR / cfg.orchestrator
    if not test_dir.is_dir():
        raise TestSuiteError(f"No test suite for orchestrator '{cfg.orchestrator}' at {test_dir}")
    try:
        require_command("ginkgo")
    except RuntimeError as err:
        raise TestSuiteError(str(err)) from err

    env = dict(os.environ)
    env.update({
        "NAME": ctx.cluster_name,
        "LOCATION": cfg.location,
        "ORCHESTRATOR": cfg.orchestrator,
        "CLUSTER_DEFINITION": cfg.cluster_definition,
    })
    if ctx.engine is not None:
        env["KUBECONFIG"] = str(ctx.engine.config.kubeconfig_path())
    return GinkgoRunner(cfg, ctx.point, test_dir, env)
