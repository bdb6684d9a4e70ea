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

"""Idempotent, best-effort teardown of everything a run created."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from rich.panel import Panel

from e2e_runner import console, logger
from e2e_runner.constants import LOG_DIR_MODE
from e2e_runner.context import RunContext
from e2e_runner.errors import ResourceGroupNotFoundError
from e2e_runner.provisioner import CLIProvisioner
from e2e_runner.retry import RetryPolicy


class StepStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepResult:
    """Result of one teardown step.

    Attributes:
        name: Step name, e.g. ``metrics`` or ``delete_group:<rg>``.
        status: Whether the step ran, failed, or was skipped by configuration.
        error: Error message for a failed step.
    """

    name: str
    status: StepStatus
    error: str | None = None


@dataclass
class TeardownOutcome:
    """Per-step results of a teardown pass.

    Attributes:
        steps: Step results in execution order.
        deleted_groups: Resource groups a delete request was issued for.
    """

    steps: list[StepResult] = field(default_factory=list)
    deleted_groups: list[str] = field(default_factory=list)

    def step(self, name: str) -> StepResult | None:
        return next((s for s in self.steps if s.name == name), None)

    def failed_steps(self) -> list[StepResult]:
        return [s for s in self.steps if s.status is StepStatus.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed_steps()


class TeardownSequence:
    """Cleanup shared by every exit path of a run.

    Only the first call to :meth:`run` does any work; later calls, including a
    re-entrant one from a signal handler interrupting the first, return the
    first pass's outcome. No step failure escapes: each is recorded and logged.
    """

    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx
        self.outcome: TeardownOutcome | None = None
        self._guard = threading.RLock()
        self._started = False
        self._finished = False

    @property
    def started(self) -> bool:
        return self._started

    @property
    def in_progress(self) -> bool:
        return self._started and not self._finished

    def run(self) -> TeardownOutcome:
        with self._guard:
            if self._started:
                state = "in progress" if not self._finished else "already done"
                logger.info("Teardown %s, not running it again", state)
                return self.outcome  # type: ignore[return-value]
            self._started = True
            self.outcome = TeardownOutcome()

        outcome = self.outcome
        try:
            self._run_steps(outcome)
        finally:
            self._finished = True
        self._summarize(outcome)
        return outcome

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _run_steps(self, outcome: TeardownOutcome) -> None:
        ctx = self.ctx
        cfg = ctx.cfg
        console.print(Panel.fit("Tearing down", style="bold blue"))

        self._step(outcome, "metrics", self._write_metrics)

        log_dir = ctx.logs_dir
        self._step(outcome, "log_dir", lambda: self._ensure_log_dir(log_dir))

        if cfg.is_kubernetes() and not cfg.soak_mode and not cfg.skip_logs_collection:
            self._step(outcome, "provisioning_metrics", lambda: self._provisioner().fetch_provisioning_metrics(log_dir))
        else:
            self._skip(outcome, "provisioning_metrics")

        groups = ctx.resource_groups.snapshot()
        if cfg.skip_logs_collection or not groups:
            self._skip(outcome, "activity_log")
        else:
            for group in groups:
                self._step(
                    outcome, f"activity_log:{group}",
                    lambda group=group: ctx.account.fetch_activity_log(group, log_dir),
                )

        if cfg.retain_ssh:
            self._skip(outcome, "credentials")
        else:
            self._step(outcome, "credentials", self._remove_credentials)

        if not cfg.cleanup_on_exit:
            self._skip(outcome, "delete_groups")
            return
        policy = cfg.retry_policy()
        for group in groups:
            outcome.deleted_groups.append(group)
            console.print(f"[yellow]ℹ️  Deleting resource group {group}...[/yellow]")
            self._step(
                outcome, f"delete_group:{group}",
                lambda group=group: self._delete_group(group, policy),
            )

    def _delete_group(self, group: str, policy: RetryPolicy) -> None:
        try:
            self.ctx.account.delete_group_with_retry(group, False, policy)
        except ResourceGroupNotFoundError:
            logger.info("Resource group %s is already gone", group)

    def _provisioner(self) -> CLIProvisioner:
        if self.ctx.provisioner is None:
            self.ctx.provisioner = CLIProvisioner(self.ctx)
        return self.ctx.provisioner

    def _write_metrics(self) -> None:
        point = self.ctx.point
        if point is None:
            raise RuntimeError("metrics point was never built")
        point.record_total_time()
        metrics_path = self.ctx.cfg.metrics_path
        point.write(Path(metrics_path) if metrics_path else None)

    @staticmethod
    def _ensure_log_dir(log_dir: Path) -> None:
        log_dir.mkdir(mode=LOG_DIR_MODE, parents=True, exist_ok=True)

    def _remove_credentials(self) -> None:
        failures: list[str] = []
        for path in self.ctx.ssh_credentials():
            try:
                path.unlink()
            except OSError as err:
                failures.append(f"{path}: {err}")
                continue
            logger.info("Removed SSH credential file %s", path)
        if failures:
            raise RuntimeError("failed to delete " + "; ".join(failures))

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    @staticmethod
    def _step(outcome: TeardownOutcome, name: str, fn: Callable[[], object]) -> bool:
        try:
            fn()
        except Exception as err:
            logger.error("Teardown step %s failed: %s", name, err)
            outcome.steps.append(StepResult(name, StepStatus.FAILED, str(err)))
            return False
        outcome.steps.append(StepResult(name, StepStatus.OK))
        return True

    @staticmethod
    def _skip(outcome: TeardownOutcome, name: str) -> None:
        outcome.steps.append(StepResult(name, StepStatus.SKIPPED))

    @staticmethod
    def _summarize(outcome: TeardownOutcome) -> None:
        failed = outcome.failed_steps()
        if not failed:
            console.print("[green]✅ Teardown complete[/green]")
            return
        console.print(f"[yellow]⚠️  Teardown finished with {len(failed)} failed step(s)[/yellow]")
        for step in failed:
            console.print(f"[yellow]   {step.name}: {step.error}[/yellow]")
