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

"""Top-level run sequence: account, soak decision, provision or attach, test, teardown."""

from __future__ import annotations

import os
from collections.abc import Callable

import sh
from rich.panel import Panel

from e2e_runner import console, logger
from e2e_runner.config import RunConfig
from e2e_runner.context import RunContext
from e2e_runner.engine import Engine, parse_config
from e2e_runner.errors import AccountSetupError, EngineConfigError, StorageError, TestSuiteError
from e2e_runner.ginkgo import GinkgoRunner, build_ginkgo_runner
from e2e_runner.metrics import build_point
from e2e_runner.provisioner import CLIProvisioner
from e2e_runner.signals import SignalTrap
from e2e_runner.soak import persist_soak_output, prepare_soak_cluster, setup_soak_storage
from e2e_runner.storage import StorageAccount
from e2e_runner.teardown import TeardownSequence
from e2e_runner.utils import require_command

# ============================================================================
# Internal helpers
# ============================================================================


def check_prerequisites(cfg: RunConfig) -> None:
    """Check that the CLI tools this run may need are installed.

    Args:
        cfg: Resolved run configuration.
    """
    prereqs = ["az"]
    if not cfg.name or cfg.soak_mode:
        prereqs.extend(["aks-engine", "ssh-keygen"])
    if not cfg.skip_logs_collection:
        prereqs.append("scp")
    if not cfg.skip_test:
        prereqs.append("ginkgo")
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in prereqs:
        require_command(cmd)
    console.print("[green]✅ All required tools are available[/green]")


def _setup_account(ctx: RunContext) -> None:
    """Log in, select the subscription, and start the run's metrics point.

    Raises:
        AccountSetupError: If either step still fails once its deadline passes.
    """
    console.print(Panel.fit("Setting up Azure account", style="bold blue"))
    policy = ctx.cfg.retry_policy()
    try:
        ctx.account.login_with_retry(policy)
    except (AccountSetupError, sh.ErrorReturnCode) as err:
        raise AccountSetupError(f"Error while trying to login to azure account: {err}") from err
    try:
        ctx.account.set_subscription_with_retry(policy)
    except (AccountSetupError, sh.ErrorReturnCode) as err:
        raise AccountSetupError(f"Error while trying to set azure subscription: {err}") from err
    console.print(f"[green]✅ Using subscription {ctx.account.subscription_id}[/green]")

    cfg = ctx.cfg
    ctx.point = build_point(cfg.orchestrator, cfg.location, cfg.cluster_definition, ctx.account.subscription_id)


def _abort(ctx: RunContext, teardown: TeardownSequence, message: str) -> int:
    """Tear down if configured to on failure, report, and return the failure status."""
    if ctx.cfg.cleanup_if_fail:
        teardown.run()
    else:
        logger.warning("Cleanup on failure disabled, leaving resources in place for inspection")
    logger.error(message)
    console.print(f"[red]❌ {message}[/red]")
    return 1


def _provision_fresh(ctx: RunContext, teardown: TeardownSequence) -> int | None:
    """Provision a new cluster; return a failure status, or None to continue."""
    provisioner = ctx.provisioner
    if provisioner is None:
        raise RuntimeError("No provisioner is bound to this run")
    try:
        provisioner.run()
    except Exception as err:
        return _abort(ctx, teardown, f"Error while trying to provision cluster: {err}")
    ctx.engine = provisioner.engine

    if ctx.cfg.soak_mode:
        try:
            persist_soak_output(ctx)
        except StorageError as err:
            return _abort(ctx, teardown, f"Error while trying to upload output directory: {err}")
    return None


def _attach_existing(ctx: RunContext, teardown: TeardownSequence) -> int | None:
    """Attach to the already-bound cluster; return a failure status, or None to continue."""
    cfg = ctx.cfg
    ctx.resource_groups.add(ctx.cluster_name)
    console.print(Panel.fit(f"Attaching to cluster {ctx.cluster_name}", style="bold blue"))
    try:
        engine_cfg = parse_config(ctx.cwd, cfg.cluster_definition, ctx.cluster_name, cfg.location)
    except EngineConfigError as err:
        return _abort(ctx, teardown, f"Error trying to parse engine config: {err}")
    os.environ["KUBECONFIG"] = str(engine_cfg.kubeconfig_path())

    try:
        engine = Engine.load(engine_cfg)
    except EngineConfigError as err:
        return _abort(ctx, teardown, f"Error trying to parse engine template into memory: {err}")
    ctx.engine = engine
    if ctx.provisioner is not None:
        ctx.provisioner.engine = engine
    return None


def _run_tests(
    ctx: RunContext,
    teardown: TeardownSequence,
    build_runner: Callable[[RunContext], GinkgoRunner],
) -> int | None:
    try:
        runner = build_runner(ctx)
    except TestSuiteError as err:
        return _abort(ctx, teardown, f"Unable to build the test suite: {err}")
    try:
        runner.run()
    except TestSuiteError as err:
        return _abort(ctx, teardown, str(err))
    return None


# ============================================================================
# Public API
# ============================================================================


def run_lifecycle(
    ctx: RunContext,
    *,
    build_provisioner: Callable[[RunContext], CLIProvisioner] = CLIProvisioner,
    build_storage: Callable[[RunContext], StorageAccount] = setup_soak_storage,
    build_runner: Callable[[RunContext], GinkgoRunner] = build_ginkgo_runner,
) -> int:
    """Run one full cluster lifecycle and return the process exit status.

    Every path after the signal trap is armed ends in exactly one teardown,
    except a failure with ``cleanup_if_fail`` disabled, which leaves the
    resources in place on purpose.

    Args:
        ctx: Run context; its account and config must be set.
        build_provisioner: Factory for the fresh-cluster provisioner.
        build_storage: Sets up the soak storage account on ``ctx``.
        build_runner: Factory for the test-suite runner.

    Returns:
        0 on success, 1 on any failure or if a signal arrived during teardown.

    Raises:
        AccountSetupError: If login or subscription selection fails.
    """
    _setup_account(ctx)

    teardown = TeardownSequence(ctx)
    trap = SignalTrap(teardown)
    trap.arm()
    try:
        try:
            ctx.provisioner = build_provisioner(ctx)
            if ctx.cfg.soak_mode:
                try:
                    build_storage(ctx)
                except StorageError as err:
                    return _abort(ctx, teardown, f"Error while trying to set up soak storage: {err}")
                prepare_soak_cluster(ctx)

            if not ctx.cluster_name:
                status = _provision_fresh(ctx, teardown)
            else:
                status = _attach_existing(ctx, teardown)
            if status is not None:
                return status

            if not ctx.cfg.skip_test:
                status = _run_tests(ctx, teardown, build_runner)
                if status is not None:
                    return status
        except Exception as err:
            return _abort(ctx, teardown, f"Unexpected error: {err}")

        teardown.run()
        return 1 if trap.received else 0
    finally:
        trap.disarm()
