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

"""
cli.py - CLI for the e2e cluster lifecycle runner.

Subcommands:
    run          Provision (or reuse) a cluster, run the test suite, tear down
    delete-soak  Delete a soak cluster and its stored output files

Environment Variables:
    All run configuration can be overridden via E2E_* environment variables:
    - E2E_NAME, E2E_LOCATION, E2E_REGIONS (comma separated)
    - E2E_TIMEOUT (e.g. 20m, 1h30m)
    - E2E_SOAK_CLUSTER_NAME, E2E_FORCE_DEPLOY
    - E2E_CLEANUP_ON_EXIT, E2E_CLEANUP_IF_FAIL, E2E_RETAIN_SSH
    - And more (see RunConfig for the full list)
    Azure credentials are read from AZURE_CLIENT_ID, AZURE_CLIENT_SECRET,
    AZURE_TENANT_ID and AZURE_SUBSCRIPTION_ID.

Examples:
    # Fresh cluster, run tests, delete everything
    e2e-runner run --location westus2

    # Reuse (or recreate when expired) a soak cluster, keep it afterwards
    e2e-runner run --location westus2 --soak-cluster-name demo-soak --no-cleanup-on-exit

    # Force a soak cluster to be rebuilt on its next run
    e2e-runner delete-soak --location westus2 --soak-cluster-name demo-soak
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer

from e2e_runner import console
from e2e_runner.azure import Account
from e2e_runner.config import display_config, resolve_config, validate_config
from e2e_runner.context import RunContext
from e2e_runner.errors import AccountSetupError
from e2e_runner.orchestrator import check_prerequisites, run_lifecycle
from e2e_runner.soak import reset_soak_cluster, setup_soak_storage

app = typer.Typer(
    help="Test-cluster lifecycle orchestration for e2e runs.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@app.command()
def run(
    name: str | None = typer.Option(
        None, "--name", help="Attach to this existing cluster instead of provisioning one"),
    location: str | None = typer.Option(None, "--location", help="Azure region"),
    orchestrator: str | None = typer.Option(None, "--orchestrator", help="Orchestrator type"),
    cluster_definition: str | None = typer.Option(
        None, "--cluster-definition", help="Cluster definition template path"),
    timeout: str | None = typer.Option(
        None, "--timeout", help="Deadline for cloud calls and the test suite (e.g. 20m)"),
    provision_retries: int | None = typer.Option(
        None, "--provision-retries", help="Extra provisioning attempts"),
    soak_cluster_name: str | None = typer.Option(
        None, "--soak-cluster-name", help="Reuse this long-lived cluster"),
    force_deploy: bool | None = typer.Option(
        None, "--force-deploy/--no-force-deploy", help="Recreate the soak cluster regardless of age"),
    cleanup_on_exit: bool | None = typer.Option(
        None, "--cleanup-on-exit/--no-cleanup-on-exit", help="Delete tracked resource groups at the end"),
    cleanup_if_fail: bool | None = typer.Option(
        None, "--cleanup-if-fail/--no-cleanup-if-fail", help="Tear down before aborting on failure"),
    skip_test: bool | None = typer.Option(None, "--skip-test/--no-skip-test", help="Skip the test suite"),
    skip_logs_collection: bool | None = typer.Option(
        None, "--skip-logs/--no-skip-logs", help="Skip provisioning and activity log collection"),
    retain_ssh: bool | None = typer.Option(
        None, "--retain-ssh/--no-retain-ssh", help="Keep generated SSH credentials"),
    ginkgo_focus: str | None = typer.Option(None, "--focus", help="ginkgo --focus regex"),
    ginkgo_skip: str | None = typer.Option(None, "--skip", help="ginkgo --skip regex"),
) -> None:
    """Provision or reuse a cluster, run the suite, and always clean up."""
    try:
        cfg = resolve_config(
            name=name,
            location=location,
            orchestrator=orchestrator,
            cluster_definition=cluster_definition,
            timeout=timeout,
            provision_retries=provision_retries,
            soak_cluster_name=soak_cluster_name,
            force_deploy=force_deploy,
            cleanup_on_exit=cleanup_on_exit,
            cleanup_if_fail=cleanup_if_fail,
            skip_test=skip_test,
            skip_logs_collection=skip_logs_collection,
            retain_ssh=retain_ssh,
            ginkgo_focus=ginkgo_focus,
            ginkgo_skip=ginkgo_skip,
        )
        validate_config(cfg)
    except ValueError as err:
        raise typer.BadParameter(str(err)) from err

    display_config(cfg)
    check_prerequisites(cfg)

    ctx = RunContext(cfg=cfg, cwd=Path.cwd(), account=Account())
    try:
        status = run_lifecycle(ctx)
    except AccountSetupError as err:
        console.print(f"[red]❌ {err}[/red]")
        raise typer.Exit(1) from err
    raise typer.Exit(status)


@app.command("delete-soak")
def delete_soak(
    soak_cluster_name: str = typer.Option(..., "--soak-cluster-name", help="Soak cluster to delete"),
    location: str | None = typer.Option(None, "--location", help="Azure region of the soak storage"),
) -> None:
    """Delete a soak cluster's resource group and stored output files."""
    cfg = resolve_config(soak_cluster_name=soak_cluster_name, location=location)
    if not cfg.location:
        raise typer.BadParameter("A location is required (set E2E_LOCATION or --location)")

    ctx = RunContext(cfg=cfg, cwd=Path.cwd(), account=Account())
    policy = cfg.retry_policy()
    ctx.account.login_with_retry(policy)
    ctx.account.set_subscription_with_retry(policy)
    reset_soak_cluster(ctx, setup_soak_storage(ctx))
    console.print(f"[green]✅ Soak cluster '{soak_cluster_name}' reset[/green]")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
