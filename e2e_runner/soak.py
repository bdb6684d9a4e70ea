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

"""Soak cluster reuse-or-recreate decision and its side effects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

import sh
from rich.panel import Panel

from e2e_runner import console, logger
from e2e_runner.constants import SOAK_CLUSTER_EXPIRY, SSH_KEY_MODE
from e2e_runner.context import RunContext
from e2e_runner.errors import ResourceGroupNotFoundError, StorageError
from e2e_runner.storage import StorageAccount


class SoakOutcome(str, Enum):
    REUSE = "reuse"
    RECREATE = "recreate"


@dataclass(frozen=True)
class SoakClusterState:
    """What is known about a soak cluster at the start of a run.

    Attributes:
        name: Soak cluster name.
        resource_group: Resource group holding the cluster.
        expiry_threshold: Age past which the cluster is recreated.
        last_deployment: When the cluster was deployed, or None if the group
            was not found.
        exists: Whether the resource group was found.
    """

    name: str
    resource_group: str
    expiry_threshold: timedelta = SOAK_CLUSTER_EXPIRY
    last_deployment: datetime | None = None
    exists: bool = False

    def age(self, now: datetime | None = None) -> timedelta | None:
        if self.last_deployment is None:
            return None
        return (now or datetime.now(timezone.utc)) - self.last_deployment

    def expired(self, now: datetime | None = None) -> bool:
        """Whether the cluster is older than the threshold.

        A cluster with no recorded deployment time never expires.
        """
        age = self.age(now)
        return age is not None and age > self.expiry_threshold


def decide_soak(state: SoakClusterState, force_deploy: bool, now: datetime | None = None) -> SoakOutcome:
    """Decide whether to reuse a soak cluster or recreate it from scratch."""
    if not state.exists or force_deploy or state.expired(now):
        return SoakOutcome.RECREATE
    return SoakOutcome.REUSE


def lookup_soak_cluster(ctx: RunContext) -> SoakClusterState:
    """Read the soak cluster's resource group, if it exists."""
    name = ctx.cfg.soak_cluster_name
    try:
        group = ctx.account.set_resource_group_with_retry(name, ctx.cfg.retry_policy())
    except (ResourceGroupNotFoundError, sh.ErrorReturnCode) as err:
        logger.warning("Unable to read soak resource group %s: %s", name, err)
        return SoakClusterState(name=name, resource_group=name)
    return SoakClusterState(name=name, resource_group=group.name, last_deployment=group.deployed_at(), exists=True)


def setup_soak_storage(ctx: RunContext) -> StorageAccount:
    """Create the soak storage account and bind it to the run.

    Raises:
        StorageError: If the account or its connection string cannot be set up.
    """
    storage = StorageAccount.for_soak(ctx.cfg.location)
    storage.create_storage_account()
    storage.set_connection_string()
    ctx.storage = storage
    return storage


def reset_soak_cluster(ctx: RunContext, storage: StorageAccount) -> None:
    """Delete the soak resource group and its stored files, then unbind the name.

    Both deletions are best-effort: failures are logged.
    """
    name = ctx.cfg.soak_cluster_name
    console.print(f"[yellow]ℹ️  Deleting resource group {name}...[/yellow]")
    try:
        ctx.account.delete_group_with_retry(name, True, ctx.cfg.retry_policy())
    except ResourceGroupNotFoundError:
        logger.info("Soak resource group %s does not exist, nothing to delete", name)
    except sh.ErrorReturnCode as err:
        logger.error("Failed to delete soak resource group %s: %s", name, err)
    console.print(f"[yellow]ℹ️  Deleting stored output files for {name}...[/yellow]")
    try:
        storage.delete_files(name)
    except StorageError as err:
        logger.error("Failed to delete stored output files for %s: %s", name, err)
    ctx.cluster_name = ""


def restrict_ssh_key_permissions(ctx: RunContext) -> None:
    """Make recovered SSH credentials acceptable to the ssh client."""
    for path in ctx.ssh_credentials():
        if path.is_file():
            path.chmod(SSH_KEY_MODE)


def prepare_soak_cluster(ctx: RunContext, now: datetime | None = None) -> SoakOutcome:
    """Reuse the soak cluster if it is fresh and its output can be recovered, else reset it.

    On recreate the resource group and stored files are deleted and the run's
    cluster name is cleared so a fresh cluster gets provisioned. A reuse whose
    output download fails is turned into a recreate.

    Args:
        ctx: Run context; its storage account must already be set up.
        now: Current time override, for tests.

    Returns:
        The effective outcome.
    """
    storage = ctx.storage
    if storage is None:
        raise StorageError("Soak storage account has not been set up")
    console.print(Panel.fit(f"Checking soak cluster {ctx.cfg.soak_cluster_name}", style="bold blue"))

    state = lookup_soak_cluster(ctx)
    outcome = decide_soak(state, ctx.cfg.force_deploy, now)
    if outcome is SoakOutcome.RECREATE:
        reason = "forced redeploy" if ctx.cfg.force_deploy and state.exists else "does not exist or has expired"
        console.print(f"[yellow]⚠️  Soak cluster {state.name} {reason}[/yellow]")
        reset_soak_cluster(ctx, storage)
        return SoakOutcome.RECREATE

    console.print(f"[yellow]ℹ️  Soak cluster {state.name} exists, downloading output files from storage...[/yellow]")
    try:
        storage.download_files(state.name, ctx.output_dir)
    except StorageError as err:
        logger.error("Failed to download output for %s, will provision a new cluster: %s", state.name, err)
        reset_soak_cluster(ctx, storage)
        return SoakOutcome.RECREATE

    restrict_ssh_key_permissions(ctx)
    console.print(f"[green]✅ Reusing soak cluster {state.name}[/green]")
    return SoakOutcome.REUSE


def persist_soak_output(ctx: RunContext) -> None:
    """Upload a freshly provisioned soak cluster's output for later runs.

    A share that cannot be created is only logged (it may already exist).

    Raises:
        StorageError: If the upload fails.
    """
    storage = ctx.storage
    if storage is None:
        raise StorageError("Soak storage account has not been set up")
    name = ctx.cfg.soak_cluster_name
    try:
        storage.create_file_share(name)
    except StorageError as err:
        logger.warning("Error while trying to create file share %s: %s", name, err)
    storage.upload_files(ctx.output_dir, name)
