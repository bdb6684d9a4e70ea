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

"""Fresh cluster provisioning through aks-engine, and provisioning diagnostics."""

from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from pathlib import Path

import sh
from rich.panel import Panel

from e2e_runner import console, logger
from e2e_runner.constants import PROVISIONING_LOG_FILES, TAG_DEPLOYED_AT
from e2e_runner.context import RunContext
from e2e_runner.engine import Engine, build_config
from e2e_runner.errors import EngineConfigError, ProvisioningError
from e2e_runner.utils import command_error


class CLIProvisioner:
    """Provisions a cluster with the ``aks-engine`` CLI.

    Every resource group is registered in the run's ResourceGroupSet before its
    creation is requested, so a failure part-way through still leaves the group
    tracked for teardown.
    """

    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx
        self.engine: Engine | None = None

    @property
    def resource_groups(self) -> tuple[str, ...]:
        return self.ctx.resource_groups.snapshot()

    def _next_cluster_name(self) -> str:
        cfg = self.ctx.cfg
        if cfg.soak_mode:
            return cfg.soak_cluster_name
        stamp = datetime.now(timezone.utc).strftime("%y%m%d")
        return f"{cfg.orchestrator.lower()}-{stamp}-{secrets.token_hex(3)}"

    def run(self) -> None:
        """Provision a cluster, retrying with a fresh name up to ``provision_retries`` times.

        Raises:
            ProvisioningError: If the last attempt fails.
        """
        cfg = self.ctx.cfg
        attempts = cfg.provision_retries + 1
        point = self.ctx.point
        if point is not None:
            point.record_provision_start()

        last_error: ProvisioningError | None = None
        for attempt in range(1, attempts + 1):
            name = self._next_cluster_name()
            console.print(Panel.fit(f"Provisioning cluster {name} ({attempt}/{attempts})", style="bold blue"))
            try:
                self._provision(name)
            except ProvisioningError as err:
                last_error = err
                logger.error("Provisioning attempt %d/%d failed: %s", attempt, attempts, err)
                continue
            if point is not None:
                point.record_provision_end(succeeded=True)
            console.print(f"[green]✅ Cluster {name} provisioned[/green]")
            return

        if point is not None:
            point.record_provision_end(succeeded=False)
        raise last_error or ProvisioningError("Provisioning did not run")

    def _provision(self, name: str) -> None:
        ctx = self.ctx
        cfg = ctx.cfg
        ctx.cluster_name = name
        ctx.resource_groups.add(name)

        try:
            ctx.account.create_group_with_retry(
                name, cfg.location, cfg.retry_policy(),
                tags={TAG_DEPLOYED_AT: str(int(time.time()))},
            )
        except sh.ErrorReturnCode as err:
            raise ProvisioningError(f"Failed to create resource group {name}: {command_error(err)}") from err

        public_key = self._generate_ssh_key(name)
        try:
            self.engine = Engine.generate(
                build_config(ctx.cwd, cfg.cluster_definition, name, cfg.location), public_key,
            )
        except EngineConfigError as err:
            raise ProvisioningError(str(err)) from err
        ctx.engine = self.engine
        self._deploy(self.engine, name)

    def _generate_ssh_key(self, name: str) -> str:
        key_path = self.ctx.ssh_key_path(name)
        key_path.parent.mkdir(parents=True, exist_ok=True)
        for stale in (key_path, key_path.with_name(key_path.name + ".pub")):
            stale.unlink(missing_ok=True)
        try:
            sh.Command("ssh-keygen")("-t", "rsa", "-b", "4096", "-N", "", "-q", "-f", str(key_path))
        except sh.ErrorReturnCode as err:
            raise ProvisioningError(f"ssh-keygen failed: {command_error(err)}") from err
        return key_path.with_name(key_path.name + ".pub").read_text()

    def _deploy(self, engine: Engine, name: str) -> None:
        ctx = self.ctx
        account_cfg = ctx.account.cfg
        args = [
            "deploy",
            "--api-model", str(engine.config.cluster_definition_template),
            "--location", ctx.cfg.location,
            "--resource-group", name,
            "--output-directory", str(engine.config.output_directory),
            "--subscription-id", ctx.account.subscription_id,
            "--force-overwrite",
        ]
        if account_cfg.client_id:
            args += ["--client-id", account_cfg.client_id, "--client-secret", account_cfg.client_secret]
        else:
            args += ["--auth-method", "cli"]

        console.print(f"[yellow]ℹ️  Deploying {name} with aks-engine...[/yellow]")
        try:
            sh.Command("aks-engine")(*args, _timeout=ctx.cfg.timeout.total_seconds())
        except sh.ErrorReturnCode as err:
            raise ProvisioningError(f"aks-engine deploy failed for {name}: {command_error(err)}") from err
        except sh.TimeoutException as err:
            raise ProvisioningError(f"aks-engine deploy timed out for {name}") from err

    def fetch_provisioning_metrics(self, log_dir: Path) -> None:
        """Copy provisioning logs from the first master into ``log_dir``.

        Raises:
            ProvisioningError: If there is no engine or any file cannot be copied.
        """
        engine = self.engine or self.ctx.engine
        if engine is None:
            raise ProvisioningError("No cluster engine available to locate the master node")
        key_path = self.ctx.ssh_key_path(engine.config.name)
        host = f"{engine.admin_username}@{engine.master_fqdn(self.ctx.cfg.dns_suffix)}"

        failures: list[str] = []
        for remote in PROVISIONING_LOG_FILES:
            local = log_dir / Path(remote).name
            try:
                sh.scp(
                    "-i", str(key_path),
                    "-o", "StrictHostKeyChecking=no",
                    "-o", "UserKnownHostsFile=/dev/null",
                    f"{host}:{remote}", str(local),
                )
            except sh.ErrorReturnCode as err:
                failures.append(f"{remote}: {command_error(err)}")
        if failures:
            raise ProvisioningError("Failed to fetch provisioning logs: " + "; ".join(failures))
