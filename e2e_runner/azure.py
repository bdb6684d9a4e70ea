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

"""Azure account operations: login, subscription, resource groups, activity log."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import sh

from e2e_runner import console, logger
from e2e_runner.config import AccountConfig
from e2e_runner.constants import ACTIVITY_LOG_LOOKBACK, TAG_DEPLOYED_AT
from e2e_runner.errors import AccountSetupError, ResourceGroupNotFoundError
from e2e_runner.retry import RetryPolicy, call_with_retry
from e2e_runner.utils import az, az_json, command_error


@dataclass
class ResourceGroup:
    """Resource group as reported by ``az group show``.

    Attributes:
        name: Resource group name.
        location: Azure region of the group.
        tags: Tags attached to the group.
    """

    name: str
    location: str = ""
    tags: dict[str, str] = field(default_factory=dict)

    def deployed_at(self) -> datetime | None:
        """Deployment time recorded in the group's tag, or None if absent or malformed."""
        raw = self.tags.get(TAG_DEPLOYED_AT)
        if raw is None:
            return None
        try:
            return datetime.fromtimestamp(int(raw), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            logger.warning("Resource group %s has a malformed '%s' tag: %r", self.name, TAG_DEPLOYED_AT, raw)
            return None


class Account:
    """Azure account driven through the ``az`` CLI.

    Every control-plane call has a ``*_with_retry`` variant that wraps it with
    :func:`e2e_runner.retry.call_with_retry`.
    """

    def __init__(self, account_cfg: AccountConfig | None = None) -> None:
        self.cfg = account_cfg or AccountConfig()
        self.subscription_id = self.cfg.subscription_id
        self.resource_group: ResourceGroup | None = None

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def login(self) -> None:
        """Log in with the configured service principal, or verify an existing session.

        Raises:
            AccountSetupError: If the login fails.
        """
        try:
            if self.cfg.client_id:
                az(
                    "login", "--service-principal",
                    "--username", self.cfg.client_id,
                    "--password", self.cfg.client_secret,
                    "--tenant", self.cfg.tenant_id,
                    "--output", "none",
                )
            else:
                az("account", "show", "--output", "none")
        except sh.ErrorReturnCode as err:
            raise AccountSetupError(f"az login failed: {command_error(err)}") from err

    def set_subscription(self) -> None:
        """Select the configured subscription, or adopt the session's default one.

        Raises:
            AccountSetupError: If the subscription cannot be selected.
        """
        try:
            if self.subscription_id:
                az("account", "set", "--subscription", self.subscription_id)
            else:
                self.subscription_id = az_json("account", "show")["id"]
        except sh.ErrorReturnCode as err:
            raise AccountSetupError(f"az account set failed: {command_error(err)}") from err

    def login_with_retry(self, policy: RetryPolicy) -> None:
        call_with_retry(self.login, policy, description="Azure login")

    def set_subscription_with_retry(self, policy: RetryPolicy) -> None:
        call_with_retry(self.set_subscription, policy, description="Azure subscription selection")

    # ------------------------------------------------------------------
    # Resource groups
    # ------------------------------------------------------------------

    def set_resource_group(self, name: str) -> ResourceGroup:
        """Look up a resource group and make it the account's current group.

        Args:
            name: Resource group name.

        Returns:
            The resource group.

        Raises:
            ResourceGroupNotFoundError: If the group does not exist.
            sh.ErrorReturnCode: For any other ``az`` failure.
        """
        try:
            data = az_json("group", "show", "--name", name)
        except sh.ErrorReturnCode as err:
            message = command_error(err)
            if "ResourceGroupNotFound" in message or err.exit_code == 3:
                raise ResourceGroupNotFoundError(f"Resource group '{name}' not found") from err
            raise
        self.resource_group = ResourceGroup(
            name=data["name"],
            location=data.get("location", ""),
            tags=data.get("tags") or {},
        )
        return self.resource_group

    def set_resource_group_with_retry(self, name: str, policy: RetryPolicy) -> ResourceGroup:
        return call_with_retry(
            lambda: self.set_resource_group(name),
            policy,
            description=f"Lookup of resource group {name}",
            give_up_on=(ResourceGroupNotFoundError,),
        )

    def create_group(self, name: str, location: str, tags: dict[str, str] | None = None) -> None:
        """Create (or update) a resource group."""
        args = ["group", "create", "--name", name, "--location", location, "--output", "none"]
        if tags:
            args.extend(["--tags", *(f"{key}={value}" for key, value in tags.items())])
        az(*args)

    def create_group_with_retry(
        self, name: str, location: str, policy: RetryPolicy, tags: dict[str, str] | None = None,
    ) -> None:
        call_with_retry(
            lambda: self.create_group(name, location, tags),
            policy,
            description=f"Creation of resource group {name}",
        )

    def delete_group(self, name: str, wait: bool) -> None:
        """Delete a resource group.

        Args:
            name: Resource group name.
            wait: Whether to block until Azure has finished deleting the group.

        Raises:
            ResourceGroupNotFoundError: If the group does not exist.
            sh.ErrorReturnCode: For any other ``az`` failure.
        """
        args = ["group", "delete", "--name", name, "--yes"]
        if not wait:
            args.append("--no-wait")
        try:
            az(*args)
        except sh.ErrorReturnCode as err:
            message = command_error(err)
            if "ResourceGroupNotFound" in message or err.exit_code == 3:
                raise ResourceGroupNotFoundError(f"Resource group '{name}' not found") from err
            raise

    def delete_group_with_retry(self, name: str, wait: bool, policy: RetryPolicy) -> None:
        call_with_retry(
            lambda: self.delete_group(name, wait),
            policy,
            description=f"Deletion of resource group {name}",
            give_up_on=(ResourceGroupNotFoundError,),
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def fetch_activity_log(self, resource_group: str, log_dir: Path) -> Path:
        """Write the resource group's recent activity log into ``log_dir``.

        Args:
            resource_group: Resource group to query.
            log_dir: Directory to write ``activity-log-<group>.json`` into.

        Returns:
            Path of the written file.
        """
        entries = az_json(
            "monitor", "activity-log", "list",
            "--resource-group", resource_group,
            "--offset", ACTIVITY_LOG_LOOKBACK,
        )
        path = log_dir / f"activity-log-{resource_group}.json"
        path.write_text(json.dumps(entries or [], indent=2))
        console.print(f"[green]  ✓ Activity log for {resource_group} written to {path}[/green]")
        return path
