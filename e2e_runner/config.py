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

"""Configuration classes, config resolution, and display."""

from __future__ import annotations

import random
from datetime import timedelta
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from rich.panel import Panel

from e2e_runner import console, logger
from e2e_runner.constants import (
    DEFAULT_CLUSTER_DEFINITION,
    DEFAULT_DNS_SUFFIX,
    DEFAULT_ORCHESTRATOR,
    DEFAULT_TIMEOUT,
    ORCHESTRATOR_KUBERNETES,
    RETRY_DELAY_SECONDS,
)
from e2e_runner.retry import RetryPolicy
from e2e_runner.utils import parse_duration


# ============================================================================
# Configuration classes
# ============================================================================

class RunConfig(BaseSettings):
    """Run configuration, auto-loaded from E2E_* env vars.

    Attributes:
        name: Name of an existing cluster to attach to, or empty to provision one.
        location: Azure region for the cluster.
        regions: Candidate regions, one is picked at random when location is empty.
        orchestrator: Cluster orchestrator type.
        cluster_definition: Path to the cluster definition template.
        timeout: Deadline for every retried cloud call and for the test suite.
        provision_retries: Extra provisioning attempts after the first one fails.
        soak_cluster_name: Name of the long-lived cluster to reuse, or empty.
        force_deploy: Whether to recreate the soak cluster regardless of its age.
        cleanup_on_exit: Whether to delete tracked resource groups at teardown.
        cleanup_if_fail: Whether to tear down before aborting on a failure.
        skip_test: Whether to skip the test suite.
        skip_logs_collection: Whether to skip provisioning and activity log collection.
        retain_ssh: Whether to keep generated SSH credentials after the run.
        ginkgo_focus: Regex passed to ginkgo --focus, or empty.
        ginkgo_skip: Regex passed to ginkgo --skip, or empty.
        dns_suffix: Cloud DNS suffix used to build the cluster hostname.
        metrics_path: JSON-lines file the metrics point is appended to, or None.
    """

    model_config = SettingsConfigDict(env_prefix="E2E_", extra="ignore", frozen=True)

    name: str = ""
    location: str = ""
    regions: Annotated[list[str], NoDecode] = Field(default_factory=list)
    orchestrator: str = DEFAULT_ORCHESTRATOR
    cluster_definition: str = DEFAULT_CLUSTER_DEFINITION
    timeout: timedelta = DEFAULT_TIMEOUT
    provision_retries: int = Field(default=0, ge=0, le=10)
    soak_cluster_name: str = ""
    force_deploy: bool = False
    cleanup_on_exit: bool = True
    cleanup_if_fail: bool = True
    skip_test: bool = False
    skip_logs_collection: bool = False
    retain_ssh: bool = True
    ginkgo_focus: str = ""
    ginkgo_skip: str = ""
    dns_suffix: str = DEFAULT_DNS_SUFFIX
    metrics_path: str | None = None

    @field_validator("regions", mode="before")
    @classmethod
    def _split_regions(cls, value: object) -> object:
        if isinstance(value, str):
            return [region.strip() for region in value.split(",") if region.strip()]
        return value

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: object) -> timedelta:
        timeout = parse_duration(value)  # type: ignore[arg-type]
        if timeout <= timedelta(0):
            raise ValueError("timeout must be positive")
        return timeout

    @property
    def soak_mode(self) -> bool:
        """Whether this run targets a long-lived soak cluster."""
        return bool(self.soak_cluster_name)

    def is_kubernetes(self) -> bool:
        """Whether the orchestrator supports provisioning-metrics collection."""
        return self.orchestrator == ORCHESTRATOR_KUBERNETES

    def retry_policy(self) -> RetryPolicy:
        """Retry policy applied to every cloud-control-plane call."""
        return RetryPolicy(delay=RETRY_DELAY_SECONDS, deadline=self.timeout.total_seconds())


class AccountConfig(BaseSettings):
    """Azure service principal credentials, auto-loaded from AZURE_* env vars.

    Attributes:
        client_id: Service principal application id.
        client_secret: Service principal secret.
        tenant_id: Azure AD tenant id.
        subscription_id: Subscription to operate in.
    """

    model_config = SettingsConfigDict(env_prefix="AZURE_", extra="ignore", frozen=True)

    client_id: str = ""
    client_secret: str = ""
    tenant_id: str = ""
    subscription_id: str = ""


# ============================================================================
# Config resolution
# ============================================================================

def resolve_config(**overrides: object) -> RunConfig:
    """Merge CLI overrides, environment variables, and defaults into a RunConfig.

    Resolution priority: CLI arguments > E2E_* environment variables > defaults.
    ``None`` overrides are ignored.

    Args:
        **overrides: RunConfig field values supplied on the command line.

    Returns:
        The resolved, frozen run configuration.
    """
    cfg = RunConfig()
    update = {key: value for key, value in overrides.items() if value is not None}
    if update:
        cfg = RunConfig.model_validate({**cfg.model_dump(), **update})

    derived: dict[str, object] = {}
    if cfg.soak_cluster_name and not cfg.name:
        derived["name"] = cfg.soak_cluster_name
    if not cfg.location and cfg.regions:
        derived["location"] = random.choice(cfg.regions)
        logger.info("No location set, picked %s from %s", derived["location"], cfg.regions)
    if derived:
        cfg = RunConfig.model_validate({**cfg.model_dump(), **derived})
    return cfg


def validate_config(cfg: RunConfig) -> None:
    """Validate flag combinations.

    Args:
        cfg: Resolved run configuration.

    Raises:
        ValueError: If the configuration cannot drive a run.
    """
    if not cfg.location:
        raise ValueError("A location is required (set E2E_LOCATION, E2E_REGIONS or --location)")
    if cfg.soak_mode and cfg.name != cfg.soak_cluster_name:
        raise ValueError(
            f"Cluster name '{cfg.name}' conflicts with soak cluster '{cfg.soak_cluster_name}'"
        )
    if cfg.force_deploy and not cfg.soak_mode:
        logger.warning("--force-deploy only applies to soak clusters and will be ignored")
    if not cfg.cleanup_on_exit and not cfg.soak_mode:
        logger.warning("Resource groups will be left behind (cleanup on exit disabled)")
    if cfg.cleanup_on_exit and cfg.soak_mode:
        logger.warning("Cleanup on exit is enabled: soak cluster '%s' will be deleted after this run",
                       cfg.soak_cluster_name)


# ============================================================================
# Display
# ============================================================================

def display_config(cfg: RunConfig) -> None:
    """Print the resolved run configuration.

    Args:
        cfg: Resolved run configuration.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print("[yellow]Cluster:[/yellow]")
    console.print(f"  name              : {cfg.name or '(new)'}")
    console.print(f"  location          : {cfg.location}")
    console.print(f"  orchestrator      : {cfg.orchestrator}")
    console.print(f"  cluster_definition: {cfg.cluster_definition}")
    console.print(f"  timeout           : {cfg.timeout}")

    if cfg.soak_mode:
        console.print("[yellow]Soak:[/yellow]")
        console.print(f"  soak_cluster_name : {cfg.soak_cluster_name}")
        console.print(f"  force_deploy      : {cfg.force_deploy}")

    console.print("[yellow]Lifecycle:[/yellow]")
    console.print(f"  cleanup_on_exit   : {cfg.cleanup_on_exit}")
    console.print(f"  cleanup_if_fail   : {cfg.cleanup_if_fail}")
    console.print(f"  skip_test         : {cfg.skip_test}")
    console.print(f"  skip_logs         : {cfg.skip_logs_collection}")
    console.print(f"  retain_ssh        : {cfg.retain_ssh}")
