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

"""Cluster definition parsing and expansion into a deployable api model."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from e2e_runner.constants import DEFAULT_ADMIN_USERNAME, REL_OUTPUT_DIR
from e2e_runner.errors import EngineConfigError


# ============================================================================
# Cluster definition model
# ============================================================================

class _Profile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class OrchestratorProfile(_Profile):
    orchestrator_type: str = Field(default="Kubernetes", alias="orchestratorType")


class MasterProfile(_Profile):
    count: int = Field(default=1, ge=1)
    dns_prefix: str = Field(default="", alias="dnsPrefix")


class LinuxProfile(_Profile):
    admin_username: str = Field(default=DEFAULT_ADMIN_USERNAME, alias="adminUsername")
    ssh: dict = Field(default_factory=dict)


class Properties(_Profile):
    orchestrator_profile: OrchestratorProfile = Field(default_factory=OrchestratorProfile, alias="orchestratorProfile")
    master_profile: MasterProfile = Field(default_factory=MasterProfile, alias="masterProfile")
    linux_profile: LinuxProfile = Field(default_factory=LinuxProfile, alias="linuxProfile")


class ClusterDefinition(_Profile):
    """In-memory cluster specification (the aks-engine api model)."""

    api_version: str = Field(default="vlabs", alias="apiVersion")
    properties: Properties = Field(default_factory=Properties)

    def dump(self) -> dict:
        return self.model_dump(by_alias=True)


def parse_input(path: Path) -> ClusterDefinition:
    """Parse a cluster definition file (JSON or YAML) into memory.

    Args:
        path: Cluster definition file.

    Returns:
        The parsed cluster definition.

    Raises:
        EngineConfigError: If the file is missing or is not a valid definition.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as err:
        raise EngineConfigError(f"Cannot read cluster definition {path}: {err}") from err
    except yaml.YAMLError as err:
        raise EngineConfigError(f"Cluster definition {path} is not valid JSON/YAML: {err}") from err
    if not isinstance(data, dict):
        raise EngineConfigError(f"Cluster definition {path} must be a mapping")
    try:
        return ClusterDefinition.model_validate(data)
    except ValidationError as err:
        raise EngineConfigError(f"Invalid cluster definition {path}: {err}") from err


# ============================================================================
# Engine
# ============================================================================

@dataclass(frozen=True)
class EngineConfig:
    """Paths for one cluster's definition and generated output.

    Attributes:
        name: Cluster name (also its DNS prefix and resource group).
        location: Azure region of the cluster.
        cluster_definition: Source cluster definition template.
        cluster_definition_template: Expanded api model written for this cluster.
        output_directory: Directory aks-engine writes generated artifacts into.
    """

    name: str
    location: str
    cluster_definition: Path
    cluster_definition_template: Path
    output_directory: Path

    def kubeconfig_path(self) -> Path:
        return self.output_directory / "kubeconfig" / f"kubeconfig.{self.location}.json"


def build_config(cwd: Path, cluster_definition: str, name: str, location: str) -> EngineConfig:
    """Compute the engine paths for a cluster without touching the filesystem."""
    output_dir = cwd / REL_OUTPUT_DIR
    return EngineConfig(
        name=name,
        location=location,
        cluster_definition=cwd / cluster_definition,
        cluster_definition_template=output_dir / f"{name}.json",
        output_directory=output_dir / name,
    )


def parse_config(cwd: Path, cluster_definition: str, name: str, location: str) -> EngineConfig:
    """Load the engine configuration of an existing cluster.

    Raises:
        EngineConfigError: If the expanded api model for ``name`` does not exist.
    """
    if not name:
        raise EngineConfigError("A cluster name is required to load an existing cluster")
    cfg = build_config(cwd, cluster_definition, name, location)
    if not cfg.cluster_definition_template.is_file():
        raise EngineConfigError(f"No cluster definition found for '{name}' at {cfg.cluster_definition_template}")
    return cfg


@dataclass
class Engine:
    """A cluster's engine configuration and its parsed definition."""

    config: EngineConfig
    cluster_definition: ClusterDefinition

    @classmethod
    def generate(cls, config: EngineConfig, ssh_public_key: str) -> Engine:
        """Expand the source template for a new cluster and write the api model.

        The DNS prefix is set to the cluster name and the SSH public key is
        injected into the linux profile.
        """
        definition = parse_input(config.cluster_definition)
        props = definition.properties
        props.master_profile.dns_prefix = config.name
        props.linux_profile.ssh = {"publicKeys": [{"keyData": ssh_public_key.strip()}]}

        config.cluster_definition_template.parent.mkdir(parents=True, exist_ok=True)
        config.cluster_definition_template.write_text(json.dumps(definition.dump(), indent=2))
        return cls(config=config, cluster_definition=definition)

    @classmethod
    def load(cls, config: EngineConfig) -> Engine:
        """Load the already-expanded api model of an existing cluster."""
        return cls(config=config, cluster_definition=parse_input(config.cluster_definition_template))

    def master_fqdn(self, dns_suffix: str) -> str:
        prefix = self.cluster_definition.properties.master_profile.dns_prefix or self.config.name
        return f"{prefix}.{self.config.location}.{dns_suffix}"

    @property
    def admin_username(self) -> str:
        return self.cluster_definition.properties.linux_profile.admin_username
