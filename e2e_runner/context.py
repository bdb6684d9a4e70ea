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

"""Run context shared by the main sequence and the signal handler."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from e2e_runner.config import RunConfig
from e2e_runner.constants import REL_LOGS_DIR, REL_OUTPUT_DIR, SSH_CREDENTIALS_GLOB
from e2e_runner.resources import ResourceGroupSet

if TYPE_CHECKING:
    from e2e_runner.azure import Account
    from e2e_runner.engine import Engine
    from e2e_runner.metrics import Point
    from e2e_runner.provisioner import CLIProvisioner
    from e2e_runner.storage import StorageAccount


@dataclass
class RunContext:
    """State of one run, passed by reference to every component.

    ``cfg`` never changes. The main sequence is the only writer of the other
    fields; the signal handler only reads them.

    Attributes:
        cfg: Frozen run configuration.
        cwd: Working directory all local paths are rooted at.
        account: Azure account collaborator.
        cluster_name: Name of the cluster this run targets, empty until bound.
        point: Metrics point, set once the subscription is known.
        engine: Engine of the resolved cluster, once known.
        provisioner: Provisioner used for a fresh cluster, if any.
        storage: Soak storage account, in soak mode only.
        resource_groups: Groups that must be deleted at teardown.
    """

    cfg: RunConfig
    cwd: Path
    account: Account
    cluster_name: str = ""
    point: Point | None = None
    engine: Engine | None = None
    provisioner: CLIProvisioner | None = None
    storage: StorageAccount | None = None
    resource_groups: ResourceGroupSet = field(default_factory=ResourceGroupSet)

    def __post_init__(self) -> None:
        if not self.cluster_name:
            self.cluster_name = self.cfg.name

    @property
    def output_dir(self) -> Path:
        return self.cwd / REL_OUTPUT_DIR

    @property
    def hostname(self) -> str:
        return f"{self.cluster_name}.{self.cfg.location}.{self.cfg.dns_suffix}"

    @property
    def logs_dir(self) -> Path:
        return self.cwd / REL_LOGS_DIR / self.hostname

    def ssh_credentials(self) -> list[Path]:
        """Locally written SSH credential files for this run."""
        return sorted(self.output_dir.glob(SSH_CREDENTIALS_GLOB))

    def ssh_key_path(self, name: str | None = None) -> Path:
        return self.output_dir / f"{name or self.cluster_name}-ssh"
