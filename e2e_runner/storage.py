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

"""Storage account and file share used to persist soak-cluster output."""

from __future__ import annotations

from pathlib import Path

import sh

from e2e_runner import console
from e2e_runner.constants import SOAK_STORAGE_ACCOUNT_PREFIX, SOAK_STORAGE_RESOURCE_GROUP
from e2e_runner.errors import StorageError
from e2e_runner.utils import az, command_error


class StorageAccount:
    """Azure storage account holding one file share per soak cluster.

    Attributes:
        name: Storage account name.
        resource_group: Resource group the account lives in.
        location: Azure region of the account.
        connection_string: Connection string, set by :meth:`set_connection_string`.
    """

    def __init__(self, name: str, resource_group: str, location: str) -> None:
        self.name = name
        self.resource_group = resource_group
        self.location = location
        self.connection_string = ""

    @classmethod
    def for_soak(cls, location: str) -> StorageAccount:
        """Build the per-region storage account shared by all soak clusters."""
        return cls(
            name=f"{SOAK_STORAGE_ACCOUNT_PREFIX}{location}",
            resource_group=SOAK_STORAGE_RESOURCE_GROUP,
            location=location,
        )

    def _run(self, action: str, *args: str) -> str:
        try:
            return az(*args)
        except sh.ErrorReturnCode as err:
            raise StorageError(f"Failed to {action}: {command_error(err)}") from err

    def create_storage_account(self) -> None:
        """Create the storage account and its resource group if missing.

        Raises:
            StorageError: If either cannot be created.
        """
        self._run(
            f"create resource group {self.resource_group}",
            "group", "create", "--name", self.resource_group,
            "--location", self.location, "--output", "none",
        )
        self._run(
            f"create storage account {self.name}",
            "storage", "account", "create",
            "--name", self.name,
            "--resource-group", self.resource_group,
            "--location", self.location,
            "--output", "none",
        )

    def set_connection_string(self) -> None:
        """Fetch the account's connection string for later share operations.

        Raises:
            StorageError: If the connection string cannot be read.
        """
        self.connection_string = self._run(
            f"read connection string of {self.name}",
            "storage", "account", "show-connection-string",
            "--name", self.name,
            "--resource-group", self.resource_group,
            "--query", "connectionString",
            "--output", "tsv",
        ).strip()

    def _share_args(self) -> list[str]:
        if not self.connection_string:
            raise StorageError(f"No connection string set for storage account {self.name}")
        return ["--connection-string", self.connection_string]

    def create_file_share(self, share: str) -> None:
        """Create a file share named after a soak cluster."""
        self._run(f"create file share {share}", "storage", "share", "create", "--name", share, *self._share_args())

    def upload_files(self, source: Path, share: str) -> None:
        """Upload a local directory into a file share."""
        self._run(
            f"upload {source} to share {share}",
            "storage", "file", "upload-batch",
            "--destination", share, "--source", str(source), *self._share_args(),
        )
        console.print(f"[green]  ✓ Uploaded {source} to share {share}[/green]")

    def download_files(self, share: str, destination: Path) -> None:
        """Download a file share into a local directory."""
        destination.mkdir(parents=True, exist_ok=True)
        self._run(
            f"download share {share} to {destination}",
            "storage", "file", "download-batch",
            "--source", share, "--destination", str(destination), *self._share_args(),
        )
        console.print(f"[green]  ✓ Downloaded share {share} to {destination}[/green]")

    def delete_files(self, share: str) -> None:
        """Delete every file stored in a file share."""
        self._run(
            f"delete files in share {share}",
            "storage", "file", "delete-batch", "--source", share, *self._share_args(),
        )
