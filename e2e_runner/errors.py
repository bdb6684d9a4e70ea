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

"""Exception types raised by the orchestrator and its collaborators."""

from __future__ import annotations


class AccountSetupError(RuntimeError):
    """Login or subscription selection failed; nothing downstream can run."""


class ResourceGroupNotFoundError(RuntimeError):
    """The requested resource group does not exist."""


class ProvisioningError(RuntimeError):
    """The cluster could not be provisioned."""


class StorageError(RuntimeError):
    """A soak-cluster storage operation failed."""


class EngineConfigError(RuntimeError):
    """An existing cluster definition could not be loaded or parsed."""


class TestSuiteError(RuntimeError):
    """The test suite could not be built or did not pass."""

    __test__ = False
