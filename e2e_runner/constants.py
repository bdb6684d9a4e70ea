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

"""Constants for cloud naming, local layout, and retry timing."""

from __future__ import annotations

from datetime import timedelta

# -- Retry --
RETRY_DELAY_SECONDS = 3

# -- Soak clusters --
SOAK_CLUSTER_EXPIRY = timedelta(hours=168)
SOAK_STORAGE_ACCOUNT_PREFIX = "acsesoaktests"
SOAK_STORAGE_RESOURCE_GROUP = "acse-test-infrastructure-storage"

# -- Resource group tags --
TAG_DEPLOYED_AT = "now"

# -- Local layout (relative to the run's working directory) --
REL_OUTPUT_DIR = "_output"
REL_LOGS_DIR = "_logs"
REL_TEST_DIR = "test/e2e"
SSH_CREDENTIALS_GLOB = "*ssh*"
SSH_KEY_MODE = 0o600
LOG_DIR_MODE = 0o755

# -- Provisioning --
ORCHESTRATOR_KUBERNETES = "kubernetes"
DEFAULT_ADMIN_USERNAME = "azureuser"
PROVISIONING_LOG_FILES = (
    "/var/log/azure/cluster-provision.log",
    "/var/log/cloud-init-output.log",
)
ACTIVITY_LOG_LOOKBACK = "1d"

# -- Test runner --
GINKGO_SLOW_SPEC_THRESHOLD = 180

# -- Config defaults --
DEFAULT_ORCHESTRATOR = ORCHESTRATOR_KUBERNETES
DEFAULT_CLUSTER_DEFINITION = "examples/kubernetes.json"
DEFAULT_TIMEOUT = timedelta(minutes=20)
DEFAULT_DNS_SUFFIX = "cloudapp.azure.com"
