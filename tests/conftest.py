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

"""Shared fixtures for the run lifecycle tests."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path

import pytest

from e2e_runner.config import RunConfig
from e2e_runner.context import RunContext
from e2e_runner.metrics import build_point
from tests.fakes import FakeAccount, FakeProvisioner


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep E2E_* / AZURE_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith(("E2E_", "AZURE_")):
            monkeypatch.delenv(key)
    monkeypatch.setenv("KUBECONFIG", "/dev/null")


@pytest.fixture
def make_ctx(tmp_path: Path) -> Callable[..., RunContext]:
    """Build a RunContext rooted at tmp_path with a FakeAccount and a FakeProvisioner."""

    def _make(account: FakeAccount | None = None, with_point: bool = True, **overrides) -> RunContext:
        settings = {"location": "westus2", "timeout": "1s", **overrides}
        if settings.get("soak_cluster_name") and not settings.get("name"):
            settings["name"] = settings["soak_cluster_name"]
        cfg = RunConfig(**settings)
        ctx = RunContext(cfg=cfg, cwd=tmp_path, account=account or FakeAccount())
        ctx.provisioner = FakeProvisioner(ctx, groups=())
        if with_point:
            ctx.point = build_point(cfg.orchestrator, cfg.location, cfg.cluster_definition, "sub-123")
        return ctx

    return _make


@pytest.fixture
def cluster_definition(tmp_path: Path) -> Path:
    """Write a minimal cluster definition template at examples/kubernetes.json."""
    path = tmp_path / "examples" / "kubernetes.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({
        "apiVersion": "vlabs",
        "properties": {
            "orchestratorProfile": {"orchestratorType": "Kubernetes"},
            "masterProfile": {"count": 1, "dnsPrefix": "", "vmSize": "Standard_D2_v3"},
            "linuxProfile": {"adminUsername": "azureuser", "ssh": {"publicKeys": [{"keyData": ""}]}},
        },
    }))
    return path
