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

"""Tests for aks-engine provisioning."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import sh

from e2e_runner.errors import ProvisioningError
from e2e_runner.provisioner import CLIProvisioner
from tests.fakes import FakeAccount


class FakeCommands:
    """Records ssh-keygen / aks-engine / scp invocations."""

    def __init__(self, deploy_failures: int = 0, scp_fails: bool = False) -> None:
        self.deploy_failures = deploy_failures
        self.scp_fails = scp_fails
        self.calls: list[tuple[str, tuple]] = []

    def command(self, name: str):
        def _run(*args, **kwargs):
            self.calls.append((name, args))
            if name == "ssh-keygen":
                key = Path(args[args.index("-f") + 1])
                key.write_text("PRIVATE")
                key.with_name(key.name + ".pub").write_text("ssh-rsa AAAA generated\n")
            elif name == "aks-engine" and self.deploy_failures:
                self.deploy_failures -= 1
                raise sh.ErrorReturnCode_1("aks-engine deploy", b"", b"quota exceeded")
            elif name == "scp" and self.scp_fails:
                raise sh.ErrorReturnCode_1("scp", b"", b"connection refused")
        return _run

    def named(self, name: str) -> list[tuple]:
        return [args for cmd, args in self.calls if cmd == name]

    def as_module(self) -> MagicMock:
        mock_sh = MagicMock()
        mock_sh.ErrorReturnCode = sh.ErrorReturnCode
        mock_sh.TimeoutException = sh.TimeoutException
        mock_sh.Command.side_effect = self.command
        mock_sh.scp.side_effect = self.command("scp")
        return mock_sh


@pytest.fixture
def commands():
    fake = FakeCommands()
    with patch("e2e_runner.provisioner.sh", fake.as_module()):
        yield fake


class TestCLIProvisioner:
    def test_provisions_and_tracks_group(self, make_ctx, cluster_definition, commands):
        account = FakeAccount()
        ctx = make_ctx(account=account)
        provisioner = CLIProvisioner(ctx)

        provisioner.run()

        name = ctx.cluster_name
        assert name.startswith("kubernetes-")
        assert ctx.resource_groups.snapshot() == (name,)
        assert "now" in account.groups[name].tags
        assert ctx.engine is provisioner.engine
        model = json.loads((ctx.output_dir / f"{name}.json").read_text())
        assert model["properties"]["linuxProfile"]["ssh"]["publicKeys"][0]["keyData"] == "ssh-rsa AAAA generated"
        deploy_args = commands.named("aks-engine")[0]
        assert deploy_args[0] == "deploy"
        assert "--auth-method" in deploy_args
        assert ctx.point.provision_succeeded is True

    def test_failed_attempts_stay_tracked(self, make_ctx, cluster_definition, commands):
        commands.deploy_failures = 2
        ctx = make_ctx(provision_retries=1)

        with pytest.raises(ProvisioningError, match="quota exceeded"):
            CLIProvisioner(ctx).run()

        groups = ctx.resource_groups.snapshot()
        assert len(groups) == 2
        assert groups[0] != groups[1]
        assert ctx.point.provision_succeeded is False

    def test_retry_succeeds_with_new_name(self, make_ctx, cluster_definition, commands):
        commands.deploy_failures = 1
        ctx = make_ctx(provision_retries=2)

        CLIProvisioner(ctx).run()

        groups = ctx.resource_groups.snapshot()
        assert len(groups) == 2
        assert ctx.cluster_name == groups[-1]

    def test_soak_mode_uses_soak_name(self, make_ctx, cluster_definition, commands):
        ctx = make_ctx(soak_cluster_name="demo-soak")
        ctx.cluster_name = ""

        CLIProvisioner(ctx).run()

        assert ctx.resource_groups.snapshot() == ("demo-soak",)
        assert ctx.cluster_name == "demo-soak"

    def test_fetch_provisioning_metrics(self, make_ctx, cluster_definition, commands, tmp_path):
        ctx = make_ctx()
        provisioner = CLIProvisioner(ctx)
        provisioner.run()

        provisioner.fetch_provisioning_metrics(tmp_path)

        scp_calls = commands.named("scp")
        assert len(scp_calls) == 2
        assert scp_calls[0][-1] == str(tmp_path / "cluster-provision.log")
        assert f"azureuser@{ctx.cluster_name}.westus2.cloudapp.azure.com:" in scp_calls[0][-2]

    def test_fetch_provisioning_metrics_without_engine(self, make_ctx, tmp_path):
        with pytest.raises(ProvisioningError):
            CLIProvisioner(make_ctx()).fetch_provisioning_metrics(tmp_path)
