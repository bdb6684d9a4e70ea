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

"""Tests for Azure account operations driven through the az CLI."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
import sh

from e2e_runner.azure import Account, ResourceGroup
from e2e_runner.config import AccountConfig
from e2e_runner.errors import AccountSetupError, ResourceGroupNotFoundError
from e2e_runner.retry import RetryPolicy


def _az_error(code: int, stderr: bytes) -> sh.ErrorReturnCode:
    return getattr(sh, f"ErrorReturnCode_{code}")("az", b"", stderr)


@pytest.fixture
def account() -> Account:
    return Account(AccountConfig(client_id="app", client_secret="secret", tenant_id="tenant", subscription_id="sub-1"))


class TestResourceGroup:
    def test_deployed_at_reads_unix_tag(self):
        group = ResourceGroup("rg", tags={"now": "1700000000"})
        assert group.deployed_at() == datetime.fromtimestamp(1700000000, tz=timezone.utc)

    @pytest.mark.parametrize("tags", [{}, {"now": "yesterday"}])
    def test_missing_or_malformed_tag(self, tags):
        assert ResourceGroup("rg", tags=tags).deployed_at() is None


class TestAccountIdentity:
    def test_login_uses_service_principal(self, account):
        with patch("e2e_runner.azure.az") as mock_az:
            account.login()
        args = mock_az.call_args.args
        assert args[:2] == ("login", "--service-principal")
        assert "app" in args and "tenant" in args

    def test_login_without_credentials_checks_session(self):
        with patch("e2e_runner.azure.az") as mock_az:
            Account(AccountConfig()).login()
        assert mock_az.call_args.args[:2] == ("account", "show")

    def test_login_failure_wrapped(self, account):
        with patch("e2e_runner.azure.az", side_effect=_az_error(1, b"AADSTS7000215: Invalid client secret")):
            with pytest.raises(AccountSetupError, match="Invalid client secret"):
                account.login()

    def test_subscription_adopted_from_session(self):
        acct = Account(AccountConfig())
        with patch("e2e_runner.azure.az_json", return_value={"id": "sub-from-session"}):
            acct.set_subscription()
        assert acct.subscription_id == "sub-from-session"


class TestAccountResourceGroups:
    def test_set_resource_group(self, account):
        data = {"name": "rg-a", "location": "westus2", "tags": {"now": "1700000000"}}
        with patch("e2e_runner.azure.az_json", return_value=data):
            group = account.set_resource_group("rg-a")
        assert group.location == "westus2"
        assert account.resource_group is group

    def test_not_found_is_not_retried(self, account):
        err = _az_error(3, b"ERROR: (ResourceGroupNotFound) Resource group 'rg-a' could not be found.")
        with patch("e2e_runner.azure.az_json", side_effect=err) as mock_json:
            with pytest.raises(ResourceGroupNotFoundError):
                account.set_resource_group_with_retry("rg-a", RetryPolicy(delay=0, deadline=60))
        assert mock_json.call_count == 1

    def test_other_lookup_errors_propagate(self, account):
        with patch("e2e_runner.azure.az_json", side_effect=_az_error(1, b"throttled")):
            with pytest.raises(sh.ErrorReturnCode):
                account.set_resource_group("rg-a")

    def test_create_group_with_tags(self, account):
        with patch("e2e_runner.azure.az") as mock_az:
            account.create_group("rg-a", "westus2", {"now": "1700000000"})
        args = mock_az.call_args.args
        assert args[:4] == ("group", "create", "--name", "rg-a")
        assert args[-2:] == ("--tags", "now=1700000000")

    @pytest.mark.parametrize("wait, no_wait", [(True, False), (False, True)])
    def test_delete_group(self, account, wait, no_wait):
        with patch("e2e_runner.azure.az") as mock_az:
            account.delete_group("rg-a", wait)
        args = mock_az.call_args.args
        assert "--yes" in args
        assert ("--no-wait" in args) is no_wait

    def test_delete_retried_until_success(self, account):
        with patch("e2e_runner.azure.az", side_effect=[_az_error(1, b"conflict"), ""]) as mock_az:
            account.delete_group_with_retry("rg-a", False, RetryPolicy(delay=0, deadline=60))
        assert mock_az.call_count == 2

    def test_delete_of_missing_group_is_not_retried(self, account):
        err = _az_error(3, b"ERROR: (ResourceGroupNotFound) Resource group 'demo-soak' could not be found.")
        with patch("e2e_runner.azure.az", side_effect=err) as mock_az:
            with pytest.raises(ResourceGroupNotFoundError, match="demo-soak"):
                account.delete_group_with_retry("demo-soak", True, RetryPolicy(delay=0.05, deadline=60))
        assert mock_az.call_count == 1

    def test_other_delete_errors_propagate(self, account):
        with patch("e2e_runner.azure.az", side_effect=_az_error(1, b"conflict")):
            with pytest.raises(sh.ErrorReturnCode):
                account.delete_group("rg-a", False)


class TestActivityLog:
    def test_written_as_json(self, account, tmp_path):
        entries = [{"operationName": {"value": "Microsoft.Resources/deployments/write"}}]
        with patch("e2e_runner.azure.az_json", return_value=entries) as mock_json:
            path = account.fetch_activity_log("rg-a", tmp_path)
        assert path == tmp_path / "activity-log-rg-a.json"
        assert "Microsoft.Resources/deployments/write" in path.read_text()
        assert "--resource-group" in mock_json.call_args.args
