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

"""Tests for the ginkgo test-suite runner."""

from unittest.mock import MagicMock, patch

import pytest
import sh

from e2e_runner.errors import TestSuiteError
from e2e_runner.ginkgo import build_ginkgo_runner


@pytest.fixture
def suite_dir(tmp_path):
    path = tmp_path / "test" / "e2e" / "kubernetes"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def mock_sh():
    module = MagicMock()
    module.ErrorReturnCode = sh.ErrorReturnCode
    module.TimeoutException = sh.TimeoutException
    with patch("e2e_runner.ginkgo.sh", module):
        yield module


class TestBuildGinkgoRunner:
    def test_missing_suite_directory(self, make_ctx):
        with pytest.raises(TestSuiteError, match="No test suite"):
            build_ginkgo_runner(make_ctx())

    def test_missing_ginkgo_binary(self, make_ctx, suite_dir):
        with patch("e2e_runner.ginkgo.require_command", side_effect=RuntimeError("Required command 'ginkgo' not found")):
            with pytest.raises(TestSuiteError, match="ginkgo"):
                build_ginkgo_runner(make_ctx())

    def test_environment_describes_cluster(self, make_ctx, suite_dir):
        ctx = make_ctx(name="k8s-1")
        with patch("e2e_runner.ginkgo.require_command"):
            runner = build_ginkgo_runner(ctx)
        assert runner.test_dir == suite_dir
        assert runner.env["NAME"] == "k8s-1"
        assert runner.env["LOCATION"] == "westus2"
        assert runner.env["ORCHESTRATOR"] == "kubernetes"


class TestGinkgoRunner:
    def _runner(self, make_ctx, **overrides):
        with patch("e2e_runner.ginkgo.require_command"):
            return build_ginkgo_runner(make_ctx(**overrides))

    def test_args_include_focus_and_skip(self, make_ctx, suite_dir):
        runner = self._runner(make_ctx, ginkgo_focus="networking", ginkgo_skip="flaky")
        assert runner.args() == [
            "-slowSpecThreshold", "180", "-r", "-v",
            "--focus", "networking", "--skip", "flaky",
            str(suite_dir),
        ]

    def test_success_records_point(self, make_ctx, suite_dir, mock_sh):
        runner = self._runner(make_ctx)
        runner.run()
        assert mock_sh.ginkgo.call_args.kwargs["_timeout"] == 1.0
        assert runner.point.test_succeeded is True
        assert runner.point.test_duration is not None

    def test_failure_raises(self, make_ctx, suite_dir, mock_sh):
        mock_sh.ginkgo.side_effect = sh.ErrorReturnCode_1("ginkgo", b"", b"2 specs failed")
        runner = self._runner(make_ctx)
        with pytest.raises(TestSuiteError):
            runner.run()
        assert runner.point.test_succeeded is False
