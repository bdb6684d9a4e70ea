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

"""Utility functions for command checks, az invocation, and duration parsing."""

from __future__ import annotations

import json
import re
from datetime import timedelta
from typing import Any

import sh

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": "hours", "m": "minutes", "s": "seconds", "ms": "milliseconds"}


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.") from err


def parse_duration(value: str | int | float | timedelta) -> timedelta:
    """Parse a Go-style duration (``20m``, ``1h30m``, ``168h``) or plain seconds.

    Args:
        value: Duration string, number of seconds, or an existing timedelta.

    Returns:
        The parsed duration.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    text = value.strip()
    if re.fullmatch(r"\d+(\.\d+)?", text):
        return timedelta(seconds=float(text))
    if not text or _DURATION_PART.sub("", text):
        raise ValueError(f"invalid duration {value!r}")
    total = timedelta()
    for amount, unit in _DURATION_PART.findall(text):
        total += timedelta(**{_DURATION_UNITS[unit]: float(amount)})
    return total


def command_error(err: sh.ErrorReturnCode) -> str:
    """Extract a readable message from a failed ``sh`` command."""
    stderr = err.stderr.decode(errors="replace").strip() if err.stderr else ""
    return stderr or f"exit code {err.exit_code}"


def az(*args: str) -> str:
    """Run an ``az`` command and return its stdout."""
    return str(sh.az(*args))


def az_json(*args: str) -> Any:
    """Run an ``az`` command with JSON output and return the decoded result."""
    output = az(*args, "--output", "json").strip()
    return json.loads(output) if output else None
