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

"""Deadline-bounded retry for cloud-control-plane calls."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tenacity import RetryCallState, Retrying, retry_if_not_exception_type, stop_after_delay, wait_fixed

from e2e_runner import logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed delay between attempts and the overall deadline, in seconds.

    Attributes:
        delay: Seconds to sleep between failed attempts.
        deadline: Seconds after the first attempt past which no new attempt starts.
    """

    delay: float
    deadline: float


def _log_retry(description: str) -> Callable[[RetryCallState], None]:
    def _before_sleep(state: RetryCallState) -> None:
        err = state.outcome.exception() if state.outcome else None
        logger.warning(
            "%s failed (attempt %d, %.0fs elapsed), retrying: %s",
            description, state.attempt_number, state.seconds_since_start or 0.0, err,
        )
    return _before_sleep


def call_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    *,
    description: str,
    give_up_on: tuple[type[BaseException], ...] = (),
    sleep: Callable[[float], Any] | None = None,
) -> T:
    """Invoke ``operation`` until it succeeds or the policy deadline passes.

    There is no attempt cap: the deadline is the only bound. An attempt that
    fails before the deadline is followed by a fixed sleep and another attempt,
    so the call returns at most one delay (plus one attempt) past the deadline.

    Args:
        operation: Zero-argument callable performing the cloud call.
        policy: Delay and deadline to apply.
        description: Operation name used in log messages.
        give_up_on: Exception types that are raised immediately, never retried.
        sleep: Sleep function override, mainly for tests.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.

    Raises:
        Exception: The last exception raised by ``operation`` once the deadline
            has passed, or the first one matching ``give_up_on``.
    """
    kwargs: dict[str, Any] = {}
    if sleep is not None:
        kwargs["sleep"] = sleep
    retrying = Retrying(
        stop=stop_after_delay(policy.deadline),
        wait=wait_fixed(policy.delay),
        retry=retry_if_not_exception_type(give_up_on),
        before_sleep=_log_retry(description),
        reraise=True,
        **kwargs,
    )
    return retrying(operation)
