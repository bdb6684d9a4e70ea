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

"""Interrupt handling that converges on the run's teardown."""

from __future__ import annotations

import signal
from types import FrameType
from typing import Any

from e2e_runner import console, logger
from e2e_runner.teardown import TeardownSequence

TRAPPED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalTrap:
    """Runs teardown and exits non-zero when the process is interrupted.

    Python delivers signals on the main thread between bytecodes, so the handler
    may interrupt the main sequence anywhere, including inside teardown itself.
    In that case the handler only records the signal and returns, letting the
    interrupted teardown finish; :attr:`received` then tells the orchestrator
    to exit non-zero.
    """

    def __init__(self, teardown: TeardownSequence) -> None:
        self.teardown = teardown
        self.received: signal.Signals | None = None
        self._previous: dict[signal.Signals, Any] = {}

    @property
    def armed(self) -> bool:
        return bool(self._previous)

    def arm(self) -> None:
        """Install the handlers. Calling it again is a no-op."""
        if self.armed:
            return
        for sig in TRAPPED_SIGNALS:
            self._previous[sig] = signal.signal(sig, self._handle)
        logger.info("Signal handlers installed for %s", ", ".join(s.name for s in TRAPPED_SIGNALS))

    def disarm(self) -> None:
        """Restore the handlers that were in place before :meth:`arm`."""
        for sig, previous in self._previous.items():
            signal.signal(sig, previous)
        self._previous.clear()

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        sig = signal.Signals(signum)
        self.received = sig
        console.print(
            f"[red]Received signal {sig.name} ... clean up on exit: "
            f"{self.teardown.ctx.cfg.cleanup_on_exit}[/red]"
        )
        if self.teardown.in_progress:
            logger.warning("Teardown already in progress, letting it finish before exiting")
            return
        self.teardown.run()
        raise SystemExit(1)
