from __future__ import annotations

import logging
import os
import queue
import signal
import subprocess
import time

from hcp.config import POLL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class SignalBridge:
    """Relays SIGTERM/SIGINT received by hcp to the supervised child.

    The handler only records the signal number; forwarding happens from the
    wait loop. When several signals arrive between two polls only the most
    recent one is forwarded.
    """

    SIGNALS = ("SIGTERM", "SIGINT")

    def __init__(self) -> None:
        # SimpleQueue.put is reentrant, so it is safe to call from a handler.
        self._received: queue.SimpleQueue[int] = queue.SimpleQueue()
        self._previous: dict[int, object] = {}

    @staticmethod
    def supported() -> bool:
        return os.name == "posix"

    def install(self) -> None:
        for name in self.SIGNALS:
            signum = getattr(signal, name)
            self._previous[signum] = signal.signal(signum, self._handle)

    def restore(self) -> None:
        for signum, handler in self._previous.items():
            # None means the old handler was not installed from Python.
            if handler is not None:
                signal.signal(signum, handler)
        self._previous.clear()

    def _handle(self, signum: int, _frame: object) -> None:
        self._received.put(signum)

    def take(self) -> int:
        signum = 0
        while True:
            try:
                signum = self._received.get_nowait()
            except queue.Empty:
                return signum

    def forward(self, pid: int) -> None:
        signum = self.take()
        if not signum:
            return
        logger.debug("forwarding signal %d to pid %d", signum, pid)
        try:
            os.kill(pid, signum)
        except ProcessLookupError:
            pass


def wait_for_child(
    process: subprocess.Popen, bridge: SignalBridge | None = None
) -> int:
    """Wait for ``process`` to exit, relaying signals through ``bridge``."""
    if bridge is None:
        return process.wait()
    bridge.forward(process.pid)
    while True:
        returncode = process.poll()
        if returncode is not None:
            return returncode
        bridge.forward(process.pid)
        time.sleep(POLL_INTERVAL_SECONDS)
