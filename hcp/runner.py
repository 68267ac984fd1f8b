from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import Mapping

from hcp.config import (
    EXIT_HCP_HTTP,
    EXIT_HCP_IO,
    EXIT_HCP_SPAWN,
    EXIT_HCP_UNKNOWN,
    SUPERVISOR_ENV_VARS,
    TAIL_CAP,
)
from hcp.models import OutcomeKind, RunConfig, RunOutcome
from hcp.reporter import PingError, Reporter
from hcp.signals import SignalBridge, wait_for_child
from hcp.tee import TeeReader, terminal_sink

logger = logging.getLogger(__name__)

NO_COMMAND_MESSAGE = "No command given"


def child_environment(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Copy of ``environ`` without the variables that configure hcp itself."""
    env = dict(os.environ if environ is None else environ)
    for name in SUPERVISOR_ENV_VARS:
        env.pop(name, None)
    return env


def compose_report(outcome: RunOutcome, ignore_code: bool = False) -> tuple[bytes, int]:
    """Build the terminal ping body and the exit code for ``outcome``."""
    if not outcome.is_normal:
        if outcome.kind is OutcomeKind.spawn_failed:
            return f"Failed to spawn process: {outcome.error}".encode(), EXIT_HCP_SPAWN
        if outcome.kind is OutcomeKind.wait_failed:
            return f"Failed waiting for process: {outcome.error}".encode(), EXIT_HCP_IO
        message = f"Error reading {outcome.stream} from child: {outcome.error}"
        return message.encode(), EXIT_HCP_IO

    parts: list[bytes] = []
    if outcome.kind is OutcomeKind.exited:
        parts.append(f"Command exited with exit code {outcome.exit_code}\n".encode())
        code = outcome.exit_code
    else:
        parts.append(b"Command exited without an exit code\n")
        code = EXIT_HCP_UNKNOWN
    if outcome.stdout_tail:
        parts += [b"stdout:\n", outcome.stdout_tail, b"\n"]
    if outcome.stderr_tail:
        if outcome.stdout_tail:
            parts.append(b"\n")
        parts += [b"stderr:\n", outcome.stderr_tail, b"\n"]
    # The message keeps the child's own code; only the verdict is overridden.
    if ignore_code:
        code = 0
    return b"".join(parts), code


class Supervisor:
    """Runs one command under healthcheck reporting."""

    def __init__(
        self,
        config: RunConfig,
        reporter: Reporter,
        bridge: SignalBridge | None = None,
    ) -> None:
        self.config = config
        self.reporter = reporter
        self.bridge = bridge

    def run(self) -> int:
        """Supervise the command and return the exit code for hcp."""
        if not self.config.command:
            return self._finish(NO_COMMAND_MESSAGE.encode(), 0, log=True)

        try:
            self.reporter.ping_start()
        except PingError as exc:
            logger.error("Error on healthchecks %s call: %s", exc.label, exc.cause)
            return EXIT_HCP_HTTP

        outcome = self.execute()
        message, code = compose_report(outcome, self.config.ignore_child_exit_code)
        log = outcome.kind in (OutcomeKind.spawn_failed, OutcomeKind.wait_failed)
        return self._finish(message, code, log=log)

    def execute(self) -> RunOutcome:
        """Spawn the child, drain both streams and wait for it to exit."""
        # Resolved before spawning; a parent started with a closed stream tees nothing.
        if self.config.tee_to_terminal:
            out_sink, err_sink = terminal_sink(sys.stdout), terminal_sink(sys.stderr)
        else:
            out_sink = err_sink = None
        try:
            process = subprocess.Popen(
                self.config.command,
                stdin=None,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=child_environment(),
                bufsize=0,
            )
        except OSError as exc:
            return RunOutcome(kind=OutcomeKind.spawn_failed, error=str(exc))
        logger.debug("spawned %s as pid %d", self.config.command[0], process.pid)

        stdout_reader = TeeReader(process.stdout, out_sink, "stdout", TAIL_CAP).start()
        stderr_reader = TeeReader(process.stderr, err_sink, "stderr", TAIL_CAP).start()

        try:
            returncode = wait_for_child(process, self.bridge)
        except OSError as exc:
            return RunOutcome(kind=OutcomeKind.wait_failed, error=str(exc))
        logger.debug("pid %d exited with %d", process.pid, returncode)

        out = stdout_reader.join()
        err = stderr_reader.join()
        for name, result in (("stdout", out), ("stderr", err)):
            if result.error is not None:
                return RunOutcome(
                    kind=OutcomeKind.stream_read_failed,
                    stream=name,
                    error=str(result.error),
                )

        # A negative return code means the child was killed by a signal.
        if returncode < 0:
            return RunOutcome(
                kind=OutcomeKind.exited_no_code,
                stdout_tail=out.tail,
                stderr_tail=err.tail,
            )
        return RunOutcome(
            kind=OutcomeKind.exited,
            exit_code=returncode,
            stdout_tail=out.tail,
            stderr_tail=err.tail,
        )

    def _finish(self, message: bytes, code: int, log: bool = False) -> int:
        if log:
            logger.error("%s", message.decode("utf-8", errors="replace"))
        try:
            self.reporter.finish(message, code)
        except PingError as exc:
            logger.error("Error sending finishing request to healthchecks: %s", exc.cause)
            return EXIT_HCP_HTTP
        return code
