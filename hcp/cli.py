from __future__ import annotations

import argparse
import logging
from typing import Sequence

from hcp import __version__
from hcp.log import configure_logging
from hcp.models import JobId, RunConfig
from hcp.reporter import Reporter, make_client
from hcp.runner import Supervisor
from hcp.settings import get_settings
from hcp.signals import SignalBridge

logger = logging.getLogger(__name__)

EXIT_CONFIG = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hcp",
        description="Run a command and ping healthchecks.io with the result",
        allow_abbrev=False,
    )
    parser.add_argument("--version", action="version", version=f"hcp {__version__}")
    parser.add_argument(
        "--hcp-id", metavar="ID", help="Sets the healthchecks id [env: HCP_ID]"
    )
    parser.add_argument(
        "--hcp-tee",
        action="store_true",
        help="Also output cmd stdout/stderr to local stdout/stderr [env: HCP_TEE]",
    )
    parser.add_argument(
        "--hcp-ignore-code",
        action="store_true",
        help="Ignore the return code from cmd [env: HCP_IGNORE_CODE]",
    )
    parser.add_argument(
        "--hcp-verbose", action="store_true", help="Log hcp's own activity to stderr"
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command and arguments to run",
    )
    return parser


def load_config(args: argparse.Namespace) -> RunConfig | None:
    """Merge command line flags with environment defaults."""
    settings = get_settings()
    hcp_id = args.hcp_id if args.hcp_id is not None else settings.hcp_id
    if hcp_id is None:
        logger.error("No Healthcheck Id given")
        return None
    job_id = JobId.parse(hcp_id)
    if job_id is None:
        logger.error("Healthcheck Id isn't a valid uuid '%s'", hcp_id)
        return None

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    return RunConfig(
        job_id=job_id,
        tee_to_terminal=args.hcp_tee or settings.tee,
        ignore_child_exit_code=args.hcp_ignore_code or settings.ignore_code,
        command=command,
    )


def main(argv: Sequence[str] | None = None) -> int:
    # Handlers go in before anything else so an early SIGTERM is not lost.
    bridge = SignalBridge() if SignalBridge.supported() else None
    if bridge is not None:
        bridge.install()
    try:
        args = build_parser().parse_args(argv)
        configure_logging(args.hcp_verbose)
        config = load_config(args)
        if config is None:
            return EXIT_CONFIG
        reporter = Reporter(config.job_id, client=make_client())
        try:
            return Supervisor(config, reporter, bridge).run()
        finally:
            reporter.close()
    finally:
        if bridge is not None:
            bridge.restore()
