"""aiagent command-line entry point.

    aiagent [--mock] [-v] [-y] your request here

Stdout carries only the final result. Logs, safety assessments and
confirmation prompts go to stderr.
"""

from __future__ import annotations

import argparse
import sys

from app.core.approval import ConsoleApproval
from app.core.config import get_settings
from app.core.errors import AgentError, ConfigurationError
from app.core.logging import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aiagent",
        description="Turn a natural-language request into validated shell actions.",
    )
    parser.add_argument("request", nargs="*", help="the request, e.g. 'list files in this directory'")
    parser.add_argument("--mock", action="store_true", help="use the offline mock model instead of a real API")
    parser.add_argument("-v", "--verbose", action="store_true", help="show detailed processing information on stderr")
    parser.add_argument(
        "-y", "--yes", dest="force_approval", action="store_true",
        help="auto-approve commands without validation (use with caution)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    user_input = " ".join(args.request).strip()
    if not user_input:
        print("Error: Please provide an input argument", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    logger = get_logger("main")
    try:
        get_settings()
        setup_logging(verbose=args.verbose)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    logger.debug("Received input: %s", user_input)

    if args.force_approval:
        logger.warning("Force approval mode enabled - commands will execute without validation")

    if args.mock:
        from app.agents.mock import MockGateway

        logger.info("Using mock model")
        gateway = MockGateway()
    else:
        from app.agents.models import ChatModelGateway, credential_warning

        warning = credential_warning()
        if warning:
            logger.warning(warning)
        gateway = ChatModelGateway()

    from app.core.orchestrator import run_agent

    try:
        result = run_agent(user_input, gateway, ConsoleApproval(), force_approval=args.force_approval)
    except AgentError as exc:
        logger.debug("Run failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 1

    sys.stdout.write(result)
    if result and not result.endswith("\n"):
        sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
