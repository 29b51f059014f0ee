from __future__ import annotations

import argparse

from sessionstress.orchestrator import SessionCount
from sessionstress.runner import Workload


def session_count(value: str) -> SessionCount:
    try:
        return SessionCount.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sessionstress")

    parser.add_argument(
        "--config",
        default=None,
        help="Path to config file (default: ~/.session-stress.json)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
    )

    # run
    run = subparsers.add_parser("run", help="Run a stress test")
    run.add_argument(
        "-u",
        "--username",
        dest="usernames",
        action="append",
        required=True,
        help="Username to run sessions for (repeatable)",
    )
    run.add_argument(
        "-n",
        "--number",
        type=session_count,
        required=True,
        help="Sessions per user: N or MIN-MAX",
    )
    run.add_argument(
        "-c",
        "--command",
        dest="workload",
        choices=[w.value for w in Workload],
        default=Workload.ALL.value,
        help="Workload to execute in each session",
    )
    run.add_argument(
        "--image",
        default=None,
        help="Image id to request (overrides default_image_id)",
    )
    run.add_argument(
        "--yes",
        action="store_true",
        help="Destroy sessions without asking for confirmation",
    )
    run.add_argument(
        "--no-live",
        action="store_true",
        help="Disable the live status view",
    )

    # images
    subparsers.add_parser("images", help="List available images")

    return parser
