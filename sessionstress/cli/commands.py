from __future__ import annotations

import argparse
import logging
import sys

from sessionstress.client import ServiceError, SessionServiceClient
from sessionstress.config import (
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_LEVEL,
    Config,
    ConfigError,
    load_config,
)
from sessionstress.logs import configure_logging
from sessionstress.orchestrator import Orchestrator
from sessionstress.runner import Workload
from sessionstress.status import LiveView, StatusChannel

from .args import build_parser
from .report import print_results, print_teardown

LOGGER = logging.getLogger("sessionstress.cli")


def run_cli(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)

        match args.command:
            case "run":
                return cmd_run(args)
            case "images":
                return cmd_images(args)
            case _:
                return 2

    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        return 130


def cmd_run(args: argparse.Namespace) -> int:
    config = _load(args)
    image_id = args.image or config.default_image_id
    if not image_id:
        raise ConfigError("No image to request: set 'default_image_id' or pass --image")

    with SessionServiceClient(config) as client:
        channel = None if args.no_live else StatusChannel()
        orchestrator = Orchestrator(client, config, image_id=image_id, channel=channel)

        view = None
        if channel is not None:
            view = LiveView(channel, tick_seconds=config.status_tick_seconds)
            view.start()
        try:
            results = orchestrator.run_all(
                args.usernames, args.number, Workload(args.workload)
            )
        finally:
            if view is not None:
                view.stop()

        print_results(results)
        LOGGER.info("Stress test completed")

        session_ids = orchestrator.session_ids()
        if not args.yes:
            _confirm_teardown()
        print("Destroying sessions...")
        errors = orchestrator.destroy_all()
        print_teardown(len(session_ids), errors)

    return 0


def cmd_images(args: argparse.Namespace) -> int:
    config = _load(args)
    with SessionServiceClient(config) as client:
        try:
            images = client.get_images()
        except ServiceError as exc:
            LOGGER.error("Failed to list images: %s", exc)
            return 1

    for image in images:
        print(f"{image.image_id}  {image.friendly_name}".rstrip())
    return 0


def _load(args: argparse.Namespace) -> Config:
    # Default sinks first: the loader may warn before the config is known.
    configure_logging(DEFAULT_LOG_FILE, DEFAULT_LOG_LEVEL)
    config = load_config(args.config)
    configure_logging(config.log_file, config.log_level)
    return config


def _confirm_teardown() -> None:
    try:
        input("\nPress Enter to destroy sessions and complete the test\n")
    except EOFError:
        pass
