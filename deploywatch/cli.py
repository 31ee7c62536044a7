"""Command-line entry point for deploywatch."""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from . import __version__
from .aws.client import CodeDeployClient, FleetInventoryClient, create_session
from .config import STATUS_MODES, Config, split_csv
from .dashboard.terminal import TerminalDashboard
from .errors import FatalStartupError
from .scheduler.checker import TaskScheduler
from .utils.logging_config import setup_logging
from .watcher import DeploymentWatcher


logger = logging.getLogger("deploywatch.cli")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="deploywatch",
        description="Live terminal dashboard for AWS CodeDeploy deployments",
    )
    parser.add_argument(
        "deployment_ids",
        nargs="*",
        metavar="DEPLOYMENT_ID",
        help="Deployment ids to watch",
    )
    parser.add_argument("-a", "--application", help="Watch deployments of this application")
    parser.add_argument(
        "-g", "--groups",
        help="Comma separated deployment groups (requires --application)",
    )

    detail = parser.add_mutually_exclusive_group()
    detail.add_argument(
        "--compact", dest="compact", action="store_true", default=None,
        help="One line per instance",
    )
    detail.add_argument(
        "--verbose", dest="compact", action="store_false",
        help="One line per lifecycle event",
    )

    parser.add_argument(
        "--hide-succeeded", action="store_true", default=None,
        help="Hide instances that finished successfully",
    )
    parser.add_argument("--status-mode", choices=sorted(STATUS_MODES), help="How instance status is polled")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--log-file", help="File receiving log records")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Load env/YAML configuration and apply command-line overrides."""
    config = Config.from_yaml(args.config) if args.config else Config.from_env()

    if args.deployment_ids:
        config.filters.deployment_ids = list(args.deployment_ids)
    if args.application:
        config.filters.application = args.application
    if args.groups:
        config.filters.groups = split_csv(args.groups)
    if args.compact is not None:
        config.display.compact = args.compact
    if args.hide_succeeded is not None:
        config.display.hide_succeeded = args.hide_succeeded
    if args.status_mode:
        config.polling.status_mode = args.status_mode
    if args.log_file:
        config.logging.file = args.log_file
    if args.log_level:
        config.logging.level = args.log_level

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Run the dashboard until 'q', SIGINT or SIGTERM.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"deploywatch {__version__}")
        return 0

    config = load_config(args)
    errors = config.validate()
    if errors:
        for error in errors:
            print(error, file=sys.stderr)
        return 1

    setup_logging(level=config.logging.level, log_file=config.logging.file, fmt=config.logging.format)

    session = create_session(region=config.aws.region, profile=config.aws.profile)
    tracker = CodeDeployClient(session=session)
    inventory = FleetInventoryClient(session=session)

    quit_event = threading.Event()
    dashboard = TerminalDashboard(quit_event=quit_event)
    try:
        dashboard.start()
    except FatalStartupError as e:
        logger.error(str(e))
        print(e, file=sys.stderr)
        return 1

    scheduler = TaskScheduler()
    watcher = DeploymentWatcher(config, tracker, inventory, scheduler=scheduler)
    finished = threading.Event()

    def cleanup():
        dashboard.stop()
        finished.set()

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}")
        quit_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    scheduler.on_external_signal(quit_event, cleanup)
    watcher.start(dashboard.show)

    # the main thread stays free to receive OS signals
    while not finished.wait(0.5):
        pass

    if not scheduler.join(timeout=2.0):
        logger.warning("Some jobs were still running at exit")
    logger.info(f"Exiting after {dashboard.updates} dashboard updates")
    return 0


if __name__ == "__main__":
    sys.exit(main())
