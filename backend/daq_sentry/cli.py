"""
DAQ Sentry CLI — thin entrypoint for operator commands.

Commands:
- serve: run the HTTP service and its watcher
- status: print a live status sample as JSON
- current: print the last persisted sample as JSON
- catalog: move a run's data files into its run directory
- backup: back up a run's configuration files

Configuration comes from the environment (see daq_sentry.config).

Exit Codes:
===========
- 0: Success
- 1: Operation failed (sentry or storage error)
- 2: Invalid experiment or run number
- 4: Configuration error
"""

import argparse
import logging
import sys
import time
from typing import List, NoReturn, Optional

from pydantic import ValidationError

from .config import ConfigurationError, SentrySettings, load_settings
from .errors import SentryError
from .models import RunIdentifier
from .persistence import StatusStore, StorageError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_INPUT = 2
EXIT_CONFIG = 4

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(filename)s:%(lineno)d %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Compact log lines with file, line and thread."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def cmd_serve(args: argparse.Namespace, settings: SentrySettings) -> int:
    import uvicorn

    from .main import create_app

    logger.info(f"Listening on {settings.host}:{settings.port}")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
    return EXIT_OK


def cmd_status(args: argparse.Namespace, settings: SentrySettings) -> int:
    from .main import build_probe

    status = build_probe(settings).compute_status(settings.default_target())
    print(status.model_dump_json(indent=2))
    return EXIT_OK


def cmd_current(args: argparse.Namespace, settings: SentrySettings) -> int:
    store = StatusStore(db_path=settings.db_path)
    try:
        print(store.read().model_dump_json(indent=2))
    finally:
        store.close()
    return EXIT_OK


def cmd_catalog(args: argparse.Namespace, settings: SentrySettings) -> int:
    from .catalog import Cataloger
    from .main import build_probe

    run = RunIdentifier(experiment=args.experiment, run_number=args.run_number)
    if args.settle_seconds > 0:
        logger.info(f"Waiting {args.settle_seconds}s for DAQ writes to settle")
        time.sleep(args.settle_seconds)

    cataloger = Cataloger(build_probe(settings), data_extension=settings.data_extension)
    status = cataloger.catalog_run(settings.default_target(), run)
    print(status.model_dump_json(indent=2))
    return EXIT_OK


def cmd_backup(args: argparse.Namespace, settings: SentrySettings) -> int:
    from .catalog import ConfigArchiver

    run = RunIdentifier(experiment=args.experiment, run_number=args.run_number)
    archiver = ConfigArchiver(
        config_extension=settings.config_extension,
        descriptor_folder=settings.descriptor_folder,
    )
    result = archiver.backup_configs(settings.config_path, settings.config_backup_path, run)
    print(result.model_dump_json(indent=2))
    return EXIT_OK


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("experiment", help="Experiment name")
    parser.add_argument("run_number", type=int, help="Run number")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="daq-sentry",
        description="DAQ workstation monitoring, run cataloging and config backup",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to execute")

    subparsers.add_parser("serve", help="Run the HTTP service").set_defaults(func=cmd_serve)
    subparsers.add_parser("status", help="Print a live status sample").set_defaults(func=cmd_status)
    subparsers.add_parser(
        "current", help="Print the last persisted status sample"
    ).set_defaults(func=cmd_current)

    parser_catalog = subparsers.add_parser("catalog", help="Move a run's data files")
    _add_run_arguments(parser_catalog)
    parser_catalog.add_argument(
        "--settle-seconds",
        type=float,
        default=0.0,
        help="Seconds to wait for DAQ writes to reach disk first (default: 0)",
    )
    parser_catalog.set_defaults(func=cmd_catalog)

    parser_backup = subparsers.add_parser("backup", help="Back up a run's config files")
    _add_run_arguments(parser_backup)
    parser_backup.set_defaults(func=cmd_backup)

    return parser


def main(argv: Optional[List[str]] = None) -> NoReturn:
    """
    Main CLI entrypoint.

    Parses arguments and dispatches to subcommands.
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG)

    configure_logging(settings.log_level)

    try:
        sys.exit(args.func(args, settings))
    except (SentryError, StorageError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILED)
    except ValidationError as e:
        print(f"ERROR: invalid run: {e}", file=sys.stderr)
        sys.exit(EXIT_INVALID_INPUT)
    except (ValueError, RuntimeError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG)


if __name__ == "__main__":
    main()
