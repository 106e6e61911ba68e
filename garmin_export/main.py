"""Command line entry point: log in, list activities and download them."""

from __future__ import annotations

import argparse
import logging
import os
from datetime import datetime
from getpass import getpass
from typing import Optional, Sequence

from . import __version__
from .config import EXPORT_FILE_EXTENSION, LOG_LEVEL
from .errors import GarminExportError, InvalidInputError
from .exporter import export_activities
from .garmin_client import ActivityClient
from .models import Credentials

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2
EXIT_INTERRUPTED = 130


def _setup_logging(verbosity: int = 0) -> None:
    if verbosity >= 1:
        level = logging.DEBUG
    else:
        level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=level,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )
    else:
        logging.getLogger().setLevel(level)
    if verbosity < 2:
        # urllib3 logs every connection at DEBUG.
        logging.getLogger("urllib3").setLevel(logging.INFO)


def _parse_count(value: str) -> Optional[int]:
    if value.strip().lower() == "all":
        return None
    try:
        count = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"count must be a number or 'all', got {value!r}"
        ) from exc
    if count < 0:
        raise argparse.ArgumentTypeError("count must be >= 0")
    return count


def _build_parser() -> argparse.ArgumentParser:
    current_date = datetime.now().strftime("%Y-%m-%d")
    parser = argparse.ArgumentParser(
        prog="garmin-export",
        description="Download original activity files from Garmin Connect",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-v",
        "--verbosity",
        action="count",
        default=0,
        help="increase log verbosity (-v debug, -vv include HTTP internals)",
    )
    parser.add_argument(
        "--username",
        help="Garmin Connect username or email (default: $GARMIN_USERNAME or prompt)",
    )
    parser.add_argument(
        "--password",
        help="Garmin Connect password (default: $GARMIN_PASSWORD or prompt)",
    )
    parser.add_argument(
        "-c",
        "--count",
        type=_parse_count,
        default=1,
        help="number of recent activities to download, or 'all' (default: 1)",
    )
    parser.add_argument(
        "-d",
        "--directory",
        default=f"./{current_date}_garmin_connect_export",
        help="directory to export to (default: ./YYYY-MM-DD_garmin_connect_export)",
    )
    parser.add_argument(
        "--extension",
        default=EXPORT_FILE_EXTENSION,
        help=f"extension of the written files (default: {EXPORT_FILE_EXTENSION})",
    )
    parser.add_argument(
        "--no-skip-existing",
        action="store_true",
        help="download activities again even when the file already exists",
    )
    parser.add_argument(
        "-ot",
        "--originaltime",
        action="store_true",
        help="set the file time to the activity start time",
    )
    return parser


def resolve_credentials(args: argparse.Namespace) -> Credentials:
    """Take credentials from flags, then the environment, then a prompt."""

    try:
        username = (
            args.username or os.getenv("GARMIN_USERNAME") or input("Username: ")
        )
        password = args.password or os.getenv("GARMIN_PASSWORD") or getpass()
    except EOFError as exc:
        raise InvalidInputError(
            "Credentials missing and no terminal to prompt for them"
        ) from exc
    credentials = Credentials(username=username.strip(), password=password)
    credentials.validate()
    return credentials


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    _setup_logging(args.verbosity)

    try:
        credentials = resolve_credentials(args)
        with ActivityClient(credentials) as client:
            export_activities(
                client,
                args.directory,
                count=args.count,
                extension=args.extension,
                skip_existing=not args.no_skip_existing,
                original_time=args.originaltime,
            )
    except InvalidInputError as exc:
        LOGGER.error("Invalid input: %s", exc)
        return EXIT_INVALID_INPUT
    except GarminExportError as exc:
        LOGGER.error("Couldn't download activities: %s", exc)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        LOGGER.warning("Interrupted")
        return EXIT_INTERRUPTED
    return EXIT_OK
