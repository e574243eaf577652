from __future__ import annotations

import argparse
import logging
from pathlib import Path

DEFAULT_DATA_DIR = Path.home() / ".mc-plugin-manager"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--data-dir",
        default=str(DEFAULT_DATA_DIR),
        help=f"Profile store directory (default: {DEFAULT_DATA_DIR})",
    )
    parser.add_argument("--verbose", action="store_true", help="Log import/build progress to stderr")


def configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
