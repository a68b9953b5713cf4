"""Command-line logging setup shared by the build and search scripts."""

import argparse
import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--debug", action="store_true", help="Log everything, including query parsing details.")
    group.add_argument("-v", "--verbose", action="store_true", help="Log progress messages.")
    group.add_argument("-q", "--quiet", action="store_true", help="Only log critical errors.")


def setup_logging(args: argparse.Namespace) -> None:
    """
    Configure logging based on verbosity arguments.

    Args:
        args (argparse.Namespace): Parsed command-line arguments.
    """
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    elif args.quiet:
        level = logging.CRITICAL
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
