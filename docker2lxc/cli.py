# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""docker2lxc CLI entry point.

Usage::

    docker2lxc <image> [output_file]
    docker2lxc -h|--help

Exit codes:
    0 - Success (or usage shown)
    1 - Container runtime not installed
    2 - Image pull failed
    3 - Container could not be started
    4 - Export pipeline failed
    64 - Invalid command line or settings
    130 - Interrupted
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import NoReturn

from docker2lxc import __version__
from docker2lxc.config import (
    ConfigError,
    build_options,
    load_dotenv_once,
    resolve_debug,
)
from docker2lxc.converter import convert
from docker2lxc.logging import SUCCESS, configure_logging, use_color
from docker2lxc.remote import is_remote_session
from docker2lxc.runtime import ConversionError


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 64
EXIT_INTERRUPTED = 130

_DESCRIPTION = """\
Export the filesystem of a Docker container to an LXC-compatible tarball.

Pulls the specified image, runs a temporary container, exports its root
filesystem, compresses it using gzip, and then stops the container."""

_EPILOG = """\
When running over an SSH connection, output_file is not used and the
archive is written to stdout:

  ssh host docker2lxc alpine:3.20 > alpine.tar.gz

environment:
  DOCKER2LXC_RUNTIME     container runtime command (default: docker)
  DOCKER2LXC_COMPRESSOR  compression command (default: gzip)
  DOCKER2LXC_REMOTE      auto, 1 or 0 (default: auto)
  DOCKER2LXC_DEBUG       enable debug logging
  NO_COLOR               disable colored output"""


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser whose usage errors exit 64 (EX_USAGE), not 2."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = _ArgumentParser(
        prog="docker2lxc",
        description=_DESCRIPTION,
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "image",
        nargs="?",
        help="the Docker image to be exported",
    )
    parser.add_argument(
        "output_file",
        nargs="?",
        help='name of the output tar.gz file (default: "template.tar.gz")',
    )
    parser.add_argument(
        "--runtime",
        metavar="COMMAND",
        help="container runtime command, e.g. docker or podman",
    )
    parser.add_argument(
        "--compressor",
        metavar="COMMAND",
        help="compression command reading stdin, e.g. 'pigz -p 4'",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--remote",
        dest="remote",
        action="store_const",
        const=True,
        default=None,
        help="write the archive to stdout as if running over SSH",
    )
    mode.add_argument(
        "--local",
        dest="remote",
        action="store_const",
        const=False,
        help="write the archive to a file even when running over SSH",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run a conversion from command-line arguments.

    Args:
        argv: Command-line arguments without the program name.  Defaults to
            ``sys.argv[1:]``.

    Returns:
        Process exit code.
    """
    parser = create_parser()
    args = parser.parse_intermixed_args(argv)

    if not args.image:
        parser.print_help()
        return EXIT_OK

    load_dotenv_once()

    try:
        debug = resolve_debug(args.debug)
    except ConfigError as e:
        configure_logging(color=use_color())
        logger.error("%s", e)
        return EXIT_USAGE
    configure_logging(
        level=logging.DEBUG if debug else logging.INFO,
        color=use_color(),
    )

    try:
        options = build_options(
            args.image,
            args.output_file,
            runtime=args.runtime,
            compressor=args.compressor,
            remote=args.remote,
            detect_remote=is_remote_session,
        )
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_USAGE

    try:
        convert(options)
    except ConversionError as e:
        logger.error("%s", e)
        return e.exit_code
    except KeyboardInterrupt:
        logger.error("Interrupted, aborting.")
        return EXIT_INTERRUPTED

    logger.log(SUCCESS, "Done!")
    return EXIT_OK


def cli() -> None:
    """Entry point for the ``docker2lxc`` console script."""
    sys.exit(main(sys.argv[1:]))
