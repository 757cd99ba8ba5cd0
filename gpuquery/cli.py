#!/usr/bin/env python3
"""gpuquery command line — parse args, open the GPU, dispatch a subcommand."""

from __future__ import annotations

import argparse
import sys

from loguru import logger

# Import all command modules so they register themselves.
import gpuquery
import gpuquery.info
import gpuquery.query
from gpuquery.config import (
    NAME_SOURCES,
    default_gpu_index,
    default_mock,
    default_name_source,
)
from gpuquery.device import open_device
from gpuquery.errors import GpuQueryError, InitializationFailure
from gpuquery.names import make_resolver


def configure_logging(verbose: bool = False) -> None:
    """Route loguru to stderr; stdout is reserved for reports."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gpuquery",
        description="Query GPU utilization, memory and per-process memory usage.",
    )
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {gpuquery.__version__}")
    parser.add_argument("--gpu-index", type=int, default=default_gpu_index(),
                        help="Which GPU to query (default: 0)")
    parser.add_argument("--mock", action="store_true", default=default_mock(),
                        help="Use random test data (no GPU needed)")
    parser.add_argument("--names", choices=NAME_SOURCES, default=default_name_source(),
                        help="Process name source: live process table or /proc/<pid>/comm "
                             "(default: table)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging to stderr")

    subparsers = parser.add_subparsers(dest="command")
    for name, cls in sorted(gpuquery.REGISTRY.items()):
        sub = subparsers.add_parser(name, aliases=list(cls.aliases), help=cls.help)
        cls.add_args(sub)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        device = open_device(args.gpu_index, mock=args.mock)
    except InitializationFailure as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    try:
        if args.command is None:
            return 0
        cls = gpuquery.REGISTRY[gpuquery.resolve(args.command)]
        command = cls(args, device, make_resolver(args.names))
        return command.run()
    except GpuQueryError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        device.close()


if __name__ == "__main__":
    sys.exit(main())
