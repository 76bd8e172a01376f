"""Argument parsing functionality for loaderkit-resolve."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="loaderkit-resolve",
        description=(
            "loaderkit-resolve - Resolve Node.js module specifiers the way require() and import do"
        ),
        add_help=True,
    )

    parser.add_argument("specifiers",
                        metavar="SPECIFIER",
                        help="Module specifier to resolve, e.g. lodash, ./util, #internal, node:fs",
                        nargs="+",
                        type=str)

    parser.add_argument("-p", "--parent",
                        dest="PARENT",
                        help="Requesting module, as a path or file: URL (default: current directory)",
                        action="store",
                        type=str)
    parser.add_argument("-m", "--mode",
                        dest="MODE",
                        help="Resolution mode: cjs, esm, auto (by parent format), bundler (default: cjs)",
                        action="store",
                        type=str.lower,
                        choices=Constants.SUPPORTED_MODES)
    parser.add_argument("-C", "--condition",
                        dest="CONDITIONS",
                        help="Export condition to match; replaces the defaults (can be used multiple times)",
                        action="append",
                        type=str)
    parser.add_argument("-e", "--extension",
                        dest="EXTENSIONS",
                        help="Extension to probe, e.g. .ts; replaces the defaults (can be used multiple times)",
                        action="append",
                        type=str)
    parser.add_argument("--async",
                        dest="ASYNC",
                        help="Run resolution through the asyncio filesystem adapter.",
                        action="store_true")

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")

    return parser.parse_args(argv)
