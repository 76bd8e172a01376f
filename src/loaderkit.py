#! /usr/bin/env python3
"""loaderkit-resolve: resolve module specifiers from the command line.

Prints one JSON object per specifier and exits with the code of the worst
failure seen.
"""

import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict, List, Tuple

from args import parse_args
from cli_config import apply_cli_overrides, load_config
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from resolver import (
    AsyncFileSystemAdapter,
    AsyncResolver,
    InvalidSpecifierError,
    LocalFileSystem,
    NotFoundError,
    ResolutionError,
    Resolver,
)
from resolver.urls import as_directory, is_file_url, path_to_url

logger = logging.getLogger(__name__)


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments."""
    # Honor CLI --loglevel
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()

    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        ))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def parent_to_url(parent: str) -> str:
    """Turn a ``--parent`` path or ``file:`` URL into a parent URL.

    Existing directories become directory URLs so that relative specifiers
    resolve inside them.
    """
    if is_file_url(parent):
        return parent
    path = os.path.abspath(parent)
    if os.path.isdir(path):
        return as_directory(path_to_url(path))
    return path_to_url(path)


def exit_code_for(error: Exception) -> ExitCodes:
    if isinstance(error, NotFoundError):
        return ExitCodes.NOT_FOUND
    if isinstance(error, InvalidSpecifierError):
        return ExitCodes.INVALID_SPECIFIER
    return ExitCodes.FILE_ERROR


def _outcome(specifier: str, result: Any) -> Tuple[Dict[str, Any], ExitCodes]:
    if isinstance(result, Exception):
        code = getattr(result, "code", type(result).__name__)
        return {"specifier": specifier, "error": str(result), "code": code}, exit_code_for(result)
    return {"specifier": specifier, **result.to_dict()}, ExitCodes.SUCCESS


def resolve_all(settings: Dict[str, Any], specifiers: List[str], use_async: bool = False) -> List[Any]:
    """Resolve each specifier; failures are returned in place of results."""
    parent_url = parent_to_url(settings.get("parent") or os.getcwd())
    conditions = settings.get("conditions")
    extensions = settings.get("extensions")

    if use_async:
        session = AsyncResolver(AsyncFileSystemAdapter(LocalFileSystem()), mode=settings["mode"])

        async def _run() -> List[Any]:
            results: List[Any] = []
            for specifier in specifiers:
                try:
                    results.append(await session.resolve(specifier, parent_url, conditions, extensions))
                except (ResolutionError, OSError) as e:
                    results.append(e)
            return results

        return asyncio.run(_run())

    sync_session = Resolver(LocalFileSystem(), mode=settings["mode"])
    results: List[Any] = []
    for specifier in specifiers:
        try:
            results.append(sync_session.resolve(specifier, parent_url, conditions, extensions))
        except (ResolutionError, OSError) as e:
            results.append(e)
    return results


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    settings = apply_cli_overrides(args, load_config(getattr(args, "CONFIG", None)))
    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )
    logger.debug("Effective settings: %s", settings)

    results = resolve_all(settings, args.specifiers, use_async=args.ASYNC)

    worst = ExitCodes.SUCCESS
    for specifier, result in zip(args.specifiers, results):
        record, code = _outcome(specifier, result)
        if code.value > worst.value:
            worst = code
        if code is not ExitCodes.SUCCESS:
            logger.warning("Could not resolve %s: %s", specifier, record["error"])
        if not args.QUIET:
            print(json.dumps(record))

    sys.exit(worst.value)


if __name__ == "__main__":
    main()
