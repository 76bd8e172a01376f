"""ECMAScript-module front-end: the ``import`` resolution algorithm.

Unlike ``require()``, nothing is probed: the specifier must name the file
exactly, directories are never loaded, and package names are validated
strictly. Only ``exports``, ``imports`` and the legacy ``main`` entry point
add indirection.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from common.logging_utils import Timer, extra_context
from constants import Constants

from .cjs import make_context
from .errors import (
    InvalidSpecifierError,
    NotFoundError,
    ResolutionError,
    UnsupportedDirectoryImportError,
)
from .exports import package_imports_resolve
from .formats import esm_file_format
from .links import resolve_file_links
from .models import ModuleFormat, Resolution, ResolutionContext
from .packages import package_resolve
from .scope import PackageJsonCache
from .tasks import Task, directory_exists, file_exists, run_async, run_sync
from .urls import (
    has_encoded_separator,
    has_scheme,
    is_absolute_specifier,
    is_file_url,
    is_relative_specifier,
    join,
)

logger = logging.getLogger(__name__)


def finalize(ctx: ResolutionContext, url: str) -> Task[Resolution]:
    """Turn a resolved URL into a ``Resolution``.

    ``node:`` URLs are builtins and other non-file URLs are echoed back with
    no format. ``file:`` URLs must name an existing file.
    """
    if url.startswith("node:"):
        return Resolution(ModuleFormat.BUILTIN, url)
    if not is_file_url(url):
        return Resolution(None, url)
    if has_encoded_separator(url):
        raise InvalidSpecifierError(f'Resolved path {url} must not include encoded "/" or "\\" characters')
    if (yield from directory_exists(url)):
        raise UnsupportedDirectoryImportError(f"Directory import {url} is not supported")
    if url.endswith("/") or not (yield from file_exists(url)):
        raise NotFoundError(f"Cannot find module {url}")
    real_url = yield from resolve_file_links(url)
    return Resolution((yield from esm_file_format(ctx, real_url)), real_url)


def _resolve(ctx: ResolutionContext, specifier: str, parent_url: str) -> Task[Resolution]:
    if is_relative_specifier(specifier) or is_absolute_specifier(specifier):
        resolved = join(parent_url, specifier)
    elif has_scheme(specifier):
        resolved = specifier
    elif not is_file_url(parent_url) and specifier not in Constants.NODE_BUILTIN_MODULES:
        raise InvalidSpecifierError(
            f"Cannot resolve '{specifier}' from non-file parent {parent_url}"
        )
    elif specifier.startswith("#"):
        resolved = yield from package_imports_resolve(ctx, specifier, parent_url)
    else:
        resolved = yield from package_resolve(ctx, specifier, parent_url)
    return (yield from finalize(ctx, resolved))


def resolver_task(ctx: ResolutionContext, specifier: str, parent_url: str) -> Task[Resolution]:
    """Resolve ``specifier`` as ``import`` would from ``parent_url``."""
    with Timer() as timer:
        try:
            resolution = yield from _resolve(ctx, specifier, parent_url)
        except ResolutionError as e:
            e.with_request(specifier, parent_url)
            logger.debug("Resolution failed: %s", e, extra=extra_context(
                event="resolve", component="esm", outcome=e.code,
                specifier=specifier, duration_ms=timer.duration_ms(),
            ))
            raise
    logger.debug("Resolved %s", resolution.url, extra=extra_context(
        event="resolve", component="esm", outcome="success",
        specifier=specifier, duration_ms=timer.duration_ms(),
    ))
    return resolution


def _esm_context(conditions, cache, detect_format) -> ResolutionContext:
    return make_context(
        conditions if conditions is not None else Constants.ESM_CONDITIONS,
        (),
        cache,
        detect_format,
    )


def resolve_sync(
    fs,
    specifier: str,
    parent_url: str,
    conditions: Optional[Sequence[str]] = None,
    cache: Optional[PackageJsonCache] = None,
    detect_format: Optional[Callable[[str], Optional[ModuleFormat]]] = None,
) -> Resolution:
    """Resolve against a blocking filesystem port."""
    ctx = _esm_context(conditions, cache, detect_format)
    return run_sync(resolver_task(ctx, specifier, parent_url), fs)


async def resolve(
    fs,
    specifier: str,
    parent_url: str,
    conditions: Optional[Sequence[str]] = None,
    cache: Optional[PackageJsonCache] = None,
    detect_format: Optional[Callable[[str], Optional[ModuleFormat]]] = None,
) -> Resolution:
    """Resolve against an awaitable filesystem port."""
    ctx = _esm_context(conditions, cache, detect_format)
    return await run_async(resolver_task(ctx, specifier, parent_url), fs)
