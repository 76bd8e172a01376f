"""CommonJS front-end: the ``require()`` resolution algorithm.

States are tried in order: core module, relative or absolute path, ``#``
imports, package self-reference, then the node_modules search. Each loader
returns a ``Resolution`` on success or None to let the next state run.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants

from .errors import InvalidSpecifierError, NotFoundError, PackageImportNotDefinedError, ResolutionError
from .exports import package_exports_resolve, package_imports_resolve
from .formats import ambiguous_format, esm_file_format, package_type
from .links import resolve_directory_links, resolve_file_links
from .models import ModuleFormat, PackageType, Resolution, ResolutionContext, ResolveOptions
from .packages import node_modules_paths, parse_package_specifier
from .scope import PackageJsonCache, lookup_package_scope, read_package_json
from .tasks import Task, directory_exists, file_exists, run_async, run_sync
from .urls import (
    as_directory,
    directory_of,
    encode_fragment,
    has_scheme,
    is_absolute_specifier,
    is_file_url,
    is_relative_specifier,
    join,
    node_url,
)

logger = logging.getLogger(__name__)

LoadResult = Task[Optional[Resolution]]


def load_with_format(ctx: ResolutionContext, real_url: str) -> Task[Resolution]:
    return Resolution((yield from esm_file_format(ctx, real_url)), real_url)


def _probe_format(ctx: ResolutionContext, extension: str, candidate: str, real_url: str):
    """Format of a file found by appending ``extension`` to the request."""
    if extension == ".js":
        scope_type = yield from package_type(ctx, candidate)
        if scope_type == PackageType.MODULE.value:
            return ModuleFormat.MODULE
        if scope_type == PackageType.COMMONJS.value:
            return ModuleFormat.COMMONJS
        return (yield from ambiguous_format(ctx, real_url))
    if extension == ".json":
        return ModuleFormat.JSON
    if extension == ".node":
        return ModuleFormat.BUILTIN
    return (yield from esm_file_format(ctx, real_url))


def load_as_file(ctx: ResolutionContext, fragment: str, base_url: str) -> LoadResult:
    """LOAD_AS_FILE: the exact name, then each configured extension."""
    encoded = encode_fragment(fragment)
    candidate = join(base_url, encoded)
    if candidate.endswith("/"):
        return None
    if (yield from file_exists(candidate)):
        real_url = yield from resolve_file_links(candidate)
        return (yield from load_with_format(ctx, real_url))
    for extension in ctx.extensions:
        candidate = join(base_url, encoded + extension)
        if (yield from file_exists(candidate)):
            real_url = yield from resolve_file_links(candidate)
            file_format = yield from _probe_format(ctx, extension, candidate, real_url)
            return Resolution(file_format, real_url)
    return None


def load_index(ctx: ResolutionContext, directory_url: str) -> LoadResult:
    """LOAD_INDEX: ``index`` plus each configured extension."""
    directory_url = as_directory(directory_url)
    for extension in ctx.extensions:
        candidate = join(directory_url, "index" + extension)
        if not (yield from file_exists(candidate)):
            continue
        real_url = yield from resolve_file_links(candidate)
        if extension == ".js":
            scope_type = yield from package_type(ctx, candidate)
            if scope_type == PackageType.MODULE.value:
                return Resolution(ModuleFormat.MODULE, real_url)
            return Resolution(ModuleFormat.COMMONJS, real_url)
        if extension == ".json":
            return Resolution(ModuleFormat.JSON, real_url)
        if extension == ".node":
            return Resolution(ModuleFormat.ADDON, real_url)
        return Resolution((yield from esm_file_format(ctx, real_url)), real_url)
    return None


def load_as_directory(ctx: ResolutionContext, directory_url: str) -> LoadResult:
    """LOAD_AS_DIRECTORY: ``main`` first, then the index files.

    Raises:
        NotFoundError: ``main`` is set but neither it nor an index exists.
    """
    directory_url = as_directory(directory_url)
    pjson = yield from read_package_json(ctx.cache, directory_url)
    if pjson is None or not pjson.main:
        return (yield from load_index(ctx, directory_url))

    resolution = yield from load_as_file(ctx, pjson.main, directory_url)
    if resolution is not None:
        return resolution
    resolution = yield from load_index(ctx, join(directory_url, encode_fragment(pjson.main) + "/"))
    if resolution is not None:
        return resolution
    # Deprecated: an index beside a broken "main"
    resolution = yield from load_index(ctx, directory_url)
    if resolution is not None:
        return resolution
    raise NotFoundError(f'Cannot find "main" {pjson.main!r} of {directory_url}')


def resolve_esm_match(ctx: ResolutionContext, match: str) -> Task[Resolution]:
    """RESOLVE_ESM_MATCH: an exports/imports result must name a real file."""
    if match.startswith("node:"):
        return Resolution(ModuleFormat.BUILTIN, match)
    if is_file_url(match) and (yield from file_exists(match)):
        real_url = yield from resolve_file_links(match)
        return (yield from load_with_format(ctx, real_url))
    raise NotFoundError(f"Cannot find module {match}")


def load_package_imports(ctx: ResolutionContext, specifier: str, parent_url: str) -> LoadResult:
    package_url = yield from lookup_package_scope(ctx.cache, parent_url)
    if package_url is None:
        return None
    pjson = yield from read_package_json(ctx.cache, package_url)
    if pjson is None or pjson.imports is None:
        return None
    try:
        match = yield from package_imports_resolve(ctx, specifier, parent_url)
    except PackageImportNotDefinedError:
        return None
    return (yield from resolve_esm_match(ctx, match))


def load_package_exports(ctx: ResolutionContext, subpath: str, package_url: str) -> LoadResult:
    pjson = yield from read_package_json(ctx.cache, package_url)
    if pjson is None or pjson.exports is None:
        return None
    match = yield from package_exports_resolve(ctx, package_url, subpath, pjson.exports)
    return (yield from resolve_esm_match(ctx, match))


def load_package_self(ctx: ResolutionContext, specifier: str, parent_url: str) -> LoadResult:
    package_url = yield from lookup_package_scope(ctx.cache, parent_url)
    if package_url is None:
        return None
    pjson = yield from read_package_json(ctx.cache, package_url)
    if pjson is None or pjson.exports is None or not pjson.name:
        return None
    if specifier != pjson.name and not specifier.startswith(pjson.name + "/"):
        return None
    subpath = "." + specifier[len(pjson.name):]
    match = yield from package_exports_resolve(ctx, package_url, subpath, pjson.exports)
    return (yield from resolve_esm_match(ctx, match))


def load_node_modules(ctx: ResolutionContext, specifier: str, start_url: str) -> LoadResult:
    """LOAD_NODE_MODULES: search each existing node_modules directory upward."""
    parts = parse_package_specifier(specifier, strict=False)
    if parts is None:
        return None
    name, subpath = parts
    fragment = subpath[2:]

    for node_modules in node_modules_paths(start_url):
        if not (yield from directory_exists(node_modules)):
            continue
        package_url = yield from resolve_directory_links(join(node_modules, encode_fragment(name + "/")))
        if is_debug_enabled(logger):
            logger.debug("Trying package directory", extra=extra_context(
                event="decision", component="cjs", action="node_modules",
                specifier=specifier, target=package_url,
            ))

        resolution = yield from load_package_exports(ctx, subpath, package_url)
        if resolution is not None:
            return resolution
        if fragment:
            resolution = yield from load_as_file(ctx, fragment, package_url)
            if resolution is not None:
                return resolution
            directory_url = join(package_url, encode_fragment(fragment) + "/")
        else:
            directory_url = package_url
        resolution = yield from load_as_directory(ctx, directory_url)
        if resolution is not None:
            return resolution
    return None


def _resolve(ctx: ResolutionContext, specifier: str, parent_url: str) -> Task[Resolution]:
    if specifier.startswith("node:") or specifier in Constants.NODE_BUILTIN_MODULES:
        return Resolution(ModuleFormat.BUILTIN, node_url(specifier))
    if has_scheme(specifier) and not is_file_url(specifier):
        return Resolution(None, specifier)
    if not is_file_url(parent_url):
        raise InvalidSpecifierError(
            f"Cannot resolve '{specifier}' from non-file parent {parent_url}"
        )

    if is_relative_specifier(specifier) or is_absolute_specifier(specifier):
        resolution = yield from load_as_file(ctx, specifier, parent_url)
        if resolution is not None:
            return resolution
        resolution = yield from load_as_directory(ctx, join(parent_url, encode_fragment(specifier) + "/"))
        if resolution is not None:
            return resolution
        raise NotFoundError(f"Cannot find module '{specifier}'")

    start_url = directory_of(parent_url)
    if specifier.startswith("#"):
        resolution = yield from load_package_imports(ctx, specifier, start_url)
        if resolution is not None:
            return resolution

    resolution = yield from load_package_self(ctx, specifier, start_url)
    if resolution is not None:
        return resolution

    resolution = yield from load_node_modules(ctx, specifier, start_url)
    if resolution is not None:
        return resolution
    raise NotFoundError(f"Cannot find module '{specifier}'")


def resolver_task(ctx: ResolutionContext, specifier: str, parent_url: str) -> Task[Resolution]:
    """Resolve ``specifier`` as ``require()`` would from ``parent_url``."""
    with Timer() as timer:
        try:
            resolution = yield from _resolve(ctx, specifier, parent_url)
        except ResolutionError as e:
            e.with_request(specifier, parent_url)
            logger.debug("Resolution failed: %s", e, extra=extra_context(
                event="resolve", component="cjs", outcome=e.code,
                specifier=specifier, duration_ms=timer.duration_ms(),
            ))
            raise
    logger.debug("Resolved %s", resolution.url, extra=extra_context(
        event="resolve", component="cjs", outcome="success",
        specifier=specifier, duration_ms=timer.duration_ms(),
    ))
    return resolution


def make_context(
    conditions: Optional[Sequence[str]] = None,
    extensions: Optional[Sequence[str]] = None,
    cache: Optional[PackageJsonCache] = None,
    detect_format: Optional[Callable[[str], Optional[ModuleFormat]]] = None,
) -> ResolutionContext:
    """Build a context with CommonJS defaults for anything not given."""
    options = ResolveOptions(
        conditions=tuple(conditions) if conditions is not None else Constants.CJS_CONDITIONS,
        extensions=tuple(extensions) if extensions is not None else Constants.CJS_EXTENSIONS,
    )
    return ResolutionContext(
        options=options,
        cache=cache if cache is not None else PackageJsonCache(),
        detect_format=detect_format,
    )


def resolve_sync(
    fs,
    specifier: str,
    parent_url: str,
    conditions: Optional[Sequence[str]] = None,
    extensions: Optional[Sequence[str]] = None,
    cache: Optional[PackageJsonCache] = None,
    detect_format: Optional[Callable[[str], Optional[ModuleFormat]]] = None,
) -> Resolution:
    """Resolve against a blocking filesystem port."""
    ctx = make_context(conditions, extensions, cache, detect_format)
    return run_sync(resolver_task(ctx, specifier, parent_url), fs)


async def resolve(
    fs,
    specifier: str,
    parent_url: str,
    conditions: Optional[Sequence[str]] = None,
    extensions: Optional[Sequence[str]] = None,
    cache: Optional[PackageJsonCache] = None,
    detect_format: Optional[Callable[[str], Optional[ModuleFormat]]] = None,
) -> Resolution:
    """Resolve against an awaitable filesystem port."""
    ctx = make_context(conditions, extensions, cache, detect_format)
    return await run_async(resolver_task(ctx, specifier, parent_url), fs)
