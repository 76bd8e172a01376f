"""Bare package specifiers: name parsing, node_modules search, PACKAGE_RESOLVE."""

from __future__ import annotations

import logging
from typing import Iterator, Optional, Tuple

from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants

from .errors import InvalidSpecifierError, NotFoundError
from .exports import package_exports_resolve
from .links import resolve_directory_links
from .models import PackageDescriptor, ResolutionContext
from .scope import lookup_package_scope, read_package_json
from .tasks import Task, directory_exists, file_exists
from .urls import as_directory, directory_of, encode_fragment, is_root, join, node_url, parent_directory

logger = logging.getLogger(__name__)


def parse_package_specifier(specifier: str, strict: bool = True) -> Optional[Tuple[str, str]]:
    """Split ``specifier`` into (package name, "."-prefixed subpath).

    Strict parsing applies the ESM naming rules and raises on violations.
    Lenient parsing (CommonJS) only needs a non-empty name and, for scoped
    names, a second segment; it returns None when that fails.

    >>> parse_package_specifier("@scope/pkg/lib/x.js")
    ('@scope/pkg', './lib/x.js')
    """
    separator = specifier.find("/")
    if specifier.startswith("@"):
        if separator in (-1, len(specifier) - 1) and strict:
            raise InvalidSpecifierError(f'"{specifier}" is not a valid package name')
        if separator == -1:
            return None
        separator = specifier.find("/", separator + 1)
    name = specifier if separator == -1 else specifier[:separator]
    rest = "" if separator == -1 else specifier[separator:]

    if strict:
        if not name or name.startswith(".") or "\\" in name or "%" in name:
            raise InvalidSpecifierError(f'"{specifier}" is not a valid package name')
    elif not name or name.endswith("/"):
        return None
    return name, "." + rest


def node_modules_paths(directory_url: str) -> Iterator[str]:
    """Candidate node_modules directories from ``directory_url`` up to the root."""
    current = as_directory(directory_url)
    while True:
        if not current.endswith(f"/{Constants.NODE_MODULES_DIR}/"):
            yield join(current, f"{Constants.NODE_MODULES_DIR}/")
        if is_root(current):
            return
        current = parent_directory(current)


def legacy_main_resolve(package_url: str, pjson: Optional[PackageDescriptor]) -> Task[str]:
    """Resolve a package entry point from ``main`` and then ``index`` files."""
    package_url = as_directory(package_url)
    if pjson is not None and pjson.main:
        for suffix in Constants.LEGACY_MAIN_SUFFIXES:
            guess = join(package_url, f"./{pjson.main}{suffix}")
            if (yield from file_exists(guess)):
                return guess
    for index in Constants.LEGACY_INDEX_FILES:
        guess = join(package_url, index)
        if (yield from file_exists(guess)):
            return guess
    raise NotFoundError(f"Cannot find package entry point in {package_url}")


def package_self_resolve(
    ctx: ResolutionContext, name: str, subpath: str, parent_url: str
) -> Task[Optional[str]]:
    """Resolve a package's own name through its ``exports``; None if not self."""
    package_url = yield from lookup_package_scope(ctx.cache, parent_url)
    if package_url is None:
        return None
    pjson = yield from read_package_json(ctx.cache, package_url)
    if pjson is None or pjson.exports is None or pjson.name != name:
        return None
    return (yield from package_exports_resolve(ctx, package_url, subpath, pjson.exports))


def package_resolve(ctx: ResolutionContext, specifier: str, parent_url: str) -> Task[str]:
    """Resolve a bare specifier to a URL, the way ``import`` does.

    Raises:
        InvalidSpecifierError: bad package name, or a trailing-slash subpath.
        NotFoundError: no node_modules directory holds the package.
    """
    if specifier.startswith("node:") or specifier in Constants.NODE_BUILTIN_MODULES:
        return node_url(specifier)
    name, subpath = parse_package_specifier(specifier, strict=True)
    if subpath.endswith("/"):
        raise InvalidSpecifierError(f'Package subpath "{subpath}" of "{specifier}" ends in "/"')

    self_url = yield from package_self_resolve(ctx, name, subpath, parent_url)
    if self_url is not None:
        return self_url

    for node_modules in node_modules_paths(directory_of(parent_url)):
        package_url = join(node_modules, encode_fragment(f"{name}/"))
        if not (yield from directory_exists(package_url)):
            if is_debug_enabled(logger):
                logger.debug("Package directory absent", extra=extra_context(
                    event="decision", component="packages", action="search",
                    outcome="skip", target=package_url,
                ))
            continue
        package_url = yield from resolve_directory_links(package_url)
        pjson = yield from read_package_json(ctx.cache, package_url)
        if pjson is not None and pjson.exports is not None:
            return (yield from package_exports_resolve(ctx, package_url, subpath, pjson.exports))
        if subpath == ".":
            return (yield from legacy_main_resolve(package_url, pjson))
        return join(package_url, subpath)

    raise NotFoundError(f'Cannot find package "{name}"')
