"""Module format detection from file extension and package ``type``."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit

from .models import ModuleFormat, PackageType, ResolutionContext
from .scope import lookup_package_scope, read_package_json
from .tasks import Task
from .urls import extension_of, is_file_url

EXTENSION_FORMATS = {
    ".mjs": ModuleFormat.MODULE,
    ".cjs": ModuleFormat.COMMONJS,
    ".json": ModuleFormat.JSON,
    ".node": ModuleFormat.BUILTIN,
}


def package_type(ctx: ResolutionContext, url: str) -> Task[Optional[str]]:
    """``type`` field of the descriptor governing ``url``, if any."""
    scope_url = yield from lookup_package_scope(ctx.cache, url)
    if scope_url is None:
        return None
    pjson = yield from read_package_json(ctx.cache, scope_url)
    return pjson.type if pjson is not None else None


def esm_file_format(ctx: ResolutionContext, url: str) -> Task[Optional[ModuleFormat]]:
    """Format of the file at ``url``; None for extensions left to the caller."""
    extension = extension_of(url)
    if extension in EXTENSION_FORMATS:
        return EXTENSION_FORMATS[extension]
    if extension != ".js":
        return None
    if (yield from package_type(ctx, url)) == PackageType.MODULE.value:
        return ModuleFormat.MODULE
    return ModuleFormat.COMMONJS


def ambiguous_format(ctx: ResolutionContext, url: str) -> Task[Optional[ModuleFormat]]:
    """Format for a ``.js`` file whose package scope does not settle it.

    Syntax sniffing is deliberately not attempted. A configured
    ``detect_format`` policy gets the first say, then extension rules apply.
    """
    if ctx.detect_format is not None:
        detected = ctx.detect_format(url)
        if detected is not None:
            return ModuleFormat(detected)
    return (yield from esm_file_format(ctx, url))


_PARENT_MODULE = re.compile(r"\.m[jt]sx?$", re.IGNORECASE)
_PARENT_COMMONJS = re.compile(r"\.c[jt]sx?$", re.IGNORECASE)
_PARENT_SCRIPT = re.compile(r"\.[jt]sx?$", re.IGNORECASE)


def format_for_parent(ctx: ResolutionContext, parent_url: str) -> Task[Optional[ModuleFormat]]:
    """Format of the requesting module, used to pick conditions.

    Parents may be TypeScript sources, so ``.mts``/``.cts``/``.ts``/``.tsx``
    follow the same rules as their JavaScript counterparts.
    """
    if not is_file_url(parent_url):
        return None
    path = urlsplit(parent_url).path
    if _PARENT_MODULE.search(path):
        return ModuleFormat.MODULE
    if _PARENT_COMMONJS.search(path):
        return ModuleFormat.COMMONJS
    if _PARENT_SCRIPT.search(path):
        if (yield from package_type(ctx, parent_url)) == PackageType.MODULE.value:
            return ModuleFormat.MODULE
        return ModuleFormat.COMMONJS
    return (yield from esm_file_format(ctx, parent_url))
