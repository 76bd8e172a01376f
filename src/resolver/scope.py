"""Package scope discovery and the package descriptor read cache."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from common.logging_utils import extra_context
from constants import Constants

from .errors import PackageParseError
from .models import PackageDescriptor
from .tasks import Task, file_exists, read_file
from .urls import as_directory, directory_of, is_root, join, last_segment, parent_directory

logger = logging.getLogger(__name__)


class PackageJsonCache:
    """Populate-once cache of parsed package descriptors.

    Keyed by the absolute ``package.json`` URL. A cached None records a
    descriptor that exists but could not be parsed. Entries are never
    invalidated; start a new cache to observe changes on disk.
    """

    def __init__(self) -> None:
        self._cache: Dict[str, Optional[PackageDescriptor]] = {}
        self._hits = 0
        self._misses = 0

    def __contains__(self, url: str) -> bool:
        return url in self._cache

    def get(self, url: str) -> Optional[PackageDescriptor]:
        """Get a cached descriptor, counting the lookup."""
        if url in self._cache:
            self._hits += 1
        else:
            self._misses += 1
        return self._cache.get(url)

    def set(self, url: str, descriptor: Optional[PackageDescriptor]) -> None:
        # Parsing is deterministic, so a racing second write stores the same value
        self._cache[url] = descriptor

    def clear(self) -> None:
        """Clear all cached descriptors."""
        self._cache.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        invalid = sum(1 for value in self._cache.values() if value is None)
        return {
            "total_entries": len(self._cache),
            "invalid_entries": invalid,
            "hits": self._hits,
            "misses": self._misses,
        }


def parse_package_json(location: str, content: str) -> PackageDescriptor:
    """Parse descriptor text for the package rooted at ``location``.

    Raises:
        PackageParseError: content is not a JSON object.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise PackageParseError(f"Invalid JSON in {location}{Constants.PACKAGE_JSON_FILE}: {e}") from e
    if not isinstance(data, dict):
        raise PackageParseError(
            f"{location}{Constants.PACKAGE_JSON_FILE} does not contain a JSON object"
        )
    return PackageDescriptor.from_json(location, data)


def read_package_json(cache: PackageJsonCache, package_url: str) -> Task[Optional[PackageDescriptor]]:
    """Read the descriptor in directory ``package_url``, or None.

    A missing file is not cached. One that cannot be read, decoded or parsed is
    logged and cached as None.
    """
    location = as_directory(package_url)
    pjson_url = join(location, Constants.PACKAGE_JSON_FILE)
    if pjson_url in cache:
        return cache.get(pjson_url)
    if not (yield from file_exists(pjson_url)):
        return None
    try:
        content = yield from read_file(pjson_url)
        descriptor: Optional[PackageDescriptor] = parse_package_json(location, content)
    except (OSError, UnicodeDecodeError, PackageParseError) as e:
        logger.warning("Failed to read package descriptor: %s", e, extra=extra_context(
            event="package_json", component="scope", action="read",
            outcome="invalid", target=pjson_url,
        ))
        descriptor = None
    cache.set(pjson_url, descriptor)
    return descriptor


def lookup_package_scope(cache: PackageJsonCache, url: str) -> Task[Optional[str]]:
    """Find the nearest directory at or above ``url`` holding a descriptor.

    The walk includes the filesystem root and stops at a ``node_modules``
    directory, which never belongs to the enclosing package.
    """
    scope_url = directory_of(url)
    while True:
        if last_segment(scope_url) == Constants.NODE_MODULES_DIR:
            return None
        pjson_url = join(scope_url, Constants.PACKAGE_JSON_FILE)
        if pjson_url in cache or (yield from file_exists(pjson_url)):
            return scope_url
        if is_root(scope_url):
            return None
        scope_url = parent_directory(scope_url)
