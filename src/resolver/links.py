"""Symlink dereferencing for candidate URLs.

Resolution probes logical paths, but results must name real locations. These
tasks walk a URL's own entry and then each ancestor directory, splicing in the
first link target found and starting over, until no link remains.
"""

from __future__ import annotations

import logging
from typing import Optional

from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants

from .errors import LinkCycleError
from .tasks import Task, read_link
from .urls import (
    as_directory,
    collapse_separators,
    directory_of,
    encode_fragment,
    is_root,
    join,
    parent_directory,
)

logger = logging.getLogger(__name__)


def _follow(base_directory: str, target: str, is_directory: bool) -> str:
    """Resolve a link target read from disk against the link's directory.

    Absolute targets are root-relative. Directory targets gain a trailing
    slash, so "." and ".." land on directories rather than files.
    """
    if is_directory and not target.endswith("/"):
        target += "/"
    return join(base_directory, encode_fragment(target))


def _splice_ancestor_link(url: str) -> Task[Optional[str]]:
    """Replace the nearest linked ancestor of ``url``, or return None."""
    is_directory = url.endswith("/")
    entry = url[:-1] if is_directory else url
    ancestor = directory_of(entry)
    remainder = entry[len(ancestor):] + ("/" if is_directory else "")
    while not is_root(ancestor):
        target = yield from read_link(ancestor[:-1])
        if target is not None:
            spliced = _follow(parent_directory(ancestor), target, True) + remainder
            if is_debug_enabled(logger):
                logger.debug("Spliced linked ancestor", extra=extra_context(
                    event="decision", component="links", action="splice",
                    target=spliced,
                ))
            return spliced
        parent = parent_directory(ancestor)
        remainder = ancestor[len(parent):] + remainder
        ancestor = parent
    return None


def real_name(url: str) -> Task[str]:
    """Fully dereference ``url``; a URL with no links comes back with runs of "/" collapsed."""
    url = collapse_separators(url)
    for _ in range(Constants.MAX_LINK_DEPTH):
        if is_root(url):
            return url
        is_directory = url.endswith("/")
        entry = url[:-1] if is_directory else url
        target = yield from read_link(entry)
        if target is not None:
            url = _follow(directory_of(entry), target, is_directory)
            continue
        spliced = yield from _splice_ancestor_link(url)
        if spliced is None:
            return url
        url = spliced
    raise LinkCycleError(f"Too many levels of symbolic links resolving {url}")


def resolve_file_links(url: str) -> Task[str]:
    return (yield from real_name(url))


def resolve_directory_links(directory_url: str) -> Task[str]:
    return (yield from real_name(as_directory(directory_url)))
