"""Filesystem ports consumed by the resolver.

A port answers four questions about ``file:`` URLs. Absence is reported as a
negative result; only ``read_file`` raises, and only when the file is missing
or unreadable. ``read_link`` is optional and returns None for anything that is
not a symbolic link.
"""

from __future__ import annotations

import asyncio
import os
import posixpath
from typing import Dict, Optional, Protocol, Set

from constants import Constants

from .urls import url_to_path


class FileSystem(Protocol):
    """Blocking port."""

    def directory_exists(self, url: str) -> bool: ...

    def file_exists(self, url: str) -> bool: ...

    def read_file(self, url: str) -> str: ...

    def read_link(self, url: str) -> Optional[str]: ...


class AsyncFileSystem(Protocol):
    """Awaitable port."""

    async def directory_exists(self, url: str) -> bool: ...

    async def file_exists(self, url: str) -> bool: ...

    async def read_file(self, url: str) -> str: ...

    async def read_link(self, url: str) -> Optional[str]: ...


class LocalFileSystem:
    """Port backed by the local disk."""

    def directory_exists(self, url: str) -> bool:
        return os.path.isdir(url_to_path(url))

    def file_exists(self, url: str) -> bool:
        return os.path.isfile(url_to_path(url))

    def read_file(self, url: str) -> str:
        with open(url_to_path(url), "r", encoding="utf-8") as f:
            return f.read()

    def read_link(self, url: str) -> Optional[str]:
        try:
            return os.readlink(url_to_path(url))
        except OSError:
            return None


class AsyncFileSystemAdapter:
    """Awaitable port that runs a blocking port's probes in worker threads."""

    def __init__(self, fs: Optional[FileSystem] = None):
        self._fs = fs if fs is not None else LocalFileSystem()

    async def directory_exists(self, url: str) -> bool:
        return await asyncio.to_thread(self._fs.directory_exists, url)

    async def file_exists(self, url: str) -> bool:
        return await asyncio.to_thread(self._fs.file_exists, url)

    async def read_file(self, url: str) -> str:
        return await asyncio.to_thread(self._fs.read_file, url)

    async def read_link(self, url: str) -> Optional[str]:
        read_link = getattr(self._fs, "read_link", None)
        if read_link is None:
            return None
        return await asyncio.to_thread(read_link, url)


class MemoryFileSystem:
    """In-memory tree rooted at ``file:///``.

    Built from a mapping of relative paths to file contents. A key ending in
    ``*`` declares a symbolic link whose value is the link target, e.g.
    ``{"node_modules/mod*": "../.pnpm/mod@1.0.0/node_modules/mod"}``.
    Existence checks and reads follow links; ``read_link`` does not.
    """

    def __init__(self, files: Dict[str, str]):
        self._files: Dict[str, str] = {}
        self._links: Dict[str, str] = {}
        self._directories: Set[str] = {"/"}
        for name, content in files.items():
            if name.endswith("*"):
                path = self._normalize(name[:-1])
                self._links[path] = content
            else:
                path = self._normalize(name)
                self._files[path] = content
            self._add_parents(path)

    @staticmethod
    def _normalize(name: str) -> str:
        return posixpath.normpath("/" + name.lstrip("/"))

    def _add_parents(self, path: str) -> None:
        parent = posixpath.dirname(path)
        while parent not in self._directories:
            self._directories.add(parent)
            parent = posixpath.dirname(parent)

    def _real_path(self, path: str) -> Optional[str]:
        """Follow links component by component; None on a cycle."""
        current = "/"
        pending = [part for part in path.split("/") if part]
        hops = 0
        while pending:
            part = pending.pop(0)
            candidate = posixpath.normpath(posixpath.join(current, part))
            target = self._links.get(candidate)
            if target is None:
                current = candidate
                continue
            hops += 1
            if hops > Constants.MAX_LINK_DEPTH:
                return None
            joined = posixpath.normpath(posixpath.join(current, target))
            pending = [p for p in joined.split("/") if p] + pending
            current = "/"
        return current

    def directory_exists(self, url: str) -> bool:
        real = self._real_path(url_to_path(url))
        return real is not None and real in self._directories

    def file_exists(self, url: str) -> bool:
        real = self._real_path(url_to_path(url))
        return real is not None and real in self._files

    def read_file(self, url: str) -> str:
        path = url_to_path(url)
        real = self._real_path(path)
        if real is None or real not in self._files:
            raise FileNotFoundError(path)
        return self._files[real]

    def read_link(self, url: str) -> Optional[str]:
        return self._links.get(url_to_path(url))
