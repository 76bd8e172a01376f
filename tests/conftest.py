"""Shared fixtures for resolver tests."""

import json
from urllib.parse import quote

import pytest

from resolver import MemoryFileSystem
from resolver import cjs, esm


class Resolves:
    """CommonJS and ESM resolvers bound to one in-memory tree."""

    def __init__(self, files):
        self.fs = MemoryFileSystem(files)

    @staticmethod
    def parent_url(parent_path):
        return "file:///" + quote(parent_path, safe="/")

    def cjs(self, specifier, parent_path="main.js", **kwargs):
        return cjs.resolve_sync(self.fs, specifier, self.parent_url(parent_path), **kwargs)

    def esm(self, specifier, parent_path="main.js", **kwargs):
        return esm.resolve_sync(self.fs, specifier, self.parent_url(parent_path), **kwargs)


@pytest.fixture
def make_resolves():
    """Build resolvers over a dict of relative path -> contents.

    Keys ending in ``*`` are symbolic links whose value is the link target.
    Non-string values are serialized as JSON.
    """
    def _make(files):
        normalized = {
            name: content if isinstance(content, str) else json.dumps(content)
            for name, content in files.items()
        }
        return Resolves(normalized)

    return _make
