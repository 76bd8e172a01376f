"""Exceptions raised by the resolver.

Every caller-visible failure derives from ``ResolutionError`` and carries a
Node.js-style ``code`` so hosts can map failures the way the runtime does.
Absent files are never errors; they are plain negative probe results.
"""

from __future__ import annotations

from typing import Optional


class ResolutionError(Exception):
    """Base class for resolution failures."""

    code = "ERR_RESOLUTION"

    def __init__(
        self,
        message: str,
        specifier: Optional[str] = None,
        parent_url: Optional[str] = None,
    ):
        super().__init__(message)
        self.specifier = specifier
        self.parent_url = parent_url

    def with_request(self, specifier: str, parent_url: str) -> "ResolutionError":
        """Attach the outer request when an inner step raised without it."""
        if self.specifier is None:
            self.specifier = specifier
        if self.parent_url is None:
            self.parent_url = parent_url
        return self


class NotFoundError(ResolutionError):
    """No candidate satisfied the current algorithm state."""

    code = "MODULE_NOT_FOUND"


class PackagePathNotExportedError(NotFoundError):
    """The package ``exports`` map has no entry for the requested subpath."""

    code = "ERR_PACKAGE_PATH_NOT_EXPORTED"


class PackageImportNotDefinedError(NotFoundError):
    """The package ``imports`` map has no entry for the ``#`` specifier."""

    code = "ERR_PACKAGE_IMPORT_NOT_DEFINED"


class InvalidSpecifierError(ResolutionError):
    """The specifier or a pattern capture is malformed."""

    code = "ERR_INVALID_MODULE_SPECIFIER"


class InvalidPackageTargetError(InvalidSpecifierError):
    """An exports/imports target is not a valid location inside the package."""

    code = "ERR_INVALID_PACKAGE_TARGET"


class InvalidPackageConfigurationError(InvalidSpecifierError):
    """The package descriptor mixes incompatible exports shapes."""

    code = "ERR_INVALID_PACKAGE_CONFIG"


class UnsupportedDirectoryImportError(InvalidSpecifierError):
    """ESM resolution landed on a directory rather than a file."""

    code = "ERR_UNSUPPORTED_DIR_IMPORT"


class LinkCycleError(ResolutionError):
    """Symlink dereferencing exceeded the maximum depth."""

    code = "ELOOP"


class PackageParseError(ResolutionError):
    """A package descriptor is not a JSON object.

    Lookup sites contain this and treat the descriptor as absent, so a broken
    neighbouring package never blocks an unrelated resolution.
    """

    code = "ERR_INVALID_PACKAGE_CONFIG"
