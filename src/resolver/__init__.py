"""Module specifier resolution engine.

This package resolves ``require()`` and ``import`` specifiers the way Node.js does:
- cjs.py / esm.py: the two front-ends, each with sync and async entry points
- exports.py: conditional ``exports`` / ``imports`` map matching
- packages.py: package names, node_modules search, legacy ``main``
- scope.py: package scope discovery and the descriptor cache
- links.py: symlink dereferencing
- fs.py: filesystem ports (local disk, in-memory, async adapter)
- session.py: ``Resolver`` / ``AsyncResolver`` sessions with mode dispatch
"""

from .errors import (
    InvalidPackageConfigurationError,
    InvalidPackageTargetError,
    InvalidSpecifierError,
    LinkCycleError,
    NotFoundError,
    PackageImportNotDefinedError,
    PackageParseError,
    PackagePathNotExportedError,
    ResolutionError,
    UnsupportedDirectoryImportError,
)
from .fs import AsyncFileSystemAdapter, LocalFileSystem, MemoryFileSystem
from .models import ModuleFormat, PackageDescriptor, Resolution
from .scope import PackageJsonCache
from .session import AsyncResolver, Resolver

__all__ = [
    # Sessions
    "Resolver",
    "AsyncResolver",
    "PackageJsonCache",
    # Filesystem ports
    "LocalFileSystem",
    "MemoryFileSystem",
    "AsyncFileSystemAdapter",
    # Results
    "Resolution",
    "ModuleFormat",
    "PackageDescriptor",
    # Errors
    "ResolutionError",
    "NotFoundError",
    "PackagePathNotExportedError",
    "PackageImportNotDefinedError",
    "InvalidSpecifierError",
    "InvalidPackageTargetError",
    "InvalidPackageConfigurationError",
    "UnsupportedDirectoryImportError",
    "LinkCycleError",
    "PackageParseError",
]
