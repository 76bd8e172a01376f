"""Resolver sessions: one filesystem port, one descriptor cache, one mode.

Modes:
  cjs      - ``require()`` resolution.
  esm      - ``import`` resolution.
  auto     - ``import`` for module parents, ``require()`` otherwise.
  bundler  - ``require()``-style probing with bundler extensions; module
             parents also match "import" conditions.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from constants import Constants, ResolutionModes

from . import cjs, esm
from .formats import format_for_parent
from .models import ModuleFormat, Resolution, ResolutionContext
from .scope import PackageJsonCache
from .tasks import Task, run_async, run_sync

logger = logging.getLogger(__name__)


class _ResolverBase:
    """Mode dispatch shared by the blocking and awaitable sessions."""

    def __init__(
        self,
        fs,
        mode: str = ResolutionModes.CJS.value,
        cache: Optional[PackageJsonCache] = None,
        detect_format: Optional[Callable[[str], Optional[ModuleFormat]]] = None,
    ):
        if mode not in Constants.SUPPORTED_MODES:
            raise ValueError(
                f"Unsupported resolution mode '{mode}'. Supported: {', '.join(Constants.SUPPORTED_MODES)}"
            )
        self.fs = fs
        self.mode = mode
        self.cache = cache if cache is not None else PackageJsonCache()
        self.detect_format = detect_format

    def _context(self, conditions, extensions) -> ResolutionContext:
        return cjs.make_context(conditions, extensions, self.cache, self.detect_format)

    def _task(
        self,
        specifier: str,
        parent_url: str,
        conditions: Optional[Sequence[str]],
        extensions: Optional[Sequence[str]],
    ) -> Task[Resolution]:
        mode = self.mode
        if mode == ResolutionModes.CJS.value:
            ctx = self._context(conditions, extensions)
            return (yield from cjs.resolver_task(ctx, specifier, parent_url))

        if mode == ResolutionModes.ESM.value:
            ctx = self._context(conditions if conditions is not None else Constants.ESM_CONDITIONS, ())
            return (yield from esm.resolver_task(ctx, specifier, parent_url))

        probe = self._context(Constants.CJS_CONDITIONS, ())
        parent_format = yield from format_for_parent(probe, parent_url)
        is_module_parent = parent_format == ModuleFormat.MODULE
        logger.debug("Parent %s has format %s", parent_url, parent_format)

        if mode == ResolutionModes.AUTO.value:
            if is_module_parent:
                ctx = self._context(conditions if conditions is not None else Constants.ESM_CONDITIONS, ())
                return (yield from esm.resolver_task(ctx, specifier, parent_url))
            ctx = self._context(conditions, extensions)
            return (yield from cjs.resolver_task(ctx, specifier, parent_url))

        if conditions is None:
            conditions = (
                Constants.BUNDLER_IMPORT_CONDITIONS if is_module_parent else Constants.CJS_CONDITIONS
            )
        ctx = self._context(conditions, extensions if extensions is not None else Constants.BUNDLER_EXTENSIONS)
        return (yield from cjs.resolver_task(ctx, specifier, parent_url))


class Resolver(_ResolverBase):
    """Blocking session over a ``FileSystem`` port."""

    def resolve(
        self,
        specifier: str,
        parent_url: str,
        conditions: Optional[Sequence[str]] = None,
        extensions: Optional[Sequence[str]] = None,
    ) -> Resolution:
        return run_sync(self._task(specifier, parent_url, conditions, extensions), self.fs)


class AsyncResolver(_ResolverBase):
    """Awaitable session over an ``AsyncFileSystem`` port."""

    async def resolve(
        self,
        specifier: str,
        parent_url: str,
        conditions: Optional[Sequence[str]] = None,
        extensions: Optional[Sequence[str]] = None,
    ) -> Resolution:
        return await run_async(self._task(specifier, parent_url, conditions, extensions), self.fs)
