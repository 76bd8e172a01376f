"""Conditional ``exports`` / ``imports`` map matching.

Each level of a map value is classified into one ``TargetKind`` and handed to
one step function. A step returns a resolved URL, ``None`` when the target is
explicitly excluded (a JSON ``null``), or ``NO_MATCH`` when no condition
applied and the caller should try its next alternative. Keeping those three
outcomes distinct is what lets a ``null`` branch stop a conditions object
while an unmatched branch falls through.

Precedence:
  1. an exact, non-pattern key beats every pattern key;
  2. among pattern keys, the longest static prefix wins (then the longest key);
  3. condition keys are tested in declared order, "default" always matching;
  4. array alternatives are tried in order, skipping invalid targets.
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Union

from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants

from .errors import (
    InvalidPackageConfigurationError,
    InvalidPackageTargetError,
    InvalidSpecifierError,
    PackageImportNotDefinedError,
    PackagePathNotExportedError,
)
from .models import ResolutionContext
from .scope import lookup_package_scope, read_package_json
from .tasks import Task
from .urls import as_directory, has_scheme, join

logger = logging.getLogger(__name__)


class _NoMatch:
    """Sentinel: no condition matched; try the next alternative."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_MATCH"


NO_MATCH = _NoMatch()

# A step outcome: resolved URL, None (excluded), or NO_MATCH
Outcome = Union[str, None, _NoMatch]


class TargetKind(Enum):
    """Shape of one exports/imports map value."""
    STRING = "string"
    CONDITIONS = "conditions"
    FALLBACKS = "fallbacks"
    EXCLUDED = "excluded"
    INVALID = "invalid"


def classify_target(target: Any) -> TargetKind:
    if isinstance(target, str):
        return TargetKind.STRING
    if isinstance(target, dict):
        return TargetKind.CONDITIONS
    if isinstance(target, list):
        return TargetKind.FALLBACKS
    if target is None:
        return TargetKind.EXCLUDED
    return TargetKind.INVALID


# "", ".", "..", "node_modules" segments, plain or percent-encoded
_INVALID_SEGMENT = re.compile(
    r"(^|\\|/)((\.|%2e)(\.|%2e)?|(n|%6e|%4e)(o|%6f|%4f)(d|%64|%44)(e|%65|%45)(_|%5f)"
    r"(m|%6d|%4d)(o|%6f|%4f)(d|%64|%44)(u|%75|%55)(l|%6c|%4c)(e|%65|%45)(s|%73|%53))?"
    r"(\\|/|$)",
    re.IGNORECASE,
)
_INDEX_KEY = re.compile(r"0|[1-9][0-9]*")


def pattern_key_compare(key_a: str, key_b: str) -> int:
    """Order pattern keys from most to least specific."""
    base_a = key_a.find("*") + 1
    base_b = key_b.find("*") + 1
    if base_a > base_b:
        return -1
    if base_b > base_a:
        return 1
    if "*" not in key_a:
        return 1
    if "*" not in key_b:
        return -1
    if len(key_a) > len(key_b):
        return -1
    if len(key_b) > len(key_a):
        return 1
    return 0


def _resolve_string(
    ctx: ResolutionContext,
    package_url: str,
    target: str,
    pattern_match: Optional[str],
    is_imports: bool,
) -> Task[Outcome]:
    if not target.startswith("./"):
        if not is_imports or target.startswith("../") or target.startswith("/") or has_scheme(target):
            raise InvalidPackageTargetError(
                f'Invalid "{"imports" if is_imports else "exports"}" target "{target}" in {package_url}'
            )
        # Bare imports targets name another package
        from .packages import package_resolve  # pylint: disable=import-outside-toplevel

        if pattern_match is not None:
            target = target.replace("*", pattern_match)
        return (yield from package_resolve(ctx, target, as_directory(package_url)))

    if _INVALID_SEGMENT.search(target[2:]):
        raise InvalidPackageTargetError(f'Invalid target "{target}" in {package_url}')
    resolved_target = join(package_url, target)
    if not resolved_target.startswith(as_directory(package_url)):
        raise InvalidPackageTargetError(f'Target "{target}" escapes package {package_url}')
    if pattern_match is None:
        return resolved_target
    if _INVALID_SEGMENT.search(pattern_match):
        raise InvalidSpecifierError(
            f'Pattern match "{pattern_match}" contains invalid segments for target "{target}"'
        )
    return join(package_url, target.replace("*", pattern_match))


def _resolve_conditions(
    ctx: ResolutionContext,
    package_url: str,
    target: Dict[str, Any],
    pattern_match: Optional[str],
    is_imports: bool,
) -> Task[Outcome]:
    if any(_INDEX_KEY.fullmatch(key) for key in target):
        raise InvalidPackageConfigurationError(
            f'Conditions object in {package_url} cannot contain numeric property keys'
        )
    for condition, value in target.items():
        if condition != "default" and condition not in ctx.conditions:
            continue
        resolved = yield from package_target_resolve(ctx, package_url, value, pattern_match, is_imports)
        if resolved is NO_MATCH:
            continue
        return resolved
    return NO_MATCH


def _resolve_fallbacks(
    ctx: ResolutionContext,
    package_url: str,
    target: list,
    pattern_match: Optional[str],
    is_imports: bool,
) -> Task[Outcome]:
    if not target:
        return None
    last_outcome: Outcome = NO_MATCH
    last_error: Optional[InvalidPackageTargetError] = None
    for value in target:
        try:
            resolved = yield from package_target_resolve(ctx, package_url, value, pattern_match, is_imports)
        except InvalidPackageTargetError as e:
            last_error = e
            continue
        if resolved is NO_MATCH:
            continue
        if resolved is None:
            last_error, last_outcome = None, None
            continue
        return resolved
    if last_error is not None:
        raise last_error
    return last_outcome


def _resolve_excluded(ctx, package_url, target, pattern_match, is_imports) -> Task[Outcome]:
    return None
    yield  # pylint: disable=unreachable


def _resolve_invalid(ctx, package_url, target, pattern_match, is_imports) -> Task[Outcome]:
    raise InvalidPackageTargetError(f"Invalid target {target!r} in {package_url}")
    yield  # pylint: disable=unreachable


_STEPS: Dict[TargetKind, Callable[..., Task[Outcome]]] = {
    TargetKind.STRING: _resolve_string,
    TargetKind.CONDITIONS: _resolve_conditions,
    TargetKind.FALLBACKS: _resolve_fallbacks,
    TargetKind.EXCLUDED: _resolve_excluded,
    TargetKind.INVALID: _resolve_invalid,
}


def package_target_resolve(
    ctx: ResolutionContext,
    package_url: str,
    target: Any,
    pattern_match: Optional[str],
    is_imports: bool,
) -> Task[Outcome]:
    step = _STEPS[classify_target(target)]
    return (yield from step(ctx, package_url, target, pattern_match, is_imports))


def package_imports_exports_resolve(
    ctx: ResolutionContext,
    match_key: str,
    match_obj: Dict[str, Any],
    package_url: str,
    is_imports: bool,
) -> Task[Outcome]:
    """Match ``match_key`` against the keys of an exports/imports object.

    Returns the step outcome, or None when no key matched.
    """
    # Exact keys never serve a trailing-slash request; the legacy
    # directory-export form is not supported.
    if match_key in match_obj and "*" not in match_key and not match_key.endswith("/"):
        if is_debug_enabled(logger):
            logger.debug("Exact key matched", extra=extra_context(
                event="decision", component="exports", action="match",
                outcome="exact", target=match_key,
            ))
        return (yield from package_target_resolve(ctx, package_url, match_obj[match_key], None, is_imports))

    expansion_keys = sorted(
        (key for key in match_obj if "*" in key),
        key=functools.cmp_to_key(pattern_key_compare),
    )
    for expansion_key in expansion_keys:
        pattern_base = expansion_key[:expansion_key.index("*")]
        if not match_key.startswith(pattern_base) or match_key == pattern_base:
            continue
        pattern_trailer = expansion_key[len(pattern_base) + 1:]
        if "*" in pattern_trailer:
            raise InvalidSpecifierError(
                f'Pattern key "{expansion_key}" in {package_url} has more than one "*"'
            )
        if not pattern_trailer or (
            match_key.endswith(pattern_trailer) and len(match_key) >= len(expansion_key)
        ):
            pattern_match = match_key[len(pattern_base):len(match_key) - len(pattern_trailer)]
            if is_debug_enabled(logger):
                logger.debug("Pattern key matched", extra=extra_context(
                    event="decision", component="exports", action="match",
                    outcome="pattern", target=expansion_key,
                ))
            return (yield from package_target_resolve(
                ctx, package_url, match_obj[expansion_key], pattern_match, is_imports
            ))
    return None


def _is_conditional_sugar(exports: Any) -> bool:
    """True for a string, array, or object with no "."-prefixed keys."""
    if isinstance(exports, (str, list)):
        return True
    if isinstance(exports, dict):
        return not any(key.startswith(".") for key in exports)
    return False


def package_exports_resolve(
    ctx: ResolutionContext,
    package_url: str,
    subpath: str,
    exports: Any,
    conditions: Optional[Sequence[str]] = None,
) -> Task[str]:
    """Resolve ``subpath`` ("." or "./...") through a package ``exports`` field.

    Raises:
        InvalidPackageConfigurationError: mixed "." and condition keys.
        PackagePathNotExportedError: nothing matched, or the match was null.
    """
    if conditions is not None and tuple(conditions) != tuple(ctx.conditions):
        ctx = _with_conditions(ctx, conditions)
    package_url = as_directory(package_url)
    if isinstance(exports, dict) and exports:
        dotted = [key.startswith(".") for key in exports]
        if any(dotted) and not all(dotted):
            raise InvalidPackageConfigurationError(
                f'"exports" in {package_url} mixes subpath keys with condition keys'
            )

    resolved: Outcome = None
    if subpath == ".":
        main_export: Any = NO_MATCH
        if _is_conditional_sugar(exports):
            main_export = exports
        elif isinstance(exports, dict) and "." in exports:
            main_export = exports["."]
        if main_export is not NO_MATCH:
            resolved = yield from package_target_resolve(ctx, package_url, main_export, None, False)
    elif isinstance(exports, dict) and all(key.startswith(".") for key in exports):
        resolved = yield from package_imports_exports_resolve(ctx, subpath, exports, package_url, False)

    if isinstance(resolved, str):
        return resolved
    raise PackagePathNotExportedError(
        f'Package subpath "{subpath}" is not defined by "exports" in {package_url}{Constants.PACKAGE_JSON_FILE}'
    )


def package_imports_resolve(
    ctx: ResolutionContext,
    specifier: str,
    parent_url: str,
    conditions: Optional[Sequence[str]] = None,
) -> Task[str]:
    """Resolve a ``#`` specifier through the nearest package ``imports`` field.

    Raises:
        InvalidSpecifierError: "#" alone, or "#/..." specifiers.
        PackageImportNotDefinedError: no scope, no imports, or no matching key.
    """
    if conditions is not None and tuple(conditions) != tuple(ctx.conditions):
        ctx = _with_conditions(ctx, conditions)
    if specifier == "#" or specifier.startswith("#/"):
        raise InvalidSpecifierError(f'"{specifier}" is not a valid internal imports specifier')
    package_url = yield from lookup_package_scope(ctx.cache, parent_url)
    if package_url is not None:
        pjson = yield from read_package_json(ctx.cache, package_url)
        if pjson is not None and pjson.imports is not None:
            resolved = yield from package_imports_exports_resolve(
                ctx, specifier, pjson.imports, package_url, True
            )
            if isinstance(resolved, str):
                return resolved
    raise PackageImportNotDefinedError(
        f'Package import specifier "{specifier}" is not defined'
        + (f" in {package_url}{Constants.PACKAGE_JSON_FILE}" if package_url else "")
    )


def _with_conditions(ctx: ResolutionContext, conditions: Sequence[str]) -> ResolutionContext:
    return replace(ctx, options=replace(ctx.options, conditions=tuple(conditions)))
