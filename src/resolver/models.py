"""Data models for module resolution."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence


class ModuleFormat(str, Enum):
    """Module format of a resolved artifact."""
    MODULE = "module"
    COMMONJS = "commonjs"
    JSON = "json"
    BUILTIN = "builtin"
    ADDON = "addon"


class PackageType(str, Enum):
    """Values of the package descriptor ``type`` field."""
    MODULE = "module"
    COMMONJS = "commonjs"


@dataclass(frozen=True)
class Resolution:
    """Resolution outcome: canonical location plus its format.

    ``format`` is None for extensions this resolver does not know; the caller
    decides how to load those.
    """
    format: Optional[ModuleFormat]
    url: str

    def to_dict(self) -> dict:
        """Serialize to plain JSON-compatible values."""
        return {
            "format": self.format.value if self.format is not None else None,
            "url": self.url,
        }


@dataclass(frozen=True)
class PackageDescriptor:
    """The parts of one ``package.json`` the resolver cares about."""
    location: str  # directory URL, always ending in "/"
    name: Optional[str] = None
    type: Optional[str] = None
    main: Optional[str] = None
    exports: Any = None
    imports: Any = None

    @classmethod
    def from_json(cls, location: str, data: dict) -> "PackageDescriptor":
        """Keep only well-typed fields; anything else reads as absent."""
        def _string(key: str) -> Optional[str]:
            value = data.get(key)
            return value if isinstance(value, str) else None

        imports = data.get("imports")
        return cls(
            location=location,
            name=_string("name"),
            type=_string("type"),
            main=_string("main") or None,
            exports=data.get("exports"),
            imports=imports if isinstance(imports, dict) else None,
        )


@dataclass(frozen=True)
class ResolveOptions:
    """Per-request knobs."""
    conditions: Sequence[str]
    extensions: Sequence[str] = ()


@dataclass
class ResolutionContext:
    """Everything one resolution threads through the engine.

    ``detect_format`` is the ambiguous-``.js`` policy: it receives the real
    file URL and may return a format, or None to defer to the extension and
    package ``type`` rules.
    """
    options: ResolveOptions
    cache: Any  # PackageJsonCache; typed loosely to avoid an import cycle
    detect_format: Optional[Callable[[str], Optional[ModuleFormat]]] = None

    @property
    def conditions(self) -> Sequence[str]:
        return self.options.conditions

    @property
    def extensions(self) -> Sequence[str]:
        return self.options.extensions
