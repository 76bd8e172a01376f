"""URL helpers: specifier classification, fragment encoding, file URL math.

All locations inside the engine are ``file:`` URL strings. Directory URLs
always end in ``/``. Joining uses ``urllib.parse.urljoin``, which implements
RFC 3986 dot-segment removal and collapses repeated separators.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from urllib.parse import quote, unquote, urljoin, urlsplit

_HAS_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")

# Leading C0 control or space characters are stripped by URL parsers, and tab or
# newline are removed anywhere, so those must be escaped along with "%" itself.
# "?" and "#" would otherwise start a query or fragment.
_FRAGMENT_ESCAPES = re.compile(r"^[\x00-\x20%]+|[\r\n\t%?#]")

_ENCODED_SEPARATOR = re.compile(r"%2f|%5c", re.IGNORECASE)

_SEPARATOR_RUN = re.compile(r"/{2,}")


def has_scheme(specifier: str) -> bool:
    """Return True for fully-qualified URLs such as ``node:fs`` or ``https://...``."""
    return bool(_HAS_SCHEME.match(specifier))


def is_file_url(url: str) -> bool:
    return url.startswith("file:")


def is_relative_specifier(specifier: str) -> bool:
    """``./x``, ``../x``, ``.`` and ``..`` are relative; ``.mod`` is not."""
    if specifier in (".", ".."):
        return True
    return specifier.startswith("./") or specifier.startswith("../")


def is_absolute_specifier(specifier: str) -> bool:
    return specifier.startswith("/")


def encode_fragment(fragment: str) -> str:
    """Encode a file-name style specifier so it survives URL construction.

    CommonJS resolves by file name but the engine is URL-native, so characters
    URL parsing would drop or reinterpret are percent-encoded.
    """
    def _encode(match: re.Match) -> str:
        return "".join(f"%{ord(char):02x}" for char in match.group(0))

    return _FRAGMENT_ESCAPES.sub(_encode, fragment)


def has_encoded_separator(url: str) -> bool:
    """True when the URL path smuggles ``/`` or ``\\`` as ``%2F`` / ``%5C``."""
    return bool(_ENCODED_SEPARATOR.search(urlsplit(url).path))


def join(base: str, reference: str) -> str:
    return urljoin(base, reference)


def collapse_separators(url: str) -> str:
    """``file:///a//b`` -> ``file:///a/b``; other URLs are returned as-is."""
    if not is_file_url(url):
        return url
    parts = urlsplit(url)
    return parts._replace(path=_SEPARATOR_RUN.sub("/", parts.path)).geturl()


def directory_of(url: str) -> str:
    """The directory containing ``url``; a directory URL maps to itself."""
    return urljoin(url, ".")


def parent_directory(directory_url: str) -> str:
    """The parent of a directory URL; the root is its own parent."""
    return urljoin(as_directory(directory_url), "..")


def as_directory(url: str) -> str:
    return url if url.endswith("/") else url + "/"


def is_root(url: str) -> bool:
    return urlsplit(url).path in ("", "/")


def last_segment(directory_url: str) -> str:
    """``file:///a/node_modules/`` -> ``node_modules``."""
    path = urlsplit(directory_url).path.rstrip("/")
    return unquote(path.rsplit("/", 1)[-1])


def extension_of(url: str) -> str:
    """Extension of the final path segment, including the dot."""
    return PurePosixPath(unquote(urlsplit(url).path)).suffix


def url_to_path(url: str) -> str:
    """Convert a ``file:`` URL to a POSIX path, without a trailing slash."""
    parts = urlsplit(url)
    if parts.scheme != "file":
        raise ValueError(f"Not a file URL: {url}")
    path = unquote(parts.path) or "/"
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def path_to_url(path: str, directory: bool = False) -> str:
    """Convert an absolute POSIX path to a ``file:`` URL."""
    encoded = quote(path, safe="/@:+,;=!$&'()*~")
    url = "file://" + (encoded if encoded.startswith("/") else "/" + encoded)
    return as_directory(url) if directory else url


def node_url(name: str) -> str:
    return name if name.startswith("node:") else f"node:{name}"

