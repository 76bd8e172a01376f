"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    NOT_FOUND = 1
    INVALID_SPECIFIER = 2
    FILE_ERROR = 3


class ResolutionModes(Enum):
    """Resolution front-ends supported by the program.

    Args:
        Enum (string): Resolution front-ends supported by the program.
    """

    CJS = "cjs"
    ESM = "esm"
    AUTO = "auto"
    BUNDLER = "bundler"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    SUPPORTED_MODES = [
        ResolutionModes.CJS.value,
        ResolutionModes.ESM.value,
        ResolutionModes.AUTO.value,
        ResolutionModes.BUNDLER.value,
    ]
    PACKAGE_JSON_FILE = "package.json"
    NODE_MODULES_DIR = "node_modules"

    CJS_CONDITIONS = ("node", "require")
    ESM_CONDITIONS = ("node", "import")
    BUNDLER_IMPORT_CONDITIONS = ("node", "import", "require")
    CJS_EXTENSIONS = (".js", ".json", ".node")
    BUNDLER_EXTENSIONS = (".js", ".jsx")
    LEGACY_MAIN_SUFFIXES = (
        "",
        ".js",
        ".json",
        ".node",
        "/index.js",
        "/index.json",
        "/index.node",
    )
    LEGACY_INDEX_FILES = ("index.js", "index.json", "index.node")

    # Mirrors the POSIX MAXSYMLINKS convention
    MAX_LINK_DEPTH = 40

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "LOADERKIT_LOG_LEVEL"
    CONFIG_SECTION = "resolve"

    # Modules which may be required without the `node:` scheme
    NODE_BUILTIN_MODULES = frozenset([
        "_http_agent", "_http_client", "_http_common", "_http_incoming",
        "_http_outgoing", "_http_server", "_stream_duplex", "_stream_passthrough",
        "_stream_readable", "_stream_transform", "_stream_wrap", "_stream_writable",
        "_tls_common", "_tls_wrap", "assert", "assert/strict", "async_hooks",
        "buffer", "child_process", "cluster", "console", "constants", "crypto",
        "dgram", "diagnostics_channel", "dns", "dns/promises", "domain", "events",
        "fs", "fs/promises", "http", "http2", "https", "inspector",
        "inspector/promises", "module", "net", "os", "path", "path/posix",
        "path/win32", "perf_hooks", "process", "punycode", "querystring",
        "readline", "readline/promises", "repl", "stream", "stream/consumers",
        "stream/promises", "stream/web", "string_decoder", "sys", "timers",
        "timers/promises", "tls", "trace_events", "tty", "url", "util",
        "util/types", "v8", "vm", "wasi", "worker_threads", "zlib",
    ])
