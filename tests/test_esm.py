"""Tests for the ECMAScript-module front-end."""

import asyncio

import pytest

from resolver import (
    AsyncFileSystemAdapter,
    InvalidSpecifierError,
    MemoryFileSystem,
    ModuleFormat,
    NotFoundError,
    PackageImportNotDefinedError,
    ResolutionError,
    UnsupportedDirectoryImportError,
)
from resolver import esm


class TestSchemes:
    """Specifiers that are already URLs."""

    def test_any_url(self, make_resolves):
        """Non-file URLs are echoed with no format."""
        r = make_resolves({})
        resolution = r.esm("https://example.com/")
        assert resolution.url == "https://example.com/"
        assert resolution.format is None

    def test_builtins(self, make_resolves):
        """Builtin names and node: URLs resolve to the builtin."""
        r = make_resolves({})
        for specifier in ("fs", "node:fs"):
            resolution = r.esm(specifier)
            assert resolution.format == ModuleFormat.BUILTIN
            assert resolution.url == "node:fs"

    def test_file_url(self, make_resolves):
        """A file: specifier is finalized like a joined path."""
        r = make_resolves({"lib/a.mjs": ""})
        assert r.esm("file:///lib/a.mjs").format == ModuleFormat.MODULE

    def test_relative_to_non_file_parent(self):
        """Relative specifiers join onto a remote parent and are echoed."""
        resolution = esm.resolve_sync(MemoryFileSystem({}), "./b.js", "https://example.com/lib/a.js")
        assert resolution.url == "https://example.com/lib/b.js"
        assert resolution.format is None

    @pytest.mark.parametrize("specifier", ["mod", "#x"])
    def test_package_lookup_from_non_file_parent(self, specifier):
        """Package and imports lookups need a file: parent."""
        fs = MemoryFileSystem({"node_modules/mod/index.js": ""})
        with pytest.raises(InvalidSpecifierError):
            esm.resolve_sync(fs, specifier, "https://example.com/a.js")
        assert esm.resolve_sync(fs, "fs", "https://example.com/a.js").url == "node:fs"


class TestFiles:
    """Relative and absolute specifiers must name files exactly."""

    def test_no_extension_probing(self, make_resolves):
        """Relative imports must name the file exactly."""
        r = make_resolves({"a.js": ""})
        assert r.esm("./a.js").url == "file:///a.js"
        with pytest.raises(NotFoundError):
            r.esm("./a")

    def test_directory_import_rejected(self, make_resolves):
        """Importing a directory raises UnsupportedDirectoryImportError."""
        r = make_resolves({"dir/index.js": ""})
        with pytest.raises(UnsupportedDirectoryImportError):
            r.esm("./dir")

    def test_formats_by_extension(self, make_resolves):
        """Each extension maps to its module format."""
        r = make_resolves({
            "package.json": {"type": "module"},
            "a.js": "", "b.cjs": "", "c.json": "", "d.node": "", "e.wasm": "",
        })
        assert r.esm("./a.js").format == ModuleFormat.MODULE
        assert r.esm("./b.cjs").format == ModuleFormat.COMMONJS
        assert r.esm("./c.json").format == ModuleFormat.JSON
        assert r.esm("./d.node").format == ModuleFormat.BUILTIN
        assert r.esm("./e.wasm").format is None

    @pytest.mark.parametrize("specifier", ["./a%2fmain.mjs", "./a%2Fmain.mjs", "./a%5cmain.mjs"])
    def test_percent_encoded_separator(self, make_resolves, specifier):
        """Encoded slashes and backslashes are rejected."""
        r = make_resolves({
            "package.json": {"exports": "main.mjs"},
            "a/b/main.mjs": "",
        })
        with pytest.raises(InvalidSpecifierError):
            r.esm(specifier, "main.mjs")

    def test_symlinked_file(self, make_resolves):
        """Links on the file and on its directory are both followed."""
        r = make_resolves({
            "package.json": {},
            "real.js": "",
            "link.js*": "./real.js",
            "dir*": ".",
        })
        assert r.esm("./link.js").url == "file:///real.js"
        assert r.esm("./dir/link.js").url == "file:///real.js"

    def test_symlinked_file_format(self, make_resolves):
        """The format comes from the link target, not the link name."""
        r = make_resolves({
            "package.json": {},
            "mjs.mjs": "",
            "mjs*": "mjs.mjs",
        })
        resolution = r.esm("./mjs")
        assert resolution.format == ModuleFormat.MODULE
        assert resolution.url == "file:///mjs.mjs"


class TestPackages:
    """Bare specifiers through PACKAGE_RESOLVE."""

    def test_import_self(self, make_resolves):
        """A package can import itself by name."""
        r = make_resolves({
            "package.json": {"name": "mod", "type": "module", "exports": "./index.js"},
            "index.js": "",
        })
        resolution = r.esm("mod")
        assert resolution.url == "file:///index.js"
        assert resolution.format == ModuleFormat.MODULE

    def test_shadowed_core_module(self, make_resolves):
        """A core module name wins over a node_modules package of the same name."""
        r = make_resolves({
            "node_modules/util/package.json": {"exports": {"./util": "./index.js"}},
            "node_modules/util/index.js": "",
        })
        assert r.esm("util").format == ModuleFormat.BUILTIN
        assert r.esm("util/util").url == "file:///node_modules/util/index.js"

    def test_root_node_modules(self, make_resolves):
        """node_modules at the filesystem root is searched."""
        r = make_resolves({
            "node_modules/mod/package.json": {"exports": "./index.js"},
            "node_modules/mod/index.js": "",
        })
        assert r.esm("mod", "src/app/main.js").url == "file:///node_modules/mod/index.js"

    def test_conditional_exports_use_import(self, make_resolves):
        """ESM picks the import condition."""
        r = make_resolves({
            "node_modules/mod/package.json": {
                "exports": {"import": "./main.mjs", "require": "./main.js"},
            },
            "node_modules/mod/main.mjs": "",
            "node_modules/mod/main.js": "",
        })
        assert r.esm("mod").url == "file:///node_modules/mod/main.mjs"

    def test_legacy_directory_import(self, make_resolves):
        """An empty descriptor falls back to index.js."""
        r = make_resolves({
            "node_modules/mod/package.json": "{}",
            "node_modules/mod/index.js": "",
        })
        assert r.esm("mod").url == "file:///node_modules/mod/index.js"

    def test_legacy_main(self, make_resolves):
        """Legacy main gets extension lookup but plain subpaths do not."""
        for pjson in ({"main": "index"}, {"type": "commonjs", "main": "index"}):
            r = make_resolves({
                "node_modules/mod/package.json": pjson,
                "node_modules/mod/index.js": "",
                "node_modules/mod/other.js": "",
            })
            assert r.esm("mod").url == "file:///node_modules/mod/index.js"
            assert r.esm("mod/other.js").url == "file:///node_modules/mod/other.js"
            with pytest.raises(NotFoundError):
                r.esm("mod/other")

    def test_legacy_main_directory(self, make_resolves):
        """A main naming a directory resolves to its index.js."""
        for main in ("lib", "lib/", "./lib/"):
            r = make_resolves({
                "node_modules/mod/package.json": {"main": main},
                "node_modules/mod/lib/index.js": "",
            })
            assert r.esm("mod").url == "file:///node_modules/mod/lib/index.js"

    def test_missing_package(self, make_resolves):
        """An unknown package raises NotFoundError."""
        r = make_resolves({})
        with pytest.raises(NotFoundError):
            r.esm("nope")

    def test_strict_package_names(self, make_resolves):
        """Malformed package names raise InvalidSpecifierError."""
        r = make_resolves({"node_modules/.mod/index.js": ""})
        for specifier in (".mod/", "@scope", "a\\b", "a%2fb"):
            with pytest.raises(InvalidSpecifierError):
                r.esm(specifier)

    def test_symlinked_module(self, make_resolves):
        """Relative and absolute package links both resolve to the real location."""
        r = make_resolves({
            ".pnpm/mod@1.0.0/node_modules/mod/package.json": {"exports": "./index.js"},
            ".pnpm/mod@1.0.0/node_modules/mod/index.js": "",
            "node_modules/mod*": "../.pnpm/mod@1.0.0/node_modules/mod",
            "node_modules/mod2*": "/.pnpm/mod@1.0.0/node_modules/mod",
        })
        expected = "file:///.pnpm/mod@1.0.0/node_modules/mod/index.js"
        assert r.esm("mod").url == expected
        assert r.esm("mod2").url == expected


class TestImports:
    """# specifiers never fall through in ESM."""

    def test_imports_map(self, make_resolves):
        """Imports patterns rewrite the matched segment."""
        r = make_resolves({
            "package.json": {"imports": {"#lib/*.js": {"import": "./lib/*.mjs"}}},
            "lib/a.mjs": "",
        })
        assert r.esm("#lib/a.js").url == "file:///lib/a.mjs"

    def test_undefined_import(self, make_resolves):
        """An unknown # key raises PackageImportNotDefinedError."""
        r = make_resolves({"package.json": {"imports": {"#a": "./a.js"}}})
        with pytest.raises(PackageImportNotDefinedError):
            r.esm("#b")

    def test_no_scope(self, make_resolves):
        """A # specifier with no enclosing package raises PackageImportNotDefinedError."""
        r = make_resolves({})
        with pytest.raises(PackageImportNotDefinedError):
            r.esm("#a")


class TestTrailingSlash:
    """Trailing-slash requests are rejected."""

    FILES = {
        "node_modules/mod/package.json": {
            "exports": {"./*": "./index.js", "./test/": "./index.js"},
        },
        "node_modules/mod/index.js": "",
        "package.json": {
            "imports": {"#test/*": "./index.js", "#test/test/": "./index.js"},
        },
        "index.js": "",
    }

    @pytest.mark.parametrize("specifier", [
        "mod/", "mod/test/", "mod/wildcard/", "#test/", "#test/test/", "#test/wildcard/",
    ])
    def test_rejected(self, make_resolves, specifier):
        """Requests ending in a slash fail."""
        r = make_resolves(self.FILES)
        with pytest.raises(ResolutionError):
            r.esm(specifier)


def test_async_matches_sync():
    """The awaitable entry point gives the same answers."""
    fs = MemoryFileSystem({
        "package.json": '{"name": "app", "type": "module", "exports": "./x.js"}',
        "x.js": "",
        "node_modules/mod/package.json": '{"exports": {"import": "./m.mjs"}}',
        "node_modules/mod/m.mjs": "",
    })
    adapter = AsyncFileSystemAdapter(fs)
    for specifier in ("app", "./x.js", "mod", "node:fs", "https://example.com/x"):
        sync_result = esm.resolve_sync(fs, specifier, "file:///main.js")
        async_result = asyncio.run(esm.resolve(adapter, specifier, "file:///main.js"))
        assert sync_result == async_result
