"""Tests for the loaderkit-resolve command line."""

import json
import os

import pytest

from args import parse_args
from cli_config import apply_cli_overrides, load_config
from constants import ExitCodes
from loaderkit import exit_code_for, main, parent_to_url
from resolver import InvalidSpecifierError, LinkCycleError, NotFoundError
from resolver.urls import path_to_url


class TestArgParsing:
    """Tests for CLI argument parsing."""

    def test_defaults(self):
        """Unset options default to None or False."""
        ns = parse_args(["mod"])
        assert ns.specifiers == ["mod"]
        assert ns.MODE is None
        assert ns.CONDITIONS is None
        assert ns.ASYNC is False
        assert ns.QUIET is False

    def test_repeatable_flags(self):
        """Repeated flags accumulate and the mode is lowercased."""
        ns = parse_args(["a", "b", "-m", "ESM", "-C", "node", "-C", "import", "-e", ".ts", "--async"])
        assert ns.specifiers == ["a", "b"]
        assert ns.MODE == "esm"
        assert ns.CONDITIONS == ["node", "import"]
        assert ns.EXTENSIONS == [".ts"]
        assert ns.ASYNC is True

    def test_rejects_unknown_mode(self):
        """argparse exits on an unknown mode."""
        with pytest.raises(SystemExit):
            parse_args(["a", "--mode", "amd"])


class TestConfig:
    """Tests for YAML configuration loading."""

    def test_missing_file(self, tmp_path):
        """A missing or unset config path gives an empty config."""
        assert load_config(str(tmp_path / "nope.yml")) == {}
        assert load_config(None) == {}

    def test_resolve_section(self, tmp_path):
        """Only the resolve section is read and normalized."""
        path = tmp_path / "loaderkit.yml"
        path.write_text(
            "resolve:\n"
            "  mode: Bundler\n"
            "  conditions: [node, import]\n"
            "  extensions: .ts\n"
            "  parent: ./src/main.ts\n"
            "other: ignored\n",
            encoding="utf-8",
        )
        assert load_config(str(path)) == {
            "mode": "bundler",
            "conditions": ["node", "import"],
            "extensions": [".ts"],
            "parent": "./src/main.ts",
        }

    def test_bad_values_ignored(self, tmp_path, caplog):
        """Invalid values are dropped with a warning."""
        path = tmp_path / "loaderkit.yml"
        path.write_text("resolve:\n  mode: amd\n  conditions: {a: 1}\n", encoding="utf-8")
        assert load_config(str(path)) == {}
        assert "Ignoring" in caplog.text

    def test_invalid_yaml(self, tmp_path):
        """Unparseable YAML gives an empty config."""
        path = tmp_path / "loaderkit.yml"
        path.write_text("resolve: [unclosed\n", encoding="utf-8")
        assert load_config(str(path)) == {}

    def test_cli_wins(self):
        """Command-line values override the config file."""
        ns = parse_args(["x", "-m", "esm", "-C", "browser"])
        settings = apply_cli_overrides(ns, {"mode": "cjs", "conditions": ["node"], "parent": "/p"})
        assert settings == {"mode": "esm", "conditions": ["browser"], "parent": "/p"}

    def test_default_mode(self):
        """The mode defaults to cjs."""
        assert apply_cli_overrides(parse_args(["x"]), {})["mode"] == "cjs"


class TestHelpers:
    """Tests for parent conversion and exit codes."""

    def test_parent_to_url(self, tmp_path):
        """Parent paths become file URLs and URLs pass through."""
        root = os.path.realpath(str(tmp_path))
        assert parent_to_url(root) == path_to_url(root, directory=True)
        assert parent_to_url(os.path.join(root, "main.js")) == path_to_url(os.path.join(root, "main.js"))
        assert parent_to_url("file:///x/y.js") == "file:///x/y.js"

    def test_exit_codes(self):
        """Each error family maps to its exit code."""
        assert exit_code_for(NotFoundError("x")) is ExitCodes.NOT_FOUND
        assert exit_code_for(InvalidSpecifierError("x")) is ExitCodes.INVALID_SPECIFIER
        assert exit_code_for(LinkCycleError("x")) is ExitCodes.FILE_ERROR
        assert exit_code_for(OSError("x")) is ExitCodes.FILE_ERROR


class TestMain:
    """End-to-end runs against a temporary project."""

    @pytest.fixture
    def project(self, tmp_path):
        root = os.path.realpath(str(tmp_path))
        with open(os.path.join(root, "package.json"), "w", encoding="utf-8") as f:
            f.write('{"type": "module"}')
        open(os.path.join(root, "a.js"), "w", encoding="utf-8").close()
        return root

    def _run(self, argv, capsys):
        with pytest.raises(SystemExit) as exc:
            main(argv)
        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        return exc.value.code, lines

    @pytest.mark.parametrize("use_async", [False, True])
    def test_success(self, project, capsys, use_async):
        """Successful resolutions print one JSON line each."""
        argv = ["./a", "fs", "-p", os.path.join(project, "main.js")]
        if use_async:
            argv.append("--async")
        code, lines = self._run(argv, capsys)
        assert code == ExitCodes.SUCCESS.value
        assert lines[0] == {
            "specifier": "./a",
            "format": "module",
            "url": path_to_url(os.path.join(project, "a.js")),
        }
        assert lines[1] == {"specifier": "fs", "format": "builtin", "url": "node:fs"}

    def test_worst_failure_wins(self, project, capsys):
        """The exit code reflects the most severe failure."""
        code, lines = self._run(["./a.js", "./missing", "mod/", "-m", "esm", "-p", project], capsys)
        assert code == ExitCodes.INVALID_SPECIFIER.value
        assert "url" in lines[0]
        assert lines[1]["code"] == "MODULE_NOT_FOUND"
        assert lines[2]["code"] == "ERR_INVALID_MODULE_SPECIFIER"

    def test_quiet(self, project, capsys):
        """Quiet mode prints nothing but keeps the exit code."""
        code, lines = self._run(["./missing", "-q", "-p", project], capsys)
        assert code == ExitCodes.NOT_FOUND.value
        assert lines == []

    def test_config_file(self, project, capsys):
        """Settings come from the config file when no flags are given."""
        config = os.path.join(project, "loaderkit.yml")
        with open(config, "w", encoding="utf-8") as f:
            f.write("resolve:\n  mode: esm\n  parent: %s\n" % os.path.join(project, "main.js"))
        code, lines = self._run(["./a", "-c", config], capsys)
        assert code == ExitCodes.NOT_FOUND.value
        assert lines[0]["code"] == "MODULE_NOT_FOUND"
