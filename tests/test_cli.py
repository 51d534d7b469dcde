"""
Tests for CLI commands — check, build, bake, devshell, and global options.
"""

import json
import os
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from buildplane.adapters.registry import AdapterRegistry
from buildplane.main import cli

from conftest import BUILDPLANE_YML


@pytest.fixture
def use_mock_registry(monkeypatch, registry):
    """Make every command that builds a default registry get the mock one."""
    monkeypatch.setattr(AdapterRegistry, "default", classmethod(lambda cls: registry))
    return registry


def invoke(*args: str):
    return CliRunner().invoke(cli, list(args))


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = invoke("--help")
        assert result.exit_code == 0
        assert "reproducible builds" in result.output
        for command in ("check", "build", "bake", "devshell", "completions"):
            assert command in result.output

    def test_version(self):
        result = invoke("--version")
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestCheckCommand:
    def test_valid(self, workspace: Path):
        result = invoke("--config", str(workspace), "check", "--platform", "linux")
        assert result.exit_code == 0
        assert "Workspace is valid" in result.output
        assert "axon 1.2.0" in result.output

    def test_json(self, workspace: Path):
        result = invoke("--config", str(workspace), "check", "--platform", "linux", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["valid"] is True
        assert data["locked_packages"] == 5

    def test_unresolved_context(self, workspace: Path):
        workspace.write_text(BUILDPLANE_YML.replace("${ALPINE_VERSION}", "${UNDEFINED}"))
        result = invoke("--config", str(workspace), "check", "--platform", "linux")
        assert result.exit_code == 1
        assert "unresolved-build-context" in result.output
        assert "UNDEFINED" in result.output

    def test_missing_config(self, tmp_path: Path):
        result = invoke("--config", str(tmp_path / "buildplane.yml"), "check")
        assert result.exit_code == 1
        assert "[config]" in result.output


class TestToolchainAndDeps:
    def test_toolchain(self, workspace: Path):
        result = invoke("--config", str(workspace), "toolchain")
        assert result.exit_code == 0
        assert "stable.clippy" in result.output

    def test_toolchain_json(self, workspace: Path):
        result = invoke("--config", str(workspace), "toolchain", "--json")
        data = json.loads(result.output)
        assert data["channel"] == "stable"
        assert data["handle"].startswith("stable-")
        assert len(data["components"]) == 4

    def test_channel_mismatch(self, workspace: Path):
        workspace.write_text(BUILDPLANE_YML.replace("channel: stable}", "channel: nightly}", 1))
        result = invoke("--config", str(workspace), "toolchain")
        assert result.exit_code == 1
        assert "channel-mismatch" in result.output

    def test_deps_macos_json(self):
        result = invoke("deps", "--platform", "macos", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["platform"] == "macos"
        assert "darwin.apple_sdk.frameworks.SystemConfiguration" in data["references"]

    def test_deps_linux(self):
        result = invoke("deps", "--platform", "linux")
        assert result.exit_code == 0
        assert "No extra native dependencies" in result.output

    def test_deps_unsupported(self):
        result = invoke("deps", "--platform", "windows")
        assert result.exit_code == 1
        assert "unsupported-platform" in result.output


class TestBuildCommand:
    def test_build(self, workspace: Path, use_mock_registry, tmp_path: Path):
        result = invoke("--config", str(workspace), "build", "--platform", "linux")
        assert result.exit_code == 0, result.output
        assert "axon 1.2.0" in result.output
        assert (tmp_path / "result" / "bin" / "axon").is_file()

    def test_build_json(self, workspace: Path, use_mock_registry, tmp_path: Path):
        out = tmp_path / "dist"
        result = invoke("--config", str(workspace), "build", "--platform", "linux",
                        "--out", str(out), "--shell", "zsh", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["status"] == "ok"
        assert list(data["completions"]) == ["zsh"]
        assert data["artifact"]["path"] == str(out / "bin" / "axon")

    def test_partial_exit_code(self, workspace: Path, use_mock_registry, mock_adapter):
        mock_adapter.set_failure("completions:fish", "fish: unsupported")
        result = invoke("--config", str(workspace), "build", "--platform", "linux")
        assert result.exit_code == 2
        assert "fish: unsupported" in result.output

    def test_compile_error(self, workspace: Path, use_mock_registry, mock_adapter):
        mock_adapter.reset()
        mock_adapter.set_failure("build:axon", "error[E0425]: cannot find value `x`")
        result = invoke("--config", str(workspace), "build", "--platform", "linux")
        assert result.exit_code == 1
        assert "error[E0425]: cannot find value `x`" in result.output


class TestCompletionsCommand:
    @pytest.mark.parametrize("shell", ["fish", "zsh"])
    def test_script(self, shell):
        result = invoke("completions", shell)
        assert result.exit_code == 0
        assert "_BUILDPLANE_COMPLETE" in result.output

    def test_unknown_shell(self):
        result = invoke("completions", "powershell")
        assert result.exit_code == 2


class TestBakeCommands:
    def test_validate(self, workspace: Path):
        result = invoke("--config", str(workspace), "bake", "validate")
        assert result.exit_code == 0
        assert "1 target(s) valid" in result.output
        assert "disabled: RUSTC_WRAPPER" in result.output

    def test_print_keeps_nulls(self, workspace: Path):
        result = invoke("--config", str(workspace), "bake", "print")
        assert result.exit_code == 0
        doc = json.loads(result.output)
        args = doc["target"]["axon"]["args"]
        assert args == {"RUSTC_WRAPPER": None, "SCCACHE_GHA_ENABLED": "off"}

    def test_print_with_override(self, workspace: Path):
        result = invoke("--config", str(workspace), "bake", "print", "--set", "ALPINE_VERSION=edge")
        doc = json.loads(result.output)
        assert doc["target"]["axon"]["contexts"]["alpine"] == "docker-image://alpine:edge"

    def test_bad_override(self, workspace: Path):
        result = invoke("--config", str(workspace), "bake", "print", "--set", "NOEQUALS")
        assert result.exit_code == 2

    def test_run_dry(self, workspace: Path, use_mock_registry, mock_adapter, tmp_path: Path):
        result = invoke("--config", str(workspace), "bake", "run", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "docker buildx bake" in result.output
        assert (tmp_path / "result" / "bake.json").is_file()
        assert mock_adapter.call_count == 0

    def test_run(self, workspace: Path, use_mock_registry, mock_adapter, tmp_path: Path):
        bake_file = tmp_path / "bake.json"
        result = invoke("--config", str(workspace), "bake", "run", "axon", "--file", str(bake_file))
        assert result.exit_code == 0, result.output
        assert mock_adapter.commands[-1] == ["docker", "buildx", "bake", "-f", str(bake_file), "axon"]


class TestDevshellCommands:
    def test_env(self, workspace: Path):
        result = invoke("--config", str(workspace), "devshell", "env", "--platform", "linux")
        assert result.exit_code == 0
        assert "export BUILDPLANE_TOOLCHAIN=stable-" in result.output
        assert "export LD_LIBRARY_PATH=/opt/libgit2/lib" in result.output

    def test_env_json(self, workspace: Path):
        result = invoke("--config", str(workspace), "devshell", "env", "--platform", "macos", "--json")
        data = json.loads(result.output)
        assert data["prepend"] == {"DYLD_FALLBACK_LIBRARY_PATH": ["/opt/libgit2/lib"]}
        assert len(data["wrappers"]) == 6

    def test_wrappers(self, workspace: Path, tmp_path: Path):
        bin_dir = tmp_path / "bin"
        result = invoke("--config", str(workspace), "devshell", "wrappers", str(bin_dir))
        assert result.exit_code == 0
        assert (bin_dir / "cargo-clippy-all").is_file()
        assert os.access(bin_dir / "cargo-test-all", os.X_OK)

    def test_run_passes_exit_code(self, workspace: Path):
        result = invoke("--config", str(workspace), "devshell", "run", "--",
                        sys.executable, "-c", "raise SystemExit(4)")
        assert result.exit_code == 4

    def test_run_unknown_command(self, workspace: Path):
        result = invoke("--config", str(workspace), "devshell", "run", "--", "no-such-command-xyz")
        assert result.exit_code == 127
