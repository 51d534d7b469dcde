"""
Tests for the check and package use cases.
"""

from pathlib import Path

import pytest

from buildplane.core.errors import ChannelMismatch, CompileError, ConfigError, LockFileMismatch
from buildplane.core.models.completion import ShellKind
from buildplane.core.use_cases.check import check_workspace
from buildplane.core.use_cases.package import PackageResult, run_package

from conftest import BUILDPLANE_YML


class TestCheckWorkspace:
    def test_valid_workspace(self, workspace: Path):
        result = check_workspace(workspace, platform="linux")
        assert result.valid, result.errors
        assert result.package.label == "axon 1.2.0"
        assert result.locked_packages == 5
        assert result.bake_targets == ["axon"]
        assert result.platform_deps.empty
        assert result.warnings == []

    def test_to_dict(self, workspace: Path):
        data = check_workspace(workspace, platform="macos").to_dict()
        assert data["valid"] is True
        assert data["package"] == {"name": "axon", "version": "1.2.0"}
        assert len(data["native_inputs"]) == 3

    def test_collects_independent_errors(self, workspace: Path):
        workspace.write_text(
            BUILDPLANE_YML.replace("{role: formatter, name: rustfmt, channel: stable}",
                                   "{role: formatter, name: rustfmt, channel: nightly}")
                          .replace("alpine:${ALPINE_VERSION}", "alpine:${NOPE}")
        )
        result = check_workspace(workspace, platform="windows")
        categories = sorted(e.category for e in result.errors)
        assert categories == ["channel-mismatch", "unresolved-build-context", "unsupported-platform"]
        assert result.package is not None

    def test_warns_on_untagged_context(self, workspace: Path):
        workspace.write_text(BUILDPLANE_YML.replace("alpine:${ALPINE_VERSION}", "alpine"))
        result = check_workspace(workspace, platform="linux")
        assert result.valid
        assert result.warnings == ["Context axon.alpine has no tag or digest and follows :latest."]

    def test_lock_mismatch_reported(self, workspace: Path):
        (workspace.parent / "Cargo.lock").write_text('[[package]]\nname = "clap"\nversion = "3.0.0"\n')
        result = check_workspace(workspace, platform="linux")
        assert [e.category for e in result.errors] == ["lockfile-mismatch"]

    def test_missing_config(self, tmp_path: Path):
        result = check_workspace(tmp_path / "buildplane.yml")
        assert not result.valid
        assert result.errors[0].category == "config"

    def test_warns_without_containers(self, workspace: Path):
        workspace.write_text("completions: []\n")
        result = check_workspace(workspace, platform="linux")
        assert result.valid
        assert result.warnings == ["No container targets defined.", "No completion shells configured."]


class TestRunPackage:
    def test_full_pipeline(self, workspace: Path, registry, tmp_path: Path):
        result = run_package(workspace, registry=registry, platform="linux")

        assert result.status == "ok"
        assert result.artifact.path == tmp_path / "result" / "bin" / "axon"
        assert set(result.completions) == {ShellKind.BASH, ShellKind.FISH, ShellKind.ZSH}
        assert (tmp_path / "result" / "share" / "zsh" / "site-functions" / "_axon").is_file()

    def test_selected_shells(self, workspace: Path, registry, mock_adapter):
        result = run_package(workspace, registry=registry, platform="linux", shells=[ShellKind.FISH])
        assert list(result.completions) == [ShellKind.FISH]
        assert [ctx.action.id for ctx in mock_adapter.call_log] == ["build:axon", "completions:fish"]

    def test_without_completions(self, workspace: Path, registry, mock_adapter):
        result = run_package(workspace, registry=registry, platform="linux", completions=False)
        assert result.completions == {}
        assert mock_adapter.call_count == 1

    def test_partial_completion_failure(self, workspace: Path, registry, mock_adapter):
        mock_adapter.set_failure("completions:bash", "boom")
        result = run_package(workspace, registry=registry, platform="linux")

        assert result.status == "partial"
        assert result.artifact.exists
        assert result.completion_failures == {ShellKind.BASH: "boom"}
        assert set(result.completions) == {ShellKind.FISH, ShellKind.ZSH}
        assert result.to_dict()["completion_failures"] == {"bash": "boom"}

    def test_source_date_epoch_from_environment(self, workspace: Path, registry, monkeypatch):
        monkeypatch.setenv("SOURCE_DATE_EPOCH", "1234567890")
        result = run_package(workspace, registry=registry, platform="linux", completions=False)
        assert int(result.artifact.path.stat().st_mtime) == 1234567890

    def test_invalid_source_date_epoch(self, workspace: Path, registry, mock_adapter, monkeypatch):
        monkeypatch.setenv("SOURCE_DATE_EPOCH", "yesterday")
        with pytest.raises(ConfigError, match="SOURCE_DATE_EPOCH"):
            run_package(workspace, registry=registry, platform="linux")
        assert mock_adapter.call_count == 0

    def test_custom_out_dir(self, workspace: Path, registry, tmp_path: Path):
        out = tmp_path / "dist"
        result = run_package(workspace, registry=registry, platform="linux", out_dir=out)
        assert result.artifact.path == out / "bin" / "axon"
        assert result.completions[ShellKind.BASH].path.is_relative_to(out)

    def test_channel_mismatch_before_build(self, workspace: Path, registry, mock_adapter):
        workspace.write_text(BUILDPLANE_YML.replace("channel: stable}", "channel: beta}", 1))
        with pytest.raises(ChannelMismatch):
            run_package(workspace, registry=registry, platform="linux")
        assert mock_adapter.call_count == 0

    def test_lock_mismatch_before_build(self, workspace: Path, registry, mock_adapter):
        (workspace.parent / "Cargo.lock").unlink()
        with pytest.raises(LockFileMismatch):
            run_package(workspace, registry=registry, platform="linux")
        assert mock_adapter.call_count == 0

    def test_compile_error_skips_completions(self, workspace: Path, registry, mock_adapter):
        mock_adapter.reset()
        mock_adapter.set_failure("build:axon", "error: linker `cc` not found\n")
        with pytest.raises(CompileError):
            run_package(workspace, registry=registry, platform="linux")
        assert mock_adapter.call_count == 1

    def test_result_status(self):
        assert PackageResult().status == "failed"
