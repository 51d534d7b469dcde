"""
Tests for dev shell provisioning and scoped environment overrides.
"""

import os
import sys
from pathlib import Path

import pytest

from buildplane.core.models.config import DevShellConfig, ToolConfig
from buildplane.core.models.devenv import CommandWrapper, DevEnvironment
from buildplane.core.services import platform_deps
from buildplane.core.services.devshell import (
    UNIT_TEST_ARGS,
    WORKSPACE_ARGS,
    default_wrappers,
    materialize,
    provision,
    provision_from_config,
    run_in_session,
)
from buildplane.core.services.toolchain import compose


@pytest.fixture
def toolchain():
    return compose([
        {"role": "compiler", "name": "rustc"},
        {"role": "build-tool", "name": "cargo"},
    ])


@pytest.fixture
def linux():
    return platform_deps.resolve("linux")


@pytest.fixture
def macos():
    return platform_deps.resolve("macos")


class TestWrappers:
    def test_defaults(self):
        names = [w.name for w in default_wrappers()]
        assert names == [
            "cargo-build-all",
            "cargo-clippy-all",
            "cargo-doc-all",
            "cargo-fmt-all",
            "cargo-nextest-all",
            "cargo-test-all",
        ]

    def test_workspace_flags(self, toolchain, linux):
        env = provision(toolchain, linux)
        clippy = env.get_wrapper("cargo-clippy-all")
        assert clippy.argv == ["cargo", "clippy", *WORKSPACE_ARGS]
        assert env.get_wrapper("cargo-test-all").args == list(UNIT_TEST_ARGS)
        assert env.get_wrapper("cargo-nextest-all").command == ["cargo", "nextest", "run"]

    def test_custom_flag_sets(self, toolchain, linux):
        env = provision(toolchain, linux, workspace_args=["--workspace"], unit_test_args=["-p", "axon"])
        assert env.get_wrapper("cargo-build-all").args == ["--workspace"]
        assert env.get_wrapper("cargo-test-all").args == ["-p", "axon"]

    def test_aux_tool_replaces_default(self, toolchain, linux):
        custom = CommandWrapper(name="cargo-test-all", command=["cargo", "test"], args=["--lib"])
        extra = CommandWrapper(name="lint-all", command=["cargo", "fmt"], args=["--check"])
        env = provision(toolchain, linux, aux_tools=[custom, extra])
        assert env.get_wrapper("cargo-test-all").args == ["--lib"]
        assert env.get_wrapper("lint-all") is not None
        assert len(env.wrappers) == 7

    def test_script_appends_caller_args(self):
        wrapper = CommandWrapper(name="w", command=["cargo", "clippy"], args=["--workspace"])
        assert wrapper.script() == '#!/bin/sh\nexec cargo clippy --workspace "$@"\n'

    def test_materialize(self, toolchain, linux, tmp_path: Path):
        env = provision(toolchain, linux)
        written = materialize(env, tmp_path / "bin")
        assert len(written) == 6
        for path in written:
            assert path.read_text().startswith("#!/bin/sh\n")
            assert os.access(path, os.X_OK)


class TestProvision:
    def test_description_only(self, toolchain, macos):
        env = provision(toolchain, macos, library_path=["/opt/libgit2/lib"])
        assert env.toolchain == toolchain.handle
        assert env.platform == "macos"
        assert "darwin.apple_sdk.frameworks.Cocoa" in env.native_inputs
        assert env.prepend == {"DYLD_FALLBACK_LIBRARY_PATH": ["/opt/libgit2/lib"]}
        assert env.set_env["BUILDPLANE_TOOLCHAIN"] == toolchain.handle
        assert "RUSTUP_TOOLCHAIN" not in env.set_env

    def test_nightly_channel_selected_for_wrappers(self, linux):
        nightly = compose([
            {"role": "compiler", "name": "rustc", "channel": "nightly"},
            {"role": "build-tool", "name": "cargo", "channel": "nightly"},
        ])
        env = provision(nightly, linux)
        assert env.set_env["RUSTUP_TOOLCHAIN"] == "nightly"
        assert env.get_wrapper("cargo-build-all").command == ["cargo", "build"]
        assert "export RUSTUP_TOOLCHAIN=nightly" in env.shell_exports()

    def test_linux_library_path(self, toolchain, linux):
        env = provision(toolchain, linux, library_path=[Path("/opt/libgit2/lib")])
        assert env.prepend == {"LD_LIBRARY_PATH": ["/opt/libgit2/lib"]}
        assert env.native_inputs == []

    def test_no_library_path_no_prepend(self, toolchain, linux):
        assert provision(toolchain, linux).prepend == {}

    def test_from_config_resolves_relative_paths(self, toolchain, linux, tmp_path: Path):
        config = DevShellConfig(
            library_path=["vendor/lib", "/usr/local/lib"],
            env={"RUST_BACKTRACE": "1"},
            tools=[ToolConfig(name="cargo-fmt-all", command=["cargo", "fmt"], args=["--all", "--check"])],
        )
        env = provision_from_config(toolchain, linux, config, tmp_path)
        assert env.prepend["LD_LIBRARY_PATH"] == [str((tmp_path / "vendor/lib").resolve()), "/usr/local/lib"]
        assert env.set_env["RUST_BACKTRACE"] == "1"
        assert env.get_wrapper("cargo-fmt-all").argv == ["cargo", "fmt", "--all", "--check"]


class TestOverrides:
    def _env(self) -> DevEnvironment:
        return DevEnvironment(
            toolchain="stable-abc",
            platform="linux",
            prepend={"LD_LIBRARY_PATH": ["/opt/libgit2/lib"]},
            set_env={"BUILDPLANE_TOOLCHAIN": "stable-abc"},
        )

    def test_prepend_keeps_existing(self):
        base = {"LD_LIBRARY_PATH": "/usr/lib"}
        resolved = self._env().overrides(base)
        assert resolved["LD_LIBRARY_PATH"] == os.pathsep.join(["/opt/libgit2/lib", "/usr/lib"])

    def test_prepend_onto_nothing(self):
        assert self._env().overrides({})["LD_LIBRARY_PATH"] == "/opt/libgit2/lib"

    def test_activate_restores(self):
        environ = {"LD_LIBRARY_PATH": "/usr/lib", "HOME": "/home/dev"}
        with self._env().activate(environ) as applied:
            assert environ["LD_LIBRARY_PATH"].startswith("/opt/libgit2/lib")
            assert environ["BUILDPLANE_TOOLCHAIN"] == "stable-abc"
            assert set(applied) == {"LD_LIBRARY_PATH", "BUILDPLANE_TOOLCHAIN"}
        assert environ == {"LD_LIBRARY_PATH": "/usr/lib", "HOME": "/home/dev"}

    def test_activate_restores_on_exception(self):
        environ = {"HOME": "/home/dev"}
        with pytest.raises(RuntimeError):
            with self._env().activate(environ):
                raise RuntimeError("boom")
        assert environ == {"HOME": "/home/dev"}

    def test_activate_process_environment(self, monkeypatch):
        monkeypatch.delenv("BUILDPLANE_TOOLCHAIN", raising=False)
        with self._env().activate():
            assert os.environ["BUILDPLANE_TOOLCHAIN"] == "stable-abc"
        assert "BUILDPLANE_TOOLCHAIN" not in os.environ

    def test_shell_exports(self):
        exports = self._env().shell_exports()
        assert "export BUILDPLANE_TOOLCHAIN=stable-abc" in exports
        assert 'export LD_LIBRARY_PATH=/opt/libgit2/lib"${LD_LIBRARY_PATH:+:$LD_LIBRARY_PATH}"' in exports


class TestRunInSession:
    def test_command_sees_overrides(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("BUILDPLANE_TOOLCHAIN", raising=False)
        env = DevEnvironment(toolchain="stable-abc", platform="linux", set_env={"BUILDPLANE_TOOLCHAIN": "stable-abc"})
        out = tmp_path / "seen"
        code = run_in_session(env, [
            sys.executable, "-c",
            f"import os; open({str(out)!r}, 'w').write(os.environ['BUILDPLANE_TOOLCHAIN'])",
        ])
        assert code == 0
        assert out.read_text() == "stable-abc"
        assert "BUILDPLANE_TOOLCHAIN" not in os.environ

    def test_exit_code_passed_through(self):
        env = DevEnvironment(toolchain="stable-abc", platform="linux")
        assert run_in_session(env, [sys.executable, "-c", "raise SystemExit(3)"]) == 3
