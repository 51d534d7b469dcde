"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from buildplane.adapters.base import ExecutionContext
from buildplane.adapters.mock import MockAdapter
from buildplane.adapters.registry import AdapterRegistry
from buildplane.core.models.action import Receipt

CARGO_TOML = textwrap.dedent("""\
    [workspace]
    members = ["axon", "crates/base"]
    resolver = "2"

    [workspace.package]
    version = "1.2.0"
    edition = "2021"

    [workspace.metadata.crane]
    name = "axon"

    [workspace.dependencies]
    clap = { version = "4.5", features = ["derive"] }
    serde = "1.0"
    tokio = "~1.40"
    base = { path = "crates/base" }
""")

CARGO_LOCK = textwrap.dedent("""\
    version = 4

    [[package]]
    name = "axon"
    version = "1.2.0"

    [[package]]
    name = "base"
    version = "1.2.0"

    [[package]]
    name = "clap"
    version = "4.5.20"
    source = "registry+https://github.com/rust-lang/crates.io-index"
    checksum = "b97f376d85a664d5837dbae44bf546e6477a679ff6610010f17276f686d867e8"

    [[package]]
    name = "serde"
    version = "1.0.210"
    source = "registry+https://github.com/rust-lang/crates.io-index"

    [[package]]
    name = "tokio"
    version = "1.40.0"
    source = "registry+https://github.com/rust-lang/crates.io-index"
""")

BUILDPLANE_YML = textwrap.dedent("""\
    workspace: .
    toolchain:
      components:
        - {role: compiler, name: rustc, channel: stable}
        - {role: build-tool, name: cargo, channel: stable}
        - {role: linter, name: clippy, channel: stable}
        - {role: formatter, name: rustfmt, channel: stable}
    completions: [bash, fish, zsh]
    devshell:
      library_path: [/opt/libgit2/lib]
    containers:
      variables:
        ALPINE_VERSION: "3.20"
      groups:
        default: [axon]
      targets:
        axon:
          dockerfile: dev-support/containers/alpine/Containerfile
          target: axon
          platforms: [linux/amd64, linux/arm64]
          contexts:
            rust: docker.io/library/rust:1.83-alpine
            alpine: alpine:${ALPINE_VERSION}
          args:
            RUSTC_WRAPPER: null
            SCCACHE_GHA_ENABLED: "off"
          labels:
            org.opencontainers.image.description: Kubernetes helper
""")

FAKE_BINARY = b"\x7fELF fake axon binary\n"


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace with Cargo.toml, Cargo.lock and buildplane.yml.  Returns the config path."""
    (tmp_path / "Cargo.toml").write_text(CARGO_TOML)
    (tmp_path / "Cargo.lock").write_text(CARGO_LOCK)
    config = tmp_path / "buildplane.yml"
    config.write_text(BUILDPLANE_YML)
    return config


def fake_cargo(binary_name: str = "axon", content: bytes = FAKE_BINARY):
    """Mock handler that behaves like a successful ``cargo build --release``."""

    def _handler(ctx: ExecutionContext) -> Receipt:
        argv = ctx.action.argv
        target_dir = Path(ctx.working_dir) / "target"
        if "--target-dir" in argv:
            target_dir = Path(argv[argv.index("--target-dir") + 1])
        out = target_dir / "release" / binary_name
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(content)
        return Receipt.success(adapter="shell", action_id=ctx.action.id, stderr="   Finished release\n")

    return _handler


def completion_receipt(shell: str) -> Receipt:
    return Receipt.success(
        adapter="shell",
        action_id=f"completions:{shell}",
        stdout=f"# {shell} completion for axon\ncomplete axon\n",
    )


@pytest.fixture
def mock_adapter() -> MockAdapter:
    """A mock shell adapter wired for a successful build and completions."""
    mock = MockAdapter(adapter_name="shell")
    mock.set_handler("build:axon", fake_cargo())
    for shell in ("bash", "fish", "zsh"):
        mock.set_response(f"completions:{shell}", completion_receipt(shell))
    return mock


@pytest.fixture
def registry(mock_adapter: MockAdapter) -> AdapterRegistry:
    reg = AdapterRegistry()
    reg.register(mock_adapter)
    return reg
