"""Shared pytest fixtures for the web3-scaffold test suite.

Provides reusable fixtures for:
- Temporary target directories
- Config factories
- Reporters that capture console output instead of printing it
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Callable

import pytest
from rich.console import Console

from web3_scaffold.config import ScaffoldConfig
from web3_scaffold.reporting import Reporter


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    """Target directory for a generated project (not created yet)."""
    return tmp_path / "bushido-nft"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep W3S_* variables from the developer's shell out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("W3S_"):
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

@pytest.fixture
def make_config(target_dir: Path) -> Callable[..., ScaffoldConfig]:
    """Factory for configs pointing at ``target_dir`` with prerequisites skipped."""

    def _make(**overrides: Any) -> ScaffoldConfig:
        values: dict[str, Any] = {
            "target_dir": target_dir,
            "skip_prerequisites": True,
        }
        values.update(overrides)
        return ScaffoldConfig(**values)

    return _make


@pytest.fixture
def config(make_config) -> ScaffoldConfig:
    """Full (non-minimal) config for ``target_dir``."""
    return make_config()


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

@pytest.fixture
def console_buffer() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(console_buffer: io.StringIO) -> Reporter:
    """Debug-level reporter writing to an in-memory console."""
    console = Console(file=console_buffer, force_terminal=False, width=200)
    return Reporter(level="debug", console=console)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def snapshot(root: Path) -> dict[str, bytes]:
    """Map every file under *root* (relative POSIX path) to its bytes."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def tree_snapshot() -> Callable[[Path], dict[str, bytes]]:
    return snapshot
