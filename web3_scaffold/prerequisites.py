"""Checks for the external tools a generated monorepo depends on.

Tools are probed with ``<tool> --version``; only the exit code and the first
``X.Y.Z`` in the output matter.
"""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass

from .config import ScaffoldConfig
from .utils import run_command

_VERSION_RE = re.compile(r"v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


class PrerequisiteError(Exception):
    """Raised when required tools are missing or older than required."""

    def __init__(self, failures: list["ToolStatus"]) -> None:
        self.failures = failures
        super().__init__(
            "Missing prerequisites: " + ", ".join(status.describe() for status in failures)
        )


@dataclass
class ToolStatus:
    """Result of probing one executable."""

    name: str
    minimum: str
    found: bool = False
    version: str | None = None

    @property
    def ok(self) -> bool:
        if not self.found or self.version is None:
            return False
        return parse_version(self.version) >= parse_version(self.minimum)

    def describe(self) -> str:
        if not self.found:
            return f"{self.name} not found (need >= {self.minimum})"
        if self.version is None:
            return f"{self.name} version unknown (need >= {self.minimum})"
        if not self.ok:
            return f"{self.name} {self.version} is too old (need >= {self.minimum})"
        return f"{self.name} {self.version}"


def parse_version(text: str) -> tuple[int, int, int]:
    """Extract a ``(major, minor, patch)`` tuple from tool output.

    Examples::

        parse_version("v20.11.1") -> (20, 11, 1)
        parse_version("git version 2.43.0") -> (2, 43, 0)
        parse_version("9.1") -> (9, 1, 0)
    """
    match = _VERSION_RE.search(text.strip())
    if not match:
        raise ValueError(f"no version number in {text!r}")
    return tuple(int(part or 0) for part in match.groups())  # type: ignore[return-value]


async def check_tool(name: str, minimum: str, timeout: int = 30) -> ToolStatus:
    """Probe *name* on ``PATH`` and compare its version with *minimum*."""
    status = ToolStatus(name=name, minimum=minimum)
    executable = shutil.which(name)
    if executable is None:
        return status

    status.found = True
    returncode, stdout, stderr = await run_command([executable, "--version"], timeout=timeout)
    if returncode != 0:
        return status
    try:
        major, minor, patch = parse_version(stdout or stderr)
    except ValueError:
        return status
    status.version = f"{major}.{minor}.{patch}"
    return status


async def check_prerequisites(config: ScaffoldConfig) -> list[ToolStatus]:
    """Check every tool the run needs.

    ``node`` and ``pnpm`` are always required; ``git`` only when the run will
    initialise a repository.

    Raises:
        PrerequisiteError: If any tool is missing or too old.
    """
    minimums = config.prerequisites.minimums()
    tools = ["node", "pnpm"]
    if config.init_git:
        tools.append("git")

    statuses = [await check_tool(tool, minimums[tool]) for tool in tools]
    failures = [status for status in statuses if not status.ok]
    if failures:
        raise PrerequisiteError(failures)
    return statuses
