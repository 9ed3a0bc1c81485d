"""Main scaffolding orchestrator.

Takes a ``ScaffoldConfig`` and generates a pnpm/Turborepo NFT monorepo:
root workspace files, a Hardhat ``contracts`` package, a Next.js ``frontend``,
an Express ``backend``, a ``scripts`` package and markdown docs.

Generation is all-or-nothing.  Each step writes through its own
``FileJournal``; once the step succeeds its ``rollback`` is pushed onto a
``CompensationStack``.  If a later step fails, that step reverts its own
partial writes and the stack then reverts every earlier step, newest first.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any

from ..compensation import CompensationStack
from ..config import ScaffoldConfig
from ..reporting import Reporter
from ..utils import run_command
from ..writer import FileJournal, RollbackError
from . import manifests
from .templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ScaffoldError(Exception):
    """Raised when a generation step fails; earlier steps have been undone."""

    def __init__(self, step: str, cause: BaseException) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"Step '{step}' failed: {cause}")


class ConflictError(Exception):
    """Raised when generated files would overwrite existing ones without ``force``."""

    def __init__(self, paths: list[Path]) -> None:
        self.paths = paths
        preview = ", ".join(str(p) for p in paths[:5])
        more = f" (+{len(paths) - 5} more)" if len(paths) > 5 else ""
        super().__init__(f"{len(paths)} file(s) already exist: {preview}{more}")


class CommandFailedError(Exception):
    """Raised when an external command exits non-zero."""

    def __init__(self, cmd: list[str], returncode: int, stderr: str) -> None:
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"`{' '.join(cmd)}` exited with {returncode}: {stderr[-500:]}")


# ---------------------------------------------------------------------------
# Plan / result models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeneratedFile:
    """One output file; *path* is relative to the target directory (POSIX)."""

    path: str
    content: str


@dataclass
class ScaffoldStep:
    """A named group of files written (and undone) together."""

    name: str
    description: str
    files: list[GeneratedFile] = field(default_factory=list)


@dataclass
class ScaffoldResult:
    root: Path
    steps_completed: list[str] = field(default_factory=list)
    files_written: list[str] = field(default_factory=list)
    directories_created: int = 0
    duration: float = 0.0


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class ProjectGenerator:
    """Plans and writes the monorepo described by a ``ScaffoldConfig``.

    ``plan()`` is pure: it renders every file in memory, so the same config
    always produces the same ``(path, content)`` pairs.  ``generate()`` writes
    the plan to disk and runs the optional ``git init`` / ``pnpm install``
    steps.
    """

    def __init__(
        self,
        config: ScaffoldConfig,
        reporter: Reporter | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.reporter = reporter or Reporter(level=config.log_level, log_file=config.log_file)
        self.renderer = renderer or TemplateRenderer()

    @property
    def root(self) -> Path:
        return self.config.target_dir

    # -- Planning ----------------------------------------------------------

    def plan(self) -> list[ScaffoldStep]:
        """Return the ordered file-producing steps for this config."""
        ctx = self._build_context()
        steps = [
            self._workspace_step(ctx),
            self._contracts_step(ctx),
            self._frontend_step(ctx),
        ]
        if not self.config.minimal:
            steps.extend([
                self._backend_step(ctx),
                self._scripts_step(ctx),
                self._docs_step(ctx),
            ])
        return steps

    def conflicts(self, steps: list[ScaffoldStep] | None = None) -> list[Path]:
        """Existing paths the plan would overwrite."""
        steps = steps if steps is not None else self.plan()
        return [
            self.root / f.path
            for step in steps
            for f in step.files
            if (self.root / f.path).exists()
        ]

    # -- Generation --------------------------------------------------------

    async def generate(self) -> ScaffoldResult:
        """Write the planned files and run the opt-in command steps.

        Returns:
            A ``ScaffoldResult`` describing what was written.

        Raises:
            ConflictError: Files exist and ``force`` is off (nothing written).
            ScaffoldError: A step failed; everything written so far was undone.
        """
        started = time.monotonic()
        if self.root.exists() and not self.root.is_dir():
            raise ConflictError([self.root])

        steps = self.plan()
        existing = self.conflicts(steps)
        if existing and not self.config.force:
            raise ConflictError(existing)
        for path in existing:
            self.reporter.warning("Overwriting existing file", path=str(path))

        actions: list[tuple[str, str, Callable[[FileJournal], Awaitable[Any]]]] = [
            (step.name, step.description, partial(self._write_files, step))
            for step in steps
        ]
        if self.config.init_git:
            actions.append(("git", "Initialising git repository", self._git_init))
        if self.config.install:
            actions.append(("install", "Installing dependencies with pnpm", self._install))

        result = ScaffoldResult(root=self.root)
        journals: list[FileJournal] = []
        stack = CompensationStack(self.reporter)
        total = len(actions)

        for index, (name, description, action) in enumerate(actions, start=1):
            self.reporter.info(f"[{index}/{total}] {description}", step=name)
            journal = FileJournal()
            try:
                await stack.run_step(
                    partial(self._guarded, name, action, journal),
                    journal.rollback,
                    label=name,
                )
            except Exception as exc:
                self.reporter.error(
                    f"Step '{name}' failed; rolled back {index - 1} completed step(s)",
                    step=name,
                    error=str(exc),
                )
                raise ScaffoldError(name, exc) from exc
            journals.append(journal)
            result.steps_completed.append(name)

        stack.discard()
        for step in steps:
            result.files_written.extend(f.path for f in step.files)
        result.directories_created = sum(len(j.created_dirs) for j in journals)
        result.duration = time.monotonic() - started
        return result

    async def _guarded(
        self,
        name: str,
        action: Callable[[FileJournal], Awaitable[Any]],
        journal: FileJournal,
    ) -> Any:
        """Run one step; if it fails, revert whatever it already wrote."""
        try:
            return await action(journal)
        except BaseException:
            try:
                journal.rollback()
            except RollbackError as exc:
                self.reporter.warning(
                    f"Could not fully revert partial step '{name}'", step=name, error=str(exc)
                )
            raise

    async def _write_files(self, step: ScaffoldStep, journal: FileJournal) -> None:
        # One worker call per step; on cancellation wait for it to finish so
        # the journal is complete before `_guarded` rolls it back.
        writing = asyncio.ensure_future(asyncio.to_thread(self._write_step, step, journal))
        try:
            await asyncio.shield(writing)
        except asyncio.CancelledError:
            await writing
            raise
        for generated in step.files:
            self.reporter.debug("Wrote file", step=step.name, path=generated.path)

    def _write_step(self, step: ScaffoldStep, journal: FileJournal) -> None:
        journal.ensure_dir(self.root)
        for generated in step.files:
            journal.write(self.root / generated.path, generated.content)

    # -- Command steps -----------------------------------------------------

    async def _git_init(self, journal: FileJournal) -> None:
        git_dir = self.root / ".git"
        if git_dir.exists():
            self.reporter.info("Git repository already present; skipping init", step="git")
            return
        await self._run_tracked(["git", "init", "--quiet"], journal, [git_dir])

    async def _install(self, journal: FileJournal) -> None:
        candidates = [self.root / "node_modules", self.root / "pnpm-lock.yaml"]
        candidates += [
            self.root / package / "node_modules"
            for package in manifests.workspace_packages(self.config)
        ]
        await self._run_tracked(["pnpm", "install"], journal, candidates, timeout=900)

    async def _run_tracked(
        self,
        cmd: list[str],
        journal: FileJournal,
        candidates: list[Path],
        timeout: int = 120,
    ) -> None:
        """Run *cmd* in the project root and journal the *candidates* it creates."""
        before = {path for path in candidates if path.exists()}
        returncode, _stdout, stderr = await run_command(cmd, cwd=self.root, timeout=timeout)
        for path in candidates:
            if path not in before and path.exists():
                journal.track_created(path)
        if returncode != 0:
            raise CommandFailedError(cmd, returncode, stderr)

    # -- Context building --------------------------------------------------

    def _build_context(self) -> dict[str, Any]:
        """Build the Jinja2 template context from the project config."""
        return {
            **self.config.context(),
            "packages": manifests.workspace_packages(self.config),
        }

    # -- Step builders -----------------------------------------------------

    def _workspace_step(self, ctx: dict[str, Any]) -> ScaffoldStep:
        files = [
            GeneratedFile("package.json", manifests.dump_json(manifests.root_package_json(self.config))),
            GeneratedFile("turbo.json", manifests.dump_json(manifests.turbo_json())),
        ]
        for template_name, output_name in (
            ("workspace/pnpm-workspace.yaml.j2", "pnpm-workspace.yaml"),
            ("workspace/gitignore.j2", ".gitignore"),
            ("workspace/env.example.j2", ".env.example"),
            ("workspace/npmrc.j2", ".npmrc"),
            ("workspace/README.md.j2", "README.md"),
        ):
            files.append(GeneratedFile(output_name, self.renderer.render(template_name, ctx)))
        return ScaffoldStep("workspace", "Creating workspace manifests", files)

    def _contracts_step(self, ctx: dict[str, Any]) -> ScaffoldStep:
        files = [
            GeneratedFile(
                "contracts/package.json",
                manifests.dump_json(manifests.contracts_package_json(self.config)),
            ),
            GeneratedFile(
                "contracts/tsconfig.json",
                manifests.dump_json(
                    {**manifests.base_tsconfig(), "include": ["./scripts", "./test", "./typechain-types"]}
                ),
            ),
            *self._tree("contracts", ctx),
            GeneratedFile("contracts/deployments/.gitkeep", ""),
        ]
        return ScaffoldStep("contracts", "Creating contracts package", files)

    def _frontend_step(self, ctx: dict[str, Any]) -> ScaffoldStep:
        files = [
            GeneratedFile(
                "frontend/package.json",
                manifests.dump_json(manifests.frontend_package_json(self.config)),
            ),
            GeneratedFile("frontend/tsconfig.json", manifests.dump_json(manifests.frontend_tsconfig())),
            *self._tree("frontend", ctx),
        ]
        return ScaffoldStep("frontend", "Creating frontend package", files)

    def _backend_step(self, ctx: dict[str, Any]) -> ScaffoldStep:
        files = [
            GeneratedFile(
                "backend/package.json",
                manifests.dump_json(manifests.backend_package_json(self.config)),
            ),
            GeneratedFile(
                "backend/tsconfig.json",
                manifests.dump_json(
                    {**manifests.base_tsconfig(outDir="dist", rootDir="src"), "include": ["src"]}
                ),
            ),
            *self._tree("backend", ctx),
        ]
        return ScaffoldStep("backend", "Creating backend package", files)

    def _scripts_step(self, ctx: dict[str, Any]) -> ScaffoldStep:
        files = [
            GeneratedFile(
                "scripts/package.json",
                manifests.dump_json(manifests.scripts_package_json(self.config)),
            ),
            GeneratedFile(
                "scripts/tsconfig.json",
                manifests.dump_json({**manifests.base_tsconfig(), "include": ["src"]}),
            ),
            *self._tree("scripts", ctx),
        ]
        return ScaffoldStep("scripts", "Creating scripts package", files)

    def _docs_step(self, ctx: dict[str, Any]) -> ScaffoldStep:
        return ScaffoldStep("docs", "Writing documentation", self._tree("docs", ctx))

    def _tree(self, prefix: str, ctx: dict[str, Any]) -> list[GeneratedFile]:
        return [
            GeneratedFile(f"{prefix}/{rel}", content)
            for rel, content in self.renderer.render_tree(prefix, ctx).items()
        ]
