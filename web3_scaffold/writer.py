"""Atomic file writing and per-step change journals.

``write_file`` writes to a temporary sibling and renames it into place, so a
reader sees either the old content or the new content, never a mix.

``FileJournal`` is the write sink for one scaffolding step.  It remembers what
the step changed so that ``rollback`` can put the filesystem back:

* directories it created are removed (deepest first),
* files it created are deleted,
* files it overwrote get their original bytes back.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path


class RollbackError(Exception):
    """Raised when one or more entries of a journal could not be reverted."""

    def __init__(self, failures: list[tuple[Path, OSError]]) -> None:
        self.failures = failures
        detail = "; ".join(f"{path}: {exc}" for path, exc in failures)
        super().__init__(f"{len(failures)} path(s) could not be reverted: {detail}")


# ---------------------------------------------------------------------------
# Atomic write
# ---------------------------------------------------------------------------


def write_file(path: str | Path, content: str | bytes) -> Path:
    """Atomically replace *path* with *content*.

    Parent directories are created.  The data is written to a temp file in the
    same directory, flushed to disk, and moved over *path* with
    ``os.replace``.  On any failure the temp file is removed and *path* is left
    as it was.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8") if isinstance(content, str) else content

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        if target.exists():
            shutil.copymode(target, tmp_name)
        else:
            # mkstemp creates 0600 files
            os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return target


# ---------------------------------------------------------------------------
# Journal
# ---------------------------------------------------------------------------


@dataclass
class FileJournal:
    """Records the filesystem changes of one step so they can be reverted."""

    created_dirs: list[Path] = field(default_factory=list)
    created_files: list[Path] = field(default_factory=list)
    overwritten: dict[Path, bytes] = field(default_factory=dict)

    @property
    def files_written(self) -> int:
        return len(self.created_files) + len(self.overwritten)

    def ensure_dir(self, path: str | Path) -> Path:
        """Create *path* and any missing parents, recording each new directory."""
        directory = Path(path)
        missing: list[Path] = []
        probe = directory
        while not probe.exists():
            missing.append(probe)
            if probe.parent == probe:
                break
            probe = probe.parent
        for new_dir in reversed(missing):
            new_dir.mkdir()
            self.created_dirs.append(new_dir)
        return directory

    def write(self, path: str | Path, content: str | bytes) -> Path:
        """Atomically write *content* to *path*, remembering how to undo it."""
        target = Path(path)
        self.ensure_dir(target.parent)
        existed = target.is_file()
        if existed and target not in self.overwritten and target not in self.created_files:
            self.overwritten[target] = target.read_bytes()
        write_file(target, content)
        if not existed:
            self.created_files.append(target)
        return target

    def track_created(self, path: str | Path) -> None:
        """Record a file or directory tree created outside the journal."""
        target = Path(path)
        if target.is_dir():
            self.created_dirs.append(target)
        else:
            self.created_files.append(target)

    def rollback(self) -> None:
        """Revert every recorded change.

        Every entry is attempted; failures are collected and raised together
        as ``RollbackError`` at the end.  The journal is empty afterwards.
        """
        failures: list[tuple[Path, OSError]] = []

        for target, original in self.overwritten.items():
            try:
                write_file(target, original)
            except OSError as exc:
                failures.append((target, exc))

        for target in reversed(self.created_files):
            try:
                target.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                failures.append((target, exc))

        for directory in reversed(self.created_dirs):
            try:
                _remove_dir(directory)
            except FileNotFoundError:
                pass
            except OSError as exc:
                failures.append((directory, exc))

        self.created_dirs.clear()
        self.created_files.clear()
        self.overwritten.clear()

        if failures:
            raise RollbackError(failures)


def _remove_dir(directory: Path) -> None:
    """Remove a directory this run created, including anything left inside it."""
    if directory.is_symlink() or not directory.is_dir():
        directory.unlink()
        return
    shutil.rmtree(directory)
