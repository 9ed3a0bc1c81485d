"""Status reporting for scaffolding runs.

Maps a small set of severities to coloured Rich console lines and, when a log
file is configured, mirrors every record as one JSON object per line::

    {"ts": "2026-01-01T12:00:00+00:00", "level": "error", "message": "...", "step": "backend"}

Records carry free-form key/value fields; the console shows them dimmed after
the message.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from .utils import console as default_console


class Severity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @property
    def color(self) -> str:
        return _COLORS[self]

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


# success is informational: it shows whenever info does
_RANKS: dict[Severity, int] = {
    Severity.DEBUG: 10,
    Severity.INFO: 20,
    Severity.SUCCESS: 20,
    Severity.WARNING: 30,
    Severity.ERROR: 40,
}

_COLORS: dict[Severity, str] = {
    Severity.DEBUG: "dim",
    Severity.INFO: "cyan",
    Severity.SUCCESS: "green",
    Severity.WARNING: "yellow",
    Severity.ERROR: "red",
}

_SYMBOLS: dict[Severity, str] = {
    Severity.DEBUG: "·",
    Severity.INFO: "•",
    Severity.SUCCESS: "✓",
    Severity.WARNING: "!",
    Severity.ERROR: "✗",
}


class Reporter:
    """Console + JSON-lines status reporter.

    Attributes:
        level: Minimum severity that is printed and logged.
        log_file: Optional JSON-lines file; appended to, never truncated.
    """

    def __init__(
        self,
        level: str | Severity = Severity.INFO,
        log_file: str | Path | None = None,
        console: Console | None = None,
    ) -> None:
        self.level = Severity(level)
        self.log_file = Path(log_file) if log_file else None
        self.console = console or default_console
        self.counts: dict[Severity, int] = {s: 0 for s in Severity}

        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

    # -- Public API --------------------------------------------------------

    def enabled(self, severity: str | Severity) -> bool:
        """Whether records of *severity* pass the configured level."""
        return Severity(severity).rank >= self.level.rank

    def log(self, severity: str | Severity, message: str, **fields: Any) -> None:
        """Emit one record if *severity* passes the configured level."""
        severity = Severity(severity)
        if not self.enabled(severity):
            return
        self.counts[severity] += 1
        self._print(severity, message, fields)
        if self.log_file is not None:
            self._append(severity, message, fields)

    def debug(self, message: str, **fields: Any) -> None:
        self.log(Severity.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log(Severity.INFO, message, **fields)

    def success(self, message: str, **fields: Any) -> None:
        self.log(Severity.SUCCESS, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log(Severity.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self.log(Severity.ERROR, message, **fields)

    def log_hint(self) -> str:
        """Tell the user where to find details about a failure."""
        if self.log_file is not None:
            return f"See {self.log_file} for details."
        return "Re-run with --log-file <path> -v to capture details."

    # -- Internal helpers --------------------------------------------------

    def _print(self, severity: Severity, message: str, fields: dict[str, Any]) -> None:
        line = (
            f"[bold {severity.color}]{severity.symbol}[/bold {severity.color}] "
            f"[{severity.color}]{escape(message)}[/{severity.color}]"
        )
        if fields:
            rendered = " ".join(f"{k}={v}" for k, v in fields.items())
            line += f" [dim]{escape(rendered)}[/dim]"
        self.console.print(line, highlight=False)

    def _append(self, severity: Severity, message: str, fields: dict[str, Any]) -> None:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": severity.value,
            "message": message,
            **fields,
        }
        with self.log_file.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
