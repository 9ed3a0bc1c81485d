"""Compensation (undo) stack for all-or-nothing scaffolding.

Every successful step pushes an undo action.  When a step fails, the actions
pushed so far are invoked most-recent-first and the original error is
re-raised.  Undo failures are reported as warnings and never interrupt the
unwind.

Quick usage::

    stack = CompensationStack(reporter)
    await stack.run_step(write_contracts, journal.rollback, label="contracts")
    ...
    stack.discard()  # commit once every step has succeeded
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .reporting import Reporter

UndoAction = Callable[[], Any]


@dataclass
class UnwindFailure:
    """An undo action that raised during unwind."""

    label: str
    error: BaseException


class CompensationStack:
    """LIFO of zero-argument undo actions."""

    def __init__(self, reporter: Reporter | None = None) -> None:
        self.reporter = reporter
        self._entries: list[tuple[str, UndoAction]] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def labels(self) -> list[str]:
        """Labels of the registered undo actions, oldest first."""
        return [label for label, _ in self._entries]

    def push(self, undo: UndoAction, label: str | None = None) -> None:
        """Register *undo* without running an action."""
        self._entries.append((label or _describe(undo), undo))

    async def run_step(
        self,
        action: Callable[[], Any],
        undo: UndoAction,
        label: str | None = None,
    ) -> Any:
        """Run *action*; on success register *undo*, on failure unwind and re-raise.

        *action* may be a plain callable or return an awaitable.  Interrupts
        (``KeyboardInterrupt``, task cancellation) unwind as well.
        """
        label = label or _describe(action)
        try:
            result = action()
            if inspect.isawaitable(result):
                result = await result
        except BaseException as exc:
            if self.reporter is not None:
                self.reporter.debug("Step failed, unwinding", step=label, error=repr(exc))
            self.unwind_all()
            raise
        self.push(undo, label)
        return result

    def unwind_all(self) -> list[UnwindFailure]:
        """Pop and invoke every undo action, most recently pushed first.

        Never raises.  Each failing action is reported and collected; the
        remaining actions still run.
        """
        failures: list[UnwindFailure] = []
        while self._entries:
            label, undo = self._entries.pop()
            try:
                undo()
            except Exception as exc:
                failures.append(UnwindFailure(label, exc))
                if self.reporter is not None:
                    self.reporter.warning(
                        f"Undo for '{label}' failed; continuing", step=label, error=str(exc)
                    )
            else:
                if self.reporter is not None:
                    self.reporter.debug("Undid step", step=label)
        return failures

    def discard(self) -> None:
        """Forget every registered undo action (the run has committed)."""
        self._entries.clear()


def _describe(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)
