"""Unit tests for the compensation stack (web3_scaffold.compensation).

Tests cover:
- run_step registers undo only on success
- Unwind order is strictly LIFO
- Step K failing invokes exactly K-1 undo actions
- A failing undo does not stop the unwind and is never raised
- Sync and async actions, interrupts, discard
"""

from __future__ import annotations

import asyncio

import pytest

from web3_scaffold.compensation import CompensationStack, UnwindFailure


pytestmark = pytest.mark.unit


class StepFailed(Exception):
    pass


def _recorder(calls: list[str], name: str):
    def _undo() -> None:
        calls.append(name)

    return _undo


# ---------------------------------------------------------------------------
# run_step
# ---------------------------------------------------------------------------


class TestRunStep:
    async def test_success_pushes_undo(self):
        stack = CompensationStack()
        result = await stack.run_step(lambda: 42, lambda: None, label="one")
        assert result == 42
        assert len(stack) == 1
        assert stack.labels == ["one"]

    async def test_async_action_is_awaited(self):
        stack = CompensationStack()

        async def action() -> str:
            await asyncio.sleep(0)
            return "done"

        assert await stack.run_step(action, lambda: None) == "done"
        assert len(stack) == 1

    async def test_failure_does_not_push_own_undo(self):
        stack = CompensationStack()
        calls: list[str] = []

        def boom() -> None:
            raise StepFailed("nope")

        with pytest.raises(StepFailed):
            await stack.run_step(boom, _recorder(calls, "own"), label="failing")
        assert calls == []
        assert len(stack) == 0

    async def test_failure_propagates_original_exception(self):
        stack = CompensationStack()
        error = StepFailed("disk full")

        def boom() -> None:
            raise error

        with pytest.raises(StepFailed) as excinfo:
            await stack.run_step(boom, lambda: None)
        assert excinfo.value is error

    async def test_step_k_failure_runs_k_minus_one_undos_in_reverse(self):
        stack = CompensationStack()
        calls: list[str] = []
        for name in ("U1", "U2", "U3"):
            await stack.run_step(lambda: None, _recorder(calls, name), label=name)

        def boom() -> None:
            raise StepFailed("step 4")

        with pytest.raises(StepFailed):
            await stack.run_step(boom, _recorder(calls, "U4"), label="U4")

        assert calls == ["U3", "U2", "U1"]
        assert len(stack) == 0

    async def test_interrupt_also_unwinds(self):
        stack = CompensationStack()
        calls: list[str] = []
        await stack.run_step(lambda: None, _recorder(calls, "U1"))

        def interrupted() -> None:
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            await stack.run_step(interrupted, lambda: None)
        assert calls == ["U1"]

    async def test_unwind_happens_once_per_failure(self):
        stack = CompensationStack()
        calls: list[str] = []
        await stack.run_step(lambda: None, _recorder(calls, "U1"))

        def boom() -> None:
            raise StepFailed()

        with pytest.raises(StepFailed):
            await stack.run_step(boom, lambda: None)
        with pytest.raises(StepFailed):
            await stack.run_step(boom, lambda: None)
        assert calls == ["U1"]


# ---------------------------------------------------------------------------
# unwind_all
# ---------------------------------------------------------------------------


class TestUnwindAll:
    def test_lifo_order(self):
        stack = CompensationStack()
        calls: list[str] = []
        for name in ("a", "b", "c"):
            stack.push(_recorder(calls, name), name)
        failures = stack.unwind_all()
        assert calls == ["c", "b", "a"]
        assert failures == []
        assert len(stack) == 0

    def test_failing_undo_does_not_stop_the_rest(self):
        stack = CompensationStack()
        calls: list[str] = []

        def broken() -> None:
            calls.append("U2")
            raise OSError("permission denied")

        stack.push(_recorder(calls, "U1"), "U1")
        stack.push(broken, "U2")
        stack.push(_recorder(calls, "U3"), "U3")

        failures = stack.unwind_all()

        assert calls == ["U3", "U2", "U1"]
        assert len(failures) == 1
        assert isinstance(failures[0], UnwindFailure)
        assert failures[0].label == "U2"
        assert isinstance(failures[0].error, OSError)

    def test_failing_undo_is_reported_as_warning(self, reporter, console_buffer):
        stack = CompensationStack(reporter)

        def broken() -> None:
            raise OSError("read-only file system")

        stack.push(broken, "contracts")
        stack.unwind_all()

        output = console_buffer.getvalue()
        assert "Undo for 'contracts' failed" in output
        assert "read-only file system" in output

    def test_failed_undo_is_not_retried(self):
        stack = CompensationStack()
        attempts: list[int] = []

        def broken() -> None:
            attempts.append(1)
            raise RuntimeError("boom")

        stack.push(broken)
        stack.unwind_all()
        stack.unwind_all()
        assert len(attempts) == 1

    def test_empty_stack(self):
        assert CompensationStack().unwind_all() == []


class TestDiscard:
    def test_discard_forgets_undos(self):
        stack = CompensationStack()
        calls: list[str] = []
        stack.push(_recorder(calls, "a"))
        stack.discard()
        stack.unwind_all()
        assert calls == []
        assert len(stack) == 0

    def test_default_label_uses_qualname(self):
        stack = CompensationStack()

        def remove_contracts() -> None:
            pass

        stack.push(remove_contracts)
        assert stack.labels[0].endswith("remove_contracts")
