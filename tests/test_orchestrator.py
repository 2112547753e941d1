"""Tests for the setup orchestrator."""

import threading

import pytest
from fakes import BlockingRunner

from oiinit.core.orchestrator import (
    CANCEL_MESSAGE,
    DONE_MESSAGE,
    START_MESSAGE,
    OrchestratorState,
    SetupOrchestrator,
    SetupTask,
)


def noop_task(name, calls=None):
    def effect(context):
        if calls is not None:
            calls.append(name)

    return SetupTask(name=name, message=f"Running {name}...", effect=effect)


class TestSetupOrchestrator:
    """Test suite for SetupOrchestrator."""

    def test_requires_tasks(self, reporter):
        with pytest.raises(ValueError, match="At least one setup task"):
            SetupOrchestrator([], reporter)

    def test_runs_tasks_in_order(self, sink, reporter):
        calls = []
        tasks = [noop_task(name, calls) for name in ("a", "b", "c", "d")]
        orchestrator = SetupOrchestrator(tasks, reporter, step_delay=0)

        state = orchestrator.run()

        assert state is OrchestratorState.COMPLETED
        assert calls == ["a", "b", "c", "d"]
        assert sink.outputs == [
            START_MESSAGE,
            "Running a...",
            "Running b...",
            "Running c...",
            "Running d...",
            DONE_MESSAGE,
        ]

    def test_percent_monotonic_and_ends_at_100(self, sink, reporter):
        tasks = [noop_task(str(i)) for i in range(3)]
        SetupOrchestrator(tasks, reporter, step_delay=0).run()

        percents = sink.percents
        assert percents == [0, 33, 66, 100]
        assert percents == sorted(percents)

    def test_complete_fires_once(self, sink, reporter):
        SetupOrchestrator([noop_task("a")], reporter, step_delay=0).run()
        assert sink.completions == ["completed"]

    def test_failing_task_does_not_stop_sequence(self, sink, reporter):
        """A failing effect is reported as a status line and the next task still runs."""
        calls = []

        def broken(context):
            raise OSError("disk full")

        tasks = [SetupTask("persist", "Saving...", broken), noop_task("after", calls)]
        state = SetupOrchestrator(tasks, reporter, step_delay=0).run()

        assert state is OrchestratorState.COMPLETED
        assert "persist failed: disk full" in sink.outputs
        assert calls == ["after"]
        assert sink.percents[-1] == 100

    def test_sub_step_status_does_not_advance(self, sink, reporter):
        def chatty(context):
            context.status("  - one")
            context.status("  - two")

        SetupOrchestrator([SetupTask("chatty", "Chatty...", chatty)], reporter, step_delay=0).run()

        assert "  - one" in sink.outputs
        assert sink.percents == [0, 100]

    def test_run_twice_raises(self, reporter):
        orchestrator = SetupOrchestrator([noop_task("a")], reporter, step_delay=0)
        orchestrator.run()
        with pytest.raises(RuntimeError, match="already completed"):
            orchestrator.run()

    def test_cancel_when_idle_is_noop(self, sink, reporter):
        orchestrator = SetupOrchestrator([noop_task("a")], reporter, step_delay=0)
        assert orchestrator.cancel() is False
        assert orchestrator.state is OrchestratorState.IDLE
        assert sink.messages == []

    def test_cancel_from_effect_stops_remaining_tasks(self, sink, reporter):
        calls = []
        holder = {}

        def cancel_now(context):
            holder["orchestrator"].cancel()

        tasks = [noop_task("a", calls), SetupTask("b", "b...", cancel_now), noop_task("c", calls)]
        orchestrator = SetupOrchestrator(tasks, reporter, step_delay=0)
        holder["orchestrator"] = orchestrator

        state = orchestrator.run()

        assert state is OrchestratorState.CANCELLED
        assert calls == ["a"]
        assert CANCEL_MESSAGE in sink.outputs
        assert DONE_MESSAGE not in sink.outputs
        assert sink.completions == ["cancelled"]
        assert sink.percents[-1] < 100

    def test_cancel_after_last_task_completes(self, sink, reporter):
        """A cancel arriving during the final pause leaves the run completed."""
        orchestrator = SetupOrchestrator([noop_task("last")], reporter, step_delay=5)

        original_pause = orchestrator._pause

        def pause_then_cancel():
            orchestrator.cancel()
            original_pause()

        orchestrator._pause = pause_then_cancel

        assert orchestrator.run() is OrchestratorState.COMPLETED
        assert sink.completions == ["completed"]

    def test_cancel_terminates_in_flight_command(self, sink, reporter):
        """Cancelling mid-task terminates the running subprocess and still completes once."""
        runner = BlockingRunner()
        calls = []

        def install(context):
            context.status("  - Installing ms-python.python...")
            command = ["code", "--install-extension", "ms-python.python"]
            result = runner.execute(command, cancel_event=context.cancel_event)
            if result.cancelled:
                return
            calls.append("installed")

        tasks = [noop_task("locale"), SetupTask("install", "Installing...", install), noop_task("finalize", calls)]
        orchestrator = SetupOrchestrator(tasks, reporter, runner=runner, step_delay=0)

        worker = threading.Thread(target=orchestrator.run)
        worker.start()
        assert runner.started.wait(5)

        assert orchestrator.cancel() is True
        worker.join(5)

        assert not worker.is_alive()
        assert runner.terminate_calls == 1
        assert orchestrator.state is OrchestratorState.CANCELLED
        assert calls == []
        assert CANCEL_MESSAGE in sink.outputs
        assert sink.completions == ["cancelled"]

    def test_cancel_wakes_step_delay(self, sink, reporter):
        """A long pause between tasks ends early on cancellation."""
        orchestrator = SetupOrchestrator([noop_task("a"), noop_task("b")], reporter, step_delay=30)

        worker = threading.Thread(target=orchestrator.run)
        worker.start()
        while not sink.percents or sink.percents[-1] == 0:
            worker.join(0.01)

        orchestrator.cancel()
        worker.join(5)

        assert not worker.is_alive()
        assert orchestrator.state is OrchestratorState.CANCELLED
        assert "Running b..." not in sink.outputs


class TestTaskContext:
    """Test suite for TaskContext."""

    def test_wait_zero_returns_cancel_flag(self, reporter):
        seen = []

        def effect(context):
            seen.append(context.wait(0))
            seen.append(context.cancelled)
            seen.append(context.task.name)

        SetupOrchestrator([SetupTask("t", "t...", effect)], reporter, step_delay=0).run()
        assert seen == [False, False, "t"]
