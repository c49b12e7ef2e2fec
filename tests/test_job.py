"""Tests for tickflow.core.job.

Covers the per-tick step semantics of each task kind, cooperative stop and
fail, error containment, terminal callbacks, reset, and job-level logging.
"""

from __future__ import annotations

import pytest

from helpers import Latch, Recorder
from tickflow.core.clock import ManualClock
from tickflow.core.exceptions import JobValidationError, TaskExecutionError, TickflowError
from tickflow.core.job import Job, JobOutcome, JobState
from tickflow.core.tasks import Task, TaskKind, TaskPool


def _action(fn) -> Task:
    return Task(TaskKind.ACTION, action=fn)


def _condition(fn) -> Task:
    return Task(TaskKind.CONDITION, condition=fn)


def _timer(seconds: float) -> Task:
    return Task(TaskKind.TIMER, seconds=seconds)


def _tick(job: Job, clock: ManualClock, seconds: float = 0.0) -> None:
    """What the manager does for one job on one tick."""
    clock.advance_tick(seconds)
    if job.state is JobState.CREATED:
        job.start(clock)
    else:
        job.advance(clock)


def _boom() -> None:
    raise RuntimeError("boom")


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


# ─── Construction & validation ─────────────────────────────────────────


class TestJobConstruction:
    def test_new_job_is_created(self) -> None:
        job = Job("warmup", [_action(lambda: None)])
        assert job.state is JobState.CREATED
        assert job.current_task == 0
        assert job.outcome is None
        assert job.error is None

    def test_default_job_is_created_but_invalid(self) -> None:
        job = Job()
        assert job.state is JobState.CREATED
        assert job.name == ""
        assert job.tasks == ()
        assert not job.validate()

    def test_tasks_are_copied(self) -> None:
        tasks = [_action(lambda: None)]
        job = Job("a", tasks)
        tasks.append(_timer(1))
        assert len(job.tasks) == 1

    def test_tasks_are_exposed_as_tuple(self) -> None:
        tasks = [_action(lambda: None), None]
        job = Job("a", tasks)
        assert isinstance(job.tasks, tuple)
        assert job.tasks == tuple(tasks)

    def test_callbacks_are_wired_by_name(self) -> None:
        finished, stopped, failed = Recorder(), Recorder(), Recorder()
        job = Job("a", [], on_finished=finished, on_stopped=stopped, on_failed=failed)
        assert job.on_finished is finished
        assert job.on_stopped is stopped
        assert job.on_failed is failed


class TestJobValidation:
    def test_valid_job(self) -> None:
        job = Job("a", [_action(lambda: None)])
        job.check()
        assert job.validate()

    @pytest.mark.parametrize(
        ("name", "tasks", "reason"),
        [
            ("", [Task()], "empty_name"),
            ("a", None, "no_tasks"),
            ("a", [], "no_tasks"),
        ],
    )
    def test_rejections(self, name: str, tasks: list[Task] | None, reason: str) -> None:
        job = Job(name, tasks)
        with pytest.raises(JobValidationError) as exc_info:
            job.check()
        assert exc_info.value.reason == reason
        assert not job.validate()

    def test_started_job_is_not_valid(self, clock: ManualClock) -> None:
        job = Job("a", [_action(lambda: None), _action(lambda: None)])
        _tick(job, clock)
        with pytest.raises(JobValidationError) as exc_info:
            job.check()
        assert exc_info.value.reason == "bad_state"

    def test_validate_logs_reason(self, log_events) -> None:
        Job("", [Task()]).validate()
        [event] = log_events.named("job.invalid")
        assert event["reason"] == "empty_name"
        assert event["state"] == "created"

    def test_set_tasks_before_start(self) -> None:
        job = Job("a")
        job.set_tasks([_timer(1)])
        assert len(job.tasks) == 1
        assert job.validate()

    def test_set_tasks_after_start_raises(self, clock: ManualClock) -> None:
        job = Job("a", [_timer(1)])
        _tick(job, clock)
        with pytest.raises(TickflowError):
            job.set_tasks([])


# ─── Sequencing ────────────────────────────────────────────────────────


class TestActionSequencing:
    def test_one_action_per_tick(self, clock: ManualClock) -> None:
        order: list[str] = []
        finished = Recorder()
        job = Job(
            "seq",
            [_action(Recorder(order, label)) for label in ("a", "b", "c")],
            on_finished=finished,
        )

        _tick(job, clock)
        assert order == ["a"]
        assert job.state is JobState.RUNNING
        assert job.current_task == 1

        _tick(job, clock)
        _tick(job, clock)
        assert order == ["a", "b", "c"]
        assert job.state is JobState.RUNNING
        assert finished.calls == 0

        _tick(job, clock)
        assert job.state is JobState.DONE
        assert job.outcome is JobOutcome.FINISHED
        assert finished.calls == 1
        assert job.tasks == ()

    def test_start_twice_is_noop(self, clock: ManualClock) -> None:
        action = Recorder()
        job = Job("a", [_action(action), _action(lambda: None)])
        assert job.start(clock) is True
        assert job.start(clock) is False
        assert action.calls == 1
        assert job.current_task == 1

    def test_none_entries_are_skipped(self, clock: ManualClock) -> None:
        action = Recorder()
        job = Job("a", [None, _action(action), None])
        _tick(job, clock)
        assert action.calls == 1
        assert job.current_task == 2
        _tick(job, clock)
        assert job.outcome is JobOutcome.FINISHED

    def test_advance_after_done_is_noop(self, clock: ManualClock) -> None:
        finished = Recorder()
        job = Job("a", [_action(lambda: None)], on_finished=finished)
        for _ in range(5):
            _tick(job, clock)
        assert finished.calls == 1
        assert job.state is JobState.DONE


class TestConditionTask:
    def test_suspends_until_true(self, clock: ManualClock) -> None:
        latch = Latch()
        after = Recorder()
        job = Job("wait", [_condition(latch), _action(after)])

        _tick(job, clock)
        _tick(job, clock)
        assert latch.polls == 2
        assert job.current_task == 0

        latch.open()
        _tick(job, clock)
        assert job.current_task == 1
        assert after.calls == 0

        _tick(job, clock)
        assert after.calls == 1

    def test_raising_predicate_fails_job(self, clock: ManualClock) -> None:
        def broken() -> bool:
            raise ValueError("bad predicate")

        failed = Recorder()
        job = Job("a", [_condition(broken)], on_failed=failed)
        _tick(job, clock)
        assert job.outcome is JobOutcome.FAILED
        assert failed.calls == 1
        assert isinstance(job.error.cause, ValueError)


class TestTimerTask:
    def test_waits_for_deadline_then_continues(self, clock: ManualClock) -> None:
        after = Recorder()
        finished = Recorder()
        job = Job("t", [_timer(1.0), _action(after)], on_finished=finished)

        _tick(job, clock)
        assert job.current_task == 0

        _tick(job, clock, seconds=0.5)
        assert job.current_task == 0
        assert after.calls == 0

        # Deadline reached: the next task runs in the same tick.
        _tick(job, clock, seconds=0.5)
        assert after.calls == 1
        assert job.current_task == 2
        assert finished.calls == 0

        _tick(job, clock)
        assert finished.calls == 1

    @pytest.mark.parametrize("seconds", [0.0, -3.0])
    def test_non_positive_duration_completes_on_next_check(
        self, clock: ManualClock, seconds: float,
    ) -> None:
        after = Recorder()
        job = Job("t", [_timer(seconds), _action(after)])
        _tick(job, clock)
        assert after.calls == 0
        _tick(job, clock)
        assert after.calls == 1

    def test_trailing_timer_finishes_in_same_tick(self, clock: ManualClock) -> None:
        finished = Recorder()
        job = Job("t", [_timer(0.1)], on_finished=finished)
        _tick(job, clock)
        _tick(job, clock, seconds=0.2)
        assert job.state is JobState.DONE
        assert finished.calls == 1


# ─── Failure & cancellation ────────────────────────────────────────────


class TestTaskFailure:
    def test_failing_action_stops_sequence(self, clock: ManualClock) -> None:
        later = Recorder()
        finished, failed = Recorder(), Recorder()
        job = Job(
            "f",
            [_action(lambda: None), _action(_boom), _action(later)],
            on_finished=finished,
            on_failed=failed,
        )

        _tick(job, clock)
        _tick(job, clock)
        assert job.state is JobState.DONE
        assert job.outcome is JobOutcome.FAILED
        assert failed.calls == 1
        assert finished.calls == 0

        _tick(job, clock)
        assert later.calls == 0
        assert failed.calls == 1

    def test_error_is_recorded(self, clock: ManualClock) -> None:
        job = Job("f", [_action(_boom)])
        _tick(job, clock)
        assert isinstance(job.error, TaskExecutionError)
        assert job.error.task_index == 0
        assert job.error.job_name == "f"
        assert isinstance(job.error.cause, RuntimeError)

    def test_failure_is_logged_with_context(self, clock: ManualClock, log_events) -> None:
        job = Job("f", [_action(lambda: None), _action(_boom)])
        _tick(job, clock)
        _tick(job, clock)

        [event] = log_events.named("job.task_failed")
        assert event["job"] == "f"
        assert event["task_index"] == 1
        assert event["error_type"] == "RuntimeError"
        assert event["tick"] == 2
        assert "RuntimeError" in event["exception"]
        assert log_events.named("job.failed")


class TestStopAndFail:
    def test_stop_while_running(self, clock: ManualClock) -> None:
        latch = Latch()
        stopped, finished = Recorder(), Recorder()
        job = Job("s", [_condition(latch)], on_stopped=stopped, on_finished=finished)

        _tick(job, clock)
        assert job.stop() is True
        assert job.state is JobState.STOPPED

        _tick(job, clock)
        assert job.state is JobState.DONE
        assert job.outcome is JobOutcome.STOPPED
        assert stopped.calls == 1
        assert finished.calls == 0
        assert latch.polls == 1

    def test_fail_while_running(self, clock: ManualClock) -> None:
        failed = Recorder()
        job = Job("s", [_condition(Latch())], on_failed=failed)
        _tick(job, clock)
        assert job.fail() is True
        _tick(job, clock)
        assert job.outcome is JobOutcome.FAILED
        assert failed.calls == 1
        assert job.error is None

    def test_assigning_state_is_honored(self, clock: ManualClock) -> None:
        stopped = Recorder()
        job = Job("s", [_timer(10)], on_stopped=stopped)
        _tick(job, clock)
        job.state = JobState.STOPPED
        _tick(job, clock)
        assert stopped.calls == 1

    def test_stop_before_first_tick(self, clock: ManualClock) -> None:
        action, stopped = Recorder(), Recorder()
        job = Job("s", [_action(action)], on_stopped=stopped)
        job.stop()
        _tick(job, clock)
        assert action.calls == 0
        assert stopped.calls == 1
        assert job.current_task == 0
        assert job.state is JobState.DONE

    def test_stop_from_last_action(self, clock: ManualClock) -> None:
        stopped, finished = Recorder(), Recorder()
        job = Job("s", [], on_stopped=stopped, on_finished=finished)
        job.set_tasks([_action(job.stop)])

        _tick(job, clock)
        _tick(job, clock)
        assert stopped.calls == 1
        assert finished.calls == 0
        assert job.current_task == 1

    def test_stop_after_done_is_refused(self, clock: ManualClock) -> None:
        job = Job("s", [_timer(0)])
        _tick(job, clock)
        _tick(job, clock)
        assert job.state is JobState.DONE
        assert job.stop() is False
        assert job.fail() is False
        assert job.state is JobState.DONE

    @pytest.mark.parametrize("state", [JobState.STOPPED, JobState.FAILED, JobState.CREATED])
    def test_state_assigned_after_done_fires_nothing(
        self, clock: ManualClock, state: JobState,
    ) -> None:
        finished, stopped, failed = Recorder(), Recorder(), Recorder()
        job = Job(
            "s", [_action(lambda: None)],
            on_finished=finished, on_stopped=stopped, on_failed=failed,
        )
        _tick(job, clock)
        _tick(job, clock)
        assert finished.calls == 1

        job.state = state
        _tick(job, clock)
        _tick(job, clock)
        assert job.is_finalized
        assert job.outcome is JobOutcome.FINISHED
        assert (finished.calls, stopped.calls, failed.calls) == (1, 0, 0)
        assert job.stop() is False


class TestCallbacks:
    def test_raising_callback_is_contained(self, clock: ManualClock, log_events) -> None:
        job = Job("c", [_action(lambda: None)], on_finished=_boom)
        _tick(job, clock)
        _tick(job, clock)
        assert job.state is JobState.DONE
        [event] = log_events.named("job.callback_failed")
        assert event["outcome"] == "finished"

    def test_missing_callback_is_fine(self, clock: ManualClock) -> None:
        job = Job("c", [_action(_boom)])
        _tick(job, clock)
        assert job.outcome is JobOutcome.FAILED


# ─── Reset, pooling & diagnostics ──────────────────────────────────────


class TestReset:
    def test_reset_running_job_raises(self, clock: ManualClock) -> None:
        job = Job("r", [_timer(5)])
        _tick(job, clock)
        with pytest.raises(TickflowError):
            job.reset("other")

    def test_reset_overwrites_every_field(self, clock: ManualClock) -> None:
        old = Recorder()
        job = Job("r", [_action(_boom)], on_finished=old, on_failed=old, trace_tasks=True)
        _tick(job, clock)
        assert job.error is not None

        new_task = _timer(1)
        job.reset("fresh", [new_task])
        assert job.name == "fresh"
        assert job.state is JobState.CREATED
        assert job.tasks == (new_task,)
        assert job.current_task == 0
        assert job.on_finished is None
        assert job.on_failed is None
        assert job.error is None
        assert job.outcome is None
        assert job.trace_tasks is False

    def test_finished_tasks_return_to_pool(self, clock: ManualClock) -> None:
        pool = TaskPool()
        tasks = [pool.action(lambda: None), pool.timer(0)]
        job = Job("p", tasks, task_pool=pool)
        for _ in range(3):
            _tick(job, clock)
        assert job.state is JobState.DONE
        assert len(pool) == 2
        assert tasks[0].action is None


class TestDiagnostics:
    def test_describe(self, clock: ManualClock) -> None:
        job = Job("d", [_action(lambda: None), _timer(1)])
        _tick(job, clock)
        assert job.describe() == "d: state=running, current_task=1"

    def test_trace_tasks_logs_each_completion(self, clock: ManualClock, log_events) -> None:
        job = Job("t", [_action(lambda: None), _timer(0.5)], trace_tasks=True)
        _tick(job, clock)
        _tick(job, clock)
        _tick(job, clock, seconds=0.5)

        events = log_events.named("job.task_finished")
        assert [e["task_index"] for e in events] == [0, 1]
        assert events[1]["elapsed_ms"] == 500.0
        assert events[1]["ticks"] == 1

    def test_no_trace_by_default(self, clock: ManualClock, log_events) -> None:
        job = Job("t", [_action(lambda: None)])
        _tick(job, clock)
        assert not log_events.named("job.task_finished")

    def test_finished_event_reports_duration(self, clock: ManualClock, log_events) -> None:
        job = Job("t", [_timer(2.0)])
        _tick(job, clock)
        _tick(job, clock, seconds=2.0)
        [event] = log_events.named("job.finished")
        assert event["elapsed_ms"] == 2000.0
        assert event["ticks"] == 1
        assert event["tasks"] == 1
