from __future__ import annotations

import pytest

from planning_connector.config import TaskPollSettings
from planning_connector.connectors.base import PlanningAPIError
from planning_connector.domain.model_import import TaskRef, TaskResult, TaskState, TaskStatus
from planning_connector.exceptions import TaskTimeoutError
from planning_connector.services.task_runner import ServerTaskRunner

TASK = TaskRef(workspace_id="ws", model_id="m", import_id="112000000001", task_id="task-1")


class ScriptedStatusSource:
    def __init__(self, statuses: list[TaskStatus | Exception]) -> None:
        self._statuses = list(statuses)
        self.polls = 0

    def get_task_status(self, task: TaskRef) -> TaskStatus:
        self.polls += 1
        item = self._statuses.pop(0) if len(self._statuses) > 1 else self._statuses[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _runner(clock: FakeClock, *, interval: float = 2.0, timeout: float = 30.0) -> ServerTaskRunner:
    return ServerTaskRunner(
        settings=TaskPollSettings(poll_interval_seconds=interval, timeout_seconds=timeout),
        sleep=clock.sleep,
        clock=clock,
    )


def _status(state: TaskState, progress: float = 0.0, result: TaskResult | None = None) -> TaskStatus:
    return TaskStatus(task_id="task-1", task_state=state, progress=progress, result=result)


def test_returns_first_terminal_status() -> None:
    clock = FakeClock()
    done = _status(TaskState.COMPLETE, 1.0, TaskResult(successful=True))
    source = ScriptedStatusSource(
        [
            _status(TaskState.NOT_STARTED),
            _status(TaskState.IN_PROGRESS, 0.4),
            done,
        ]
    )

    status = _runner(clock).run(source, TASK)

    assert status == done
    assert source.polls == 3
    assert clock.sleeps == [2.0, 2.0]


def test_already_complete_task_does_not_sleep() -> None:
    clock = FakeClock()
    source = ScriptedStatusSource([_status(TaskState.CANCELLED)])

    status = _runner(clock).run(source, TASK)

    assert status.task_state is TaskState.CANCELLED
    assert clock.sleeps == []


def test_cancelling_is_not_terminal() -> None:
    clock = FakeClock()
    source = ScriptedStatusSource([_status(TaskState.CANCELLING), _status(TaskState.CANCELLED)])

    status = _runner(clock).run(source, TASK)

    assert status.task_state is TaskState.CANCELLED
    assert source.polls == 2


def test_times_out_when_task_never_finishes() -> None:
    clock = FakeClock()
    source = ScriptedStatusSource([_status(TaskState.IN_PROGRESS, 0.2)])

    with pytest.raises(TaskTimeoutError):
        _runner(clock, interval=5.0, timeout=20.0).run(source, TASK)

    assert clock.now >= 120.0
    assert source.polls == 5


def test_polling_error_propagates_without_retry() -> None:
    clock = FakeClock()
    source = ScriptedStatusSource([PlanningAPIError("gone", status_code=404)])

    with pytest.raises(PlanningAPIError):
        _runner(clock).run(source, TASK)

    assert source.polls == 1
    assert clock.sleeps == []
