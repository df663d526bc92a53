"""
planning_connector/services/task_runner.py

Blocking poll loop that drives a server task to a terminal state.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

from planning_connector.config import TaskPollSettings
from planning_connector.domain.model_import import TaskRef, TaskStatus
from planning_connector.exceptions import TaskTimeoutError

logger = logging.getLogger(__name__)


class TaskStatusSource(Protocol):
    def get_task_status(self, task: TaskRef) -> TaskStatus: ...


class ServerTaskRunner:
    """
    Poll a task until it completes or is cancelled.

    Errors raised while polling propagate unchanged; the runner never
    re-submits a task.
    """

    def __init__(
        self,
        *,
        settings: TaskPollSettings,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._poll_interval_seconds = settings.poll_interval_seconds
        self._timeout_seconds = settings.timeout_seconds
        self._sleep = sleep
        self._clock = clock

    def run(self, source: TaskStatusSource, task: TaskRef, log_context: str = "") -> TaskStatus:
        deadline = self._clock() + self._timeout_seconds
        last_progress: float | None = None

        while True:
            status = source.get_task_status(task)
            if status.progress != last_progress:
                logger.info(
                    "%s Task progress task_id=%s state=%s progress=%.0f%%",
                    log_context,
                    task.task_id,
                    status.task_state.value,
                    status.progress * 100,
                )
                last_progress = status.progress

            if status.task_state.is_terminal:
                return status

            if self._clock() >= deadline:
                raise TaskTimeoutError(
                    f"Task {task.task_id} did not finish within {self._timeout_seconds:.0f} seconds "
                    f"(last state {status.task_state.value})."
                )
            self._sleep(self._poll_interval_seconds)
