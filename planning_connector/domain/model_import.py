"""
planning_connector/domain/model_import.py

Domain models used by the model import flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Generic, TypeVar

from planning_connector.exceptions import ConfigurationError

T = TypeVar("T")

ParsedTable = list[list[str]]

_LINE_BREAKS = {"\n", "\r"}


@dataclass(frozen=True)
class DelimiterConfig:
    """
    Column separator and quote character used for one import.
    """

    column_separator: str
    quote_char: str

    @classmethod
    def from_strings(cls, column_separator: str | None, quote_char: str | None) -> DelimiterConfig:
        """
        Validate raw delimiter values and build a config.

        Raises ConfigurationError unless each value is exactly one character,
        neither is a line break, and the two differ.
        """

        if column_separator is None or len(column_separator) != 1:
            raise ConfigurationError("Column separator must be exactly one character.")
        if quote_char is None or len(quote_char) != 1:
            raise ConfigurationError("Text delimiter must be exactly one character.")
        if column_separator in _LINE_BREAKS or quote_char in _LINE_BREAKS:
            raise ConfigurationError("Line breaks cannot be used as column separator or text delimiter.")
        if column_separator == quote_char:
            raise ConfigurationError("Column separator and text delimiter must differ.")
        return cls(column_separator=column_separator, quote_char=quote_char)


@dataclass(frozen=True)
class ImportSpec:
    """
    Import action definition resolved from a model.
    """

    workspace_id: str
    model_id: str
    import_id: str
    name: str
    source_file_id: str | None
    import_type: str | None = None


@dataclass(frozen=True)
class RemoteFileHandle:
    """
    Server file backing an import action.
    """

    file_id: str
    name: str
    chunk_count: int = 0
    separator: str = ","
    delimiter: str = '"'
    header_row: int = 1
    first_data_row: int = 2
    encoding: str = "UTF-8"
    format: str = "txt"

    def with_delimiters(self, config: DelimiterConfig) -> RemoteFileHandle:
        return replace(self, separator=config.column_separator, delimiter=config.quote_char)


@dataclass(frozen=True)
class SourceFileLookup:
    """
    Outcome of looking up the import's source file.

    ``handle`` is None when the model has no such file; lookup errors are
    reported separately as a StepFailure.
    """

    handle: RemoteFileHandle | None

    @property
    def is_absent(self) -> bool:
        return self.handle is None


@dataclass(frozen=True)
class TaskRef:
    """
    Reference to one server task created for an import action.
    """

    workspace_id: str
    model_id: str
    import_id: str
    task_id: str


class TaskState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    CANCELLING = "CANCELLING"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.COMPLETE, TaskState.CANCELLED)


@dataclass(frozen=True)
class FailureDump:
    """
    Reference to the server-generated dump of rejected import rows.
    """

    workspace_id: str
    model_id: str
    import_id: str
    task_id: str


@dataclass(frozen=True)
class TaskResult:
    """
    Result attached to a completed server task.
    """

    successful: bool
    failure_dump_available: bool = False
    failure_dump: FailureDump | None = None
    details: tuple[str, ...] = ()


@dataclass(frozen=True)
class TaskStatus:
    """
    Polled server task state.
    """

    task_id: str
    task_state: TaskState
    progress: float = 0.0
    result: TaskResult | None = None


@dataclass(frozen=True)
class RunStatusDetails:
    """
    Immutable accumulator for human-readable run status details.
    """

    rows_processed: int = 0
    log_lines: tuple[str, ...] = ()

    def with_rows(self, rows_processed: int) -> RunStatusDetails:
        return replace(self, rows_processed=rows_processed)

    def with_lines(self, *lines: str) -> RunStatusDetails:
        return replace(self, log_lines=self.log_lines + tuple(line for line in lines if line))

    def render(self) -> str:
        return f"{self._task_logs()}Import completed successfully: ({self.rows_processed} records processed)"

    def render_failure(self) -> str:
        return f"{self._task_logs()}Import failed: ({self.rows_processed} records processed)"

    def _task_logs(self) -> str:
        return "".join(f"{line}\n" for line in self.log_lines)


class OutcomeStatus(str, Enum):
    SUCCESS = "SUCCESS"
    SUCCESS_WITH_FAILURE_DUMP = "SUCCESS_WITH_FAILURE_DUMP"
    FAILURE = "FAILURE"


@dataclass(frozen=True)
class ImportOutcome:
    """
    Terminal classification of one import invocation.
    """

    status: OutcomeStatus
    response_message: str
    import_id: str
    rows_processed: int = 0
    failure_dump: FailureDump | None = None
    server_file: RemoteFileHandle | None = None

    @classmethod
    def success(
        cls,
        *,
        import_id: str,
        details: RunStatusDetails,
        server_file: RemoteFileHandle | None,
    ) -> ImportOutcome:
        return cls(
            status=OutcomeStatus.SUCCESS,
            response_message=details.render(),
            import_id=import_id,
            rows_processed=details.rows_processed,
            server_file=server_file,
        )

    @classmethod
    def with_failure_dump(
        cls,
        *,
        import_id: str,
        message: str,
        failure_dump: FailureDump,
        rows_processed: int,
    ) -> ImportOutcome:
        return cls(
            status=OutcomeStatus.SUCCESS_WITH_FAILURE_DUMP,
            response_message=message,
            import_id=import_id,
            rows_processed=rows_processed,
            failure_dump=failure_dump,
        )

    @classmethod
    def failure(cls, *, import_id: str, message: str, rows_processed: int = 0) -> ImportOutcome:
        return cls(
            status=OutcomeStatus.FAILURE,
            response_message=message,
            import_id=import_id,
            rows_processed=rows_processed,
        )


class FailureKind(str, Enum):
    RESOLUTION = "RESOLUTION"
    TRANSFER = "TRANSFER"
    REMOTE_TASK = "REMOTE_TASK"


@dataclass(frozen=True)
class StepFailure:
    """
    Failure reported by one orchestration step.
    """

    kind: FailureKind
    message: str
    error: Exception | None = field(default=None, compare=False)


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """
    Value or failure returned by an orchestration step.
    """

    value: T | None = None
    failure: StepFailure | None = None

    @classmethod
    def ok(cls, value: T) -> StepResult[T]:
        return cls(value=value)

    @classmethod
    def fail(cls, kind: FailureKind, message: str, error: Exception | None = None) -> StepResult[T]:
        return cls(failure=StepFailure(kind=kind, message=message, error=error))
