"""
planning_connector/services/import_service.py

Orchestration service for importing delimited data into a planning model.

One ``run_import`` call:

    1. validates identifiers and delimiters (ConfigurationError, no network)
    2. resolves the import action in the model
    3. resolves the server file backing the import (absent -> skip step 4)
    4. parses the data and uploads header + rows into the server file
    5. submits the import task and polls it to a terminal state
    6. classifies the result into an ImportOutcome

The connection opened for the call is closed exactly once, whatever
happens in steps 2-6. Failures in those steps are reported as a FAILURE
outcome rather than raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from functools import lru_cache, partial
from typing import Protocol

from planning_connector.config import (
    get_external_http_settings,
    get_planning_api_settings,
    get_task_poll_settings,
)
from planning_connector.connectors import PlanningAPIClient, PlanningAPIError, PlanningConnection
from planning_connector.domain.model_import import (
    DelimiterConfig,
    FailureDump,
    FailureKind,
    ImportOutcome,
    ImportSpec,
    ParsedTable,
    RemoteFileHandle,
    RunStatusDetails,
    SourceFileLookup,
    StepFailure,
    StepResult,
    TaskStatus,
)
from planning_connector.exceptions import (
    ConfigurationError,
    EmptyImportDataError,
    RemoteTaskError,
    TransferError,
)
from planning_connector.parsers.delimited import parse_delimited
from planning_connector.services.task_runner import ServerTaskRunner

logger = logging.getLogger(__name__)


class RowWriter(Protocol):
    def write_header_row(self, row: Sequence[str]) -> None: ...

    def write_data_row(self, row: Sequence[str]) -> None: ...

    def close(self) -> None: ...


class ImportConnection(Protocol):
    @property
    def log_context(self) -> str: ...

    def client(self) -> PlanningAPIClient: ...

    def close(self) -> None: ...


def write_table(writer: RowWriter, table: ParsedTable) -> int:
    """
    Write the header row then every data row, and close the writer.

    The writer is closed exactly once, also when a row write fails.
    Returns the number of data rows written.
    """

    if not table:
        raise EmptyImportDataError("Import data has no header row.")

    header, *data_rows = table
    rows_written = 0
    try:
        writer.write_header_row(header)
        for row in data_rows:
            writer.write_data_row(row)
            rows_written += 1
    except Exception:
        # close() may raise its own error; keep the original in the log.
        logger.warning("Row write failed rows_written=%s; closing writer", rows_written, exc_info=True)
        raise
    finally:
        writer.close()
    return rows_written


class ImportService:
    """
    Coordinates parsing, upload, task execution and outcome classification.
    """

    def __init__(
        self,
        *,
        connection_factory: Callable[[], ImportConnection],
        task_runner: ServerTaskRunner,
    ) -> None:
        self._connection_factory = connection_factory
        self._task_runner = task_runner

    def run_import(
        self,
        *,
        data: str,
        workspace_id: str,
        model_id: str,
        import_id: str,
        column_separator: str,
        quote_char: str,
    ) -> ImportOutcome:
        """
        Import delimited ``data`` through the model's import action.

        Raises:
            ConfigurationError: identifiers are blank or delimiters invalid.
                Nothing is sent to the server in that case.
        """

        workspace_id, model_id, import_id = self._validate_identifiers(workspace_id, model_id, import_id)
        delimiters = DelimiterConfig.from_strings(column_separator, quote_char)

        connection = self._connection_factory()
        log_context = f"{connection.log_context} [{import_id}]"
        logger.info(
            "%s Starting import workspace_id=%s model_id=%s import_id=%s",
            log_context,
            workspace_id,
            model_id,
            import_id,
        )

        try:
            outcome = self._run(
                connection=connection,
                data=data,
                workspace_id=workspace_id,
                model_id=model_id,
                import_id=import_id,
                delimiters=delimiters,
                log_context=log_context,
            )
        finally:
            connection.close()

        logger.info(
            "%s Import complete status=%s rows_processed=%s message=%s",
            log_context,
            outcome.status.value,
            outcome.rows_processed,
            outcome.response_message,
        )
        return outcome

    def fetch_failure_dump(self, dump: FailureDump) -> str:
        """
        Download the rejected-rows dump produced by an import task.
        """

        connection = self._connection_factory()
        try:
            return connection.client().download_failure_dump(dump)
        finally:
            connection.close()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _run(
        self,
        *,
        connection: ImportConnection,
        data: str,
        workspace_id: str,
        model_id: str,
        import_id: str,
        delimiters: DelimiterConfig,
        log_context: str,
    ) -> ImportOutcome:
        details = RunStatusDetails()

        resolved = self._resolve_import(connection, workspace_id, model_id, import_id)
        if resolved.failure is not None:
            return self._failed_outcome(resolved.failure, import_id, details, log_context)
        spec = resolved.value
        logger.info(
            "%s Resolved import name=%s source_file_id=%s",
            log_context,
            spec.name,
            spec.source_file_id,
        )
        client = connection.client()

        lookup = self._resolve_source_file(client, spec)
        if lookup.failure is not None:
            return self._failed_outcome(lookup.failure, import_id, details, log_context)

        server_file: RemoteFileHandle | None = None
        if lookup.value.is_absent:
            logger.info(
                "%s No server file for source_file_id=%s; running against staged data",
                log_context,
                spec.source_file_id,
            )
        else:
            server_file = lookup.value.handle.with_delimiters(delimiters)
            transferred = self._transfer(client, spec, server_file, data, details, log_context)
            if transferred.failure is not None:
                return self._failed_outcome(transferred.failure, import_id, details, log_context)
            details = transferred.value

        executed = self._execute_task(client, spec, log_context)
        if executed.failure is not None:
            return self._failed_outcome(executed.failure, import_id, details, log_context)

        return self._classify(executed.value, import_id, details, server_file, log_context)

    def _resolve_import(
        self,
        connection: ImportConnection,
        workspace_id: str,
        model_id: str,
        import_id: str,
    ) -> StepResult[ImportSpec]:
        try:
            spec = connection.client().get_import(workspace_id, model_id, import_id)
        except PlanningAPIError as exc:
            return StepResult.fail(FailureKind.REMOTE_TASK, f"Unable to resolve import {import_id}: {exc}", exc)

        if spec is None:
            return StepResult.fail(
                FailureKind.RESOLUTION,
                f"Invalid import! Import {import_id} does not exist in model {model_id}.",
            )
        return StepResult.ok(spec)

    def _resolve_source_file(self, client: PlanningAPIClient, spec: ImportSpec) -> StepResult[SourceFileLookup]:
        if not spec.source_file_id:
            return StepResult.ok(SourceFileLookup(handle=None))
        try:
            handle = client.get_server_file(spec.workspace_id, spec.model_id, spec.source_file_id)
        except PlanningAPIError as exc:
            return StepResult.fail(
                FailureKind.REMOTE_TASK,
                f"Unable to resolve server file {spec.source_file_id}: {exc}",
                exc,
            )
        return StepResult.ok(SourceFileLookup(handle=handle))

    def _transfer(
        self,
        client: PlanningAPIClient,
        spec: ImportSpec,
        server_file: RemoteFileHandle,
        data: str,
        details: RunStatusDetails,
        log_context: str,
    ) -> StepResult[RunStatusDetails]:
        try:
            table = parse_delimited(data, server_file.separator, server_file.delimiter)
            if not table:
                raise EmptyImportDataError("Import data has no header row.")
            logger.info("%s Import header is: %s", log_context, " | ".join(table[0]))

            writer = client.open_upload_writer(
                workspace_id=spec.workspace_id,
                model_id=spec.model_id,
                handle=server_file,
            )
            rows_processed = write_table(writer, table)
        except TransferError as exc:
            return StepResult.fail(FailureKind.TRANSFER, str(exc), exc)
        except PlanningAPIError as exc:
            return StepResult.fail(
                FailureKind.TRANSFER,
                f"Unable to upload data to server file {server_file.file_id}: {exc}",
                exc,
            )

        logger.info("%s Uploaded rows=%s file_id=%s", log_context, rows_processed, server_file.file_id)
        return StepResult.ok(details.with_rows(rows_processed))

    def _execute_task(self, client: PlanningAPIClient, spec: ImportSpec, log_context: str) -> StepResult[TaskStatus]:
        try:
            task = client.create_task(spec)
            logger.info("%s Import task submitted task_id=%s", log_context, task.task_id)
            status = self._task_runner.run(client, task, log_context)
        except (PlanningAPIError, RemoteTaskError) as exc:
            return StepResult.fail(FailureKind.REMOTE_TASK, f"Import task failed: {exc}", exc)
        return StepResult.ok(status)

    # ------------------------------------------------------------------
    # Outcome
    # ------------------------------------------------------------------

    def _classify(
        self,
        status: TaskStatus,
        import_id: str,
        details: RunStatusDetails,
        server_file: RemoteFileHandle | None,
        log_context: str,
    ) -> ImportOutcome:
        result = status.result
        if result is None:
            message = (
                f"Import task {status.task_id} ended in state {status.task_state.value} without a result.\n"
                + details.render_failure()
            )
            logger.error("%s %s", log_context, message)
            return ImportOutcome.failure(
                import_id=import_id,
                message=message,
                rows_processed=details.rows_processed,
            )

        details = details.with_lines(*result.details)
        logger.info("%s %s", log_context, details.render())

        if result.failure_dump_available and result.failure_dump is not None:
            logger.info("%s Failure dump available task_id=%s", log_context, status.task_id)
            return ImportOutcome.with_failure_dump(
                import_id=import_id,
                message=(
                    f"Import {import_id} completed, but some rows were rejected. "
                    "Check the failure dump for details."
                ),
                failure_dump=result.failure_dump,
                rows_processed=details.rows_processed,
            )

        logger.info("%s No failure dump available", log_context)
        if result.successful:
            return ImportOutcome.success(import_id=import_id, details=details, server_file=server_file)
        return ImportOutcome.failure(
            import_id=import_id,
            message=details.render_failure(),
            rows_processed=details.rows_processed,
        )

    def _failed_outcome(
        self,
        failure: StepFailure,
        import_id: str,
        details: RunStatusDetails,
        log_context: str,
    ) -> ImportOutcome:
        if failure.kind is FailureKind.RESOLUTION:
            logger.warning("%s %s", log_context, failure.message)
            return ImportOutcome.failure(import_id=import_id, message=failure.message)

        logger.error(
            "%s Import failed kind=%s error=%s",
            log_context,
            failure.kind.value,
            failure.message,
            exc_info=failure.error,
        )
        kind_label = failure.kind.value.lower().replace("_", " ")
        return ImportOutcome.failure(
            import_id=import_id,
            message=f"Import {import_id} failed ({kind_label} error): {failure.message}",
            rows_processed=details.rows_processed,
        )

    @staticmethod
    def _validate_identifiers(workspace_id: str, model_id: str, import_id: str) -> tuple[str, str, str]:
        cleaned: list[str] = []
        for label, value in (("Workspace ID", workspace_id), ("Model ID", model_id), ("Import ID", import_id)):
            stripped = (value or "").strip()
            if not stripped:
                raise ConfigurationError(f"{label} is required.")
            cleaned.append(stripped)
        return cleaned[0], cleaned[1], cleaned[2]


@lru_cache(maxsize=1)
def get_import_service() -> ImportService:
    """
    Build and cache the import service.
    """

    return ImportService(
        connection_factory=partial(
            PlanningConnection,
            settings=get_planning_api_settings(),
            http_settings=get_external_http_settings(),
        ),
        task_runner=ServerTaskRunner(settings=get_task_poll_settings()),
    )
