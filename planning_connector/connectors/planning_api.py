"""
planning_connector/connectors/planning_api.py

Client for the planning model integration API (workspaces, models, imports,
server files and tasks).
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from planning_connector.config import ExternalHTTPSettings, PlanningAPISettings
from planning_connector.connectors.base import BaseConnector, PlanningAPIError
from planning_connector.connectors.upload_writer import UploadCellWriter
from planning_connector.domain.model_import import (
    FailureDump,
    ImportSpec,
    RemoteFileHandle,
    TaskRef,
    TaskResult,
    TaskState,
    TaskStatus,
)

logger = logging.getLogger(__name__)


class PlanningAPIClient(BaseConnector):
    """
    Thin wrapper over the integration endpoints used by model imports.
    """

    def __init__(
        self,
        *,
        settings: PlanningAPISettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="planning_api", http_settings=http_settings, session=session)
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Imports and server files
    # ------------------------------------------------------------------

    def get_import(self, workspace_id: str, model_id: str, import_id: str) -> ImportSpec | None:
        """
        Look up one import action by id, or None if the model has no such import.
        """

        payload = self._request_json(method="GET", url=self._model_url(workspace_id, model_id, "imports"))
        for item in self._items(payload, "imports"):
            if item.get("id") != import_id:
                continue
            return ImportSpec(
                workspace_id=workspace_id,
                model_id=model_id,
                import_id=import_id,
                name=str(item.get("name") or import_id),
                source_file_id=item.get("importDataSourceId"),
                import_type=item.get("importType"),
            )
        return None

    def get_server_file(self, workspace_id: str, model_id: str, file_id: str) -> RemoteFileHandle | None:
        """
        Look up one server file by id, or None if the model has no such file.
        """

        payload = self._request_json(method="GET", url=self._model_url(workspace_id, model_id, "files"))
        for item in self._items(payload, "files"):
            if item.get("id") != file_id:
                continue
            try:
                return RemoteFileHandle(
                    file_id=file_id,
                    name=str(item.get("name") or file_id),
                    chunk_count=int(item.get("chunkCount") or 0),
                    separator=item.get("separator") or ",",
                    delimiter=item.get("delimiter") or '"',
                    header_row=int(item.get("headerRow") or 1),
                    first_data_row=int(item.get("firstDataRow") or 2),
                    encoding=item.get("encoding") or "UTF-8",
                    format=item.get("format") or "txt",
                )
            except (TypeError, ValueError) as exc:
                raise PlanningAPIError(f"{self.source}: malformed file metadata for {file_id}.") from exc
        return None

    def open_upload_writer(
        self,
        *,
        workspace_id: str,
        model_id: str,
        handle: RemoteFileHandle,
    ) -> UploadCellWriter:
        """
        Start a chunked upload into ``handle`` and return a writer for it.

        The file's separator and delimiter metadata are sent with the upload
        request so the server reads the chunks with the same dialect.
        """

        self._request_json(
            method="POST",
            url=self._model_url(workspace_id, model_id, f"files/{handle.file_id}"),
            json_body={
                "id": handle.file_id,
                "name": handle.name,
                "chunkCount": -1,
                "separator": handle.separator,
                "delimiter": handle.delimiter,
                "headerRow": handle.header_row,
                "firstDataRow": handle.first_data_row,
                "encoding": handle.encoding,
                "format": handle.format,
            },
        )
        return UploadCellWriter(
            client=self,
            workspace_id=workspace_id,
            model_id=model_id,
            handle=handle,
            chunk_size_bytes=self._settings.upload_chunk_size_bytes,
        )

    def upload_chunk(
        self,
        *,
        workspace_id: str,
        model_id: str,
        file_id: str,
        chunk_index: int,
        payload: bytes,
    ) -> None:
        self._request(
            method="PUT",
            url=self._model_url(workspace_id, model_id, f"files/{file_id}/chunks/{chunk_index}"),
            headers={"Content-Type": "application/octet-stream"},
            data=payload,
        )

    def complete_upload(self, *, workspace_id: str, model_id: str, file_id: str, chunk_count: int) -> None:
        self._request_json(
            method="POST",
            url=self._model_url(workspace_id, model_id, f"files/{file_id}/complete"),
            json_body={"id": file_id, "chunkCount": chunk_count},
        )

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, spec: ImportSpec) -> TaskRef:
        """
        Submit a new server task for the import action.
        """

        payload = self._request_json(
            method="POST",
            url=self._model_url(spec.workspace_id, spec.model_id, f"imports/{spec.import_id}/tasks"),
            json_body={"localeName": self._settings.locale_name},
        )
        task = payload.get("task") if isinstance(payload, dict) else None
        task_id = task.get("taskId") if isinstance(task, dict) else None
        if not task_id:
            raise PlanningAPIError(f"{self.source}: task creation response has no task id.")
        return TaskRef(
            workspace_id=spec.workspace_id,
            model_id=spec.model_id,
            import_id=spec.import_id,
            task_id=str(task_id),
        )

    def get_task_status(self, task: TaskRef) -> TaskStatus:
        payload = self._request_json(method="GET", url=self._task_url(task))
        body = payload.get("task") if isinstance(payload, dict) else None
        if not isinstance(body, dict):
            raise PlanningAPIError(f"{self.source}: task status response has no task body.")

        try:
            state = TaskState(body.get("taskState"))
            progress = float(body.get("progress") or 0.0)
        except (TypeError, ValueError) as exc:
            raise PlanningAPIError(f"{self.source}: unrecognised task status {body.get('taskState')!r}.") from exc

        return TaskStatus(
            task_id=task.task_id,
            task_state=state,
            progress=progress,
            result=self._parse_task_result(task, body.get("result")),
        )

    def download_failure_dump(self, dump: FailureDump) -> str:
        """
        Download the rejected-rows dump of a completed task.
        """

        dump_url = (
            self._model_url(dump.workspace_id, dump.model_id, f"imports/{dump.import_id}/tasks/{dump.task_id}")
            + "/dump"
        )
        payload = self._request_json(method="GET", url=f"{dump_url}/chunks")
        parts: list[str] = []
        for chunk in self._items(payload, "chunks"):
            parts.append(
                self._request_text(
                    method="GET",
                    url=f"{dump_url}/chunks/{chunk.get('id')}",
                    headers={"Accept": "application/octet-stream"},
                )
            )
        return "".join(parts)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _parse_task_result(self, task: TaskRef, raw: Any) -> TaskResult | None:
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise PlanningAPIError(f"{self.source}: task result is not an object.")

        raw_details = raw.get("details") or []
        if not isinstance(raw_details, list):
            raise PlanningAPIError(f"{self.source}: task result details is not a list.")

        try:
            dump_available = bool(raw.get("failureDumpAvailable"))
            details = tuple(
                str(detail["localMessageText"])
                for detail in raw_details
                if isinstance(detail, dict) and detail.get("localMessageText")
            )
            return TaskResult(
                successful=bool(raw.get("successful")),
                failure_dump_available=dump_available,
                failure_dump=(
                    FailureDump(
                        workspace_id=task.workspace_id,
                        model_id=task.model_id,
                        import_id=task.import_id,
                        task_id=task.task_id,
                    )
                    if dump_available
                    else None
                ),
                details=details,
            )
        except (TypeError, ValueError) as exc:
            raise PlanningAPIError(f"{self.source}: unexpected task result payload.") from exc

    def _items(self, payload: Any, key: str) -> list[dict[str, Any]]:
        if not isinstance(payload, dict):
            raise PlanningAPIError(f"{self.source}: unexpected payload shape for '{key}'.")
        items = payload.get(key) or []
        if not isinstance(items, list):
            raise PlanningAPIError(f"{self.source}: '{key}' is not a list.")
        return [item for item in items if isinstance(item, dict)]

    def _model_url(self, workspace_id: str, model_id: str, path: str) -> str:
        return f"{self._base_url}/workspaces/{workspace_id}/models/{model_id}/{path}"

    def _task_url(self, task: TaskRef) -> str:
        return self._model_url(
            task.workspace_id,
            task.model_id,
            f"imports/{task.import_id}/tasks/{task.task_id}",
        )
