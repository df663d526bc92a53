"""
planning_connector/connectors/upload_writer.py

Streaming row writer backed by a chunked server file upload.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from planning_connector.connectors.base import PlanningAPIError
from planning_connector.domain.model_import import RemoteFileHandle
from planning_connector.exceptions import UploadError
from planning_connector.parsers.delimited import format_delimited

if TYPE_CHECKING:
    from planning_connector.connectors.planning_api import PlanningAPIClient

logger = logging.getLogger(__name__)


class UploadCellWriter:
    """
    Serialize rows with the server file's dialect and upload them in chunks.

    Use as a context manager so ``close()`` runs on every exit path.
    """

    def __init__(
        self,
        *,
        client: PlanningAPIClient,
        workspace_id: str,
        model_id: str,
        handle: RemoteFileHandle,
        chunk_size_bytes: int,
    ) -> None:
        self._client = client
        self._workspace_id = workspace_id
        self._model_id = model_id
        self._handle = handle
        self._chunk_size_bytes = max(1, chunk_size_bytes)
        self._buffer = bytearray()
        self._chunks_uploaded = 0
        self._header_written = False
        self._closed = False
        self._aborted = False

    @property
    def chunks_uploaded(self) -> int:
        return self._chunks_uploaded

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def aborted(self) -> bool:
        return self._aborted

    def write_header_row(self, row: Sequence[str]) -> None:
        if self._header_written:
            raise UploadError("Header row has already been written.")
        self._append(row)
        self._header_written = True

    def write_data_row(self, row: Sequence[str]) -> None:
        if not self._header_written:
            raise UploadError("Header row must be written before data rows.")
        self._append(row)

    def close(self) -> None:
        """
        Upload any buffered rows and mark the server file upload complete.

        Safe to call more than once; only the first call talks to the server.
        After a failed row write the upload is abandoned instead, so a
        truncated file is never committed.
        """

        if self._closed:
            return
        self._closed = True

        if self._aborted:
            logger.warning(
                "Upload aborted file_id=%s chunks=%s",
                self._handle.file_id,
                self._chunks_uploaded,
            )
            return

        try:
            if self._buffer or self._chunks_uploaded == 0:
                self._flush()
            self._client.complete_upload(
                workspace_id=self._workspace_id,
                model_id=self._model_id,
                file_id=self._handle.file_id,
                chunk_count=self._chunks_uploaded,
            )
        except PlanningAPIError as exc:
            raise UploadError(f"Unable to complete upload of file {self._handle.file_id}.") from exc

        logger.info(
            "Upload complete file_id=%s chunks=%s",
            self._handle.file_id,
            self._chunks_uploaded,
        )

    def __enter__(self) -> UploadCellWriter:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self._aborted = True
        self.close()

    def _append(self, row: Sequence[str]) -> None:
        if self._closed:
            raise UploadError("Cannot write to a closed upload writer.")

        line = format_delimited([row], self._handle.separator, self._handle.delimiter)
        try:
            self._buffer.extend(line.encode(self._encoding()))
        except (LookupError, UnicodeEncodeError) as exc:
            self._aborted = True
            raise UploadError(f"Row cannot be encoded as {self._handle.encoding}.") from exc
        if len(self._buffer) >= self._chunk_size_bytes:
            try:
                self._flush()
            except PlanningAPIError as exc:
                self._aborted = True
                raise UploadError(f"Unable to upload chunk {self._chunks_uploaded} of file {self._handle.file_id}.") from exc

    def _flush(self) -> None:
        payload = bytes(self._buffer)
        self._buffer.clear()
        self._client.upload_chunk(
            workspace_id=self._workspace_id,
            model_id=self._model_id,
            file_id=self._handle.file_id,
            chunk_index=self._chunks_uploaded,
            payload=payload,
        )
        self._chunks_uploaded += 1

    def _encoding(self) -> str:
        encoding = (self._handle.encoding or "UTF-8").strip()
        return "utf-8" if encoding.upper() in {"UTF-8", "UTF8"} else encoding
