"""
tests/test_upload_writer.py

Unit tests for the chunked upload writer, using an in-memory client.
"""

from __future__ import annotations

import pytest

from planning_connector.connectors.base import PlanningAPIError
from planning_connector.connectors.upload_writer import UploadCellWriter
from planning_connector.domain.model_import import RemoteFileHandle
from planning_connector.exceptions import UploadError


class InMemoryUploadClient:
    def __init__(self, *, fail_on_chunk: int | None = None, fail_on_complete: bool = False) -> None:
        self.chunks: list[tuple[int, bytes]] = []
        self.completed: list[int] = []
        self._fail_on_chunk = fail_on_chunk
        self._fail_on_complete = fail_on_complete

    def upload_chunk(self, *, workspace_id: str, model_id: str, file_id: str, chunk_index: int, payload: bytes) -> None:
        if chunk_index == self._fail_on_chunk:
            raise PlanningAPIError("chunk rejected", status_code=500)
        self.chunks.append((chunk_index, payload))

    def complete_upload(self, *, workspace_id: str, model_id: str, file_id: str, chunk_count: int) -> None:
        if self._fail_on_complete:
            raise PlanningAPIError("complete rejected", status_code=500)
        self.completed.append(chunk_count)


def _writer(client: InMemoryUploadClient, *, chunk_size: int = 1024, **handle_fields) -> UploadCellWriter:
    handle = RemoteFileHandle(file_id="113000000001", name="Sales.csv", **handle_fields)
    return UploadCellWriter(
        client=client,
        workspace_id="ws1",
        model_id="m1",
        handle=handle,
        chunk_size_bytes=chunk_size,
    )


def test_rows_are_uploaded_in_one_chunk_on_close() -> None:
    client = InMemoryUploadClient()
    writer = _writer(client)

    writer.write_header_row(["Name", "Value"])
    writer.write_data_row(["A", "1"])
    writer.close()

    assert client.chunks == [(0, b"Name,Value\nA,1\n")]
    assert client.completed == [1]
    assert writer.closed


def test_rows_use_the_handle_dialect() -> None:
    client = InMemoryUploadClient()
    writer = _writer(client, separator=";", delimiter="'")

    writer.write_header_row(["a;b", "c"])
    writer.write_data_row(["it's", "x"])
    writer.close()

    assert client.chunks == [(0, b"'a;b';c\n'it''s';x\n")]


def test_buffer_is_flushed_when_chunk_size_is_reached() -> None:
    client = InMemoryUploadClient()
    writer = _writer(client, chunk_size=10)

    writer.write_header_row(["h1", "h2"])
    writer.write_data_row(["1", "2"])
    writer.write_data_row(["3", "4"])
    writer.close()

    assert client.chunks == [(0, b"h1,h2\n1,2\n"), (1, b"3,4\n")]
    assert client.completed == [2]
    assert writer.chunks_uploaded == 2


def test_close_is_idempotent() -> None:
    client = InMemoryUploadClient()
    writer = _writer(client)
    writer.write_header_row(["a"])

    writer.close()
    writer.close()

    assert client.completed == [1]


def test_context_manager_closes_on_error() -> None:
    client = InMemoryUploadClient()

    with pytest.raises(RuntimeError):
        with _writer(client) as writer:
            writer.write_header_row(["a"])
            raise RuntimeError("boom")

    assert writer.closed
    assert writer.aborted
    assert client.completed == []


def test_data_row_before_header_is_rejected() -> None:
    writer = _writer(InMemoryUploadClient())
    with pytest.raises(UploadError):
        writer.write_data_row(["1"])


def test_second_header_is_rejected() -> None:
    writer = _writer(InMemoryUploadClient())
    writer.write_header_row(["a"])
    with pytest.raises(UploadError):
        writer.write_header_row(["a"])


def test_write_after_close_is_rejected() -> None:
    writer = _writer(InMemoryUploadClient())
    writer.write_header_row(["a"])
    writer.close()
    with pytest.raises(UploadError):
        writer.write_data_row(["1"])


def test_chunk_failure_is_reported_as_upload_error() -> None:
    client = InMemoryUploadClient(fail_on_chunk=0)
    writer = _writer(client, chunk_size=4)

    with pytest.raises(UploadError) as ctx:
        writer.write_header_row(["header"])

    assert isinstance(ctx.value.__cause__, PlanningAPIError)


def test_complete_failure_still_marks_writer_closed() -> None:
    client = InMemoryUploadClient(fail_on_complete=True)
    writer = _writer(client)
    writer.write_header_row(["a"])

    with pytest.raises(UploadError):
        writer.close()

    assert writer.closed
    writer.close()
    assert client.completed == []


def test_unencodable_row_is_rejected() -> None:
    writer = _writer(InMemoryUploadClient(), encoding="ascii")
    with pytest.raises(UploadError):
        writer.write_header_row(["café"])


def test_failed_chunk_abandons_upload_on_close() -> None:
    client = InMemoryUploadClient(fail_on_chunk=1)
    writer = _writer(client, chunk_size=6)
    writer.write_header_row(["h1", "h2"])

    with pytest.raises(UploadError):
        writer.write_data_row(["10", "20"])
    writer.close()

    assert writer.aborted
    assert writer.closed
    assert client.chunks == [(0, b"h1,h2\n")]
    assert client.completed == []


def test_unencodable_row_abandons_upload_on_close() -> None:
    client = InMemoryUploadClient()
    writer = _writer(client, encoding="ascii")
    writer.write_header_row(["name"])

    with pytest.raises(UploadError):
        writer.write_data_row(["café"])
    writer.close()

    assert writer.aborted
    assert client.chunks == []
    assert client.completed == []
