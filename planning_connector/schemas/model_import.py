"""
planning_connector/schemas/model_import.py

Request and response schemas for model import endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from planning_connector.domain.model_import import ImportOutcome, OutcomeStatus


class ImportRunRequest(BaseModel):
    """
    API request model for running one import action.
    """

    data: str = Field(..., description="Delimited text; the first record is the header row.")
    workspace_id: str
    model_id: str
    import_id: str
    column_separator: str | None = Field(default=None, description="Single character; defaults to ','.")
    quote_char: str | None = Field(default=None, description="Single character; defaults to '\"'.")


class FailureDumpResponse(BaseModel):
    """
    API response model referencing a server-side failure dump.
    """

    workspace_id: str
    model_id: str
    import_id: str
    task_id: str


class ServerFileResponse(BaseModel):
    """
    API response model for the server file written by an import.
    """

    file_id: str
    name: str
    separator: str
    delimiter: str


class ImportRunResponse(BaseModel):
    """
    API response model for one import outcome.
    """

    status: OutcomeStatus
    response_message: str
    import_id: str
    rows_processed: int = Field(..., ge=0)
    failure_dump: FailureDumpResponse | None = None
    server_file: ServerFileResponse | None = None

    @classmethod
    def from_outcome(cls, outcome: ImportOutcome) -> ImportRunResponse:
        dump = outcome.failure_dump
        server_file = outcome.server_file
        return cls(
            status=outcome.status,
            response_message=outcome.response_message,
            import_id=outcome.import_id,
            rows_processed=outcome.rows_processed,
            failure_dump=(
                FailureDumpResponse(
                    workspace_id=dump.workspace_id,
                    model_id=dump.model_id,
                    import_id=dump.import_id,
                    task_id=dump.task_id,
                )
                if dump is not None
                else None
            ),
            server_file=(
                ServerFileResponse(
                    file_id=server_file.file_id,
                    name=server_file.name,
                    separator=server_file.separator,
                    delimiter=server_file.delimiter,
                )
                if server_file is not None
                else None
            ),
        )
