"""
planning_connector/api/routers/model_import.py

Model import HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse

from planning_connector.config import ImportDefaults, get_import_defaults
from planning_connector.connectors import PlanningAPIError
from planning_connector.domain.model_import import FailureDump
from planning_connector.exceptions import ConfigurationError
from planning_connector.schemas.model_import import ImportRunRequest, ImportRunResponse
from planning_connector.services.import_service import ImportService, get_import_service

router = APIRouter(tags=["imports"])


@router.post("/imports/run", response_model=ImportRunResponse)
def run_import(
    payload: ImportRunRequest,
    import_service: ImportService = Depends(get_import_service),
    defaults: ImportDefaults = Depends(get_import_defaults),
) -> ImportRunResponse:
    """
    Upload delimited data and run one import action to completion.
    """

    try:
        outcome = import_service.run_import(
            data=payload.data,
            workspace_id=payload.workspace_id,
            model_id=payload.model_id,
            import_id=payload.import_id,
            column_separator=(
                payload.column_separator if payload.column_separator is not None else defaults.column_separator
            ),
            quote_char=payload.quote_char if payload.quote_char is not None else defaults.quote_char,
        )
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    return ImportRunResponse.from_outcome(outcome)


@router.get(
    "/workspaces/{workspace_id}/models/{model_id}/imports/{import_id}/tasks/{task_id}/dump",
    response_class=PlainTextResponse,
)
def download_failure_dump(
    workspace_id: str,
    model_id: str,
    import_id: str,
    task_id: str,
    import_service: ImportService = Depends(get_import_service),
) -> PlainTextResponse:
    """
    Return the rejected-rows dump of a completed import task.
    """

    dump = FailureDump(
        workspace_id=workspace_id,
        model_id=model_id,
        import_id=import_id,
        task_id=task_id,
    )
    try:
        content = import_service.fetch_failure_dump(dump)
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    except PlanningAPIError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Unable to download failure dump.",
        ) from exc

    return PlainTextResponse(content, media_type="text/csv")
