"""
planning_connector/schemas package marker.
"""

from planning_connector.schemas.model_import import (
    FailureDumpResponse,
    ImportRunRequest,
    ImportRunResponse,
    ServerFileResponse,
)

__all__ = [
    "FailureDumpResponse",
    "ImportRunRequest",
    "ImportRunResponse",
    "ServerFileResponse",
]
