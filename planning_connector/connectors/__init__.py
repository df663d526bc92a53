"""
planning_connector/connectors package marker.
"""

from planning_connector.connectors.base import BaseConnector, PlanningAPIError
from planning_connector.connectors.connection import PlanningConnection
from planning_connector.connectors.planning_api import PlanningAPIClient
from planning_connector.connectors.upload_writer import UploadCellWriter

__all__ = [
    "BaseConnector",
    "PlanningAPIClient",
    "PlanningAPIError",
    "PlanningConnection",
    "UploadCellWriter",
]
