"""
planning_connector/services package marker.
"""

from planning_connector.services.import_service import ImportService, get_import_service, write_table
from planning_connector.services.task_runner import ServerTaskRunner

__all__ = [
    "ImportService",
    "ServerTaskRunner",
    "get_import_service",
    "write_table",
]
