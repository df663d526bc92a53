"""
planning_connector/api/routers package marker.
"""

from planning_connector.api.routers.model_import import router as model_import_router

__all__ = [
    "model_import_router",
]
