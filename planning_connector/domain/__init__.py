"""
planning_connector/domain package marker.
"""
