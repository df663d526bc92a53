"""
planning_connector/parsers package marker.
"""

from planning_connector.parsers.delimited import format_delimited, parse_delimited

__all__ = [
    "format_delimited",
    "parse_delimited",
]
