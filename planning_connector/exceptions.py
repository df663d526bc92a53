"""
planning_connector/exceptions.py

Error taxonomy for the import connector.
"""

from __future__ import annotations


class ImportOperationError(RuntimeError):
    """
    Base class for failures raised while running an import operation.
    """


class ConfigurationError(ImportOperationError, ValueError):
    """
    Raised when an invocation is rejected before any remote call is made.
    """


class TransferError(ImportOperationError):
    """
    Raised when import data cannot be parsed or written to the server file.
    """


class DelimitedParseError(TransferError):
    """
    Raised when delimited text is malformed for the configured dialect.
    """


class EmptyImportDataError(TransferError):
    """
    Raised when import data contains no header row.
    """


class UploadError(TransferError):
    """
    Raised when the upload writer cannot push rows to the server file.
    """


class RemoteTaskError(ImportOperationError):
    """
    Raised when a server task cannot be created or monitored.
    """


class TaskTimeoutError(RemoteTaskError):
    """
    Raised when a server task does not reach a terminal state in time.
    """
