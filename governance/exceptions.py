from enum import Enum


class ErrorKind(str, Enum):
    PRIVILEGE = "privilege"
    PREREQUISITE = "prerequisite"
    CONNECTION = "connection"
    PROCESSING = "processing"
    EXPORT_NOT_FOUND = "export_not_found"
    EXPORT_TIMEOUT = "export_timeout"


class DAGReportError(Exception):
    """Base exception for DAG report operations."""
    kind = ErrorKind.PROCESSING

class PrivilegeError(DAGReportError):
    """Raised when an operation needs an elevated process and this one is not."""
    kind = ErrorKind.PRIVILEGE

class PrerequisiteError(DAGReportError):
    """Raised when the SharePoint Online Management Shell is not available."""
    kind = ErrorKind.PREREQUISITE

class ConnectionFailure(DAGReportError):
    """Raised when the tenant admin endpoint cannot be reached or logged into."""
    kind = ErrorKind.CONNECTION

class ReportProcessingError(DAGReportError):
    """Raised when fetching or processing insight reports fails."""
    kind = ErrorKind.PROCESSING

class ExportFileNotFound(DAGReportError):
    """No exported CSV for the report appeared before the deadline."""
    kind = ErrorKind.EXPORT_NOT_FOUND

class ExportFileTimeout(DAGReportError):
    """An exported CSV appeared but was still being written at the deadline."""
    kind = ErrorKind.EXPORT_TIMEOUT
