"""
Errors raised by the Analysis Service client.

Every failed call raises exactly one AnalysisError subclass; callers turn it
into a human-readable message with describe_error().
"""
from typing import Optional


class AnalysisError(Exception):
    """Base class for Analysis Service failures."""

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(message)


class ServerRejected(AnalysisError):
    """The service answered with a non-success status or an unusable body."""

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        self.detail = message
        super().__init__(f"Server Error: {status} - {message or 'Unknown error'}")


class NoResponse(AnalysisError):
    """The request was sent but no response came back (network or timeout)."""


class ClientError(AnalysisError):
    """The request was malformed before it could be sent."""


def describe_error(error: Exception, operation: str) -> str:
    """
    Render an error as the single message shown to the user.

    Args:
        error: Exception raised while running the operation
        operation: Short human name, e.g. "video analysis" or "live analysis"

    Returns:
        Message text
    """
    if isinstance(error, ServerRejected):
        return error.message
    if isinstance(error, NoResponse):
        return f"No response from backend for {operation}. Is the backend server running?"
    if isinstance(error, ClientError):
        return f"Request Error for {operation}: {error.message}"
    return f"An unexpected error occurred during {operation}."
