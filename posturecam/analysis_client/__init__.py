"""
Analysis Client - HTTP client for calling the remote Analysis Service.
"""
from posturecam.analysis_client.client import AnalysisClient, get_analysis_client
from posturecam.analysis_client.errors import (
    AnalysisError,
    ClientError,
    NoResponse,
    ServerRejected,
    describe_error,
)

__all__ = [
    "AnalysisClient",
    "get_analysis_client",
    "AnalysisError",
    "ClientError",
    "NoResponse",
    "ServerRejected",
    "describe_error",
]
