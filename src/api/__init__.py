"""API module for FastAPI REST endpoints."""

from src.api.models import AnalyzeResponse, ErrorResponse

__all__ = [
    "AnalyzeResponse",
    "ErrorResponse",
]
