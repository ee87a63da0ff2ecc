"""API client for communicating with the FastAPI backend."""

import logging

import httpx

from src.chains.study_guide import AnalysisError, AnalysisResult, ImageBlob
from src.config import settings

logger = logging.getLogger(__name__)


class APIClient:
    """Client for the study guide API."""

    def __init__(self, base_url: str | None = None):
        """Initialize the API client.

        Args:
            base_url: Base URL of the API server. If not provided, uses the
                API_URL setting (default http://localhost:8000).
        """
        self.base_url = base_url or settings.api_url
        # No client-side limit on model calls; the transport decides.
        self.timeout = None

    def health_check(self) -> bool:
        """Check if the API is healthy.

        Returns:
            True if API is healthy, False otherwise.
        """
        try:
            with httpx.Client(timeout=5.0) as client:
                response = client.get(f"{self.base_url}/health")
                return response.status_code == 200
        except httpx.RequestError:
            return False

    def analyze(self, text: str, image: ImageBlob | None = None) -> AnalysisResult:
        """Generate a study guide.

        Args:
            text: Free text, a URL, or a note for the image.
            image: Optional image.

        Returns:
            AnalysisResult with Markdown and sources.

        Raises:
            AnalysisError: If the request fails, with the server's detail
                message when there is one.
        """
        files = None
        if image is not None:
            files = {"image": (image.filename or "image", image.data, image.mime_type)}

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    f"{self.base_url}/analyze",
                    data={"text": text},
                    files=files,
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.error(f"API error {e.response.status_code}: {detail}")
            raise AnalysisError(detail) from e
        except httpx.RequestError as e:
            logger.error(f"Request error: {e}")
            raise AnalysisError(str(e)) from e

        return AnalysisResult(
            markdown=payload["markdown"],
            sources=payload.get("sources") or [],
        )


def _error_detail(response: httpx.Response) -> str:
    """Pull the ``detail`` message out of an error response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    detail = payload.get("detail") if isinstance(payload, dict) else None
    if isinstance(detail, str) and detail:
        return detail
    return response.text or f"HTTP {response.status_code}"
