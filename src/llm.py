"""LLM factory for the study guide model.

The model and temperature are fixed constants, not settings.
"""

from google.oauth2 import service_account
from langchain_google_vertexai import ChatVertexAI

from src.config import settings

MODEL_ID = "gemini-3-pro-preview"
TEMPERATURE = 0.4

_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


def get_credentials() -> service_account.Credentials | None:
    """Load service-account credentials if a key file is configured.

    Returns:
        Credentials from ``settings.service_account_file``, or None to fall
        back to application default credentials.
    """
    if not settings.service_account_file:
        return None
    return service_account.Credentials.from_service_account_file(
        settings.service_account_file,
        scopes=_SCOPES,
    )


def get_llm(temperature: float | None = None) -> ChatVertexAI:
    """Get the chat model used for study guide generation.

    Args:
        temperature: Override the fixed temperature. Only tests pass this.

    Returns:
        ChatVertexAI instance for MODEL_ID.

    Examples:
        >>> # Temperature is fixed at 0.4
        >>> llm = get_llm()
    """
    temp = temperature if temperature is not None else TEMPERATURE

    return ChatVertexAI(
        model_name=MODEL_ID,
        project=settings.google_project_id,
        location=settings.google_location,
        credentials=get_credentials(),
        temperature=temp,
    )
