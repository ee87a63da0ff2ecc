"""UI module: input and session state, result rendering, Streamlit client."""

from src.ui.api_client import APIClient
from src.ui.presenter import render_markdown, source_links
from src.ui.state import (
    InputCollector,
    InputKind,
    StateTransitionError,
    StudySession,
    UIState,
    UIStatus,
)

__all__ = [
    "APIClient",
    "InputCollector",
    "InputKind",
    "StateTransitionError",
    "StudySession",
    "UIState",
    "UIStatus",
    "render_markdown",
    "source_links",
]
