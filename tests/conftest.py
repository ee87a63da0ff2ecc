"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage


def pytest_configure(config):
    """Set up test environment variables before tests run."""
    # Set required environment variables for testing
    os.environ.setdefault("GOOGLE_PROJECT_ID", "test-project")
    os.environ.setdefault("GOOGLE_LOCATION", "global")


@pytest.fixture
def png_image():
    """A tiny PNG image blob."""
    from src.chains.study_guide import ImageBlob

    return ImageBlob(
        data=b"\x89PNG\r\n\x1a\nfake-image-bytes",
        mime_type="image/png",
        filename="vogel.png",
    )


@pytest.fixture
def mock_llm():
    """Chat model stand-in returning a fixed study guide.

    ``bind_tools`` returns the same mock so search and plain requests share
    one configured reply.
    """
    reply = AIMessage(content="# 学习摘要\n\n测试内容")
    llm = MagicMock()
    llm.invoke.return_value = reply
    llm.ainvoke = AsyncMock(return_value=reply)
    llm.bind_tools.return_value = llm
    return llm
