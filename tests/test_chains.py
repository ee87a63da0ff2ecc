"""Tests for the study guide chain."""

import asyncio
import base64
from unittest.mock import AsyncMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from src.chains.study_guide import (
    EMPTY_RESULT_MESSAGE,
    GOOGLE_SEARCH_TOOL,
    IMAGE_ONLY_PROMPT,
    SERVICE_ERROR_MESSAGE,
    SYSTEM_PROMPT,
    AnalysisError,
    AnalysisRequest,
    AnalysisResult,
    ImageBlob,
    StudyGuideChain,
    encode_image,
    extract_sources,
    is_url,
    response_text,
)


class TestIsUrl:
    """Test the URL heuristic that enables Google Search."""

    def test_http_and_https_urls(self):
        assert is_url("http://example.com")
        assert is_url("https://nos.nl/artikel/123-nieuws")
        assert is_url("  https://example.com/path?q=1  ")

    def test_plain_text_is_not_url(self):
        assert not is_url("hello world")
        assert not is_url("Het is vandaag mooi weer.")
        assert not is_url("")

    def test_url_with_surrounding_text_is_not_url(self):
        assert not is_url("lees dit: https://example.com")
        assert not is_url("https://example.com en meer")

    def test_quotes_disqualify(self):
        assert not is_url('https://example.com/"quoted"')

    def test_non_url_text_starting_with_scheme_counts(self):
        """Anything shaped like scheme + non-space run is treated as a URL."""
        assert is_url("http://not-really-a-url")


class TestEncodeImage:
    """Test base64 image encoding."""

    def test_encodes_bytes(self):
        data = b"\x00\x01binary\xff"
        encoded = encode_image(data, "image/jpeg")

        assert base64.b64decode(encoded) == data
        assert not encoded.startswith("data:")

    def test_rejects_non_image(self):
        with pytest.raises(ValueError):
            encode_image(b"%PDF", "application/pdf")


class TestExtractSources:
    """Test defensive grounding metadata parsing."""

    def test_skips_malformed_chunks_and_keeps_order(self):
        metadata = {
            "grounding_chunks": [
                {"web": {"uri": "https://a"}},
                {"foo": 1},
                {"web": {"uri": "https://b"}},
            ]
        }

        assert extract_sources(metadata) == ["https://a", "https://b"]

    def test_camel_case_key(self):
        metadata = {"groundingChunks": [{"web": {"uri": "https://a", "title": "A"}}]}

        assert extract_sources(metadata) == ["https://a"]

    def test_missing_or_wrong_types(self):
        assert extract_sources(None) == []
        assert extract_sources({}) == []
        assert extract_sources({"grounding_chunks": "nope"}) == []
        assert extract_sources(
            {"grounding_chunks": [None, "x", {"web": None}, {"web": {"uri": 5}}, {"web": {}}]}
        ) == []


class TestResponseText:
    """Test reading text from model replies."""

    def test_string_content(self):
        assert response_text(AIMessage(content="hallo")) == "hallo"

    def test_list_content(self):
        message = AIMessage(
            content=[{"type": "text", "text": "Goede"}, "morgen", {"type": "other"}]
        )

        assert response_text(message) == "Goedemorgen"


class TestModels:
    """Test request and result models."""

    def test_has_content(self, png_image):
        assert AnalysisRequest(text="hallo").has_content
        assert AnalysisRequest(image=png_image).has_content
        assert not AnalysisRequest(text="   \n").has_content
        assert not AnalysisRequest().has_content

    def test_image_blob_requires_image_type(self):
        with pytest.raises(ValueError):
            ImageBlob(data=b"text", mime_type="text/plain")

    def test_result_is_immutable(self):
        result = AnalysisResult(markdown="# Test")

        assert result.sources == []
        with pytest.raises(Exception):
            result.markdown = "changed"


class TestBuildRequest:
    """Test request construction."""

    def test_url_enables_search(self, mock_llm):
        request = StudyGuideChain(llm=mock_llm).build_request("http://example.com")

        assert request.tools == [GOOGLE_SEARCH_TOOL]
        assert request.use_search is True

    def test_plain_text_has_no_tools(self, mock_llm):
        request = StudyGuideChain(llm=mock_llm).build_request("hello world")

        assert request.tools == []
        assert request.use_search is False

    def test_text_only_is_sole_part(self, mock_llm):
        request = StudyGuideChain(llm=mock_llm).build_request("Ik woon in Utrecht.")

        system, human = request.messages
        assert isinstance(system, SystemMessage)
        assert system.content == SYSTEM_PROMPT
        assert isinstance(human, HumanMessage)
        assert human.content == "Ik woon in Utrecht."

    def test_image_without_text(self, mock_llm, png_image):
        request = StudyGuideChain(llm=mock_llm).build_request("", png_image)

        parts = request.messages[1].content
        expected_data = base64.b64encode(png_image.data).decode("ascii")
        assert parts[0] == {
            "type": "image_url",
            "image_url": {"url": f"data:image/png;base64,{expected_data}"},
        }
        assert parts[1] == {"type": "text", "text": IMAGE_ONLY_PROMPT}
        assert IMAGE_ONLY_PROMPT == "Analyze this image and generate a Dutch study guide."

    def test_image_with_note(self, mock_llm, png_image):
        request = StudyGuideChain(llm=mock_llm).build_request("bird", png_image)

        parts = request.messages[1].content
        assert len(parts) == 2
        assert parts[1]["text"] == "Analyze this image. Context/User Note: bird"

    def test_image_with_whitespace_note_is_not_trimmed(self, mock_llm, png_image):
        request = StudyGuideChain(llm=mock_llm).build_request("   ", png_image)

        parts = request.messages[1].content
        assert parts[1]["text"] == "Analyze this image. Context/User Note:    "

    def test_system_prompt_sections(self):
        for heading in ["# 学习摘要", "## 沉浸式阅读", "## 重点词汇", "## 语法解析", "## 练习"]:
            assert heading in SYSTEM_PROMPT
        assert "CEFR A2 to B1" in SYSTEM_PROMPT


class TestAnalyze:
    """Test the full analyze call with a mocked model."""

    def test_returns_markdown(self, mock_llm):
        result = StudyGuideChain(llm=mock_llm).analyze("Goedemorgen")

        assert result.markdown == "# 学习摘要\n\n测试内容"
        assert result.sources == []
        mock_llm.bind_tools.assert_not_called()

    def test_empty_reply_uses_fallback(self, mock_llm):
        mock_llm.invoke.return_value = AIMessage(content="")

        result = StudyGuideChain(llm=mock_llm).analyze("Goedemorgen")

        assert result.markdown == EMPTY_RESULT_MESSAGE
        assert result.markdown == "无法生成内容，请重试。"

    def test_url_collects_sources(self, mock_llm):
        mock_llm.invoke.return_value = AIMessage(
            content="# 学习摘要",
            response_metadata={
                "grounding_metadata": {
                    "grounding_chunks": [
                        {"web": {"uri": "https://a"}},
                        {"foo": 1},
                        {"web": {"uri": "https://b"}},
                    ]
                }
            },
        )

        result = StudyGuideChain(llm=mock_llm).analyze("https://nos.nl")

        mock_llm.bind_tools.assert_called_once_with([GOOGLE_SEARCH_TOOL])
        assert result.sources == ["https://a", "https://b"]

    def test_sources_ignored_without_search(self, mock_llm):
        mock_llm.invoke.return_value = AIMessage(
            content="# 学习摘要",
            response_metadata={
                "grounding_metadata": {"grounding_chunks": [{"web": {"uri": "https://a"}}]}
            },
        )

        result = StudyGuideChain(llm=mock_llm).analyze("gewone tekst")

        assert result.sources == []

    def test_service_error_message_is_kept(self, mock_llm):
        mock_llm.invoke.side_effect = RuntimeError("403 Permission denied")

        with pytest.raises(AnalysisError) as exc_info:
            StudyGuideChain(llm=mock_llm).analyze("Goedemorgen")

        assert exc_info.value.message == "403 Permission denied"

    def test_service_error_without_message(self, mock_llm):
        mock_llm.invoke.side_effect = RuntimeError()

        with pytest.raises(AnalysisError) as exc_info:
            StudyGuideChain(llm=mock_llm).analyze("Goedemorgen")

        assert exc_info.value.message == SERVICE_ERROR_MESSAGE

    def test_async_analyze(self, mock_llm, png_image):
        result = asyncio.run(StudyGuideChain(llm=mock_llm).aanalyze("", png_image))

        assert result.markdown == "# 学习摘要\n\n测试内容"
        mock_llm.ainvoke.assert_awaited_once()

    def test_async_analyze_error(self, mock_llm):
        mock_llm.ainvoke = AsyncMock(side_effect=ConnectionError("network down"))

        with pytest.raises(AnalysisError, match="network down"):
            asyncio.run(StudyGuideChain(llm=mock_llm).aanalyze("Goedemorgen"))
