"""Study guide generation chain.

Sends one piece of user input (text, a URL, or an image) to Gemini with the
OranjeStudie tutor prompt and returns the Markdown study guide together with
any web sources the model grounded its answer on.
"""

import base64
import logging
import re
from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_google_vertexai import ChatVertexAI
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.llm import get_llm

logger = logging.getLogger(__name__)


EMPTY_RESULT_MESSAGE = "无法生成内容，请重试。"
SERVICE_ERROR_MESSAGE = "An error occurred while communicating with Gemini."

IMAGE_ONLY_PROMPT = "Analyze this image and generate a Dutch study guide."
IMAGE_NOTE_PROMPT = "Analyze this image. Context/User Note: {text}"

GOOGLE_SEARCH_TOOL: dict[str, Any] = {"google_search": {}}

# Starts with http(s):// and has no spaces or double quotes. Free text that
# happens to look like this also enables search.
URL_PATTERN = re.compile(r'^(http|https)://[^ "]+$')

SYSTEM_PROMPT = """
You are "OranjeStudie", an expert Dutch language tutor specifically designed for native Chinese speakers.
The user is learning at a CEFR A2 to B1 level.

Your goal is to analyze the provided input (Text, Image, or URL content) and generate a comprehensive, structured study guide in Markdown format.

**Rules for Content Generation:**
1.  **Audience:** All explanations must be in simplified Chinese (zh-CN). The tone should be encouraging, clear, and educational.
2.  **Level:** Focus on vocabulary and grammar suitable for A2-B1.
3.  **Formatting:** Use standard Markdown.
    *   Use **bold** for key Dutch vocabulary (A2/B1 level).
    *   Use *italics* for emphasis.
    *   Use > Blockquotes for translation notes.
4.  **Structure:**
    *   **# 学习摘要 (Summary):** A brief summary of the content in Chinese.
    *   **## 沉浸式阅读 (Immersion Reading):**
        *   If the input is text/article/sentences: Present the Dutch text line-by-line. Immediately below each Dutch line, provide the Chinese translation.
        *   Example:
            > Het is vandaag mooi weer.
            > 今天天气很好。
        *   If the input is an image of objects: List the items identified with their Dutch names (with article 'de'/'het') and Chinese translations.
    *   **## 重点词汇 (Key Vocabulary):** A table or list of 5-10 key words found in the content. Columns: Dutch Word (highlighted), Part of Speech, Chinese Meaning, Plural form (if noun).
    *   **## 语法解析 (Grammar Notes):** Explain 1-3 grammar points found in the text (e.g., Inversion, Separable verbs, Perfect tense) in Chinese.
    *   **## 练习 (Practice):** 2 short questions or a translation exercise based on the content to test understanding.

**Special Handling:**
*   If the input is a URL, read the content of the page and then perform the analysis.
*   If the input is an image, describe what is happening in the image in Dutch (A2/B1 level) in the "Immersion Reading" section, then analyze that text.
"""


class AnalysisError(Exception):
    """Raised when the model call fails. The message is shown to the user."""

    def __init__(self, message: str = SERVICE_ERROR_MESSAGE):
        super().__init__(message)
        self.message = message


class ImageBlob(BaseModel):
    """An uploaded image with its MIME type."""

    data: bytes = Field(description="图片原始数据")
    mime_type: str = Field(description="MIME 类型（例如 image/png）")
    filename: str | None = Field(default=None, description="原始文件名")

    @field_validator("mime_type")
    @classmethod
    def must_be_image(cls, value: str) -> str:
        if not value.startswith("image/"):
            raise ValueError(f"Unsupported file type: {value}")
        return value


class AnalysisRequest(BaseModel):
    """User input for one analysis."""

    text: str = Field(default="", description="文本或网址")
    image: ImageBlob | None = Field(default=None, description="可选图片")

    @property
    def has_content(self) -> bool:
        """True if there is non-blank text or an image."""
        return bool(self.text.strip()) or self.image is not None


class AnalysisResult(BaseModel):
    """Markdown study guide and its grounding sources."""

    model_config = ConfigDict(frozen=True)

    markdown: str = Field(description="Markdown 格式的学习资料")
    sources: list[str] = Field(default_factory=list, description="参考来源网址")


class StudyGuideRequest(BaseModel):
    """A fully constructed model request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    messages: list[BaseMessage]
    tools: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def use_search(self) -> bool:
        return GOOGLE_SEARCH_TOOL in self.tools


def encode_image(data: bytes, mime_type: str) -> str:
    """Encode image bytes as base64 for inline transport.

    Args:
        data: Raw image bytes.
        mime_type: MIME type of the image. Validated, not embedded.

    Returns:
        Standard base64 string without a data URL prefix.
    """
    if not mime_type.startswith("image/"):
        raise ValueError(f"Unsupported file type: {mime_type}")
    return base64.b64encode(data).decode("ascii")


def is_url(text: str) -> bool:
    """Check whether the whole (trimmed) text is a single http(s) URL."""
    return URL_PATTERN.match(text.strip()) is not None


def extract_sources(metadata: Any) -> list[str]:
    """Collect web source URIs from grounding metadata.

    Anything malformed is skipped.

    Args:
        metadata: Grounding metadata dict from the model response.

    Returns:
        Source URIs in the order the service returned them.
    """
    if not isinstance(metadata, dict):
        return []

    chunks = metadata.get("grounding_chunks") or metadata.get("groundingChunks")
    if not isinstance(chunks, list):
        return []

    sources = []
    for chunk in chunks:
        if not isinstance(chunk, dict):
            continue
        web = chunk.get("web")
        if not isinstance(web, dict):
            continue
        uri = web.get("uri")
        if isinstance(uri, str) and uri:
            sources.append(uri)
    return sources


def response_text(message: BaseMessage) -> str:
    """Get the generated text from a model reply."""
    content = message.content
    if isinstance(content, str):
        return content

    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class StudyGuideChain:
    """Chain for generating a bilingual Dutch study guide."""

    def __init__(self, llm: ChatVertexAI | None = None):
        """Initialize the study guide chain.

        Args:
            llm: Optional ChatVertexAI instance. Creates one if not provided.
        """
        self.llm = llm or get_llm()

    def build_request(self, text: str, image: ImageBlob | None = None) -> StudyGuideRequest:
        """Build the model request for the given input.

        Args:
            text: Free text, a URL, or a note accompanying the image.
            image: Optional uploaded image.

        Returns:
            StudyGuideRequest with messages and tools.
        """
        tools = [GOOGLE_SEARCH_TOOL] if is_url(text) else []

        if image is not None:
            data = encode_image(image.data, image.mime_type)
            prompt = IMAGE_NOTE_PROMPT.format(text=text) if text else IMAGE_ONLY_PROMPT
            content: str | list[str | dict] = [
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image.mime_type};base64,{data}"},
                },
                {"type": "text", "text": prompt},
            ]
        else:
            content = text

        messages = [
            SystemMessage(content=SYSTEM_PROMPT),
            HumanMessage(content=content),
        ]
        return StudyGuideRequest(messages=messages, tools=tools)

    def _runnable(self, request: StudyGuideRequest):
        if request.tools:
            return self.llm.bind_tools(request.tools)
        return self.llm

    def _to_result(self, request: StudyGuideRequest, response: BaseMessage) -> AnalysisResult:
        markdown = response_text(response) or EMPTY_RESULT_MESSAGE

        sources: list[str] = []
        if request.use_search:
            metadata = getattr(response, "response_metadata", None) or {}
            sources = extract_sources(metadata.get("grounding_metadata"))

        logger.info(f"Study guide generated ({len(markdown)} chars, {len(sources)} sources)")
        return AnalysisResult(markdown=markdown, sources=sources)

    def analyze(self, text: str, image: ImageBlob | None = None) -> AnalysisResult:
        """Generate a study guide.

        Args:
            text: Free text, a URL, or a note accompanying the image.
            image: Optional uploaded image.

        Returns:
            AnalysisResult with the Markdown guide and grounding sources.

        Raises:
            AnalysisError: If the model call fails.
        """
        request = self.build_request(text, image)
        logger.debug(f"Analyzing input (image={image is not None}, search={request.use_search})")
        try:
            response = self._runnable(request).invoke(request.messages)
        except Exception as e:
            logger.exception("Gemini API error")
            raise AnalysisError(str(e) or SERVICE_ERROR_MESSAGE) from e
        return self._to_result(request, response)

    async def aanalyze(self, text: str, image: ImageBlob | None = None) -> AnalysisResult:
        """Async version of analyze.

        Args:
            text: Free text, a URL, or a note accompanying the image.
            image: Optional uploaded image.

        Returns:
            AnalysisResult with the Markdown guide and grounding sources.

        Raises:
            AnalysisError: If the model call fails.
        """
        request = self.build_request(text, image)
        logger.debug(f"Analyzing input (image={image is not None}, search={request.use_search})")
        try:
            response = await self._runnable(request).ainvoke(request.messages)
        except Exception as e:
            logger.exception("Gemini API error")
            raise AnalysisError(str(e) or SERVICE_ERROR_MESSAGE) from e
        return self._to_result(request, response)
