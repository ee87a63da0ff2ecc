"""State management for the study UI.

``InputCollector`` owns the form (text, one image, loading gate) and
``StudySession`` owns the request lifecycle:

    idle/failure --begin--> loading --complete--> success
                                    --fail------> failure
    any --reset--> idle
"""

import base64
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.chains.study_guide import AnalysisRequest, AnalysisResult, ImageBlob

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "生成内容时发生错误，请稍后重试。"

SendCallback = Callable[[str, ImageBlob | None], None]


class StateTransitionError(Exception):
    """Raised when a transition is not allowed from the current state."""


class UIStatus(str, Enum):
    """UI state variants."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


class UIState(BaseModel):
    """Exactly one of idle, loading, success(result) or failure(message)."""

    model_config = ConfigDict(frozen=True)

    status: UIStatus = Field(default=UIStatus.IDLE, description="当前状态")
    data: AnalysisResult | None = Field(default=None, description="成功时的结果")
    error: str | None = Field(default=None, description="失败时的错误信息")

    @classmethod
    def idle(cls) -> "UIState":
        return cls(status=UIStatus.IDLE)

    @classmethod
    def loading(cls) -> "UIState":
        return cls(status=UIStatus.LOADING)

    @classmethod
    def success(cls, result: AnalysisResult) -> "UIState":
        return cls(status=UIStatus.SUCCESS, data=result)

    @classmethod
    def failure(cls, message: str) -> "UIState":
        return cls(status=UIStatus.FAILURE, error=message)

    @property
    def is_loading(self) -> bool:
        return self.status == UIStatus.LOADING

    @property
    def sources(self) -> list[str]:
        """Sources of the current result, empty outside success."""
        if self.data is None:
            return []
        return list(self.data.sources)


class StudySession:
    """Coordinator that owns the UI state for one browser session."""

    def __init__(self):
        self.state = UIState.idle()

    def begin(self) -> UIState:
        """Enter loading. Previous results and sources are dropped."""
        if self.state.status not in (UIStatus.IDLE, UIStatus.FAILURE):
            raise StateTransitionError(f"Cannot submit while {self.state.status.value}")
        self.state = UIState.loading()
        return self.state

    def complete(self, result: AnalysisResult) -> UIState:
        """Record a successful analysis."""
        self._require_loading("complete")
        self.state = UIState.success(result)
        return self.state

    def fail(self, error: Exception | str | None) -> UIState:
        """Record a failed analysis.

        Args:
            error: The exception or message. Falls back to a generic message
                when it carries none.
        """
        self._require_loading("fail")
        message = getattr(error, "message", None) or (str(error) if error else "")
        self.state = UIState.failure(message or GENERIC_ERROR_MESSAGE)
        return self.state

    def reset(self) -> UIState:
        """Return to idle from any state."""
        self.state = UIState.idle()
        return self.state

    def run(
        self,
        request: AnalysisRequest,
        analyze: Callable[[str, ImageBlob | None], AnalysisResult],
    ) -> UIState:
        """Run one analysis through the full lifecycle.

        Args:
            request: The submitted input.
            analyze: Analysis client call, e.g. ``StudyGuideChain.analyze``.

        Returns:
            The final success or failure state.
        """
        self.begin()
        try:
            result = analyze(request.text, request.image)
        except Exception as e:
            logger.warning(f"Analysis failed: {e}")
            return self.fail(e)
        return self.complete(result)

    async def arun(
        self,
        request: AnalysisRequest,
        analyze: Callable[[str, ImageBlob | None], Awaitable[AnalysisResult]],
    ) -> UIState:
        """Async version of run."""
        self.begin()
        try:
            result = await analyze(request.text, request.image)
        except Exception as e:
            logger.warning(f"Analysis failed: {e}")
            return self.fail(e)
        return self.complete(result)

    def _require_loading(self, action: str) -> None:
        if self.state.status != UIStatus.LOADING:
            raise StateTransitionError(f"Cannot {action} while {self.state.status.value}")


class InputKind(str, Enum):
    """What the user has entered, for the input indicator."""

    TEXT = "text"
    URL = "url"
    IMAGE = "image"


class ImageSelection(BaseModel):
    """The selected image and its preview handle."""

    image: ImageBlob
    preview_url: str | None = None


def make_preview_url(image: ImageBlob) -> str:
    """Build an inline data URL for previewing the image."""
    encoded = base64.b64encode(image.data).decode("ascii")
    return f"data:{image.mime_type};base64,{encoded}"


class InputCollector:
    """Form state: text, at most one image, and the submit gate."""

    def __init__(self, on_send: SendCallback):
        self.on_send = on_send
        self.text = ""
        self.selection: ImageSelection | None = None
        self.is_loading = False

    @property
    def image(self) -> ImageBlob | None:
        return self.selection.image if self.selection else None

    @property
    def preview_url(self) -> str | None:
        return self.selection.preview_url if self.selection else None

    @property
    def input_kind(self) -> InputKind:
        if self.selection is not None:
            return InputKind.IMAGE
        if self.text.startswith("http"):
            return InputKind.URL
        return InputKind.TEXT

    @property
    def can_submit(self) -> bool:
        return not self.is_loading and (bool(self.text.strip()) or self.selection is not None)

    def set_text(self, text: str) -> None:
        if self.is_loading:
            return
        self.text = text

    def set_image(self, data: bytes, mime_type: str, filename: str | None = None) -> None:
        """Select an image, replacing (and releasing) any previous one.

        Raises:
            ValueError: If the file is not an image.
        """
        if self.is_loading:
            return
        image = ImageBlob(data=data, mime_type=mime_type, filename=filename)
        self.clear_image()
        self.selection = ImageSelection(image=image, preview_url=make_preview_url(image))

    def clear_image(self) -> None:
        if self.is_loading or self.selection is None:
            return
        self.selection.preview_url = None
        self.selection = None

    def submit(self) -> bool:
        """Send the current input. Does nothing when there is nothing to send.

        Returns:
            True if ``on_send`` was called.
        """
        if not self.can_submit:
            return False
        self.on_send(self.text, self.image)
        return True

    def handle_key(self, key: str, shift: bool = False) -> bool:
        """Apply a keypress in the text field.

        Plain Enter submits; Shift+Enter inserts a newline.

        Returns:
            True if the keypress submitted the form.
        """
        if key != "Enter":
            return False
        if shift:
            self.set_text(self.text + "\n")
            return False
        return self.submit()
