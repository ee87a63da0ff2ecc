"""API request and response models."""

from pydantic import BaseModel, Field


class AnalyzeResponse(BaseModel):
    """Response model for study guide generation."""

    markdown: str = Field(description="Markdown 格式的学习资料")
    sources: list[str] = Field(default_factory=list, description="参考来源网址")


class ErrorResponse(BaseModel):
    """Error body returned with 4xx/5xx responses."""

    detail: str = Field(description="错误详情")
