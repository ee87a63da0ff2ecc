"""LangChain chains for study guide generation."""

from src.chains.study_guide import (
    AnalysisError,
    AnalysisRequest,
    AnalysisResult,
    ImageBlob,
    StudyGuideChain,
)

__all__ = [
    "AnalysisError",
    "AnalysisRequest",
    "AnalysisResult",
    "ImageBlob",
    "StudyGuideChain",
]
