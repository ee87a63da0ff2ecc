"""FastAPI application for the OranjeStudie study guide generator."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Any

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from starlette.datastructures import UploadFile as StarletteUploadFile

from src.api.models import AnalyzeResponse, ErrorResponse
from src.chains.study_guide import (
    AnalysisError,
    AnalysisRequest,
    ImageBlob,
    StudyGuideChain,
)
from src.config import get_settings
from src.ui.presenter import render_markdown, source_links
from src.ui.state import StudySession, UIState

settings = get_settings()

# Configure logging for Cloud Run
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global instance (initialized on startup)
analyzer: StudyGuideChain | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize and cleanup resources."""
    global analyzer

    logger.info("Initializing API resources...")
    analyzer = StudyGuideChain()

    yield

    logger.info("Cleaning up API resources...")


app = FastAPI(
    title="OranjeStudie API",
    description="Dutch A2-B1 study guide generation for Chinese-speaking learners",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Configure templates and static files
BASE_DIR = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.filters["markdown"] = render_markdown
templates.env.globals["current_year"] = lambda: date.today().year
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
app.state.templates = templates


async def read_image(upload: Any) -> ImageBlob | None:
    """Read an uploaded image from a form field.

    Args:
        upload: The form value. Browsers send an empty file part when
            nothing was picked.

    Returns:
        ImageBlob, or None if no file was uploaded.

    Raises:
        ValueError: If the uploaded file is not an image.
    """
    if not isinstance(upload, StarletteUploadFile) or not upload.filename:
        return None

    data = await upload.read()
    if not data:
        return None

    return ImageBlob(
        data=data,
        mime_type=upload.content_type or "application/octet-stream",
        filename=upload.filename,
    )


def workspace_context(state: UIState, text: str = "") -> dict[str, Any]:
    """Template context for the workspace partial."""
    return {
        "state": state,
        "text": text,
        "sources": source_links(state.sources),
    }


@app.get("/")
async def index(request: Request):
    """Render the main page in the idle state."""
    return templates.TemplateResponse(
        request, "index.html", workspace_context(UIState.idle())
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.post("/ui/analyze")
async def ui_analyze(request: Request):
    """Generate a study guide and return the workspace partial for HTMX.

    An empty submission renders the idle form again without calling the
    model. Service failures render the error banner.

    Args:
        request: FastAPI request with multipart form data (text, image).

    Returns:
        HTML partial for the resulting state.
    """
    form_data = await request.form()
    text = str(form_data.get("text", ""))
    session = StudySession()

    try:
        image = await read_image(form_data.get("image"))
    except ValidationError as e:
        logger.warning(f"Rejected upload: {e}")
        session.begin()
        session.fail("请上传图片文件（JPG、PNG 等）。")
        return templates.TemplateResponse(
            request, "partials/workspace.html", workspace_context(session.state, text)
        )

    analysis_request = AnalysisRequest(text=text, image=image)
    if not analysis_request.has_content:
        return templates.TemplateResponse(
            request, "partials/workspace.html", workspace_context(session.state)
        )

    if analyzer is None:
        raise HTTPException(status_code=500, detail="Analyzer not initialized")

    state = await session.arun(analysis_request, analyzer.aanalyze)
    return templates.TemplateResponse(
        request, "partials/workspace.html", workspace_context(state, text)
    )


@app.get("/ui/reset")
async def ui_reset(request: Request):
    """Return to the idle input form, discarding the previous input."""
    session = StudySession()
    return templates.TemplateResponse(
        request, "partials/workspace.html", workspace_context(session.reset())
    )


@app.post(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def analyze(
    text: str = Form(""),
    image: UploadFile | None = File(None),
) -> AnalyzeResponse:
    """Generate a study guide from text, a URL, or an image.

    Args:
        text: Free text, a URL, or a note for the image.
        image: Optional image upload.

    Returns:
        Markdown study guide and grounding sources.
    """
    try:
        blob = await read_image(image)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail="Only image uploads are supported") from e

    analysis_request = AnalysisRequest(text=text, image=blob)
    if not analysis_request.has_content:
        raise HTTPException(status_code=400, detail="Text or image is required")

    if analyzer is None:
        raise HTTPException(status_code=500, detail="Analyzer not initialized")

    try:
        result = await analyzer.aanalyze(analysis_request.text, analysis_request.image)
    except AnalysisError as e:
        raise HTTPException(status_code=502, detail=e.message) from e

    return AnalyzeResponse(markdown=result.markdown, sources=result.sources)
