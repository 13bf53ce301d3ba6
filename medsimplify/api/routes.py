"""
API routes for MedSimplify.

Defines the REST endpoints of the report simplification pipeline.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from medsimplify.config import Settings
from medsimplify.core.errors import PayloadTooLarge, UpstreamFailure, ValidationError
from medsimplify.core.extractor import UploadedFile, document_extractor
from medsimplify.core.llm_engine import TextGenerator
from medsimplify.api.middleware import limiter, api_rate_limit
from medsimplify.models.schemas import (
    ErrorResponse,
    HealthResponse,
    SimplifyRequest,
    SimplifyResponse,
    UploadResponse,
)
from medsimplify.services.response_composer import compose_response
from medsimplify.services.simplifier import ReportSimplifier, SimplificationRequest
from medsimplify.utils.logger import get_logger

logger = get_logger("routes")

router = APIRouter()
api_router = APIRouter(prefix="/api")


# =============================================================================
# Dependencies
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_text_generator(request: Request) -> TextGenerator:
    """Text generator the application was created with."""
    return request.app.state.text_generator


def get_simplifier(request: Request) -> ReportSimplifier:
    """Simplifier the application was created with."""
    return request.app.state.simplifier


# =============================================================================
# Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check(
    settings: Settings = Depends(get_app_settings),
    generator: TextGenerator = Depends(get_text_generator)
):
    """
    Check if the service is healthy and running.

    Reports the version and whether the text-generation provider has
    an API key configured.
    """
    status = generator.get_status()
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        llm_provider=status["provider"],
        llm_model=status["model"],
        llm_configured=status["configured"]
    )


# =============================================================================
# File Upload
# =============================================================================

@api_router.post(
    "/upload",
    response_model=UploadResponse,
    tags=["Upload"],
    summary="Extract text from a report file (PDF or text)",
    responses={
        400: {"model": ErrorResponse, "description": "No file or unsupported type"},
        413: {"model": ErrorResponse, "description": "File too large"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Extraction failed"}
    }
)
@limiter.limit(api_rate_limit)
async def upload_report(
    request: Request,
    file: Optional[UploadFile] = File(None, description="PDF or text report file"),
    settings: Settings = Depends(get_app_settings)
):
    """
    Upload a medical report and get its plain text back.

    Supports:
    - Text files (.txt, text/plain)
    - PDF files (.pdf, application/pdf)

    The file is held in memory for this request only.
    """
    if file is None:
        raise ValidationError("No file uploaded")

    # Read one byte past the limit to detect oversize files without buffering them
    content = await file.read(settings.max_upload_bytes + 1)
    if len(content) > settings.max_upload_bytes:
        raise PayloadTooLarge(
            f"File exceeds maximum size of {settings.max_upload_bytes // (1024 * 1024)}MB"
        )

    upload = UploadedFile(
        content=content,
        content_type=file.content_type,
        filename=file.filename or ""
    )
    text = await run_in_threadpool(document_extractor.extract, upload)

    logger.info(
        "Report uploaded",
        filename=upload.filename,
        content_type=upload.content_type,
        file_size_bytes=len(content)
    )

    return UploadResponse(text=text)


# =============================================================================
# Simplification
# =============================================================================

@api_router.post(
    "/simplify",
    response_model=SimplifyResponse,
    tags=["Simplify"],
    summary="Rewrite report text in patient-friendly language",
    responses={
        400: {"model": ErrorResponse, "description": "Report text missing"},
        413: {"model": ErrorResponse, "description": "Body too large"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        502: {"model": ErrorResponse, "description": "Text generation failed (when not degrading)"}
    }
)
@limiter.limit(api_rate_limit)
async def simplify_report(
    request: Request,
    body: Optional[SimplifyRequest] = None,
    simplifier: ReportSimplifier = Depends(get_simplifier),
    settings: Settings = Depends(get_app_settings)
):
    """
    Simplify a medical report.

    Returns simplified text, a short summary and up to four visual
    cards. When the language model is unavailable the response is a
    degraded message with default cards, unless the deployment is
    configured to surface upstream failures.
    """
    body = body or SimplifyRequest()
    simplification = SimplificationRequest.create(body.report, body.target_lang, body.tone)

    result = await simplifier.simplify(simplification)

    if result.degraded and not settings.degrade_on_upstream_failure:
        raise UpstreamFailure("Failed to simplify. Check server logs.")

    return compose_response(result, settings.image_hint_url_template)


# =============================================================================
# Unknown API paths
# =============================================================================

@api_router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False
)
@limiter.limit(api_rate_limit)
async def unknown_api_path(request: Request, path: str):
    """Unknown /api paths count against the rate limit and return 404."""
    raise HTTPException(status_code=404, detail="Not Found")
