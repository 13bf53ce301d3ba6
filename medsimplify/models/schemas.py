"""
Pydantic schemas for MedSimplify API.

Defines request/response models for all API endpoints.
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict


# =============================================================================
# Upload
# =============================================================================

class UploadResponse(BaseModel):
    """Text extracted from an uploaded report."""

    text: str = Field(description="Plain text content of the uploaded file")


# =============================================================================
# Simplification
# =============================================================================

class SimplifyRequest(BaseModel):
    """
    Request to simplify a report.

    `report` is optional at the schema level so an empty or missing report
    is answered with the service's own 400 payload instead of a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    report: Optional[str] = Field(
        default=None,
        description="Medical report text"
    )
    target_lang: Optional[str] = Field(
        default=None,
        alias="targetLang",
        description="Target language code, defaults to 'en'"
    )
    tone: Optional[str] = Field(
        default=None,
        description="Tone label, defaults to 'friendly'"
    )


class VisualCard(BaseModel):
    """Keyword paired with a decorative image-search link."""

    keyword: str = Field(description="Visual keyword")
    image_hint: str = Field(description="Image search URL for the keyword")


class SimplifyResponse(BaseModel):
    """Patient-friendly rewrite of a report."""

    simplified: str = Field(default="", description="Simplified report text")
    short_summary: str = Field(default="", description="Short summary")
    visual_cards: List[VisualCard] = Field(
        min_length=1,
        max_length=4,
        description="Decorative image hints"
    )


# =============================================================================
# Health & Status
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(description="Application version")
    llm_provider: str = Field(description="Configured text-generation provider")
    llm_model: str = Field(description="Configured model")
    llm_configured: bool = Field(description="Whether an API key is set")
    timestamp: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# Error Responses
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Human-readable error message")
    error_code: str = Field(description="Machine-readable error code")
