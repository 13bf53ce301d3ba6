"""
MedSimplify - FastAPI Application

Medical report simplification service. Extracts text from uploaded
reports and rewrites it in patient-friendly language.

IMPORTANT: This is NOT a diagnostic tool.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from medsimplify.config import Settings, get_settings
from medsimplify.api.routes import router, api_router
from medsimplify.api.middleware import (
    BodySizeLimitMiddleware,
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    setup_exception_handlers,
    setup_rate_limiting,
)
from medsimplify.core.llm_engine import TextGenerator, build_text_generator
from medsimplify.services.simplifier import ReportSimplifier
from medsimplify.utils.logger import get_logger, configure_logging

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings: Settings = app.state.settings

    configure_logging(
        log_level=settings.log_level,
        json_format=not settings.debug
    )

    logger.info(
        "Starting MedSimplify",
        version=settings.app_version,
        debug=settings.debug,
        llm_provider=settings.llm_provider,
        response_contract=settings.response_contract
    )

    if not app.state.text_generator.is_configured():
        logger.warning(
            "LLM API key not set. The /api/simplify route will return degraded results.",
            provider=settings.llm_provider
        )

    yield

    logger.info("Shutting down MedSimplify")


def mount_static_client(app: FastAPI, static_path: Path) -> None:
    """
    Serve the web client for every non-API GET path.

    Existing files are served as-is; anything else falls back to index.html.
    """
    root = static_path.resolve()

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_client(full_path: str):
        if full_path == "api" or full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not Found")

        candidate = (root / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(root):
            return FileResponse(str(candidate))

        index = root / "index.html"
        if not index.is_file():
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(str(index))


def create_app(
    settings: Optional[Settings] = None,
    text_generator: Optional[TextGenerator] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to environment settings)
        text_generator: Text-generation client (defaults to the configured provider)

    Returns:
        Configured FastAPI instance
    """
    settings = settings or get_settings()
    text_generator = text_generator or build_text_generator(settings)

    app = FastAPI(
        title=settings.app_name,
        description="""
## MedSimplify - Medical Report Simplification

Rewrites clinical report text into clear, patient-friendly language.

### ⚠️ Important Disclaimer

**This is NOT a diagnostic tool.** Always discuss results with a healthcare provider.

### API Endpoints

| Endpoint | Method | Description |
|----------|--------|-------------|
| `/api/upload` | POST | Extract text from a PDF/text report |
| `/api/simplify` | POST | Simplify report text |
| `/health` | GET | Health check |
        """,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.text_generator = text_generator
    app.state.simplifier = ReportSimplifier(text_generator, settings)

    # Setup middleware (order matters - last added is outermost)
    app.add_middleware(
        BodySizeLimitMiddleware,
        limits={"/api/simplify": settings.max_json_body_bytes}
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ErrorHandlingMiddleware)

    setup_rate_limiting(app)
    setup_exception_handlers(app)

    app.include_router(router)
    app.include_router(api_router)

    # Catch-all route, registered last
    mount_static_client(app, settings.static_path)

    return app


# Create app instance
app = create_app()


# Run with: uvicorn medsimplify.main:app --reload
if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "medsimplify.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
