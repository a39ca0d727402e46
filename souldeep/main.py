# souldeep/main.py
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from souldeep.config import AppConfig
from souldeep.errors import (
    PersonaNotFoundError,
    PersonaValidationError,
    SynthesisError,
    SynthesisUnavailableError,
)
from souldeep.routers import archetypes, pages, personas
from souldeep.services.factory import get_service
from souldeep.services.persona_service import PersonaService

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(
    config: Optional[AppConfig] = None,
    persona_service: Optional[PersonaService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Configuration is loaded here so that a missing credential fails at
    startup instead of on the first request.

    Raises:
        ConfigurationError: required configuration is missing
    """
    if persona_service is None:
        config = config or AppConfig.load()
        persona_service = PersonaService(
            synthesizer=get_service("synthesizer", config),
            store=get_service("storage", config),
        )

    app = FastAPI(
        title="SoulDeep Persona Service",
        description="Synthesize relational personas and classify Cognitive Breaks between them",
        version=VERSION,
    )
    app.state.config = config
    app.state.persona_service = persona_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Adjust in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup_event():
        """Initialize storage on application startup."""
        try:
            if config is not None and config.is_local_mode():
                logger.info("Starting in LOCAL MODE")
            persona_service.store.ensure_table_exists()
            logger.info("Persona storage initialized")
        except Exception as e:
            # Submissions still synthesize; failed writes come back as partial results
            logger.error(f"Error during application startup: {str(e)}")

    app.include_router(personas.router)
    app.include_router(archetypes.router)
    app.include_router(pages.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "version": VERSION}

    @app.exception_handler(PersonaNotFoundError)
    async def not_found_handler(request: Request, exc: PersonaNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(SynthesisError)
    async def synthesis_error_handler(request: Request, exc: SynthesisError):
        if isinstance(exc, SynthesisUnavailableError):
            logger.error(f"Persona synthesis unavailable: {str(exc)}")
            return JSONResponse(
                status_code=503,
                content={"detail": "Synthesis unavailable", "message": str(exc)},
            )
        if isinstance(exc, PersonaValidationError):
            logger.error(f"Synthesizer returned an invalid persona: {str(exc)}")
            return JSONResponse(
                status_code=502,
                content={"detail": "Invalid persona from synthesizer", "message": str(exc)},
            )
        logger.error(f"Persona synthesis failed: {str(exc)}")
        return JSONResponse(
            status_code=502,
            content={"detail": "Synthesis failed", "message": str(exc)},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(f"Unhandled exception for request {request.url}: {str(exc)}")
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "message": str(exc)},
        )

    return app
