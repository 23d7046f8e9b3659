"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from chibigen.core.config import Settings, get_settings
from chibigen.core.logging import setup_logging

if TYPE_CHECKING:
    from chibigen.services.session import GenerationSession

# Setup logging
logger = setup_logging("main")


def build_session(settings: Settings) -> "GenerationSession":
    """Wire client -> adapters -> orchestrator -> session from settings."""
    from chibigen.core.client import build_genai_client
    from chibigen.services.image import ImageGenerationService
    from chibigen.services.orchestrator import GenerationOrchestrator
    from chibigen.services.prompt import PromptEnhancer
    from chibigen.services.session import GenerationSession

    client = build_genai_client(settings)
    orchestrator = GenerationOrchestrator(
        prompt_enhancer=PromptEnhancer(client, model=settings.text_model),
        image_service=ImageGenerationService(
            client,
            image_model=settings.image_model,
            edit_model=settings.edit_model,
        ),
    )
    return GenerationSession(orchestrator)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize the generation session at startup."""
    settings = get_settings()
    if getattr(app.state, "session", None) is None:
        try:
            app.state.session = build_session(settings)
            logger.info("Generation session initialized")
        except Exception as exc:
            logger.error(
                "Session initialization failed, running in degraded mode",
                exc_info=True,
                extra={"service": "main", "error_type": type(exc).__name__},
            )
            # Endpoints return 503 until credentials are fixed

    yield


# Create FastAPI app
app = FastAPI(
    title="ChibiGen AI",
    description="Turn any character into a whole-body chibi illustration",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[f"http://localhost:{settings.frontend_port}"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
from chibigen.api.generation import router as generation_router  # noqa: E402

app.include_router(generation_router)


@app.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint.

    Always returns HTTP 200; check `services.generation` for actual status.
    """
    session = getattr(request.app.state, "session", None)

    logger.info("Health check requested")
    return {
        "status": "ok",
        "version": app.version,
        "services": {
            "generation": "ok" if session is not None else "unavailable",
        },
    }
