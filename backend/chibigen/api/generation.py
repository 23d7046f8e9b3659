"""Generation API router."""
import logging
from typing import Optional
from urllib.parse import quote_plus

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from chibigen.core.errors import InvalidImageFormat
from chibigen.models.generation import (
    GenerateRequest,
    GenerationState,
    RefineRequest,
    StateResponse,
)
from chibigen.services.image import decode_image, image_filename
from chibigen.services.session import GenerationSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/generation", tags=["generation"])

IMAGE_SEARCH_URL = "https://www.google.com/search?tbm=isch&q={query}"


def image_search_url(query: str) -> str:
    """Web image search link for ``query``."""
    return IMAGE_SEARCH_URL.format(query=quote_plus(query))


def to_response(state: GenerationState) -> StateResponse:
    """Attach the image search fallback when no reference image was found."""
    search_url: Optional[str] = None
    has_reference_image = (
        state.reference_data is not None and state.reference_data.reference_image_url is not None
    )
    if state.prompt.strip() and not has_reference_image:
        search_url = image_search_url(state.prompt)
    return StateResponse(**dict(state), image_search_url=search_url)


def get_generation_session(request: Request) -> GenerationSession:
    """FastAPI dependency: retrieve the GenerationSession from app.state.

    Returns HTTP 503 if the session was not initialized at startup
    (i.e. no model credentials were configured).
    """
    session: GenerationSession | None = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(
            status_code=503,
            detail="Generation service unavailable. Check the model credentials.",
        )
    return session


@router.get("/state", response_model=StateResponse)
async def get_state(
    session: GenerationSession = Depends(get_generation_session),
) -> StateResponse:
    """Return the current generation state."""
    return to_response(session.state)


@router.post("/generate", response_model=StateResponse)
async def generate(
    body: GenerateRequest,
    session: GenerationSession = Depends(get_generation_session),
) -> StateResponse:
    """Generate a chibi image for the named character.

    A failed generation is reported in the body (``status="error"``), not as
    an HTTP error.

    Raises:
        HTTPException 409: Blank input or a generation already in progress.
    """
    accepted = await session.generate(body.user_input)
    if not accepted:
        raise HTTPException(
            status_code=409,
            detail="Request ignored: input is blank or a generation is in progress.",
        )
    return to_response(session.state)


@router.post("/refine", response_model=StateResponse)
async def refine(
    body: RefineRequest,
    session: GenerationSession = Depends(get_generation_session),
) -> StateResponse:
    """Apply a natural-language edit to the current image.

    Raises:
        HTTPException 409: No current image, blank adjustment, or a
            generation already in progress.
    """
    accepted = await session.refine(body.adjustment)
    if not accepted:
        raise HTTPException(
            status_code=409,
            detail="Request ignored: no image to refine, blank adjustment, or a generation is in progress.",
        )
    return to_response(session.state)


@router.get("/download")
async def download(
    session: GenerationSession = Depends(get_generation_session),
) -> Response:
    """Return the current image as a file attachment named with a timestamp.

    Raises:
        HTTPException 404: There is no current image.
    """
    image_url = session.state.image_url
    if image_url is None:
        raise HTTPException(status_code=404, detail="No image to download.")
    try:
        mime_type, image_bytes = decode_image(image_url)
    except InvalidImageFormat as exc:
        logger.error("Current image is not decodable", exc_info=True)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    filename = image_filename(mime_type)
    return Response(
        content=image_bytes,
        media_type=mime_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
