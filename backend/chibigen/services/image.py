"""Image synthesis and refinement via the Imagen / Gemini Image APIs."""
import base64
import binascii
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from google.genai import types  # type: ignore[import-untyped]

from chibigen.core.errors import GenerationFailure, InvalidImageFormat

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "imagen-4.0-generate-001"
DEFAULT_EDIT_MODEL = "gemini-2.5-flash-image"

GENERATED_MIME_TYPE = "image/jpeg"
EDITED_FALLBACK_MIME_TYPE = "image/png"

MIME_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

_DATA_URI_RE = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


def build_data_uri(mime_type: str, data: Union[bytes, str]) -> str:
    """Build a ``data:<mime>;base64,<payload>`` URI.

    Raw bytes are base64-encoded; a str is assumed to be encoded already.
    """
    if isinstance(data, bytes):
        payload = base64.b64encode(data).decode("ascii")
    else:
        payload = data
    return f"data:{mime_type};base64,{payload}"


def parse_data_uri(uri: str) -> tuple[str, str]:
    """Split a data URI into (mime_type, base64 payload).

    Raises:
        InvalidImageFormat: When the prefix, separator or payload is missing,
            or the payload is not valid base64.
    """
    match = _DATA_URI_RE.match(uri or "")
    if match is None:
        raise InvalidImageFormat(uri)
    mime_type, payload = match.group(1).strip(), match.group(2).strip()
    if not mime_type or not payload:
        raise InvalidImageFormat(uri)
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageFormat(uri) from exc
    return mime_type, payload


def decode_image(uri: str) -> tuple[str, bytes]:
    """Return (mime_type, raw bytes) for a data URI."""
    mime_type, payload = parse_data_uri(uri)
    return mime_type, base64.b64decode(payload)


def image_filename(mime_type: str, now: Optional[datetime] = None) -> str:
    """File name for a downloaded image: ``chibi-{YYYYMMDDHHMMSS}.{ext}``."""
    timestamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    extension = MIME_EXTENSIONS.get(mime_type, "png")
    return f"chibi-{timestamp}.{extension}"


def save_image(uri: str, directory: Path) -> Path:
    """Write the image behind ``uri`` to ``directory`` and return its path.

    The directory is created if missing.
    """
    mime_type, image_bytes = decode_image(uri)
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    file_path = directory / image_filename(mime_type)
    file_path.write_bytes(image_bytes)
    logger.info("Saved image to %s", file_path)
    return file_path


class ImageGenerationService:
    """Generates new images and edits existing ones.

    Both calls go through the injected genai client's async surface. Nothing
    is retried here; failures propagate to the caller.
    """

    def __init__(
        self,
        client: Any,
        image_model: str = DEFAULT_IMAGE_MODEL,
        edit_model: str = DEFAULT_EDIT_MODEL,
    ) -> None:
        self.client = client
        self.image_model = image_model
        self.edit_model = edit_model

    async def generate(self, prompt: str) -> str:
        """Generate one square JPEG for ``prompt``.

        Args:
            prompt: Finished image-generation prompt.

        Returns:
            The image as a data URI.

        Raises:
            GenerationFailure: When the API returns no image bytes.
        """
        response = await self.client.aio.models.generate_images(
            model=self.image_model,
            prompt=prompt,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                output_mime_type=GENERATED_MIME_TYPE,
                aspect_ratio="1:1",
            ),
        )

        generated = response.generated_images
        if not generated or generated[0].image is None or not generated[0].image.image_bytes:
            raise GenerationFailure("No image data received from the API.")

        return build_data_uri(GENERATED_MIME_TYPE, generated[0].image.image_bytes)

    async def refine(self, current_image: str, adjustment: str) -> str:
        """Edit ``current_image`` according to ``adjustment``.

        The source image is validated before any request is made. The first
        response part carrying inline image data wins.

        Args:
            current_image: Data URI of the image to edit.
            adjustment: Natural-language description of the change.

        Returns:
            The edited image as a data URI.

        Raises:
            InvalidImageFormat: When ``current_image`` is not a data URI.
            GenerationFailure: When the response carries no image part.
        """
        mime_type, image_bytes = decode_image(current_image)
        logger.info("Refining image with adjustment: %s", adjustment)

        response = await self.client.aio.models.generate_content(
            model=self.edit_model,
            contents=[
                types.Part(inline_data=types.Blob(data=image_bytes, mime_type=mime_type)),
                types.Part(
                    text=(
                        f"Edit this image. {adjustment}. "
                        "Apply this change while preserving the established art style."
                    )
                ),
            ],
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE", "TEXT"],
            ),
        )

        for candidate in response.candidates or []:
            if candidate.content is None:
                continue
            for part in candidate.content.parts or []:
                inline = getattr(part, "inline_data", None)
                if inline is not None and inline.data:
                    return build_data_uri(inline.mime_type or EDITED_FALLBACK_MIME_TYPE, inline.data)

        raise GenerationFailure("Failed to refine image. The model did not return an image.")
