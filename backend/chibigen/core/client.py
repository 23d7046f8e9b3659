"""google-genai client factory."""
import logging

from google import genai  # type: ignore[import-untyped]

from chibigen.core.config import Settings
from chibigen.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def build_genai_client(settings: Settings) -> genai.Client:
    """Construct the single genai client shared by all adapters.

    Vertex AI is used when ``use_vertexai`` is set; otherwise the Gemini API
    key is required.

    Raises:
        ConfigurationError: When no usable credential is configured.
    """
    if settings.use_vertexai:
        if not settings.gcp_project_id:
            raise ConfigurationError(
                "GCP_PROJECT_ID is required when USE_VERTEXAI is enabled",
                field="gcp_project_id",
            )
        logger.info(
            "Using Vertex AI client (project=%s, location=%s)",
            settings.gcp_project_id,
            settings.vertex_ai_location,
        )
        return genai.Client(
            vertexai=True,
            project=settings.gcp_project_id,
            location=settings.vertex_ai_location,
        )

    if not settings.gemini_api_key:
        raise ConfigurationError("GEMINI_API_KEY is not set", field="gemini_api_key")
    logger.info("Using Gemini API key client")
    return genai.Client(api_key=settings.gemini_api_key)
