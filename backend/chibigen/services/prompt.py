"""Prompt enhancement: research a character and write a chibi image prompt."""
import logging
from typing import Any

from google.genai import types  # type: ignore[import-untyped]

from chibigen.models.character import (
    MAX_SOURCES,
    CharacterResearch,
    CharacterTraits,
    EnhancedPrompt,
    ReferenceData,
)

logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"

RESEARCH_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "imagePrompt": types.Schema(
            type=types.Type.STRING,
            description="The detailed text prompt for the image generator",
        ),
        "traits": types.Schema(
            type=types.Type.OBJECT,
            properties={
                "species": types.Schema(type=types.Type.STRING),
                "hair": types.Schema(
                    type=types.Type.STRING,
                    description="Detailed description of hair color, style, and volume",
                ),
                "eyes": types.Schema(type=types.Type.STRING),
                "outfit": types.Schema(type=types.Type.STRING),
                "distinctiveFeatures": types.Schema(type=types.Type.STRING),
            },
            required=["species", "hair", "eyes", "outfit", "distinctiveFeatures"],
        ),
        "referenceImageUrl": types.Schema(
            type=types.Type.STRING,
            description=(
                "A direct URL to an image of the character found in search results. "
                "If none found, leave empty."
            ),
        ),
    },
    required=["imagePrompt", "traits"],
)


def fallback_prompt(user_input: str) -> str:
    """Templated prompt used when research is unavailable."""
    return f"whole-body chibi illustration of {user_input}, cute, detailed background"


def fallback_enhancement(user_input: str) -> EnhancedPrompt:
    """Usable result built from the raw user input alone."""
    return EnhancedPrompt(
        prompt=fallback_prompt(user_input),
        reference_data=ReferenceData(traits=CharacterTraits.unknown()),
    )


def build_research_instruction(user_input: str) -> str:
    """Instruction sent to the text/search model for ``user_input``."""
    return f"""Research the character or concept "{user_input}" using Google Search.

Tasks:
1. Find their official visual appearance (hair, eyes, outfit, key accessories).
2. Locate a reference image: search for a direct URL to an image of this character (ideally ending in .jpg, .png or .webp) from a wiki, fandom site, official site or database.
3. Write a detailed image generation prompt for a chibi version.

Prompt requirements:
- Style: high-quality chibi. Keep the ORIGINAL art style (e.g. 3D, pixel, watercolor) but with chibi proportions.
- Details: be extremely accurate about hair size, volume and shape. If the character has huge hair, the chibi must have huge hair.
- Subject: whole body.

Return JSON containing the prompt, the traits found, and the reference image URL."""


def extract_sources(response: Any) -> list[str]:
    """Collect cited web URIs from the response's grounding metadata.

    Duplicates are dropped keeping first-seen order; at most MAX_SOURCES are
    returned. Missing metadata yields an empty list.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources: list[str] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        if uri and uri not in sources:
            sources.append(uri)
    return sources[:MAX_SOURCES]


class PromptEnhancer:
    """Turns a character name into a researched image prompt.

    ``enhance`` never raises: any request, decode or validation failure falls
    back to ``fallback_enhancement``.
    """

    def __init__(self, client: Any, model: str = DEFAULT_TEXT_MODEL) -> None:
        self.client = client
        self.model = model

    async def enhance(self, user_input: str) -> EnhancedPrompt:
        """Research ``user_input`` and return the prompt plus reference data.

        Args:
            user_input: Character or concept name typed by the user.

        Returns:
            EnhancedPrompt; the templated fallback when research fails.
        """
        try:
            return await self._research(user_input)
        except Exception as exc:
            logger.warning(
                "Prompt enhancement failed, using fallback: %s: %s",
                type(exc).__name__,
                exc,
                extra={"service": "PromptEnhancer", "error_type": type(exc).__name__},
            )
            return fallback_enhancement(user_input)

    async def _research(self, user_input: str) -> EnhancedPrompt:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=build_research_instruction(user_input),
            config=types.GenerateContentConfig(
                tools=[types.Tool(google_search=types.GoogleSearch())],
                temperature=0.7,
                max_output_tokens=1000,
                response_mime_type="application/json",
                response_schema=RESEARCH_SCHEMA,
            ),
        )

        research = CharacterResearch.model_validate_json(response.text or "")
        sources = extract_sources(response)
        logger.debug("Research for %r cited %d source(s)", user_input, len(sources))

        return EnhancedPrompt(
            prompt=research.image_prompt,
            reference_data=ReferenceData(
                traits=research.traits,
                sources=sources,
                reference_image_url=research.reference_image_url,
            ),
        )
