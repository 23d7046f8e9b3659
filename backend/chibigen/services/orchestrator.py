"""GenerationOrchestrator: composes prompt enhancement with image generation."""
import logging
from typing import TYPE_CHECKING, Optional

from chibigen.models.character import ReferenceData
from chibigen.models.generation import GenerationResult

if TYPE_CHECKING:
    from chibigen.services.image import ImageGenerationService
    from chibigen.services.prompt import PromptEnhancer

logger = logging.getLogger(__name__)


class GenerationOrchestrator:
    """Runs the two public pipelines: generate from scratch and refine.

    Neither pipeline retries. Image failures propagate to the caller.
    """

    def __init__(
        self,
        prompt_enhancer: "PromptEnhancer",
        image_service: "ImageGenerationService",
    ) -> None:
        self.prompt_enhancer = prompt_enhancer
        self.image_service = image_service

    async def generate_from_scratch(self, user_input: str) -> GenerationResult:
        """Research ``user_input`` then render the resulting prompt.

        Raises:
            GenerationFailure: When the image model returns no image.
        """
        enhanced = await self.prompt_enhancer.enhance(user_input)
        logger.info("Optimized prompt: %s", enhanced.prompt)

        image_url = await self.image_service.generate(enhanced.prompt)
        return GenerationResult(
            image_url=image_url,
            effective_prompt=enhanced.prompt,
            reference_data=enhanced.reference_data,
        )

    async def refine(
        self,
        current_image: str,
        adjustment: str,
        reference_data: Optional[ReferenceData] = None,
    ) -> GenerationResult:
        """Edit ``current_image``; no new research is done.

        ``reference_data`` is passed through untouched so the caller decides
        what accompanies the edited image.

        Raises:
            InvalidImageFormat: When ``current_image`` is not a data URI.
            GenerationFailure: When the edit model returns no image.
        """
        image_url = await self.image_service.refine(current_image, adjustment)
        return GenerationResult(
            image_url=image_url,
            effective_prompt=adjustment,
            reference_data=reference_data,
        )
