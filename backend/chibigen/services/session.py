"""GenerationSession: the application state machine."""
import asyncio
from typing import TYPE_CHECKING

from chibigen.core.logging import setup_logging
from chibigen.models.generation import GenerationState, GenerationStatus

if TYPE_CHECKING:
    from chibigen.services.orchestrator import GenerationOrchestrator

logger = setup_logging("session")

GENERATE_ERROR_MESSAGE = "Failed to generate image. Please try again."
REFINE_ERROR_MESSAGE = "Failed to update image. Please try again."


def _error_message(exc: Exception, default: str) -> str:
    return str(exc).strip() or default


class GenerationSession:
    """Holds the session's single GenerationState and runs commands on it.

    States: idle -> loading -> success | error, and back to loading on the
    next accepted command. A command is rejected (returns False, state
    untouched) while another one is loading, so at most one orchestrator
    call is in flight.
    A cancelled command leaves the session in error, never in loading.

    Reference data policy on refine: the previous reference data is carried
    forward unchanged, since refinement does no new research.
    """

    def __init__(self, orchestrator: "GenerationOrchestrator") -> None:
        self.orchestrator = orchestrator
        self._state = GenerationState()

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state.status == GenerationStatus.loading

    async def generate(self, user_input: str) -> bool:
        """Generate a new character image from ``user_input``.

        Returns:
            True if the command ran, False if it was rejected (blank input or
            a generation already in flight).
        """
        if not user_input.strip() or self.is_loading:
            logger.debug("generate rejected: blank=%s loading=%s", not user_input.strip(), self.is_loading)
            return False

        self._state = self._state.transition(
            status=GenerationStatus.loading,
            prompt=user_input,
            error=None,
            reference_data=None,
        )
        logger.info("generate started: %s", user_input)

        try:
            result = await self.orchestrator.generate_from_scratch(user_input)
        except asyncio.CancelledError:
            logger.warning("generate cancelled: %s", user_input)
            self._state = self._state.transition(
                status=GenerationStatus.error, error=GENERATE_ERROR_MESSAGE
            )
            raise
        except Exception as exc:
            logger.error(
                "generate failed: %s: %s",
                type(exc).__name__,
                exc,
                exc_info=True,
                extra={"service": "GenerationSession", "error_type": type(exc).__name__},
            )
            self._state = self._state.transition(
                status=GenerationStatus.error,
                error=_error_message(exc, GENERATE_ERROR_MESSAGE),
            )
            return True

        self._state = GenerationState(
            status=GenerationStatus.success,
            image_url=result.image_url,
            prompt=user_input,
            effective_prompt=result.effective_prompt,
            reference_data=result.reference_data,
            error=None,
        )
        logger.info("generate succeeded: %s", user_input)
        return True

    async def refine(self, adjustment: str) -> bool:
        """Apply ``adjustment`` to the current image.

        Returns:
            True if the command ran, False if it was rejected (no current
            image, blank adjustment, or a generation already in flight).
        """
        current_image = self._state.image_url
        if current_image is None or not adjustment.strip() or self.is_loading:
            logger.debug(
                "refine rejected: has_image=%s blank=%s loading=%s",
                current_image is not None,
                not adjustment.strip(),
                self.is_loading,
            )
            return False

        self._state = self._state.transition(status=GenerationStatus.loading, error=None)
        logger.info("refine started: %s", adjustment)

        try:
            result = await self.orchestrator.refine(
                current_image,
                adjustment,
                reference_data=self._state.reference_data,
            )
        except asyncio.CancelledError:
            logger.warning("refine cancelled: %s", adjustment)
            self._state = self._state.transition(
                status=GenerationStatus.error, error=REFINE_ERROR_MESSAGE
            )
            raise
        except Exception as exc:
            logger.error(
                "refine failed: %s: %s",
                type(exc).__name__,
                exc,
                exc_info=True,
                extra={"service": "GenerationSession", "error_type": type(exc).__name__},
            )
            self._state = self._state.transition(
                status=GenerationStatus.error,
                error=_error_message(exc, REFINE_ERROR_MESSAGE),
            )
            return True

        self._state = self._state.transition(
            status=GenerationStatus.success,
            image_url=result.image_url,
            effective_prompt=result.effective_prompt,
            reference_data=result.reference_data,
            error=None,
        )
        logger.info("refine succeeded: %s", adjustment)
        return True
