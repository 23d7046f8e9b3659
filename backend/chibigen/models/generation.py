"""Generation state and API data models."""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from chibigen.models.character import ReferenceData


class GenerationStatus(str, Enum):
    """Lifecycle of the current generation."""

    idle = "idle"
    loading = "loading"
    success = "success"
    error = "error"


class GenerationResult(BaseModel):
    """Outcome of one orchestrator call."""

    model_config = ConfigDict(frozen=True)

    image_url: str
    effective_prompt: str
    reference_data: Optional[ReferenceData] = None


class GenerationState(BaseModel):
    """Snapshot of the single in-session generation.

    Instances are immutable; every transition builds a new snapshot through
    ``transition()``, which re-runs validation.
    """

    model_config = ConfigDict(frozen=True)

    status: GenerationStatus = GenerationStatus.idle
    image_url: Optional[str] = None
    prompt: str = ""
    effective_prompt: str = ""
    reference_data: Optional[ReferenceData] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_status_invariants(self) -> "GenerationState":
        if self.status == GenerationStatus.success and self.image_url is None:
            raise ValueError("success state requires image_url")
        if self.status == GenerationStatus.error and not self.error:
            raise ValueError("error state requires an error message")
        return self

    def transition(self, **changes: Any) -> "GenerationState":
        """Return a new validated state with ``changes`` applied."""
        return GenerationState(**{**dict(self), **changes})


class GenerateRequest(BaseModel):
    """Body of POST /api/generation/generate."""

    user_input: str = Field(..., max_length=500)


class RefineRequest(BaseModel):
    """Body of POST /api/generation/refine."""

    adjustment: str = Field(..., max_length=500)


class StateResponse(GenerationState):
    """GenerationState as returned by the API.

    ``image_search_url`` is a web image search for the user's prompt, offered
    when research did not find a reference image.
    """

    image_search_url: Optional[str] = None
