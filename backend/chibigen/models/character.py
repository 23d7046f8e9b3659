"""Character research data models."""
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MAX_SOURCES = 3
UNKNOWN_TRAIT = "Unknown"


class CharacterTraits(BaseModel):
    """Visual traits of a character as reported by the research model.

    Accepts both the camelCase keys used in the model's JSON reply and the
    snake_case field names.
    """

    model_config = ConfigDict(frozen=True)

    species: str
    hair: str
    eyes: str
    outfit: str
    distinctive_features: str = Field(
        validation_alias=AliasChoices("distinctiveFeatures", "distinctive_features")
    )

    @classmethod
    def unknown(cls) -> "CharacterTraits":
        """Placeholder traits used when research is unavailable."""
        return cls(
            species=UNKNOWN_TRAIT,
            hair=UNKNOWN_TRAIT,
            eyes=UNKNOWN_TRAIT,
            outfit=UNKNOWN_TRAIT,
            distinctive_features=UNKNOWN_TRAIT,
        )


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ReferenceData(BaseModel):
    """Research output shown next to a generated image."""

    model_config = ConfigDict(frozen=True)

    traits: CharacterTraits
    sources: list[str] = Field(default_factory=list)
    reference_image_url: Optional[str] = None

    @field_validator("sources")
    @classmethod
    def _dedupe_sources(cls, value: list[str]) -> list[str]:
        # First-seen order wins; capped at MAX_SOURCES.
        unique = list(dict.fromkeys(uri for uri in value if uri))
        return unique[:MAX_SOURCES]

    @field_validator("reference_image_url", mode="before")
    @classmethod
    def _normalize_url(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class CharacterResearch(BaseModel):
    """Strict decode target for the text model's JSON reply."""

    model_config = ConfigDict(frozen=True)

    image_prompt: str = Field(
        min_length=1,
        validation_alias=AliasChoices("imagePrompt", "image_prompt"),
    )
    traits: CharacterTraits
    reference_image_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("referenceImageUrl", "reference_image_url"),
    )

    @field_validator("image_prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("image_prompt must not be blank")
        return value

    @field_validator("reference_image_url", mode="before")
    @classmethod
    def _normalize_url(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class EnhancedPrompt(BaseModel):
    """Image prompt plus the research that produced it."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    reference_data: ReferenceData
