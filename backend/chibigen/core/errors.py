"""Exception types raised by the generation pipeline."""
from typing import Optional


class ChibiGenError(Exception):
    """Base class for all chibigen errors."""


class GenerationFailure(ChibiGenError):
    """The image model answered without any usable image."""


class InvalidImageFormat(ChibiGenError):
    """An image reference is not a decodable ``data:<mime>;base64,<payload>`` URI."""

    def __init__(self, value: str, message: str = "Invalid image data format") -> None:
        self.value = value
        super().__init__(message)


class ConfigurationError(ChibiGenError):
    """Settings are missing or inconsistent."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message)
