"""Tests for GenerationOrchestrator."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from chibigen.core.errors import GenerationFailure, InvalidImageFormat
from chibigen.models.character import CharacterTraits, EnhancedPrompt, ReferenceData
from chibigen.services.orchestrator import GenerationOrchestrator

REFERENCE = ReferenceData(
    traits=CharacterTraits.unknown(),
    sources=["https://wiki/a"],
    reference_image_url="http://x/p.png",
)


def _make_enhancer_mock(prompt: str = "chibi Pikachu, whole body") -> MagicMock:
    mock = MagicMock()
    mock.enhance = AsyncMock(return_value=EnhancedPrompt(prompt=prompt, reference_data=REFERENCE))
    return mock


def _make_image_service_mock(
    generated: str = "data:image/jpeg;base64,AAAA",
    refined: str = "data:image/png;base64,BBBB",
) -> MagicMock:
    mock = MagicMock()
    mock.generate = AsyncMock(return_value=generated)
    mock.refine = AsyncMock(return_value=refined)
    return mock


class TestGenerateFromScratch:
    async def test_enhances_then_generates(self) -> None:
        enhancer = _make_enhancer_mock()
        images = _make_image_service_mock()
        orchestrator = GenerationOrchestrator(prompt_enhancer=enhancer, image_service=images)

        result = await orchestrator.generate_from_scratch("Pikachu")

        enhancer.enhance.assert_awaited_once_with("Pikachu")
        images.generate.assert_awaited_once_with("chibi Pikachu, whole body")
        assert result.image_url == "data:image/jpeg;base64,AAAA"
        assert result.effective_prompt == "chibi Pikachu, whole body"
        assert result.reference_data == REFERENCE

    async def test_generation_failure_propagates(self) -> None:
        images = _make_image_service_mock()
        images.generate.side_effect = GenerationFailure("No image data received from the API.")
        orchestrator = GenerationOrchestrator(_make_enhancer_mock(), images)

        with pytest.raises(GenerationFailure):
            await orchestrator.generate_from_scratch("Pikachu")
        assert images.generate.await_count == 1


class TestRefine:
    async def test_effective_prompt_is_adjustment(self) -> None:
        enhancer = _make_enhancer_mock()
        images = _make_image_service_mock()
        orchestrator = GenerationOrchestrator(enhancer, images)

        result = await orchestrator.refine("data:image/jpeg;base64,AAAA", "add wings")

        images.refine.assert_awaited_once_with("data:image/jpeg;base64,AAAA", "add wings")
        enhancer.enhance.assert_not_called()
        assert result.image_url == "data:image/png;base64,BBBB"
        assert result.effective_prompt == "add wings"
        assert result.reference_data is None

    async def test_passes_reference_data_through(self) -> None:
        orchestrator = GenerationOrchestrator(_make_enhancer_mock(), _make_image_service_mock())
        result = await orchestrator.refine(
            "data:image/jpeg;base64,AAAA", "add wings", reference_data=REFERENCE
        )
        assert result.reference_data is REFERENCE

    async def test_invalid_image_propagates(self) -> None:
        images = _make_image_service_mock()
        images.refine.side_effect = InvalidImageFormat("garbage")
        orchestrator = GenerationOrchestrator(_make_enhancer_mock(), images)

        with pytest.raises(InvalidImageFormat):
            await orchestrator.refine("garbage", "add wings")
