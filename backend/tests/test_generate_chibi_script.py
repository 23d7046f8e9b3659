"""Tests for scripts/generate_chibi.py."""
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chibigen.core.errors import GenerationFailure
from chibigen.models.character import CharacterTraits, ReferenceData
from chibigen.models.generation import GenerationResult, GenerationState, GenerationStatus
from chibigen.services.image import build_data_uri
from chibigen.services.session import GenerationSession

# Make scripts/ importable
_SCRIPTS_DIR = Path(__file__).parent.parent.parent / "scripts"
if str(_SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(_SCRIPTS_DIR))

REFERENCE = ReferenceData(
    traits=CharacterTraits(
        species="Human",
        hair="huge spiky black hair",
        eyes="black",
        outfit="orange gi",
        distinctive_features="tail",
    ),
    sources=["https://wiki/goku"],
    reference_image_url="http://x/goku.png",
)


def _make_session(image_bytes: bytes = b"jpeg-bytes") -> tuple[GenerationSession, MagicMock]:
    orchestrator = MagicMock()
    orchestrator.generate_from_scratch = AsyncMock(
        return_value=GenerationResult(
            image_url=build_data_uri("image/jpeg", image_bytes),
            effective_prompt="chibi Goku",
            reference_data=REFERENCE,
        )
    )
    orchestrator.refine = AsyncMock(
        return_value=GenerationResult(
            image_url=build_data_uri("image/png", b"edited"),
            effective_prompt="add a halo",
            reference_data=REFERENCE,
        )
    )
    return GenerationSession(orchestrator), orchestrator


class TestDescribeState:
    def test_lists_traits_and_sources(self) -> None:
        from generate_chibi import describe_state

        state = GenerationState(
            status=GenerationStatus.success,
            image_url="data:image/jpeg;base64,AAAA",
            effective_prompt="chibi Goku",
            reference_data=REFERENCE,
        )
        lines = describe_state(state)
        assert lines[0] == "Prompt: chibi Goku"
        assert "Hair: huge spiky black hair" in lines
        assert "Reference: http://x/goku.png" in lines
        assert "Source: https://wiki/goku" in lines

    def test_without_reference_data(self) -> None:
        from generate_chibi import describe_state

        state = GenerationState(effective_prompt="add wings")
        assert describe_state(state) == ["Prompt: add wings"]


class TestRun:
    async def test_saves_generated_image(self, tmp_path: Path) -> None:
        from generate_chibi import run

        session, _ = _make_session()
        code = await run("Goku", [], tmp_path, session=session)

        assert code == 0
        saved = list(tmp_path.glob("chibi-*.jpg"))
        assert len(saved) == 1
        assert saved[0].read_bytes() == b"jpeg-bytes"

    async def test_applies_refinements_in_order(self, tmp_path: Path) -> None:
        from generate_chibi import run

        session, orchestrator = _make_session()
        code = await run("Goku", ["add a halo", "make it night"], tmp_path, session=session)

        assert code == 0
        adjustments = [c.args[1] for c in orchestrator.refine.call_args_list]
        assert adjustments == ["add a halo", "make it night"]
        assert len(list(tmp_path.glob("chibi-*.png"))) == 1

    async def test_failure_returns_1(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        from generate_chibi import run

        session, orchestrator = _make_session()
        orchestrator.generate_from_scratch.side_effect = GenerationFailure("No image data")
        code = await run("Goku", ["add a halo"], tmp_path, session=session)

        assert code == 1
        orchestrator.refine.assert_not_called()
        assert "No image data" in capsys.readouterr().err
        assert list(tmp_path.iterdir()) == []

    async def test_builds_session_from_settings(self, tmp_path: Path) -> None:
        from generate_chibi import run

        session, _ = _make_session()
        with patch("generate_chibi.build_session", return_value=session) as mock_build:
            code = await run("Goku", [], tmp_path)
        mock_build.assert_called_once()
        assert code == 0
