"""Generate a chibi image from the command line and save it locally.

Runs the same session the API uses, in-process, without starting a server.

Usage:
    # from the project root
    python scripts/generate_chibi.py "Hatsune Miku"
    python scripts/generate_chibi.py "Batman" --refine "add a red scarf" --output out/
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

# Add backend/ to the path when run standalone
_BACKEND_PATH = Path(__file__).parent.parent / "backend"
if str(_BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(_BACKEND_PATH))

from chibigen.core.config import get_settings
from chibigen.main import build_session
from chibigen.models.generation import GenerationState, GenerationStatus
from chibigen.services.image import save_image
from chibigen.services.session import GenerationSession


def describe_state(state: GenerationState) -> list[str]:
    """Human-readable summary lines for a finished generation."""
    lines = [f"Prompt: {state.effective_prompt}"]
    if state.reference_data is not None:
        traits = state.reference_data.traits
        lines += [
            f"Species: {traits.species}",
            f"Hair: {traits.hair}",
            f"Eyes: {traits.eyes}",
            f"Outfit: {traits.outfit}",
            f"Features: {traits.distinctive_features}",
        ]
        if state.reference_data.reference_image_url:
            lines.append(f"Reference: {state.reference_data.reference_image_url}")
        for source in state.reference_data.sources:
            lines.append(f"Source: {source}")
    return lines


async def run(
    name: str,
    refinements: list[str],
    output_dir: Path,
    session: Optional[GenerationSession] = None,
) -> int:
    """Generate, apply each refinement in order, and save the final image.

    Returns:
        Process exit code: 0 on success, 1 on any failure.
    """
    if session is None:
        session = build_session(get_settings())

    await session.generate(name)
    for adjustment in refinements:
        if session.state.status != GenerationStatus.success:
            break
        await session.refine(adjustment)

    state = session.state
    if state.status != GenerationStatus.success or state.image_url is None:
        print(f"Generation failed: {state.error or 'nothing was generated'}", file=sys.stderr)
        return 1

    for line in describe_state(state):
        print(line)
    path = save_image(state.image_url, output_dir)
    print(f"Saved: {path}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Generate a whole-body chibi illustration of a character."
    )
    parser.add_argument("name", help="Character or concept name, e.g. 'Pikachu'.")
    parser.add_argument(
        "--refine",
        action="append",
        default=[],
        metavar="TEXT",
        help="Edit to apply after generation. Can be repeated.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory to save the image into (default: IMAGES_DIR setting).",
    )
    args = parser.parse_args()
    output = args.output or Path(get_settings().images_dir)
    sys.exit(asyncio.run(run(args.name, args.refine, output)))
