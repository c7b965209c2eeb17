"""
Generation orchestration: demo mode, the generation service and the
consumer-facing hook.
"""

from createosaur.generation.demo import (
    CreatureFeatures,
    extract_features,
    prompt_seed,
    render_demo_svg,
)
from createosaur.generation.hook import GenerationHook, GenerationOutcome
from createosaur.generation.service import DEMO_MODEL, DEMO_PROVIDER, ImageGenerationService


__all__ = [
    "CreatureFeatures",
    "extract_features",
    "prompt_seed",
    "render_demo_svg",
    "GenerationHook",
    "GenerationOutcome",
    "ImageGenerationService",
    "DEMO_PROVIDER",
    "DEMO_MODEL",
]
