"""
Image generation service - the facade callers use.

Decides between real generation through the provider registry and the
demo-mode placeholder, and runs batches one request at a time.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any

from createosaur.core.data_types import SVG_MIME_TYPE, ImageBlob
from createosaur.generation.demo import prompt_seed, render_demo_svg
from createosaur.providers.base import (
    GenerationConfig,
    GenerationMetadata,
    GenerationResponse,
    ImageProvider,
    ModelCard,
)
from createosaur.providers.registry import ProviderRegistry


logger = logging.getLogger(__name__)


DEMO_PROVIDER = "demo"
DEMO_MODEL = "svg-generator"
DEMO_STEPS = 20
DEMO_GUIDANCE = 7.5


class ImageGenerationService:
    """
    Orchestrates generation across providers.

    With no configured provider every request is served in demo mode
    (no network I/O); otherwise requests go through the registry's
    fallback chain.
    """

    def __init__(self, registry: ProviderRegistry, demo_seed: int | None = None):
        self.registry = registry
        self.demo_seed = demo_seed

    @property
    def demo_mode(self) -> bool:
        return not self.registry.get_configured_providers()

    async def generate_image(self, config: GenerationConfig) -> GenerationResponse:
        if self.demo_mode:
            logger.info("No AI providers configured, using demo mode")
            return self.generate_demo(config)

        return await self.registry.generate_with_fallback(config)

    def generate_demo(self, config: GenerationConfig) -> GenerationResponse:
        start = time.monotonic()
        seed = self.demo_seed
        try:
            if seed is None:
                seed = prompt_seed(config.prompt)
            image = ImageBlob(render_demo_svg(config.prompt, seed), SVG_MIME_TYPE)
        except Exception as e:
            logger.exception("Demo rendering failed")
            return GenerationResponse.failure(str(e), provider=DEMO_PROVIDER, model=DEMO_MODEL)

        return GenerationResponse.ok(
            GenerationMetadata(
                provider=DEMO_PROVIDER,
                model=DEMO_MODEL,
                seed=seed,
                steps=config.steps or DEMO_STEPS,
                guidance=config.guidance or DEMO_GUIDANCE,
                cost=0.0,
                time_ms=int((time.monotonic() - start) * 1000),
            ),
            image=image,
        )

    async def generate_batch(
        self, configs: Sequence[GenerationConfig]
    ) -> list[GenerationResponse]:
        """
        Generate each config in turn.

        Strictly sequential to stay under per-key vendor rate limits.
        One response per input, in input order.
        """
        results: list[GenerationResponse] = []
        for config in configs:
            try:
                results.append(await self.generate_image(config))
            except Exception as e:
                logger.exception("Batch generation error")
                results.append(GenerationResponse.failure(str(e) or type(e).__name__))
        return results

    # -------------------------------------------------------------------------
    # Provider management
    # -------------------------------------------------------------------------

    def get_available_providers(self) -> list[ImageProvider]:
        return self.registry.get_all_providers()

    def get_configured_providers(self) -> list[ImageProvider]:
        return self.registry.get_configured_providers()

    def set_default_provider(self, name: str) -> bool:
        return self.registry.set_default_provider(name)

    def get_default_provider(self) -> ImageProvider | None:
        return self.registry.get_default_provider()

    def get_all_models(self) -> list[dict[str, Any]]:
        return self.registry.get_all_models()

    def get_models_for_provider(self, name: str) -> list[ModelCard]:
        return self.registry.get_models_for_provider(name)
