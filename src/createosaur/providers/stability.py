"""
Stability AI Provider - Stable Diffusion models over the v1 REST API.

Supports:
- SDXL 1.0, SD 1.6 and SD 2.1 text-to-image

API Reference: https://platform.stability.ai/docs/api-reference
Note: the v1 API takes JSON with weighted text_prompts and returns
base64 artifacts, which are decoded before use.
"""

from __future__ import annotations

from typing import Any

from createosaur.core.data_types import ImageBlob
from createosaur.providers.base import (
    AuthenticationError,
    GenerationConfig,
    GenerationError,
    GenerationMetadata,
    GenerationResponse,
    ImageProvider,
    ModelCard,
    ProviderConfig,
    QualityTier,
    RateLimitError,
    SpeedTier,
    SupportedFeatures,
)


DEFAULT_STEPS = 30
DEFAULT_CFG_SCALE = 7.5
DEFAULT_SIZE = 1024


def estimate_cost(width: int, height: int) -> float:
    """Stability pricing is banded by pixel count (USD)."""
    total_pixels = width * height
    if total_pixels <= 512 * 512:
        return 0.002
    elif total_pixels <= 768 * 768:
        return 0.003
    elif total_pixels <= 1024 * 1024:
        return 0.004
    return 0.006


class StabilityProvider(ImageProvider):
    """
    Stability AI image generation provider.

    The negative prompt travels as a second text prompt with weight -1.
    """

    config = ProviderConfig(
        name="stability",
        display_name="Stability AI",
        description="Direct Stability AI API with latest models",
        requires_api_key=True,
        features=SupportedFeatures(
            negative_prompt=True,
            steps=True,
            guidance=True,
            seeds=True,
            custom_dimensions=True,
        ),
        models=(
            ModelCard(
                id="stable-diffusion-xl-1024-v1-0",
                name="SDXL 1.0",
                description="Latest Stable Diffusion XL model with exceptional quality",
                max_width=1024,
                max_height=1024,
                quality=QualityTier.PREMIUM,
                speed=SpeedTier.MEDIUM,
            ),
            ModelCard(
                id="stable-diffusion-v1-6",
                name="SD 1.6",
                description="Fast and reliable Stable Diffusion model",
                max_width=768,
                max_height=768,
                quality=QualityTier.HIGH,
                speed=SpeedTier.FAST,
            ),
            ModelCard(
                id="stable-diffusion-512-v2-1",
                name="SD 2.1",
                description="Improved Stable Diffusion with better coherence",
                max_width=768,
                max_height=768,
                quality=QualityTier.HIGH,
                speed=SpeedTier.FAST,
            ),
        ),
        credential_key="STABILITY_API_KEY",
    )

    base_url = "https://api.stability.ai/v1/generation"
    key_prefix = "sk-"
    prompt_enhancements = (
        "highly detailed",
        "photorealistic",
        "professional photography",
        "cinematic lighting",
        "8k resolution",
        "masterpiece",
        "best quality",
    )

    def get_headers(self) -> dict[str, str]:
        """Stability AI auth headers."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",  # Get base64 response
            "Content-Type": "application/json",
        }

    def build_body(self, config: GenerationConfig) -> dict[str, Any]:
        text_prompts = [{"text": self.enhance_prompt(config.prompt), "weight": 1}]
        if config.negative_prompt:
            text_prompts.append({"text": config.negative_prompt, "weight": -1})

        body: dict[str, Any] = {
            "text_prompts": text_prompts,
            "cfg_scale": config.guidance or DEFAULT_CFG_SCALE,
            "steps": config.steps or DEFAULT_STEPS,
            "width": config.width or DEFAULT_SIZE,
            "height": config.height or DEFAULT_SIZE,
            "samples": 1,
        }
        if config.seed is not None:
            body["seed"] = config.seed
        return body

    async def _generate(
        self, config: GenerationConfig, model_id: str, start: float
    ) -> GenerationResponse:
        url = f"{self.base_url}/{model_id}/text-to-image"
        body = self.build_body(config)

        async with self.client_session() as session:
            async with session.post(url, json=body, headers=self.get_headers()) as resp:
                # Check for errors FIRST before trying to parse response
                if resp.status >= 400:
                    try:
                        error_data = await resp.json(content_type=None)
                    except ValueError:
                        error_data = {"message": await resp.text()}
                    self._check_error(resp.status, error_data, resp.reason)

                data = await resp.json(content_type=None)

        artifacts = data.get("artifacts") if isinstance(data, dict) else None
        if not artifacts or not isinstance(artifacts, list):
            raise GenerationError("No image generated")

        artifact = artifacts[0]
        if not isinstance(artifact, dict):
            raise GenerationError("Malformed response from Stability AI: artifact is not an object")
        if artifact.get("finishReason") != "SUCCESS":
            raise GenerationError(f"Generation failed: {artifact.get('finishReason')}")

        if not isinstance(artifact.get("base64"), str):
            raise GenerationError("Malformed response from Stability AI: missing base64 image")
        image = ImageBlob.from_base64(artifact["base64"], "image/png")

        return GenerationResponse.ok(
            GenerationMetadata(
                provider=self.name,
                model=model_id,
                seed=artifact.get("seed"),
                steps=body["steps"],
                guidance=body["cfg_scale"],
                time_ms=self.elapsed_ms(start),
                cost=estimate_cost(body["width"], body["height"]),
            ),
            image=image,
        )

    def _check_error(self, status: int, data: Any, reason: str | None = None) -> None:
        """Check for API errors."""
        message = data.get("message") if isinstance(data, dict) else None

        if status == 401:
            raise AuthenticationError("Invalid Stability AI API key")
        elif status == 429:
            raise RateLimitError("Rate limit exceeded. Please wait and try again.")
        elif status == 400:
            raise GenerationError(f"Invalid parameters: {message or 'Bad request'}")
        raise GenerationError(message or f"HTTP {status}: {reason or 'Error'}")
