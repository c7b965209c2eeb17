"""
Hugging Face Provider - Open-source diffusion models via the Inference API.

Supports:
- Stable Diffusion XL, 1.5, 1.4 and 2.1 hosted models

API Reference: https://huggingface.co/docs/api-inference
Note: success is a raw image body; JSON bodies always signal an error.
"""

from __future__ import annotations

from typing import Any

from createosaur.core.data_types import ImageBlob
from createosaur.providers.base import (
    GenerationConfig,
    GenerationError,
    GenerationMetadata,
    GenerationResponse,
    ImageProvider,
    InsufficientPermissionsError,
    ModelCard,
    ProviderConfig,
    QualityTier,
    SpeedTier,
    SupportedFeatures,
)


DEFAULT_NEGATIVE_PROMPT = (
    "blurry, low quality, distorted, deformed, mutated, ugly, disfigured, "
    "extra limbs, missing limbs, ugly, bad anatomy, poorly drawn"
)
DEFAULT_STEPS = 30
DEFAULT_GUIDANCE = 7.5
DEFAULT_SIZE = 1024

PERMISSION_MARKERS = ("sufficient permissions", "Inference Providers")


class HuggingFaceProvider(ImageProvider):
    """
    Hugging Face Inference API provider.

    Sends a JSON body with the negative prompt as a structured
    parameter and expects an image/* response.
    """

    config = ProviderConfig(
        name="huggingface",
        display_name="Hugging Face",
        description="Open-source models via Hugging Face Inference API",
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
                id="stabilityai/stable-diffusion-xl-base-1.0",
                name="Stable Diffusion XL",
                description="High-quality, versatile image generation",
                max_width=1024,
                max_height=1024,
                quality=QualityTier.HIGH,
                speed=SpeedTier.MEDIUM,
            ),
            ModelCard(
                id="runwayml/stable-diffusion-v1-5",
                name="Stable Diffusion 1.5",
                description="Classic stable diffusion model",
                max_width=768,
                max_height=768,
                quality=QualityTier.STANDARD,
                speed=SpeedTier.FAST,
            ),
            ModelCard(
                id="CompVis/stable-diffusion-v1-4",
                name="Stable Diffusion 1.4",
                description="Original stable diffusion model",
                max_width=512,
                max_height=512,
                quality=QualityTier.STANDARD,
                speed=SpeedTier.FAST,
            ),
            ModelCard(
                id="stabilityai/stable-diffusion-2-1",
                name="Stable Diffusion 2.1",
                description="Improved stable diffusion model",
                max_width=768,
                max_height=768,
                quality=QualityTier.STANDARD,
                speed=SpeedTier.MEDIUM,
            ),
        ),
        credential_key="HUGGINGFACE_API_KEY",
    )

    base_url = "https://api-inference.huggingface.co/models"
    key_prefix = "hf_"
    prompt_enhancements = (
        "highly detailed",
        "professional photography",
        "cinematic lighting",
        "epic composition",
        "8K resolution",
        "photorealistic",
        "digital art",
        "concept art style",
        "scientific illustration",
    )

    def build_body(self, config: GenerationConfig) -> dict[str, Any]:
        parameters: dict[str, Any] = {
            "negative_prompt": config.negative_prompt or DEFAULT_NEGATIVE_PROMPT,
            "num_inference_steps": config.steps or DEFAULT_STEPS,
            "guidance_scale": config.guidance or DEFAULT_GUIDANCE,
            "width": config.width or DEFAULT_SIZE,
            "height": config.height or DEFAULT_SIZE,
        }
        if config.seed is not None:
            parameters["seed"] = config.seed

        return {
            "inputs": self.enhance_prompt(config.prompt),
            "parameters": parameters,
        }

    async def _generate(
        self, config: GenerationConfig, model_id: str, start: float
    ) -> GenerationResponse:
        url = f"{self.base_url}/{model_id}"
        body = self.build_body(config)

        async with self.client_session() as session:
            async with session.post(url, json=body, headers=self.get_headers()) as resp:
                if resp.status >= 400:
                    self._check_error(resp.status, await resp.text())

                content_type = resp.headers.get("Content-Type", "")
                if "application/json" in content_type:
                    data = await resp.json()
                    if isinstance(data, dict) and data.get("error"):
                        raise GenerationError(f"API Error: {data['error']}")
                    raise GenerationError("Unexpected JSON response from image API")

                if not content_type.startswith("image/"):
                    raise GenerationError("Unexpected response format from API")

                image = ImageBlob(await resp.read(), content_type.split(";", 1)[0].strip())

        return GenerationResponse.ok(
            GenerationMetadata(
                provider=self.name,
                model=model_id,
                seed=config.seed,
                steps=config.steps or DEFAULT_STEPS,
                guidance=config.guidance or DEFAULT_GUIDANCE,
                time_ms=self.elapsed_ms(start),
            ),
            image=image,
        )

    def _check_error(self, status: int, text: str) -> None:
        """Check for API errors."""
        if status == 403 and any(marker in text for marker in PERMISSION_MARKERS):
            raise InsufficientPermissionsError(
                'INSUFFICIENT_PERMISSIONS: Your API key needs "Inference API" access level. '
                "Please create a new token with proper permissions."
            )
        raise GenerationError(f"HTTP {status}: {text}")
