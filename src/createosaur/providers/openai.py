"""
OpenAI Provider - DALL-E models.

Supports:
- DALL-E 3: Text-to-image with fixed quality/style options
- DALL-E 2: Text-to-image, faster and cheaper

API Reference: https://platform.openai.com/docs/api-reference/images
Note: DALL-E has no negative prompt; it is never sent.
"""

from __future__ import annotations

from typing import Any

from createosaur.providers.base import (
    AuthenticationError,
    ContentPolicyError,
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


# Approximate costs in USD per image
COSTS: dict[str, dict[str, float]] = {
    "dall-e-3": {
        "1024x1024": 0.040,
        "1024x1792": 0.080,
        "1792x1024": 0.080,
    },
    "dall-e-2": {
        "256x256": 0.016,
        "512x512": 0.018,
        "1024x1024": 0.020,
    },
}


def select_dalle_size(width: int | None, height: int | None, model: str) -> str:
    """Pick the vendor-supported size nearest the requested dimensions."""
    target_width = width or 1024
    target_height = height or 1024

    if model == "dall-e-3":
        if target_width > target_height:
            return "1792x1024"
        if target_height > target_width:
            return "1024x1792"
        return "1024x1024"

    if target_width <= 256 and target_height <= 256:
        return "256x256"
    if target_width <= 512 and target_height <= 512:
        return "512x512"
    return "1024x1024"


def estimate_cost(model: str, size: str) -> float:
    return COSTS.get(model, {}).get(size, 0.0)


class OpenAIProvider(ImageProvider):
    """
    OpenAI image generation provider.

    Requests a hosted URL (``response_format: "url"``) rather than
    base64 data.
    """

    config = ProviderConfig(
        name="openai",
        display_name="OpenAI DALL-E",
        description="Premium AI image generation by OpenAI",
        requires_api_key=True,
        features=SupportedFeatures(
            negative_prompt=False,
            steps=False,
            guidance=False,
            seeds=False,
            custom_dimensions=True,  # limited to fixed sizes
        ),
        models=(
            ModelCard(
                id="dall-e-3",
                name="DALL-E 3",
                description="Latest and most advanced DALL-E model with exceptional quality",
                max_width=1792,
                max_height=1792,
                quality=QualityTier.PREMIUM,
                speed=SpeedTier.SLOW,
                style="artistic",
            ),
            ModelCard(
                id="dall-e-2",
                name="DALL-E 2",
                description="Previous generation DALL-E with good quality and faster speed",
                max_width=1024,
                max_height=1024,
                quality=QualityTier.HIGH,
                speed=SpeedTier.MEDIUM,
                style="artistic",
            ),
        ),
        credential_key="OPENAI_API_KEY",
    )

    base_url = "https://api.openai.com/v1"
    key_prefix = "sk-"
    prompt_enhancements = (
        "highly detailed digital artwork",
        "premium quality",
        "professional illustration",
    )

    def build_body(self, config: GenerationConfig, model_id: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": model_id,
            "prompt": self.enhance_prompt(config.prompt),
            "n": 1,
            "size": select_dalle_size(config.width, config.height, model_id),
            "response_format": "url",
        }
        if model_id == "dall-e-3":
            body["quality"] = "hd"
            body["style"] = "natural"
        return body

    async def _generate(
        self, config: GenerationConfig, model_id: str, start: float
    ) -> GenerationResponse:
        url = f"{self.base_url}/images/generations"
        body = self.build_body(config, model_id)

        async with self.client_session() as session:
            async with session.post(url, json=body, headers=self.get_headers()) as resp:
                if resp.status >= 400:
                    try:
                        error_data = await resp.json(content_type=None)
                    except ValueError:
                        error_data = {"error": {"message": await resp.text()}}
                    self._check_error(resp.status, error_data, resp.reason)

                data = await resp.json(content_type=None)

        items = data.get("data") if isinstance(data, dict) else None
        if not items or not isinstance(items, list):
            raise GenerationError("No image generated")
        if not isinstance(items[0], dict) or not isinstance(items[0].get("url"), str):
            raise GenerationError("Malformed response from OpenAI DALL-E: missing image url")

        return GenerationResponse.ok(
            GenerationMetadata(
                provider=self.name,
                model=model_id,
                time_ms=self.elapsed_ms(start),
                cost=estimate_cost(model_id, body["size"]),
            ),
            image_url=items[0]["url"],
        )

    def _check_error(self, status: int, data: Any, reason: str | None = None) -> None:
        """Check for API errors."""
        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, dict):
            error = {}

        if status == 401:
            raise AuthenticationError("Invalid OpenAI API key")
        elif status == 429:
            err = RateLimitError("Rate limit exceeded. Please wait and try again.")
            err.retry_after = 60
            raise err
        elif status == 400 and error.get("code") == "content_policy_violation":
            raise ContentPolicyError("Content policy violation. Please modify your prompt.")
        raise GenerationError(error.get("message") or f"HTTP {status}: {reason or 'Error'}")
