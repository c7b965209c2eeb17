"""
Model capability mapping across providers.

Callers ask for a capability ("sdxl-premium", "sd-fast", ...) instead of
a vendor model id; the table below turns that into the concrete model
for whichever provider ends up serving the request.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from createosaur.providers.base import QualityTier, SpeedTier

if TYPE_CHECKING:
    from createosaur.providers.base import ImageProvider


DEFAULT_CAPABILITY = "sdxl-premium"


@dataclass(frozen=True)
class ModelCapability:
    id: str
    name: str
    description: str
    quality: QualityTier
    speed: SpeedTier
    max_resolution: int
    capabilities: tuple[str, ...] = ()


MODEL_CAPABILITIES: dict[str, ModelCapability] = {
    "sdxl-premium": ModelCapability(
        id="sdxl-premium",
        name="Stable Diffusion XL (Premium)",
        description="High-quality, latest SDXL model with excellent detail",
        quality=QualityTier.PREMIUM,
        speed=SpeedTier.MEDIUM,
        max_resolution=1024,
        capabilities=("high-detail", "large-resolution", "photorealistic"),
    ),
    "sd-fast": ModelCapability(
        id="sd-fast",
        name="Stable Diffusion (Fast)",
        description="Quick generation with good quality",
        quality=QualityTier.HIGH,
        speed=SpeedTier.FAST,
        max_resolution=768,
        capabilities=("fast-generation", "versatile"),
    ),
    "dalle-premium": ModelCapability(
        id="dalle-premium",
        name="DALL-E 3 (Premium)",
        description="OpenAI's latest image generation model",
        quality=QualityTier.PREMIUM,
        speed=SpeedTier.MEDIUM,
        max_resolution=1024,
        capabilities=("text-rendering", "complex-scenes", "artistic"),
    ),
}


# capability id -> provider-specific model id; first entry is the fallback
PROVIDER_MODEL_MAPPING: dict[str, dict[str, str]] = {
    "stability": {
        "sdxl-premium": "stable-diffusion-xl-1024-v1-0",
        "sd-fast": "stable-diffusion-v1-6",
        "dalle-premium": "stable-diffusion-xl-1024-v1-0",  # best available
    },
    "huggingface": {
        "sdxl-premium": "stabilityai/stable-diffusion-xl-base-1.0",
        "sd-fast": "runwayml/stable-diffusion-v1-5",
        "dalle-premium": "stabilityai/stable-diffusion-xl-base-1.0",
    },
    "openai": {
        "sdxl-premium": "dall-e-3",  # no SDXL on OpenAI
        "sd-fast": "dall-e-2",
        "dalle-premium": "dall-e-3",
    },
}


LEGACY_MODEL_CAPABILITIES: dict[str, str] = {
    "stabilityai/stable-diffusion-xl-base-1.0": "sdxl-premium",
    "stable-diffusion-xl-1024-v1-0": "sdxl-premium",
    "runwayml/stable-diffusion-v1-5": "sd-fast",
    "stable-diffusion-v1-6": "sd-fast",
    "dall-e-3": "dalle-premium",
    "dall-e-2": "sd-fast",
}


def get_model_for_provider(provider_name: str, capability: str = DEFAULT_CAPABILITY) -> str:
    """
    Map a capability to the provider's concrete model id.

    Unknown capabilities fall back to the provider's first mapping.

    Raises:
        ValueError: The provider has no mapping table
    """
    mapping = PROVIDER_MODEL_MAPPING.get(provider_name)
    if not mapping:
        raise ValueError(f"Unknown provider: {provider_name}")

    if capability in mapping:
        return mapping[capability]
    return next(iter(mapping.values()))


def detect_capability_from_legacy_model(model_id: str) -> str:
    """Reverse lookup for callers holding a vendor model id."""
    return LEGACY_MODEL_CAPABILITIES.get(model_id, DEFAULT_CAPABILITY)


def get_available_capabilities(provider_name: str) -> list[ModelCapability]:
    mapping = PROVIDER_MODEL_MAPPING.get(provider_name, {})
    return [MODEL_CAPABILITIES[c] for c in mapping if c in MODEL_CAPABILITIES]


def get_best_provider_for_capability(
    capability: str, available_providers: Iterable[str]
) -> str | None:
    for provider_name in available_providers:
        if capability in PROVIDER_MODEL_MAPPING.get(provider_name, {}):
            return provider_name
    return None


def resolve_model(provider: ImageProvider, requested: str | None) -> str:
    """
    Resolve a requested model or capability for a specific provider.

    ``requested`` may be a capability id, any provider's model id, or
    None. The result is always one of ``provider``'s declared models.
    """
    declared = provider.config.model_ids()

    if requested in declared:
        return requested

    if provider.name in PROVIDER_MODEL_MAPPING:
        if requested is None:
            capability = DEFAULT_CAPABILITY
        elif requested in MODEL_CAPABILITIES:
            capability = requested
        else:
            capability = detect_capability_from_legacy_model(requested)
        model_id = get_model_for_provider(provider.name, capability)
        if model_id in declared:
            return model_id

    return provider.default_model_id
