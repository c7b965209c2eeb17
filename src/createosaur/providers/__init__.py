"""
Image Generation Providers.

This package provides integrations with the supported image generation services:
- Hugging Face: Stable Diffusion models via the Inference API
- OpenAI: DALL-E 2, DALL-E 3
- Stability AI: SDXL and SD 1.x/2.x via the v1 REST API

Usage:
    from createosaur.core.storage import LocalStore
    from createosaur.providers import build_default_registry

    registry = build_default_registry(LocalStore.default())
    result = await registry.generate_with_fallback(GenerationConfig(prompt="..."))
"""

from createosaur.providers.base import (
    AuthenticationError,
    ContentPolicyError,
    GenerationConfig,
    GenerationError,
    GenerationMetadata,
    GenerationResponse,
    ImageProvider,
    InsufficientPermissionsError,
    ModelCard,
    ProviderConfig,
    ProviderError,
    QualityTier,
    RateLimitError,
    SpeedTier,
    SupportedFeatures,
    ValidationResult,
)
from createosaur.providers.credentials import (
    CredentialResolver,
    CredentialSource,
    EnvironmentCredentialSource,
    StaticCredentialSource,
    StoreCredentialSource,
)
from createosaur.providers.huggingface import HuggingFaceProvider
from createosaur.providers.model_mapping import (
    MODEL_CAPABILITIES,
    PROVIDER_MODEL_MAPPING,
    detect_capability_from_legacy_model,
    get_available_capabilities,
    get_best_provider_for_capability,
    get_model_for_provider,
    resolve_model,
)
from createosaur.providers.openai import OpenAIProvider
from createosaur.providers.registry import ProviderRegistry, build_default_registry
from createosaur.providers.stability import StabilityProvider


__all__ = [
    # Base classes
    "ImageProvider",
    "ModelCard",
    "ProviderConfig",
    "SupportedFeatures",
    "QualityTier",
    "SpeedTier",
    "GenerationConfig",
    "GenerationMetadata",
    "GenerationResponse",
    "ValidationResult",
    # Exceptions
    "ProviderError",
    "AuthenticationError",
    "RateLimitError",
    "ContentPolicyError",
    "InsufficientPermissionsError",
    "GenerationError",
    # Credentials
    "CredentialResolver",
    "CredentialSource",
    "StoreCredentialSource",
    "EnvironmentCredentialSource",
    "StaticCredentialSource",
    # Capability mapping
    "MODEL_CAPABILITIES",
    "PROVIDER_MODEL_MAPPING",
    "get_model_for_provider",
    "detect_capability_from_legacy_model",
    "get_available_capabilities",
    "get_best_provider_for_capability",
    "resolve_model",
    # Registry
    "ProviderRegistry",
    "build_default_registry",
    # Providers
    "HuggingFaceProvider",
    "OpenAIProvider",
    "StabilityProvider",
]
