"""
Provider Base - Shared contract and data structures for image providers.

This module provides the foundation for all image generation providers:
- ModelCard / ProviderConfig: static description of a vendor and its models
- GenerationConfig / GenerationResponse: uniform request/response values
- ImageProvider: abstract base class every vendor adapter implements

Adapters raise the ProviderError hierarchy internally; ImageProvider
converts those (and network failures) into failed GenerationResponses
so nothing vendor-specific escapes generate_image().
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import aiohttp

from createosaur.core.data_types import ImageBlob
from createosaur.providers.credentials import CredentialResolver


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 120.0  # seconds, per outbound call


class QualityTier(Enum):
    STANDARD = "standard"
    HIGH = "high"
    PREMIUM = "premium"


class SpeedTier(Enum):
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"


@dataclass(frozen=True)
class ModelCard:
    """
    One vendor model.

    Attributes:
        id: Identifier used in the vendor's own API
        name: Human-readable display name
        description: Brief description of the model
        max_width: Largest supported width in pixels
        max_height: Largest supported height in pixels
        quality: Quality tier
        speed: Speed tier
        style: Style specialty ("realistic", "artistic", "anime", "general")
    """
    id: str
    name: str
    description: str = ""
    max_width: int = 1024
    max_height: int = 1024
    quality: QualityTier = QualityTier.STANDARD
    speed: SpeedTier = SpeedTier.MEDIUM
    style: str = "general"


@dataclass(frozen=True)
class SupportedFeatures:
    negative_prompt: bool = False
    steps: bool = False
    guidance: bool = False
    seeds: bool = False
    custom_dimensions: bool = False


@dataclass(frozen=True)
class ProviderConfig:
    """Static metadata for a provider, defined once per adapter class."""
    name: str
    display_name: str
    description: str = ""
    requires_api_key: bool = True
    features: SupportedFeatures = field(default_factory=SupportedFeatures)
    models: tuple[ModelCard, ...] = ()
    credential_key: str = ""

    def model_ids(self) -> list[str]:
        return [m.id for m in self.models]

    def get_model(self, model_id: str) -> ModelCard | None:
        return next((m for m in self.models if m.id == model_id), None)


@dataclass(frozen=True)
class GenerationConfig:
    """Request for a single image. Frozen: never mutated after dispatch."""
    prompt: str
    negative_prompt: str | None = None
    model: str | None = None
    steps: int | None = None
    guidance: float | None = None
    width: int | None = None
    height: int | None = None
    seed: int | None = None
    provider: str | None = None

    def __post_init__(self) -> None:
        if not self.prompt or not self.prompt.strip():
            raise ValueError("GenerationConfig.prompt must be a non-empty string")

    def with_model(self, model: str | None) -> GenerationConfig:
        return replace(self, model=model)


@dataclass(frozen=True)
class GenerationMetadata:
    provider: str
    model: str
    seed: int | None = None
    steps: int | None = None
    guidance: float | None = None
    cost: float | None = None  # USD
    time_ms: int | None = None


@dataclass(frozen=True)
class GenerationResponse:
    """
    Result of one generation request.

    A successful response always carries a non-empty image_url (remote
    URL or data URI); a failed one always carries a non-empty error.
    """
    success: bool
    metadata: GenerationMetadata
    image_url: str | None = None
    image: ImageBlob | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.success and not self.image_url:
            raise ValueError("Successful GenerationResponse requires an image_url")
        if not self.success and not self.error:
            raise ValueError("Failed GenerationResponse requires an error message")

    @classmethod
    def ok(
        cls,
        metadata: GenerationMetadata,
        image_url: str | None = None,
        image: ImageBlob | None = None,
    ) -> GenerationResponse:
        if image_url is None and image is not None:
            image_url = image.to_data_uri()
        return cls(success=True, metadata=metadata, image_url=image_url, image=image)

    @classmethod
    def failure(
        cls, error: str, provider: str = "unknown", model: str = "unknown"
    ) -> GenerationResponse:
        return cls(
            success=False,
            metadata=GenerationMetadata(provider=provider, model=model),
            error=error or "Unknown error",
        )

    @property
    def provider(self) -> str:
        return self.metadata.provider


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None


class ProviderError(Exception):
    """Base exception for provider errors."""
    pass


class AuthenticationError(ProviderError):
    """API key invalid or missing."""
    pass


class RateLimitError(ProviderError):
    """Rate limit exceeded."""
    retry_after: float | None = None


class ContentPolicyError(ProviderError):
    """Prompt rejected by the vendor's content policy."""
    pass


class InsufficientPermissionsError(ProviderError):
    """API key is valid but lacks the access level the endpoint needs."""
    pass


class GenerationError(ProviderError):
    """Error during generation."""
    pass


class ImageProvider(ABC):
    """
    Abstract base class for image generation providers.

    Subclasses declare ``config``, ``base_url``, ``key_prefix`` and
    ``prompt_enhancements`` and implement ``_generate``, which performs
    exactly one HTTP call and may raise ProviderError.
    """

    config: ProviderConfig
    base_url: str = ""
    key_prefix: str = ""
    prompt_enhancements: tuple[str, ...] = ()

    def __init__(
        self,
        credentials: CredentialResolver,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.credentials = credentials
        if base_url:
            self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def display_name(self) -> str:
        return self.config.display_name

    @property
    def api_key(self) -> str | None:
        return self.credentials.resolve(self.config.credential_key)

    @property
    def default_model_id(self) -> str:
        return self.config.models[0].id

    def is_configured(self) -> bool:
        """True iff a credential for this vendor is present."""
        return bool(self.api_key)

    def validate_config(self) -> ValidationResult:
        """Structural credential check; never touches the network."""
        api_key = self.api_key
        if not api_key:
            return ValidationResult(False, f"{self.display_name} API key is required")
        if self.key_prefix and not api_key.startswith(self.key_prefix):
            return ValidationResult(
                False, f'{self.display_name} API key must start with "{self.key_prefix}"'
            )
        return ValidationResult(True)

    def enhance_prompt(self, prompt: str) -> str:
        """Append the vendor-tuned quality descriptors."""
        if not self.prompt_enhancements:
            return prompt
        return f"{prompt}, {', '.join(self.prompt_enhancements)}"

    async def generate_image(self, config: GenerationConfig) -> GenerationResponse:
        """
        Generate one image.

        Never raises for configuration, vendor or network failures; those
        resolve to ``GenerationResponse.failure``.
        """
        validation = self.validate_config()
        if not validation.valid:
            return self.create_error_response(validation.error or "Invalid configuration")

        model_id = config.model or self.default_model_id
        logger.info("%s: generating with model %s", self.display_name, model_id)

        start = time.monotonic()
        try:
            return await self._generate(config, model_id, start)
        except ProviderError as e:
            logger.warning("%s generation failed: %s", self.display_name, e)
            return self.create_error_response(str(e), model_id)
        except asyncio.TimeoutError:
            logger.warning("%s request timed out after %.0fs", self.display_name, self.timeout)
            return self.create_error_response(
                f"{self.display_name} request timed out", model_id
            )
        except aiohttp.ClientError as e:
            logger.warning("%s network error: %s", self.display_name, e)
            return self.create_error_response(str(e) or "Network error", model_id)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("%s returned a malformed response: %s", self.display_name, e)
            return self.create_error_response(
                f"Malformed response from {self.display_name}: {e}", model_id
            )

    @abstractmethod
    async def _generate(
        self, config: GenerationConfig, model_id: str, start: float
    ) -> GenerationResponse:
        """
        Perform the vendor call.

        Args:
            config: The caller's request
            model_id: Resolved vendor model identifier
            start: time.monotonic() taken before the call

        Raises:
            ProviderError: Vendor rejected the request
        """
        ...

    def get_headers(self) -> dict[str, str]:
        """Get default headers for API requests."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def client_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    def create_error_response(self, error: str, model: str = "unknown") -> GenerationResponse:
        return GenerationResponse.failure(error, provider=self.name, model=model)

    @staticmethod
    def elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)

    def describe(self) -> dict[str, Any]:
        """Summary used by listings and the CLI."""
        return {
            "name": self.name,
            "display_name": self.display_name,
            "configured": self.is_configured(),
            "models": self.config.model_ids(),
        }
