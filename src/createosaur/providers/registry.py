"""
Provider Registry - Holds the adapters and runs the fallback chain.

This module manages:
- The fixed set of provider adapters built at startup
- The persisted preferred-provider setting
- generate_with_fallback(): preferred provider first, then every other
  configured provider in registration order until one succeeds
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from createosaur.core.storage import DEFAULT_PROVIDER_KEY, LocalStore
from createosaur.providers.base import (
    DEFAULT_TIMEOUT,
    GenerationConfig,
    GenerationResponse,
    ImageProvider,
    ModelCard,
)
from createosaur.providers.credentials import CredentialResolver
from createosaur.providers.model_mapping import resolve_model


logger = logging.getLogger(__name__)


DEFAULT_PROVIDER = "huggingface"
NO_PROVIDER = "none"


class ProviderRegistry:
    """
    Registry of provider adapters.

    Constructed once per application and passed to whatever needs it.
    Holds no per-request state: fallback order is recomputed on every
    call from the current credentials.
    """

    def __init__(
        self,
        providers: Iterable[ImageProvider],
        store: LocalStore | None = None,
        default_provider: str = DEFAULT_PROVIDER,
    ):
        self._providers: dict[str, ImageProvider] = {}
        for provider in providers:
            self._providers[provider.name] = provider
        self._store = store if store is not None else LocalStore()
        self._default_provider = default_provider

    # -------------------------------------------------------------------------
    # Provider lookup
    # -------------------------------------------------------------------------

    def get_provider(self, name: str) -> ImageProvider | None:
        return self._providers.get(name)

    def get_all_providers(self) -> list[ImageProvider]:
        return list(self._providers.values())

    def list_providers(self) -> list[str]:
        return list(self._providers.keys())

    def get_configured_providers(self) -> list[ImageProvider]:
        """Providers with a credential present right now."""
        return [p for p in self._providers.values() if p.is_configured()]

    # -------------------------------------------------------------------------
    # Preferred provider
    # -------------------------------------------------------------------------

    def get_default_provider_name(self) -> str:
        return self._store.get(DEFAULT_PROVIDER_KEY) or self._default_provider

    def get_default_provider(self) -> ImageProvider | None:
        """First configured provider, else the hard-coded default."""
        configured = self.get_configured_providers()
        if configured:
            return configured[0]
        return self._providers.get(self._default_provider)

    def set_default_provider(self, name: str) -> bool:
        if name not in self._providers:
            return False
        self._default_provider = name
        self._store.set(DEFAULT_PROVIDER_KEY, name)
        return True

    # -------------------------------------------------------------------------
    # Models
    # -------------------------------------------------------------------------

    def get_models_for_provider(self, name: str) -> list[ModelCard]:
        provider = self.get_provider(name)
        return list(provider.config.models) if provider else []

    def get_all_models(self) -> list[dict[str, Any]]:
        """Every model across providers, tagged with its provider."""
        models = []
        for provider in self._providers.values():
            for model in provider.config.models:
                models.append({
                    "model": model,
                    "provider": provider.name,
                    "provider_display_name": provider.display_name,
                })
        return models

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def _attempt(
        self, provider: ImageProvider, config: GenerationConfig
    ) -> GenerationResponse:
        """Run one provider; a crash counts as an ordinary failure."""
        model_id = "unknown"
        try:
            model_id = resolve_model(provider, config.model)
            return await provider.generate_image(config.with_model(model_id))
        except Exception as e:
            logger.exception("Provider %s crashed during generation", provider.name)
            return GenerationResponse.failure(
                f"{type(e).__name__}: {e}", provider=provider.name, model=model_id
            )

    async def generate_with_fallback(self, config: GenerationConfig) -> GenerationResponse:
        """
        Generate with the preferred provider, falling back to the others.

        Providers without credentials are skipped, never attempted.
        """
        preferred_name = config.provider or self.get_default_provider_name()
        preferred = self.get_provider(preferred_name)
        failures: list[tuple[str, str]] = []

        if preferred is not None and preferred.is_configured():
            logger.info("Trying preferred provider: %s", preferred.display_name)
            result = await self._attempt(preferred, config)
            if result.success:
                return result
            logger.warning("Preferred provider failed: %s", result.error)
            failures.append((preferred.name, result.error or ""))

        for provider in self.get_configured_providers():
            if provider.name == preferred_name:
                continue

            logger.info("Trying fallback provider: %s", provider.display_name)
            result = await self._attempt(provider, config)
            if result.success:
                logger.info("Fallback provider succeeded: %s", provider.display_name)
                return result
            logger.warning("Fallback provider %s failed: %s", provider.name, result.error)
            failures.append((provider.name, result.error or ""))

        if not failures:
            error = "No AI providers are configured"
        else:
            details = "; ".join(f"{name}: {error}" for name, error in failures)
            error = f"All configured AI providers failed to generate image ({details})"
        return GenerationResponse.failure(error, provider=NO_PROVIDER, model=NO_PROVIDER)


def build_default_registry(
    store: LocalStore,
    credentials: CredentialResolver | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> ProviderRegistry:
    """Registry with HuggingFace, OpenAI and Stability, in that order."""
    from createosaur.providers.huggingface import HuggingFaceProvider
    from createosaur.providers.openai import OpenAIProvider
    from createosaur.providers.stability import StabilityProvider

    if credentials is None:
        credentials = CredentialResolver.default(store)

    return ProviderRegistry(
        [
            HuggingFaceProvider(credentials, timeout=timeout),
            OpenAIProvider(credentials, timeout=timeout),
            StabilityProvider(credentials, timeout=timeout),
        ],
        store=store,
    )
