"""
Consumer-facing generation entry point.

Picks the authenticated path (the orchestrator, using the caller's own
provider credentials) or the anonymous path (trial gate plus the server
endpoint) and reports progress through callbacks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from createosaur.generation.service import ImageGenerationService
from createosaur.providers.base import (
    GenerationConfig,
    GenerationMetadata,
    GenerationResponse,
)
from createosaur.trial.client import (
    AnonymousGenerationClient,
    AnonymousGenerationResponse,
    TrialInfo,
)


logger = logging.getLogger(__name__)


MAX_BATCH_SIZE = 4
TRIAL_PROVIDER = "trial"
TRIAL_MODEL = "server"

# (stage, percent)
STAGE_ANALYZING = ("Analyzing", 20)
STAGE_GENERATING = ("Generating", 70)
STAGE_FINALIZING = ("Finalizing", 90)
STAGE_COMPLETE = ("Complete", 100)

ProgressCallback = Callable[[str, int], None]
ImageCallback = Callable[[GenerationResponse], None]


@dataclass
class GenerationOutcome:
    success: bool
    responses: list[GenerationResponse] = field(default_factory=list)
    needs_upgrade: bool = False
    conversion_message: str | None = None
    remaining_generations: int | None = None


def _from_trial_response(response: AnonymousGenerationResponse) -> GenerationResponse:
    if response.success and response.image_url:
        return GenerationResponse.ok(
            GenerationMetadata(provider=TRIAL_PROVIDER, model=TRIAL_MODEL),
            image_url=response.image_url,
        )
    return GenerationResponse.failure(
        response.error or "Generation failed", provider=TRIAL_PROVIDER, model=TRIAL_MODEL
    )


class GenerationHook:
    """
    Runs a batch of up to ``max_batch_size`` requests.

    ``is_authenticated`` may be a bool or a callable checked per call, so
    a session can sign in or out between batches.
    """

    def __init__(
        self,
        service: ImageGenerationService,
        anonymous_client: AnonymousGenerationClient | None = None,
        is_authenticated: bool | Callable[[], bool] = False,
        on_progress: ProgressCallback | None = None,
        on_new_image: ImageCallback | None = None,
        max_batch_size: int = MAX_BATCH_SIZE,
    ):
        self.service = service
        self.anonymous_client = anonymous_client
        self._is_authenticated = is_authenticated
        self.on_progress = on_progress
        self.on_new_image = on_new_image
        self.max_batch_size = max_batch_size
        self.is_generating = False

    @property
    def authenticated(self) -> bool:
        if callable(self._is_authenticated):
            return bool(self._is_authenticated())
        return bool(self._is_authenticated)

    def _progress(self, stage: tuple[str, int]) -> None:
        if self.on_progress is not None:
            self.on_progress(*stage)

    def _emit(self, response: GenerationResponse) -> None:
        if response.success and self.on_new_image is not None:
            self.on_new_image(response)

    async def generate(self, configs: Sequence[GenerationConfig]) -> GenerationOutcome:
        configs = list(configs)
        if len(configs) > self.max_batch_size:
            logger.warning(
                "Batch of %d requests truncated to %d", len(configs), self.max_batch_size
            )
            configs = configs[: self.max_batch_size]

        self.is_generating = True
        try:
            if self.authenticated:
                return await self._generate_authenticated(configs)
            return await self._generate_anonymous(configs)
        finally:
            self.is_generating = False

    async def _generate_authenticated(
        self, configs: list[GenerationConfig]
    ) -> GenerationOutcome:
        self._progress(STAGE_ANALYZING)
        self._progress(STAGE_GENERATING)
        responses = await self.service.generate_batch(configs)
        self._progress(STAGE_FINALIZING)

        for response in responses:
            self._emit(response)

        self._progress(STAGE_COMPLETE)
        return GenerationOutcome(
            success=any(r.success for r in responses), responses=responses
        )

    async def _generate_anonymous(self, configs: list[GenerationConfig]) -> GenerationOutcome:
        if self.anonymous_client is None:
            raise RuntimeError("Anonymous generation requires an AnonymousGenerationClient")

        info = self.anonymous_client.get_trial_info()
        if not info.can_generate:
            return GenerationOutcome(
                success=False,
                needs_upgrade=True,
                conversion_message=info.conversion_message,
                remaining_generations=0,
            )

        self._progress(STAGE_ANALYZING)
        responses: list[GenerationResponse] = []
        for config in configs:
            self._progress(STAGE_GENERATING)
            result = await self.anonymous_client.generate_image(config)
            response = _from_trial_response(result)
            responses.append(response)
            self._emit(response)
            if result.trial_status == "exhausted":
                break
        self._progress(STAGE_FINALIZING)

        info = self.anonymous_client.get_trial_info()
        if info.remaining_generations == 0:
            logger.info("Free trial complete")

        self._progress(STAGE_COMPLETE)
        return GenerationOutcome(
            success=any(r.success for r in responses),
            responses=responses,
            needs_upgrade=info.remaining_generations == 0,
            conversion_message=info.conversion_message,
            remaining_generations=info.remaining_generations,
        )

    def get_trial_status(self) -> TrialInfo | None:
        """None for authenticated users; they have no trial."""
        if self.authenticated or self.anonymous_client is None:
            return None
        return self.anonymous_client.get_trial_info()

    def should_show_trial_ui(self) -> bool:
        return not self.authenticated
