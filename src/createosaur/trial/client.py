"""
Anonymous generation client.

Talks to the server trial endpoint on behalf of a user without their own
credentials. The local tracker pre-checks the quota so an exhausted trial
never reaches the network; the server's counts overwrite the local copy
after every answered request.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from createosaur.providers.base import DEFAULT_TIMEOUT, GenerationConfig
from createosaur.trial.quota import (
    FreeTrialTracker,
    UpgradeOption,
    should_show_upgrade,
    trial_status,
    upgrade_options,
)


logger = logging.getLogger(__name__)


API_ENDPOINT = "/api/anonymous-generate"
DEFAULT_SERVER_URL = "http://127.0.0.1:8000"


@dataclass(frozen=True)
class AnonymousGenerationRequest:
    prompt: str
    negative_prompt: str | None = None
    width: int | None = None
    height: int | None = None
    steps: int | None = None
    guidance: float | None = None

    @classmethod
    def from_config(cls, config: GenerationConfig) -> AnonymousGenerationRequest:
        return cls(
            prompt=config.prompt,
            negative_prompt=config.negative_prompt,
            width=config.width,
            height=config.height,
            steps=config.steps,
            guidance=config.guidance,
        )

    def to_payload(self, fingerprint: str, session_id: str) -> dict[str, Any]:
        """Request body with the endpoint's camelCase field names."""
        payload: dict[str, Any] = {
            "prompt": self.prompt,
            "fingerprint": fingerprint,
            "sessionId": session_id,
        }
        optional = {
            "negativePrompt": self.negative_prompt,
            "width": self.width,
            "height": self.height,
            "steps": self.steps,
            "guidance": self.guidance,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        return payload


@dataclass(frozen=True)
class AnonymousGenerationResponse:
    success: bool
    remaining_generations: int
    trial_status: str  # "active", "upgrade_suggested" or "exhausted"
    conversion_message: str
    image_url: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class TrialInfo:
    can_generate: bool
    remaining_generations: int
    conversion_message: str
    trial_status: str


class AnonymousGenerationClient:
    """
    Client for ``POST /api/anonymous-generate``.

    Network and server failures come back as unsuccessful responses;
    generate_image never raises for them.
    """

    def __init__(
        self,
        tracker: FreeTrialTracker,
        base_url: str = DEFAULT_SERVER_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.tracker = tracker
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{API_ENDPOINT}"

    def _response(
        self,
        success: bool,
        remaining: int,
        image_url: str | None = None,
        error: str | None = None,
    ) -> AnonymousGenerationResponse:
        return AnonymousGenerationResponse(
            success=success,
            remaining_generations=remaining,
            trial_status=trial_status(remaining),
            conversion_message=self.tracker.get_conversion_message(),
            image_url=image_url,
            error=error,
        )

    def _sync(self, data: dict[str, Any]) -> None:
        if "totalUsed" not in data or "maxAllowed" not in data:
            return
        try:
            self.tracker.sync_with_server(data["totalUsed"], data["maxAllowed"])
        except (TypeError, ValueError) as e:
            logger.warning("Failed to sync trial data: %s", e)

    async def generate_image(
        self, request: AnonymousGenerationRequest | GenerationConfig
    ) -> AnonymousGenerationResponse:
        if isinstance(request, GenerationConfig):
            request = AnonymousGenerationRequest.from_config(request)

        if not self.tracker.can_generate():
            return self._response(False, 0, error="Trial limit exceeded")

        payload = request.to_payload(self.tracker.fingerprint, self.tracker.session_id)

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.endpoint, json=payload) as resp:
                    status = resp.status
                    try:
                        data = await resp.json(content_type=None)
                    except ValueError:
                        data = {"error": await resp.text()}
        except asyncio.TimeoutError:
            logger.warning("Anonymous generation timed out after %.0fs", self.timeout)
            return self._response(
                False, self.tracker.get_remaining_generations(), error="Request timed out"
            )
        except aiohttp.ClientError as e:
            logger.error("Anonymous generation failed: %s", e)
            return self._response(
                False, self.tracker.get_remaining_generations(), error=str(e) or "Network error"
            )

        if not isinstance(data, dict):
            data = {}

        if status in (200, 403):
            self._sync(data)

        if status != 200 or not data.get("success"):
            remaining = data.get("remainingGenerations")
            if not isinstance(remaining, int):
                remaining = self.tracker.get_remaining_generations()
            return self._response(
                False, remaining, error=data.get("error") or "Generation failed"
            )

        # A rotated fingerprint may have a lower local allowance than the server grants
        remaining = min(
            int(data.get("remainingGenerations", 0)), self.tracker.get_remaining_generations()
        )
        return self._response(True, remaining, image_url=data.get("imageUrl"))

    def get_trial_info(self) -> TrialInfo:
        remaining = self.tracker.get_remaining_generations()
        return TrialInfo(
            can_generate=self.tracker.can_generate(),
            remaining_generations=remaining,
            conversion_message=self.tracker.get_conversion_message(),
            trial_status=trial_status(remaining),
        )

    def get_upgrade_options(self) -> list[UpgradeOption]:
        return upgrade_options(self.tracker.get_remaining_generations())

    def should_show_upgrade(self) -> bool:
        return should_show_upgrade(self.tracker.get_remaining_generations())
