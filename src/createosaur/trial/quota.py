"""
Free trial tracking with progressive friction.

The record kept here is a cached, best-effort hint for instant feedback;
the server endpoint owns the authoritative counts and the client
overwrites this copy with them after every call (sync_with_server).

Per fingerprint the trial moves fresh -> active -> exhausted. When the
fingerprint changes, the new record's allowance steps down 3 -> 2 -> 1
depending on how much the earlier fingerprints already used. The server
only knows a flat per-fingerprint allowance, so the stepped-down limit
is kept locally across syncs; it is friction for the honest client, not
enforcement.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from createosaur.core.storage import TRIAL_KEY, LocalStore, SessionStore
from createosaur.trial.fingerprint import compute_fingerprint


logger = logging.getLogger(__name__)


INITIAL_LIMIT = 3
REPEAT_LIMIT = 2
FINAL_LIMIT = 1


class TrialLimitExceeded(Exception):
    """Raised when recording a generation past the trial allowance."""


class TrialState(Enum):
    FRESH = "fresh"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class TrialUsage:
    """
    Trial record for one fingerprint.

    Attributes:
        generations_used: Successful generations on this fingerprint
        max_generations: Allowance for this fingerprint
        last_used: ISO-8601 timestamp of the last change
        fingerprint: Client fingerprint the record belongs to
        session_id: Session that last touched the record
        carried_over: Generations used by earlier fingerprints
    """
    generations_used: int
    max_generations: int
    last_used: str
    fingerprint: str
    session_id: str
    carried_over: int = 0

    @property
    def remaining(self) -> int:
        return max(0, self.max_generations - self.generations_used)

    def to_dict(self) -> dict[str, Any]:
        return {
            "generationsUsed": self.generations_used,
            "maxGenerations": self.max_generations,
            "lastUsed": self.last_used,
            "fingerprint": self.fingerprint,
            "sessionId": self.session_id,
            "carriedOver": self.carried_over,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrialUsage:
        return cls(
            generations_used=int(data["generationsUsed"]),
            max_generations=int(data["maxGenerations"]),
            last_used=str(data.get("lastUsed", "")),
            fingerprint=str(data["fingerprint"]),
            session_id=str(data.get("sessionId", "")),
            carried_over=int(data.get("carriedOver", 0)),
        )


def allowance_after(previous_usage: int) -> int:
    """Allowance for a new fingerprint given usage on earlier ones."""
    if previous_usage >= INITIAL_LIMIT + REPEAT_LIMIT:
        return FINAL_LIMIT
    if previous_usage >= INITIAL_LIMIT:
        return REPEAT_LIMIT
    return INITIAL_LIMIT


def conversion_message(remaining: int, max_generations: int) -> str:
    if remaining == 0:
        return "You've explored our AI-powered creature creation! Ready to create unlimited creatures?"

    if remaining == 1:
        return (
            "One more free generation! After that, you can continue with your own "
            "API key or try our credit system."
        )

    if max_generations in (REPEAT_LIMIT, FINAL_LIMIT):
        return f"Welcome back! You have {remaining} free generations on this device."

    return f"Welcome! You have {remaining} free generations to explore creature creation."


def trial_status(remaining: int) -> str:
    if remaining <= 0:
        return "exhausted"
    if remaining == 1:
        return "upgrade_suggested"
    return "active"


def should_show_upgrade(remaining: int) -> bool:
    return remaining <= 1


@dataclass(frozen=True)
class UpgradeOption:
    title: str
    description: str
    action: str  # "signup", "api-key" or "credits"
    priority: int


def upgrade_options(remaining: int) -> list[UpgradeOption]:
    if remaining == 0:
        return [
            UpgradeOption(
                "Continue with Your API Key",
                "Add your own Stability AI or OpenAI key for unlimited generations",
                "api-key",
                1,
            ),
            UpgradeOption(
                "Try Our Credit System",
                "Get 50 generations for $5 - no API key needed",
                "credits",
                2,
            ),
            UpgradeOption(
                "Create Free Account",
                "Save your creations and access community features",
                "signup",
                3,
            ),
        ]
    return [
        UpgradeOption(
            "Save Your Creations",
            "Create a free account to keep your creatures forever",
            "signup",
            1,
        ),
        UpgradeOption(
            "Unlimited Generations",
            "Add your API key or try our credit system",
            "api-key",
            2,
        ),
    ]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FreeTrialTracker:
    """
    Local trial bookkeeping for one client.

    Reads and writes a single record in the LocalStore. Read-modify-write
    without locking: a client has a single writer.
    """

    def __init__(
        self,
        store: LocalStore,
        fingerprint: str | Callable[[], str] | None = None,
        session: SessionStore | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self._fingerprint = fingerprint if fingerprint is not None else compute_fingerprint
        self.session = session if session is not None else SessionStore()
        self._clock = clock

    @property
    def fingerprint(self) -> str:
        if callable(self._fingerprint):
            return self._fingerprint()
        return self._fingerprint

    @property
    def session_id(self) -> str:
        return self.session.get_or_create_session_id()

    def _now(self) -> str:
        return self._clock().isoformat()

    def _stored(self) -> TrialUsage | None:
        try:
            data = self.store.get_json(TRIAL_KEY)
            return TrialUsage.from_dict(data) if data is not None else None
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.warning("Invalid trial data, resetting")
            return None

    def _save(self, usage: TrialUsage) -> None:
        self.store.set_json(TRIAL_KEY, usage.to_dict())

    def get_trial_status(self) -> TrialUsage:
        fingerprint = self.fingerprint
        stored = self._stored()

        if stored is not None and stored.fingerprint == fingerprint:
            return stored

        if stored is not None:
            # New fingerprint under an existing record
            previous = stored.carried_over + stored.generations_used
            return TrialUsage(
                generations_used=0,
                max_generations=allowance_after(previous),
                last_used=self._now(),
                fingerprint=fingerprint,
                session_id=self.session_id,
                carried_over=previous,
            )

        return TrialUsage(
            generations_used=0,
            max_generations=INITIAL_LIMIT,
            last_used=self._now(),
            fingerprint=fingerprint,
            session_id=self.session_id,
        )

    def state(self) -> TrialState:
        stored = self._stored()
        if stored is None or stored.fingerprint != self.fingerprint:
            return TrialState.FRESH
        if stored.generations_used >= stored.max_generations:
            return TrialState.EXHAUSTED
        return TrialState.ACTIVE

    def can_generate(self) -> bool:
        status = self.get_trial_status()
        return status.generations_used < status.max_generations

    def get_remaining_generations(self) -> int:
        return self.get_trial_status().remaining

    def record_generation(self) -> TrialUsage:
        """
        Count one successful generation.

        Raises:
            TrialLimitExceeded: The allowance is already used up
        """
        status = self.get_trial_status()
        if status.generations_used >= status.max_generations:
            raise TrialLimitExceeded("Trial limit exceeded")

        updated = replace(
            status,
            generations_used=status.generations_used + 1,
            last_used=self._now(),
            session_id=self.session_id,
        )
        self._save(updated)
        return updated

    def sync_with_server(self, server_used: int, server_max: int) -> TrialUsage:
        """
        Overwrite the local copy with the server's authoritative counts.

        The server grants a flat allowance per fingerprint. A record that
        carries usage over from earlier fingerprints keeps the lower of the
        two limits, so a rotated fingerprint stays at its reduced allowance.
        """
        status = self.get_trial_status()
        max_generations = max(0, int(server_max))
        if status.carried_over > 0:
            max_generations = min(max_generations, status.max_generations)
        updated = replace(
            status,
            generations_used=min(max(0, int(server_used)), max_generations),
            max_generations=max_generations,
            last_used=self._now(),
        )
        self._save(updated)
        return updated

    def get_conversion_message(self) -> str:
        status = self.get_trial_status()
        return conversion_message(status.remaining, status.max_generations)

    def clear(self) -> None:
        self.store.remove(TRIAL_KEY)
        self.session.clear()

    def as_dict(self) -> dict[str, Any]:
        status = self.get_trial_status()
        data = asdict(status)
        data["remaining"] = status.remaining
        data["state"] = self.state().value
        return data
