"""
Anonymous free trial.

- fingerprint: weak client identifier used as the quota key
- quota: local trial record with progressive friction and upgrade messaging
- client: calls the server trial endpoint, which owns the authoritative counts
"""

from createosaur.trial.client import (
    AnonymousGenerationClient,
    AnonymousGenerationRequest,
    AnonymousGenerationResponse,
    TrialInfo,
)
from createosaur.trial.fingerprint import collect_signals, compute_fingerprint, simple_hash
from createosaur.trial.quota import (
    FINAL_LIMIT,
    INITIAL_LIMIT,
    REPEAT_LIMIT,
    FreeTrialTracker,
    TrialLimitExceeded,
    TrialState,
    TrialUsage,
    UpgradeOption,
    allowance_after,
    conversion_message,
    should_show_upgrade,
    trial_status,
    upgrade_options,
)


__all__ = [
    "AnonymousGenerationClient",
    "AnonymousGenerationRequest",
    "AnonymousGenerationResponse",
    "TrialInfo",
    "collect_signals",
    "compute_fingerprint",
    "simple_hash",
    "INITIAL_LIMIT",
    "REPEAT_LIMIT",
    "FINAL_LIMIT",
    "FreeTrialTracker",
    "TrialLimitExceeded",
    "TrialState",
    "TrialUsage",
    "UpgradeOption",
    "allowance_after",
    "conversion_message",
    "should_show_upgrade",
    "trial_status",
    "upgrade_options",
]
