"""
Client fingerprint used as the anonymous trial key.

This is a weak, non-cryptographic identifier: a hash over a handful of
environment signals. It only needs to be stable for one device.
"""

from __future__ import annotations

import json
import locale
import platform
import time
from collections.abc import Mapping
from typing import Any


_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def simple_hash(text: str) -> str:
    """31-multiplier string hash folded to signed 32 bits, base36 of |h|."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return _to_base36(abs(h))


def collect_signals() -> dict[str, Any]:
    """Environment signals standing in for browser screen/canvas/WebGL data."""
    return {
        "platform": platform.system(),
        "release": platform.release(),
        "machine": platform.machine(),
        "node": platform.node(),
        "timezone": time.timezone // 60,
        "language": locale.getlocale()[0] or "",
    }


def compute_fingerprint(signals: Mapping[str, Any] | None = None) -> str:
    if signals is None:
        signals = collect_signals()
    return simple_hash(json.dumps(dict(signals), sort_keys=True, separators=(",", ":")))
