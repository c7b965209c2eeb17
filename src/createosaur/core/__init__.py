"""
Core module - Shared data containers and client-local state.
"""

from createosaur.core.data_types import ImageBlob, SVG_MIME_TYPE
from createosaur.core.storage import (
    DEFAULT_PROVIDER_KEY,
    LocalStore,
    SessionStore,
    TRIAL_KEY,
    new_session_id,
)

__all__ = [
    "ImageBlob",
    "SVG_MIME_TYPE",
    "LocalStore",
    "SessionStore",
    "DEFAULT_PROVIDER_KEY",
    "TRIAL_KEY",
    "new_session_id",
]
