"""Anonymous trial server: FastAPI app, settings, usage store and rate limiter."""

from createosaur.server.app import client_ip, create_app
from createosaur.server.rate_limit import RateLimiter
from createosaur.server.settings import ServerSettings
from createosaur.server.usage_store import Reservation, Usage, UsageStore

__all__ = [
    "create_app",
    "client_ip",
    "RateLimiter",
    "ServerSettings",
    "Reservation",
    "Usage",
    "UsageStore",
]
