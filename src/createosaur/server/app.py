"""Createosaur trial server - FastAPI application.

Serves free anonymous generations with a server-owned Stability AI key.
The SQLite usage store is the authoritative trial counter; clients only
cache its numbers.

Endpoints
---------
========  ===========================  ==================================
Method    Path                         Purpose
========  ===========================  ==================================
POST      ``/api/anonymous-generate``  One trial generation
GET       ``/api/health``              Liveness and configuration state
========  ===========================  ==================================

Usage
-----
CLI::

    createosaur serve

Direct invocation::

    python -m createosaur.server.app
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from createosaur import __version__
from createosaur.providers.base import GenerationConfig, ImageProvider
from createosaur.providers.credentials import CredentialResolver
from createosaur.providers.stability import StabilityProvider
from createosaur.server.models import (
    AnonymousGenerateRequest,
    AnonymousGenerateResponse,
    ErrorResponse,
    HealthResponse,
    TrialExceededResponse,
)
from createosaur.server.rate_limit import RateLimiter
from createosaur.server.settings import ServerSettings
from createosaur.server.usage_store import UsageStore

logger = logging.getLogger(__name__)

ENDPOINT = "/api/anonymous-generate"
REQUIRED_FIELDS = ("prompt", "fingerprint", "sessionId")
MISSING_FIELDS_ERROR = "Missing required fields: prompt, fingerprint, sessionId"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def client_ip(request: Request) -> str:
    """Client address from proxy headers, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header)
        if value:
            return value.strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def build_admin_provider(settings: ServerSettings) -> ImageProvider | None:
    """Stability adapter keyed with the admin credential, or None if unset."""
    if not settings.is_configured:
        return None
    key = settings.admin_stability_api_key.get_secret_value()
    credentials = CredentialResolver.static({StabilityProvider.config.credential_key: key})
    return StabilityProvider(
        credentials,
        base_url=settings.stability_base_url,
        timeout=settings.request_timeout,
    )


def create_app(
    settings: ServerSettings | None = None,
    usage_store: UsageStore | None = None,
    provider: ImageProvider | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Server settings; loaded from the environment when omitted.
        usage_store: Trial counter; a SQLite file at
            ``settings.database_path`` when omitted.
        provider: Adapter used for generations; the admin-keyed Stability
            adapter when omitted. None after construction means the server
            is misconfigured and every generation request gets HTTP 500.
        rate_limiter: Per ``ip:fingerprint`` limiter.

    Returns:
        The configured application.
    """
    settings = settings if settings is not None else ServerSettings()
    owns_store = usage_store is None
    if usage_store is None:
        usage_store = UsageStore(
            settings.database_path,
            trial_limit=settings.trial_limit,
            window_days=settings.quota_window_days,
        )
    if provider is None:
        provider = build_admin_provider(settings)
    if rate_limiter is None:
        rate_limiter = RateLimiter(settings.rate_limit_requests, settings.rate_limit_window_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.provider is None:
            logger.error("ADMIN_STABILITY_API_KEY not configured")
        yield
        if owns_store:
            app.state.usage_store.close()

    app = FastAPI(
        title="Createosaur Trial Server",
        description="Free anonymous image generations backed by a server-side key.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.usage_store = usage_store
    app.state.provider = provider
    app.state.rate_limiter = rate_limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Body problems are 400 with a flat {"error": ...} body
        for error in exc.errors():
            loc = error.get("loc", ())
            if len(loc) == 1 or (len(loc) >= 2 and loc[-1] in REQUIRED_FIELDS):
                return _error(400, MISSING_FIELDS_ERROR)
        return _error(400, "Invalid request parameters")

    @app.get("/api/health")
    async def health() -> HealthResponse:
        return HealthResponse(configured=app.state.provider is not None, version=__version__)

    @app.post(ENDPOINT)
    async def anonymous_generate(body: AnonymousGenerateRequest, request: Request) -> JSONResponse:
        """Run one trial generation.

        Order of checks: configuration (500), rate limit (429), atomic
        quota reservation (403), then the vendor call. A failed generation
        gives its reservation back.
        """
        state = request.app.state
        admin_provider: ImageProvider | None = state.provider
        if admin_provider is None:
            logger.error("Trial request rejected: admin Stability key is not configured")
            return _error(500, "Server configuration error")

        ip = client_ip(request)
        if not state.rate_limiter.check(f"{ip}:{body.fingerprint}"):
            logger.info(f"Rate limit exceeded for {ip}")
            return _error(429, "Rate limit exceeded. Please try again later.")

        store: UsageStore = state.usage_store
        reservation = store.reserve(body.fingerprint, body.session_id, ip)
        if not reservation.granted:
            usage = reservation.usage
            return JSONResponse(
                status_code=403,
                content=TrialExceededResponse(
                    total_used=usage.used, max_allowed=usage.max_allowed
                ).model_dump(by_alias=True),
            )

        server_settings: ServerSettings = state.settings
        config = GenerationConfig(
            prompt=body.prompt,
            negative_prompt=body.negative_prompt or server_settings.default_negative_prompt,
            model=server_settings.model,
            width=body.width or server_settings.default_width,
            height=body.height or server_settings.default_height,
            steps=body.steps or server_settings.default_steps,
            guidance=body.guidance if body.guidance is not None else server_settings.default_guidance,
        )

        try:
            result = await admin_provider.generate_image(config)
        except Exception:
            logger.exception("Anonymous generation error")
            store.release(body.fingerprint)
            return _error(500, "Internal server error")

        if not result.success:
            store.release(body.fingerprint)
            return _error(500, result.error or "Image generation failed")

        usage = reservation.usage
        return JSONResponse(
            status_code=200,
            content=AnonymousGenerateResponse(
                image_url=result.image_url,
                remaining_generations=usage.remaining,
                total_used=usage.used,
                max_allowed=usage.max_allowed,
            ).model_dump(by_alias=True),
        )

    return app


def main() -> None:
    """Launch the uvicorn ASGI server on the configured host and port."""
    import uvicorn

    settings = ServerSettings()
    uvicorn.run(create_app(settings), host=settings.server_host, port=settings.server_port)


if __name__ == "__main__":
    main()
