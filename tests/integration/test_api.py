"""Integration tests for the anonymous trial endpoint."""

import base64

import httpx
import pytest
from aiohttp import web
from fastapi.testclient import TestClient

from createosaur.providers.base import GenerationMetadata, GenerationResponse


ENDPOINT = "/api/anonymous-generate"


class FakeProvider:
    """Stands in for the admin Stability adapter."""

    def __init__(self, outcome="success"):
        self.outcome = outcome
        self.configs = []

    async def generate_image(self, config):
        self.configs.append(config)
        if self.outcome == "crash":
            raise RuntimeError("adapter bug")
        if self.outcome == "fail":
            return GenerationResponse.failure(
                "Invalid Stability AI API key", provider="stability", model=config.model
            )
        return GenerationResponse.ok(
            GenerationMetadata(provider="stability", model=config.model),
            image_url="data:image/png;base64,AAAA",
        )


@pytest.fixture
def settings(monkeypatch, tmp_path):
    from createosaur.server.settings import ServerSettings

    monkeypatch.chdir(tmp_path)
    return ServerSettings(admin_stability_api_key="sk-admin", database_path=tmp_path / "usage.db")


@pytest.fixture
def store():
    from createosaur.server.usage_store import UsageStore

    usage_store = UsageStore(":memory:")
    yield usage_store
    usage_store.close()


def make_client(settings, store, provider=None, rate_limiter=None):
    from createosaur.server.app import create_app

    app = create_app(
        settings,
        usage_store=store,
        provider=provider if provider is not None else FakeProvider(),
        rate_limiter=rate_limiter,
    )
    return TestClient(app)


def payload(**overrides):
    body = {"prompt": "a red dinosaur", "fingerprint": "fp-1", "sessionId": "session_1_abc"}
    body.update(overrides)
    return body


class TestAnonymousGenerate:
    """Test POST /api/anonymous-generate."""

    def test_success(self, settings, store):
        provider = FakeProvider()
        with make_client(settings, store, provider) as client:
            response = client.post(ENDPOINT, json=payload())

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "imageUrl": "data:image/png;base64,AAAA",
            "remainingGenerations": 2,
            "totalUsed": 1,
            "maxAllowed": 3,
        }
        assert store.get("fp-1").used == 1

    def test_server_defaults_fill_request(self, settings, store):
        provider = FakeProvider()
        with make_client(settings, store, provider) as client:
            client.post(ENDPOINT, json=payload(width=512, negativePrompt="cartoon"))

        config = provider.configs[0]
        assert config.prompt == "a red dinosaur"
        assert config.model == "stable-diffusion-v1-6"
        assert config.width == 512
        assert config.height == 768
        assert config.steps == 15
        assert config.guidance == 7.5
        assert config.negative_prompt == "cartoon"

    @pytest.mark.parametrize("missing", ["prompt", "fingerprint", "sessionId"])
    def test_missing_field(self, settings, store, missing):
        body = payload()
        del body[missing]

        with make_client(settings, store) as client:
            response = client.post(ENDPOINT, json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields: prompt, fingerprint, sessionId"}

    def test_blank_prompt_is_missing(self, settings, store):
        with make_client(settings, store) as client:
            response = client.post(ENDPOINT, json=payload(prompt="   "))

        assert response.status_code == 400
        assert response.json()["error"].startswith("Missing required fields")

    def test_out_of_range_parameter(self, settings, store):
        with make_client(settings, store) as client:
            response = client.post(ENDPOINT, json=payload(width=10))

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request parameters"}

    def test_unconfigured_server(self, settings, store):
        from createosaur.server.app import create_app

        settings = settings.model_copy(update={"admin_stability_api_key": None})
        with TestClient(create_app(settings, usage_store=store)) as client:
            response = client.post(ENDPOINT, json=payload())
            health = client.get("/api/health")

        assert response.status_code == 500
        assert response.json() == {"error": "Server configuration error"}
        assert store.get("fp-1").used == 0
        assert health.json()["configured"] is False

    def test_exhausted_trial_makes_no_vendor_call(self, settings, store):
        for _ in range(3):
            store.reserve("fp-1")

        provider = FakeProvider()
        with make_client(settings, store, provider) as client:
            response = client.post(ENDPOINT, json=payload())

        assert response.status_code == 403
        assert response.json() == {
            "error": "Trial limit exceeded",
            "remainingGenerations": 0,
            "totalUsed": 3,
            "maxAllowed": 3,
        }
        assert provider.configs == []

    def test_fourth_request_is_refused(self, settings, store):
        with make_client(settings, store) as client:
            statuses = [client.post(ENDPOINT, json=payload()).status_code for _ in range(4)]

        assert statuses == [200, 200, 200, 403]

    def test_failed_generation_is_not_counted(self, settings, store):
        with make_client(settings, store, FakeProvider("fail")) as client:
            response = client.post(ENDPOINT, json=payload())

        assert response.status_code == 500
        assert response.json() == {"error": "Invalid Stability AI API key"}
        assert store.get("fp-1").used == 0

    def test_adapter_exception_is_not_counted(self, settings, store):
        with make_client(settings, store, FakeProvider("crash")) as client:
            response = client.post(ENDPOINT, json=payload())

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert store.get("fp-1").used == 0

    def test_rate_limit(self, settings, store):
        from createosaur.server.usage_store import UsageStore

        roomy = UsageStore(":memory:", trial_limit=10)
        with make_client(settings, roomy) as client:
            statuses = [client.post(ENDPOINT, json=payload()).status_code for _ in range(6)]
            body = client.post(ENDPOINT, json=payload()).json()
        roomy.close()

        assert statuses == [200] * 5 + [429]
        assert body == {"error": "Rate limit exceeded. Please try again later."}

    def test_rate_limit_keys_on_forwarded_ip(self, settings, store):
        from createosaur.server.rate_limit import RateLimiter

        with make_client(settings, store, rate_limiter=RateLimiter(limit=1)) as client:
            first = client.post(ENDPOINT, json=payload(), headers={"X-Forwarded-For": "1.1.1.1"})
            second = client.post(ENDPOINT, json=payload(), headers={"X-Forwarded-For": "1.1.1.1"})
            other = client.post(
                ENDPOINT, json=payload(), headers={"X-Forwarded-For": "2.2.2.2, 10.0.0.1"}
            )

        assert first.status_code == 200
        assert second.status_code == 429
        assert other.status_code == 200

    def test_health(self, settings, store):
        from createosaur import __version__

        with make_client(settings, store) as client:
            response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "configured": True, "version": __version__}


class TestAdminProvider:
    """Test the real Stability adapter behind the endpoint."""

    def test_build_admin_provider(self, settings):
        from createosaur.providers.stability import StabilityProvider
        from createosaur.server.app import build_admin_provider

        provider = build_admin_provider(
            settings.model_copy(update={"stability_base_url": "http://stability.test/v1"})
        )

        assert isinstance(provider, StabilityProvider)
        assert provider.api_key == "sk-admin"
        assert provider.base_url == "http://stability.test/v1"
        assert build_admin_provider(settings.model_copy(update={"admin_stability_api_key": None})) is None

    @pytest.mark.asyncio
    async def test_generation_through_stability(self, settings, store, vendor_server, png_bytes):
        from createosaur.server.app import create_app

        async def handler(request):
            return web.json_response({
                "artifacts": [{
                    "base64": base64.b64encode(png_bytes).decode(),
                    "finishReason": "SUCCESS",
                    "seed": 42,
                }]
            })

        async with vendor_server([("POST", "/{model}/text-to-image", handler)]) as vendor:
            app = create_app(
                settings.model_copy(update={"stability_base_url": vendor.base_url}),
                usage_store=store,
            )
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://trial") as client:
                response = await client.post(ENDPOINT, json=payload())

        assert response.status_code == 200
        assert response.json()["imageUrl"].startswith("data:image/png;base64,")

        call = vendor.calls[0]
        assert call.path == "/stable-diffusion-v1-6/text-to-image"
        assert call.headers["Authorization"] == "Bearer sk-admin"
        assert call.json["width"] == 768
        assert call.json["steps"] == 15
