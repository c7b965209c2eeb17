"""Unit tests for the trial server's usage store, rate limiter and settings."""

from datetime import datetime, timedelta, timezone

import pytest


class MutableClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def make_store(db_path=":memory:", **kwargs):
    from createosaur.server.usage_store import UsageStore

    return UsageStore(db_path, **kwargs)


class TestUsageStore:
    """Test reservation accounting."""

    def test_unknown_fingerprint(self):
        store = make_store()
        usage = store.get("fp")

        assert usage.used == 0
        assert usage.max_allowed == 3
        assert usage.remaining == 3

    def test_reserve_until_exhausted(self):
        store = make_store()

        for expected in (1, 2, 3):
            reservation = store.reserve("fp", "session_1", "10.0.0.1")
            assert reservation.granted
            assert reservation.usage.used == expected

        refused = store.reserve("fp", "session_1", "10.0.0.1")
        assert not refused.granted
        assert refused.usage.used == 3
        assert refused.usage.remaining == 0

    def test_fingerprints_are_independent(self):
        store = make_store(trial_limit=1)

        assert store.reserve("fp-a").granted
        assert not store.reserve("fp-a").granted
        assert store.reserve("fp-b").granted

    def test_release_gives_reservation_back(self):
        store = make_store()
        store.reserve("fp")
        store.reserve("fp")

        usage = store.release("fp")
        assert usage.used == 1

    def test_release_never_goes_negative(self):
        store = make_store()
        assert store.release("fp").used == 0
        store.reserve("fp")
        store.release("fp")
        assert store.release("fp").used == 0

    def test_new_window_resets_counts(self):
        clock = MutableClock(datetime(2026, 3, 1, tzinfo=timezone.utc))
        store = make_store(trial_limit=1, window_days=30, clock=clock)

        assert store.reserve("fp").granted
        assert not store.reserve("fp").granted

        clock.now += timedelta(days=31)
        assert store.get("fp").used == 0
        assert store.reserve("fp").granted

    def test_window_key_is_stable_within_window(self):
        clock = MutableClock(datetime(2026, 3, 1, tzinfo=timezone.utc))
        store = make_store(window_days=1, clock=clock)

        first = store.current_window()
        clock.now += timedelta(hours=1)
        assert store.current_window() == first
        clock.now += timedelta(days=1)
        assert store.current_window() != first

    def test_file_database_persists(self, tmp_path):
        db_path = tmp_path / "data" / "usage.db"
        store = make_store(db_path)
        store.reserve("fp")
        store.close()

        reopened = make_store(db_path)
        assert reopened.get("fp").used == 1
        assert db_path.exists()


class TestRateLimiter:
    """Test the fixed-window limiter."""

    def test_limit_per_key(self):
        from createosaur.server.rate_limit import RateLimiter

        limiter = RateLimiter(limit=2, window_seconds=60, clock=lambda: 0.0)

        assert limiter.check("a")
        assert limiter.check("a")
        assert not limiter.check("a")
        assert limiter.check("b")

    def test_window_expiry(self):
        from createosaur.server.rate_limit import RateLimiter

        now = [0.0]
        limiter = RateLimiter(limit=1, window_seconds=60, clock=lambda: now[0])

        assert limiter.check("a")
        assert not limiter.check("a")
        now[0] = 61.0
        assert limiter.check("a")

    def test_reset(self):
        from createosaur.server.rate_limit import RateLimiter

        limiter = RateLimiter(limit=1, window_seconds=60, clock=lambda: 0.0)
        limiter.check("a")
        limiter.reset()
        assert limiter.check("a")


class TestServerSettings:
    """Test environment loading."""

    @pytest.fixture(autouse=True)
    def isolated_env(self, monkeypatch, tmp_path):
        # No stray .env or admin key from the developer's shell
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("ADMIN_STABILITY_API_KEY", raising=False)
        monkeypatch.delenv("CREATEOSAUR_ADMIN_STABILITY_API_KEY", raising=False)

    def test_defaults(self):
        from createosaur.server.settings import ServerSettings

        settings = ServerSettings()

        assert not settings.is_configured
        assert settings.model == "stable-diffusion-v1-6"
        assert settings.default_width == 768
        assert settings.default_steps == 15
        assert settings.trial_limit == 3
        assert settings.rate_limit_requests == 5
        assert settings.rate_limit_window_seconds == 3600

    def test_admin_key_from_unprefixed_env(self, monkeypatch):
        from createosaur.server.settings import ServerSettings

        monkeypatch.setenv("ADMIN_STABILITY_API_KEY", "sk-admin-secret")
        settings = ServerSettings()

        assert settings.is_configured
        assert settings.admin_stability_api_key.get_secret_value() == "sk-admin-secret"
        assert "sk-admin-secret" not in repr(settings)

    def test_prefixed_env(self, monkeypatch):
        from createosaur.server.settings import ServerSettings

        monkeypatch.setenv("CREATEOSAUR_TRIAL_LIMIT", "5")
        monkeypatch.setenv("CREATEOSAUR_QUOTA_WINDOW_DAYS", "7")

        settings = ServerSettings()
        assert settings.trial_limit == 5
        assert settings.quota_window_days == 7

    def test_dotenv_file(self, tmp_path):
        from createosaur.server.settings import ServerSettings

        (tmp_path / ".env").write_text("ADMIN_STABILITY_API_KEY=sk-from-file\n")
        assert ServerSettings().is_configured

    def test_empty_key_is_not_configured(self):
        from createosaur.server.settings import ServerSettings

        assert not ServerSettings(admin_stability_api_key="").is_configured
