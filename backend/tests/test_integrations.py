"""
Tests for the platform integration helpers

PKCE, engagement formulas, the JSON transport and the runner's settled
gather. No network: HTTP goes through httpx.MockTransport.
"""
import asyncio
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from gayatri.core.errors import IntegrationError, ServiceError
from gayatri.services.integrations import IntegrationRunner
from gayatri.services.integrations import instagram, tiktok
from gayatri.services.integrations.oauth import (
    code_challenge_s256,
    generate_code_verifier,
    generate_state,
)
from gayatri.services.integrations.transport import request_json

from tests.fixtures.marketplace_fixtures import (
    INSTAGRAM_MEDIA,
    PKCE_CHALLENGE,
    PKCE_VERIFIER,
    TIKTOK_EXPECTED_ENGAGEMENT,
    TIKTOK_FOLLOWERS,
    TIKTOK_VIDEOS,
    FakePlatformClient,
)


class TestPKCE:
    def test_rfc7636_vector(self):
        """S256 challenge matches the RFC 7636 appendix B example."""
        assert code_challenge_s256(PKCE_VERIFIER) == PKCE_CHALLENGE

    def test_verifier_shape(self):
        verifier = generate_code_verifier()
        assert len(verifier) == 43
        assert "=" not in verifier
        assert verifier != generate_code_verifier()

    def test_states_are_unique(self):
        assert generate_state() != generate_state()

    def test_tiktok_authorization_url_carries_challenge(self):
        url = tiktok.TikTokClient().authorization_url("state-1", PKCE_CHALLENGE)
        query = parse_qs(urlparse(url).query)

        assert url.startswith(tiktok.AUTHORIZE_URL)
        assert query["state"] == ["state-1"]
        assert query["code_challenge"] == [PKCE_CHALLENGE]
        assert query["code_challenge_method"] == ["S256"]
        assert query["scope"] == ["user.info.basic,user.info.profile,user.info.stats"]


class TestTikTokEngagement:
    def test_interactions_per_video_over_followers(self):
        rate = tiktok.calculate_engagement_rate(TIKTOK_FOLLOWERS, TIKTOK_VIDEOS)
        assert rate == TIKTOK_EXPECTED_ENGAGEMENT

    def test_zero_followers_does_not_divide_by_zero(self):
        assert tiktok.calculate_engagement_rate(0, [{"like_count": 5}]) == 500.0

    @pytest.mark.parametrize(
        "followers,posts,expected",
        [
            (5_000, 10, 7.5),
            (50_000, 10, 5.0),
            (500_000, 10, 3.0),
            (50_000, 60, 4.5),
            (200_000, 150, 2.4),
        ],
    )
    def test_estimate_by_audience_size(self, followers, posts, expected):
        assert tiktok.estimate_engagement_rate(followers, posts) == expected

    def test_profile_without_video_access_uses_estimate(self, monkeypatch):
        def handler(request):
            if request.url.path.endswith("/user/info/"):
                return httpx.Response(
                    200,
                    json={
                        "data": {
                            "user": {
                                "open_id": "open-1",
                                "username": "creator",
                                "display_name": "Creator",
                                "avatar_url": "https://cdn.example.com/a.jpg",
                                "follower_count": 50_000,
                                "video_count": 10,
                            }
                        }
                    },
                )
            return httpx.Response(
                403, json={"error": {"code": "scope_not_authorized", "message": "no video access"}}
            )

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            tiktok.httpx,
            "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
        )

        profile = asyncio.run(tiktok.TikTokClient().fetch_profile("token"))

        assert profile["username"] == "creator"
        assert profile["followers"] == 50_000
        assert profile["engagement_rate"] == 5.0
        assert profile["platform_data"]["sampledVideos"] == 0
        assert "saves" not in profile


class TestInstagramEngagement:
    def test_average_over_followers(self):
        assert instagram.calculate_engagement_rate(INSTAGRAM_MEDIA, 1_000, 10) == 12.5

    def test_personal_account_uses_media_count(self):
        assert instagram.calculate_engagement_rate(INSTAGRAM_MEDIA, 0, 50) == 2.5

    def test_no_media(self):
        assert instagram.calculate_engagement_rate([], 1_000, 10) == 0.0


def _call(handler, **kwargs):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await request_json(client, "GET", "https://api.example.com/x", "Example", **kwargs)

    return asyncio.run(_run())


class TestTransport:
    """Tests for request_json status handling."""

    def test_returns_json(self):
        assert _call(lambda request: httpx.Response(200, json={"ok": True})) == {"ok": True}

    def test_404_allowed(self):
        assert _call(lambda request: httpx.Response(404), allow_404=True) is None

    def test_client_error_raises_integration_error(self):
        def handler(request):
            return httpx.Response(400, json={"error": {"message": "scope not authorized"}})

        with pytest.raises(IntegrationError, match="scope not authorized"):
            _call(handler)

    def test_server_error_raises_http_error(self):
        with pytest.raises(httpx.HTTPStatusError):
            _call(lambda request: httpx.Response(503))

    def test_rate_limit_retried_once(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429, headers={"Retry-After": "0"})
            return httpx.Response(200, json={"data": 1})

        assert _call(handler) == {"data": 1}
        assert len(calls) == 2


class TestIntegrationRunner:
    def test_unknown_provider(self):
        runner = IntegrationRunner(clients={"tiktok": FakePlatformClient()})
        with pytest.raises(ServiceError, match="Unsupported platform"):
            runner.get("youtube")

    def test_gather_settled_keeps_going_after_failure(self):
        runner = IntegrationRunner(clients={"tiktok": FakePlatformClient()})

        async def good():
            return 1

        async def bad():
            raise IntegrationError("boom")

        outcomes = runner.run(runner.gather_settled({"a": good(), "b": bad()}))

        assert outcomes["a"].ok and outcomes["a"].value == 1
        assert not outcomes["b"].ok
        assert isinstance(outcomes["b"].error, IntegrationError)

    def test_run_propagates_runtime_errors(self):
        runner = IntegrationRunner(clients={"tiktok": FakePlatformClient()})

        async def broken():
            raise RuntimeError("token store unavailable")

        with pytest.raises(RuntimeError, match="token store unavailable"):
            runner.run(broken())

    def test_run_inside_running_loop(self):
        runner = IntegrationRunner(clients={"tiktok": FakePlatformClient()})

        async def answer():
            return 42

        async def caller():
            return runner.run(answer())

        assert asyncio.run(caller()) == 42
