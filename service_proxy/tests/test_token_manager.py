"""
Unit tests for the upstream token manager.
"""

import asyncio
import json

import httpx
import pytest

from service_proxy.app.auth.token_manager import (
    Credential,
    TokenManager,
    extract_expires_in,
    extract_token,
)
from shared.errors import (
    ConfigurationError,
    TokenMissingError,
    UpstreamAuthError,
    UpstreamTransportError,
)
from shared.metrics import MetricsCollector


BASE_URL = "https://api.example.test"
AUTH_BODY = json.dumps({"username": "shop", "password": "secret"})


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTokenManager:
    """Test cases for TokenManager."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def auth_calls(self):
        return []

    def make_manager(self, handler, clock, *, api_key="key-1", auth_body=AUTH_BODY, metrics=None):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return TokenManager(BASE_URL, api_key, auth_body, client, metrics=metrics, clock=clock)

    def issuing_handler(self, auth_calls, **payload):
        def handler(request: httpx.Request) -> httpx.Response:
            auth_calls.append(request)
            body = dict(payload) or {"access_token": f"tok-{len(auth_calls)}", "expires_in": 3600}
            return httpx.Response(200, json=body)
        return handler

    @pytest.mark.asyncio
    async def test_renewal_request_shape(self, clock, auth_calls):
        """The static payload and API key are sent to /v3/authenticate."""
        manager = self.make_manager(self.issuing_handler(auth_calls), clock)

        token = await manager.get_token()

        assert token == "tok-1"
        request = auth_calls[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/v3/authenticate"
        assert request.headers["x-api-key"] == "key-1"
        assert request.headers["accept"] == "application/json"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"username": "shop", "password": "secret"}

    @pytest.mark.asyncio
    async def test_token_reused_within_window(self, clock, auth_calls):
        """Two calls well before expiry trigger exactly one renewal."""
        manager = self.make_manager(self.issuing_handler(auth_calls), clock)

        first = await manager.get_token()
        clock.now += 3000
        second = await manager.get_token()

        assert first == second == "tok-1"
        assert len(auth_calls) == 1

    @pytest.mark.asyncio
    async def test_token_renewed_inside_margin(self, clock, auth_calls):
        """Within 60 seconds of expiry the credential is renewed once."""
        manager = self.make_manager(self.issuing_handler(auth_calls), clock)

        await manager.get_token()
        clock.now += 3600 - 60
        renewed = await manager.get_token()

        assert renewed == "tok-2"
        assert len(auth_calls) == 2
        assert manager.credential.expires_at == clock.now + 3600

    @pytest.mark.asyncio
    async def test_token_still_valid_just_outside_margin(self, clock, auth_calls):
        manager = self.make_manager(self.issuing_handler(auth_calls), clock)

        await manager.get_token()
        clock.now += 3600 - 61
        await manager.get_token()

        assert len(auth_calls) == 1

    @pytest.mark.asyncio
    async def test_invalidate_forces_renewal(self, clock, auth_calls):
        manager = self.make_manager(self.issuing_handler(auth_calls), clock)

        await manager.get_token()
        manager.invalidate()
        token = await manager.get_token()

        assert token == "tok-2"
        assert len(auth_calls) == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_renewal(self, clock):
        """A burst of callers with no cached credential results in one exchange."""
        calls = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            await asyncio.sleep(0.01)
            return httpx.Response(200, json={"access_token": "shared", "expires_in": 3600})

        manager = self.make_manager(handler, clock)

        tokens = await asyncio.gather(*(manager.get_token() for _ in range(5)))

        assert tokens == ["shared"] * 5
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_auth_rejected(self, clock):
        """A 401 surfaces status and body, and nothing is cached."""
        manager = self.make_manager(lambda request: httpx.Response(401, text="bad key"), clock)

        with pytest.raises(UpstreamAuthError) as exc_info:
            await manager.get_token()

        assert "401" in str(exc_info.value)
        assert "bad key" in str(exc_info.value)
        assert manager.credential is None

    @pytest.mark.asyncio
    async def test_failed_renewal_keeps_previous_credential(self, clock):
        responses = iter([
            httpx.Response(200, json={"token": "first", "expires_in": 120}),
            httpx.Response(503, text="maintenance"),
        ])
        manager = self.make_manager(lambda request: next(responses), clock)

        await manager.get_token()
        previous = manager.credential
        clock.now += 100

        with pytest.raises(UpstreamAuthError):
            await manager.get_token()

        assert manager.credential is previous

    @pytest.mark.asyncio
    async def test_missing_token_field(self, clock):
        manager = self.make_manager(
            lambda request: httpx.Response(200, json={"expires_in": 3600, "scope": "all"}),
            clock,
        )

        with pytest.raises(TokenMissingError) as exc_info:
            await manager.get_token()

        assert "expires_in" in str(exc_info.value)
        assert manager.credential is None

    @pytest.mark.asyncio
    async def test_malformed_auth_response(self, clock):
        manager = self.make_manager(lambda request: httpx.Response(200, text="<html>"), clock)

        with pytest.raises(UpstreamAuthError):
            await manager.get_token()

    @pytest.mark.asyncio
    async def test_transport_failure(self, clock):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        manager = self.make_manager(handler, clock)

        with pytest.raises(UpstreamTransportError):
            await manager.get_token()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("api_key,auth_body,missing", [
        (None, AUTH_BODY, "TOPTEX_API_KEY"),
        ("key-1", None, "TOPTEX_AUTH_BODY"),
        ("", "", "TOPTEX_API_KEY"),
    ])
    async def test_missing_configuration(self, clock, auth_calls, api_key, auth_body, missing):
        manager = self.make_manager(self.issuing_handler(auth_calls), clock, api_key=api_key, auth_body=auth_body)

        with pytest.raises(ConfigurationError) as exc_info:
            await manager.get_token()

        assert missing in str(exc_info.value)
        assert auth_calls == []

    @pytest.mark.asyncio
    async def test_invalid_auth_body(self, clock, auth_calls):
        manager = self.make_manager(self.issuing_handler(auth_calls), clock, auth_body="{not json")

        with pytest.raises(ConfigurationError):
            await manager.get_token()

        assert auth_calls == []

    @pytest.mark.asyncio
    async def test_renewal_metrics(self, clock, auth_calls):
        metrics = MetricsCollector("proxy")
        manager = self.make_manager(self.issuing_handler(auth_calls), clock, metrics=metrics)

        await manager.get_token()

        assert metrics.sample("token_renewals_total", status="success") == 1.0


class TestRenewalResponseParsing:
    """Test cases for token/expiry extraction."""

    def test_token_field_priority(self):
        assert extract_token({"id_token": "c", "token": "b", "access_token": "a"}) == "a"
        assert extract_token({"id_token": "c", "token": "b"}) == "b"
        assert extract_token({"id_token": "c"}) == "c"

    def test_empty_token_fields_are_skipped(self):
        assert extract_token({"access_token": "", "token": None, "id_token": "c"}) == "c"
        assert extract_token({"access_token": ""}) is None

    @pytest.mark.parametrize("payload,expected", [
        ({}, 3600),
        ({"expires_in": None}, 3600),
        ({"expires_in": "soon"}, 3600),
        ({"expires_in": 0}, 3600),
        ({"expires_in": "1800"}, 1800),
        ({"expires_in": 900}, 900),
    ])
    def test_expires_in(self, payload, expected):
        assert extract_expires_in(payload) == expected

    def test_credential_freshness(self):
        credential = Credential(token="t", expires_at=1000.0)
        assert credential.is_fresh(939.0)
        assert not credential.is_fresh(940.0)
