"""
Unit tests for AuthManager and the client-credentials token cache.
"""

import asyncio
import time

import httpx
import pytest

from iris_gateway.app.auth import AuthManager, AuthStrategy, TokenCache
from iris_gateway.version import USER_AGENT
from shared.errors import AuthenticationError, ConfigurationError
from shared.metrics import ClientMetrics
from shared.test_helpers import PRIMARY_URL, RecordingTransport, json_response, make_config, token_response


class MachineAuthManager(AuthManager):
    """AuthManager with one endpoint family routed to client credentials."""

    CLIENT_CREDENTIAL_PATTERNS = ("/api/v1/machine/",)


def make_manager(transport, manager_cls=AuthManager, **config_overrides):
    config = make_config(**config_overrides)
    http_client = httpx.AsyncClient(transport=transport)
    return manager_cls(config, http_client=http_client, metrics=ClientMetrics())


class TestUserTokenHeaders:
    """Test cases for header construction with the user token."""

    @pytest.mark.asyncio
    async def test_user_token_endpoint_headers(self):
        manager = AuthManager(make_config(api_key="user-token"))

        headers = await manager.get_headers_for_endpoint("/api/v1/agents")

        assert headers == {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "Authorization": "Bearer user-token",
        }

    @pytest.mark.asyncio
    async def test_public_endpoint_sends_token_when_available(self):
        manager = AuthManager(make_config(api_key="user-token"))

        decision = await manager.resolve("/api/health")

        assert decision.strategy is AuthStrategy.PUBLIC
        assert decision.headers["Authorization"] == "Bearer user-token"

    @pytest.mark.asyncio
    async def test_public_endpoint_without_token(self):
        manager = AuthManager(make_config(api_key=None))

        headers = await manager.get_headers_for_endpoint("/api/v1/leads?page=1")

        assert "Authorization" not in headers
        assert await manager.get_token_for_endpoint("/api/health") is None

    @pytest.mark.asyncio
    async def test_missing_user_token_is_configuration_error(self):
        manager = AuthManager(make_config(api_key=None))

        with pytest.raises(ConfigurationError):
            await manager.resolve("/api/v1/leads/aggregation")

    @pytest.mark.asyncio
    async def test_set_user_token(self):
        manager = AuthManager(make_config(api_key=None))
        manager.set_user_token("late-token")

        assert manager.user_token == "late-token"
        assert await manager.get_token_for_endpoint("/api/v1/agents") == "late-token"


class TestClientCredentials:
    """Test cases for the OAuth2 client-credentials flow."""

    @pytest.mark.asyncio
    async def test_token_fetched_once_within_validity(self):
        transport = RecordingTransport([token_response("cc-1", expires_in=3600)])
        manager = make_manager(transport, MachineAuthManager, client_id="cid", client_secret="secret")

        first = await manager.resolve("/api/v1/machine/jobs")
        second = await manager.resolve("/api/v1/machine/jobs/2")

        assert first.strategy is AuthStrategy.CLIENT_CREDENTIALS
        assert first.headers["Authorization"] == "Bearer cc-1"
        assert second.headers["Authorization"] == "Bearer cc-1"
        assert len(transport.calls_to("/oauth/token")) == 1
        assert manager.metrics.sample("iris_client_token_fetches_total", outcome="success") == 1

    @pytest.mark.asyncio
    async def test_token_request_shape(self):
        transport = RecordingTransport([token_response()])
        manager = make_manager(transport, MachineAuthManager, client_id="cid", client_secret="secret")

        await manager.get_client_credentials_token()

        request = transport.requests[0]
        assert str(request.url) == f"{PRIMARY_URL}/oauth/token"
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        body = request.content.decode()
        assert "grant_type=client_credentials" in body
        assert "client_id=cid" in body
        assert "client_secret=secret" in body

    @pytest.mark.asyncio
    async def test_token_within_safety_margin_is_refetched(self):
        transport = RecordingTransport([token_response("short", expires_in=30), token_response("fresh", expires_in=3600)])
        manager = make_manager(transport, MachineAuthManager, client_id="cid", client_secret="secret")

        assert await manager.get_client_credentials_token() == "short"
        assert await manager.get_client_credentials_token() == "fresh"
        assert len(transport.calls_to("/oauth/token")) == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self):
        transport = RecordingTransport([token_response("one"), token_response("two")])
        manager = make_manager(transport, MachineAuthManager, client_id="cid", client_secret="secret")

        await manager.get_client_credentials_token()
        manager.invalidate_tokens()
        token = await manager.get_client_credentials_token()

        assert token == "two"
        assert len(transport.calls_to("/oauth/token")) == 2

    @pytest.mark.asyncio
    async def test_missing_expires_in_defaults_to_one_year(self):
        transport = RecordingTransport([token_response(expires_in=None)])
        manager = make_manager(transport, MachineAuthManager, client_id="cid", client_secret="secret")

        before = time.time()
        await manager.get_client_credentials_token()

        remaining = manager.token_cache.expires_at - before
        assert 31536000 - 5 < remaining < 31536000 + 5

    @pytest.mark.asyncio
    async def test_missing_client_credentials_is_configuration_error(self):
        transport = RecordingTransport([token_response()])
        manager = make_manager(transport, MachineAuthManager)

        with pytest.raises(ConfigurationError):
            await manager.resolve("/api/v1/machine/jobs")
        assert transport.call_count == 0

    @pytest.mark.asyncio
    async def test_oauth_rejection_is_authentication_error(self):
        transport = RecordingTransport([
            json_response(401, {"error": "invalid_client", "error_description": "Client authentication failed"})
        ])
        manager = make_manager(transport, MachineAuthManager, client_id="cid", client_secret="bad")

        with pytest.raises(AuthenticationError) as exc_info:
            await manager.get_client_credentials_token()

        assert "Client authentication failed" in str(exc_info.value)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_oauth_success_without_access_token(self):
        transport = RecordingTransport([json_response(200, {"token_type": "Bearer"})])
        manager = make_manager(transport, MachineAuthManager, client_id="cid", client_secret="secret")

        with pytest.raises(AuthenticationError, match="no access_token"):
            await manager.get_client_credentials_token()

    @pytest.mark.asyncio
    async def test_oauth_connection_failure(self):
        transport = RecordingTransport([httpx.ConnectError("connection refused")])
        manager = make_manager(transport, MachineAuthManager, client_id="cid", client_secret="secret")

        with pytest.raises(AuthenticationError, match="Failed to connect to OAuth server"):
            await manager.get_client_credentials_token()

    @pytest.mark.asyncio
    async def test_set_client_credentials_resets_cache(self):
        transport = RecordingTransport([token_response("one"), token_response("two")])
        manager = make_manager(transport, MachineAuthManager, client_id="cid", client_secret="secret")

        await manager.get_client_credentials_token()
        manager.set_client_credentials("cid-2", "secret-2")

        assert manager.has_client_credentials()
        assert await manager.get_client_credentials_token() == "two"


class TestTokenCache:
    """Test cases for TokenCache."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_fetch(self):
        cache = TokenCache()
        calls = []

        async def fetch():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "shared", 3600

        tokens = await asyncio.gather(*(cache.get_or_refresh(fetch) for _ in range(5)))

        assert tokens == ["shared"] * 5
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_failed_fetch_leaves_cache_empty(self):
        cache = TokenCache()

        async def failing():
            raise AuthenticationError("nope")

        with pytest.raises(AuthenticationError):
            await cache.get_or_refresh(failing)

        assert cache.peek() is None

    def test_empty_cache(self):
        cache = TokenCache()
        assert cache.peek() is None
        assert cache.expires_at is None
