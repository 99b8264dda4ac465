"""
HTTP client for the IRIS API.

Handles all outbound communication with the IRIS backends:

- Host routing per endpoint (primary data API, workflow API, default)
- Endpoint-specific authentication headers
- Retries with exponential backoff, honoring Retry-After
- Response unwrapping and error classification
"""

import asyncio
import json as jsonlib
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import httpx

from shared.config import ClientConfig
from shared.errors import AuthenticationError, IrisError, PreconditionError, TransportError
from shared.logging import get_logger
from shared.metrics import ClientMetrics
from shared.retry import (
    RetryConfig,
    calculate_delay_ms,
    is_retryable_exception,
    is_retryable_status,
    parse_retry_after,
    retry_reason,
)

from ..auth import AuthManager, AuthStrategy
from ..routing import RequestRouter
from .responses import error_from_response, parse_response


class HttpClient:
    """Request executor shared by every resource wrapper."""

    def __init__(
        self,
        config: ClientConfig,
        auth: Optional[AuthManager] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[ClientMetrics] = None,
        router: Optional[RequestRouter] = None,
    ):
        self.config = config
        self.metrics = metrics or ClientMetrics()
        self.router = router or RequestRouter(config)
        self.retry_config = RetryConfig(max_attempts=config.retries)
        self.logger = get_logger("iris.http.client", user_id=config.user_id)
        self.last_request_id: Optional[str] = None

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout),
            transport=transport,
            follow_redirects=True,
        )

        if auth is None:
            auth = AuthManager(config, http_client=self._client, metrics=self.metrics)
        else:
            auth.http_client = auth.http_client or self._client
            auth.metrics = auth.metrics or self.metrics
        self.auth = auth

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Convenience verbs
    # ------------------------------------------------------------------

    async def get(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, data: Optional[Any] = None) -> Any:
        return await self.request("POST", endpoint, json=data if data is not None else {})

    async def put(self, endpoint: str, data: Optional[Any] = None) -> Any:
        return await self.request("PUT", endpoint, json=data if data is not None else {})

    async def patch(self, endpoint: str, data: Optional[Any] = None) -> Any:
        return await self.request("PATCH", endpoint, json=data if data is not None else {})

    async def delete(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("DELETE", endpoint, params=params)

    async def upload(
        self,
        endpoint: str,
        file_path: Union[str, Path],
        data: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Upload a local file as multipart part ``file`` with extra form fields."""
        path = Path(file_path)
        if not path.is_file():
            raise PreconditionError(f"File not found: {file_path}", details={"path": str(file_path)})

        fields = {
            key: self._form_value(value)
            for key, value in (data or {}).items()
            if value is not None
        }

        with path.open("rb") as handle:
            return await self.request(
                "POST",
                endpoint,
                data=fields,
                files={"file": (path.name, handle)},
                # httpx sets multipart/form-data with the boundary itself
                headers={"Content-Type": None},
            )

    @staticmethod
    def _form_value(value: Any) -> str:
        if isinstance(value, (dict, list, tuple)):
            return jsonlib.dumps(value)
        if isinstance(value, bool):
            return "1" if value else ""
        return str(value)

    # ------------------------------------------------------------------
    # Core request loop
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Any] = None,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, Optional[str]]] = None,
    ) -> Any:
        """Send a request and return the (unwrapped) JSON payload.

        Caller headers override auth headers; a ``None`` value removes the
        header entirely.
        """
        method = method.upper()
        target = self.router.resolve(endpoint)
        url = self.router.build_url(endpoint)

        decision = await self.auth.resolve(endpoint)
        merged: Dict[str, Optional[str]] = {**decision.headers, **(headers or {})}
        request_headers = {name: value for name, value in merged.items() if value is not None}

        if params:
            params = {key: value for key, value in params.items() if value is not None}

        attempt = 0
        while True:
            attempt += 1
            self._log_request(method, url, json if json is not None else data, attempt)
            started = time.perf_counter()

            try:
                response = await self._client.request(
                    method,
                    url,
                    params=params or None,
                    json=json,
                    data=data,
                    files=files,
                    headers=request_headers,
                )
            except httpx.HTTPError as e:
                self.metrics.record_request(method, target.value, "transport_error", time.perf_counter() - started)
                if not is_retryable_exception(e):
                    raise self._fail(IrisError(f"Request failed: {e}", details={"url": url})) from e
                if attempt < self.retry_config.max_attempts:
                    await self._backoff(attempt, None, retry_reason(None), method, url)
                    continue
                raise self._fail(
                    TransportError(f"Request failed: {e}", details={"url": url, "attempts": attempt})
                ) from e

            self.metrics.record_request(method, target.value, str(response.status_code), time.perf_counter() - started)
            self._log_response(method, url, response)
            self.last_request_id = response.headers.get("X-Request-Id") or None

            if response.status_code < 400:
                try:
                    return parse_response(response)
                except IrisError as e:
                    raise self._fail(e)

            if is_retryable_status(response.status_code) and attempt < self.retry_config.max_attempts:
                retry_after = parse_retry_after(response.headers.get("Retry-After"))
                await self._backoff(attempt, retry_after, retry_reason(response.status_code), method, url)
                continue

            error = error_from_response(response)
            error.details["attempts"] = attempt

            if isinstance(error, AuthenticationError) and decision.strategy is AuthStrategy.CLIENT_CREDENTIALS:
                self.auth.invalidate_tokens()

            raise self._fail(error)

    async def _backoff(self, attempt: int, retry_after: Optional[int], reason: str, method: str, url: str) -> None:
        delay_ms = calculate_delay_ms(attempt, self.retry_config, retry_after)
        self.metrics.record_retry(reason)
        self.logger.warning(
            "Retrying IRIS request",
            method=method,
            url=url,
            attempt=attempt,
            max_attempts=self.retry_config.max_attempts,
            delay_ms=delay_ms,
            reason=reason,
        )
        await asyncio.sleep(delay_ms / 1000)

    def _fail(self, error: IrisError) -> IrisError:
        self.metrics.record_error(error.code)
        self.logger.error(
            "IRIS request failed",
            code=error.code,
            status_code=error.status_code,
            error=error.message,
            request_id=error.request_id,
        )
        return error

    def _log_request(self, method: str, url: str, body: Any, attempt: int) -> None:
        log = self.logger.info if self.config.debug else self.logger.debug
        log("IRIS request", method=method, url=url, body=self._printable(body), attempt=attempt)

    def _log_response(self, method: str, url: str, response: httpx.Response) -> None:
        log = self.logger.info if self.config.debug else self.logger.debug
        log("IRIS response", method=method, url=url, status_code=response.status_code)

    @staticmethod
    def _printable(body: Any) -> Optional[str]:
        if body is None:
            return None
        try:
            return jsonlib.dumps(body)[:2000]
        except (TypeError, ValueError):
            return repr(body)[:2000]
