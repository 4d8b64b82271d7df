"""
Bearer credential cache for the upstream TopTex API.
"""

from __future__ import annotations

import asyncio
import json
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import httpx

from shared.errors import (
    ConfigurationError,
    TokenMissingError,
    UpstreamAuthError,
    UpstreamTransportError,
)
from shared.logging import get_logger
from shared.metrics import MetricsCollector


AUTHENTICATE_PATH = "/v3/authenticate"

# Checked in order; the first non-empty value wins.
TOKEN_FIELDS: Tuple[str, ...] = ("access_token", "token", "id_token")

DEFAULT_EXPIRES_IN = 3600
RENEWAL_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class Credential:
    """Bearer token and the absolute time (epoch seconds) it expires."""

    token: str
    expires_at: float

    def is_fresh(self, now: float, margin: float = RENEWAL_MARGIN_SECONDS) -> bool:
        return now < self.expires_at - margin


def extract_token(data: Dict[str, Any]) -> Optional[str]:
    for field in TOKEN_FIELDS:
        value = data.get(field)
        if value:
            return str(value)
    return None


def extract_expires_in(data: Dict[str, Any]) -> float:
    """Lifetime in seconds; absent, zero or non-numeric values fall back to an hour."""
    raw = data.get("expires_in")
    if isinstance(raw, bool):
        return DEFAULT_EXPIRES_IN
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_EXPIRES_IN
    if not math.isfinite(value) or value == 0:
        return DEFAULT_EXPIRES_IN
    return value


class TokenManager:
    """Produces a currently-valid bearer token, renewing it when needed.

    The credential is held as one frozen ``Credential`` and swapped as a whole.
    Renewals are serialized behind ``_lock``; a caller that waited on the lock
    re-checks the cache first, so a burst of requests arriving after expiry
    results in a single authenticate call.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        auth_body: Optional[str],
        client: httpx.AsyncClient,
        *,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.auth_body = auth_body
        self.metrics = metrics
        self.logger = get_logger("proxy.token_manager")

        self._client = client
        self._clock = clock
        self._credential: Optional[Credential] = None
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    def invalidate(self) -> None:
        """Drop the cached credential; the next call renews."""
        self._credential = None

    async def get_token(self) -> str:
        self._check_config()

        cached = self._credential
        if cached and cached.is_fresh(self._clock()):
            return cached.token

        async with self._lock:
            cached = self._credential
            if cached and cached.is_fresh(self._clock()):
                return cached.token

            credential = await self._renew()
            self._credential = credential
            return credential.token

    def _check_config(self) -> None:
        if not self.api_key:
            raise ConfigurationError("Missing env var: TOPTEX_API_KEY", details={"missing": "TOPTEX_API_KEY"})
        if not self.auth_body:
            raise ConfigurationError("Missing env var: TOPTEX_AUTH_BODY", details={"missing": "TOPTEX_AUTH_BODY"})

    def _parse_auth_body(self) -> Any:
        try:
            return json.loads(self.auth_body)
        except ValueError as exc:
            raise ConfigurationError(
                "TOPTEX_AUTH_BODY must be valid JSON string",
                details={"error": str(exc)},
            ) from exc

    async def _renew(self) -> Credential:
        payload = self._parse_auth_body()
        url = f"{self.base_url}{AUTHENTICATE_PATH}"

        try:
            response = await self._client.post(
                url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "x-api-key": self.api_key,
                    "Accept": "application/json",
                },
            )
        except httpx.RequestError as exc:
            self._record("transport_error")
            self.logger.error("Token renewal transport failure", url=url, error=str(exc))
            raise UpstreamTransportError(
                f"Auth request failed: {exc}",
                details={"url": url},
            ) from exc

        text = response.text
        if not response.is_success:
            self._record("rejected")
            self.logger.warning("Token renewal rejected", status_code=response.status_code)
            raise UpstreamAuthError(
                f"Auth failed ({response.status_code}): {text}",
                details={"status_code": response.status_code, "body": text},
            )

        try:
            data = json.loads(text)
        except ValueError as exc:
            self._record("malformed")
            raise UpstreamAuthError(
                f"Auth response is not valid JSON: {text}",
                details={"status_code": response.status_code, "body": text},
            ) from exc

        if not isinstance(data, dict):
            data = {}

        token = extract_token(data)
        if not token:
            self._record("missing_token")
            keys = ", ".join(data.keys())
            raise TokenMissingError(
                f"Auth response missing token. Keys: {keys}",
                details={"keys": list(data.keys())},
            )

        expires_in = extract_expires_in(data)
        credential = Credential(token=token, expires_at=self._clock() + expires_in)
        self._record("success")
        self.logger.info("Token renewed", expires_in=expires_in)
        return credential

    def _record(self, status: str) -> None:
        if self.metrics:
            self.metrics.record_token_renewal(status)
