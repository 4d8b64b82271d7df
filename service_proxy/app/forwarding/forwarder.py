"""
Generic JSON forwarder: relays any /v3/ call and wraps the outcome in an envelope.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import httpx

from shared.errors import UpstreamTransportError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.tracing import trace_operation

from ..auth.token_manager import TokenManager
from .paths import build_url, normalize_method, validate_json_path


BODYLESS_METHODS = frozenset({"GET", "HEAD"})
JSON_MEDIA_TYPE = "application/json"


@dataclass
class ForwardResult:
    """Envelope returned for every serviced upstream call, 2xx or not."""

    ok: bool
    status: int
    status_text: str
    content_type: str
    body: str
    parsed: Any = None
    has_json: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ok": self.ok,
            "status": self.status,
            "statusText": self.status_text,
            "contentType": self.content_type,
            "body": self.body,
        }
        if self.has_json:
            out["json"] = self.parsed
        return out


def encode_body(method: str, body: Any) -> Optional[str]:
    """Outbound request body, or None when the call carries none."""
    if method in BODYLESS_METHODS or body is None:
        return None
    if isinstance(body, str):
        return body
    return json.dumps(body, separators=(",", ":"))


def normalize_response(response: httpx.Response) -> ForwardResult:
    content_type = response.headers.get("content-type", "")
    raw = response.text
    result = ForwardResult(
        ok=response.is_success,
        status=response.status_code,
        status_text=response.reason_phrase,
        content_type=content_type,
        body=raw,
    )
    if JSON_MEDIA_TYPE in content_type:
        try:
            result.parsed = json.loads(raw)
            result.has_json = True
        except ValueError:
            # raw text stays authoritative
            pass
    return result


@dataclass
class ForwardRequest:
    method: str
    path: str
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None


class JsonForwarder:
    """Forwards structured-data calls under /v3/ with the cached bearer token."""

    kind = "json"

    def __init__(
        self,
        base_url: str,
        token_manager: TokenManager,
        client: httpx.AsyncClient,
        *,
        api_key: Optional[str] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_manager = token_manager
        self.api_key = api_key
        self.metrics = metrics
        self.logger = get_logger("proxy.forwarder")
        self._client = client

    def prepare(self, method: Optional[str], path: Optional[str],
                query: Optional[Mapping[str, Any]] = None, body: Any = None) -> ForwardRequest:
        """Validate caller input; raises InvalidPathError before any I/O."""
        return ForwardRequest(
            method=normalize_method(method),
            path=validate_json_path(path),
            query=query or {},
            body=body,
        )

    async def forward(self, method: Optional[str], path: Optional[str],
                      query: Optional[Mapping[str, Any]] = None, body: Any = None) -> ForwardResult:
        request = self.prepare(method, path, query, body)
        token = await self.token_manager.get_token()
        url = build_url(self.base_url, request.path, request.query)

        headers = {
            "Accept": JSON_MEDIA_TYPE,
            "Authorization": f"Bearer {token}",
        }
        if self.api_key:
            headers["x-api-key"] = self.api_key

        content = encode_body(request.method, request.body)
        if content is not None:
            headers["Content-Type"] = JSON_MEDIA_TYPE

        started = time.time()
        with trace_operation("upstream.forward", http_method=request.method, upstream_path=request.path):
            try:
                response = await self._client.request(request.method, url, headers=headers, content=content)
            except httpx.RequestError as exc:
                self.logger.error("Upstream request failed", url=url, method=request.method, error=str(exc))
                raise UpstreamTransportError(
                    f"Upstream request failed: {exc}",
                    details={"url": url, "method": request.method},
                ) from exc

        result = normalize_response(response)
        if self.metrics:
            self.metrics.record_upstream_request(self.kind, result.status, time.time() - started)
        self.logger.info(
            "Upstream response",
            url=url,
            method=request.method,
            status_code=result.status,
            status_text=result.status_text,
        )
        return result
