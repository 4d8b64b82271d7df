"""
Binary forwarder for generated documents (/v3/.../pdf).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from shared.errors import UpstreamTransportError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.tracing import trace_operation

from ..auth.token_manager import TokenManager
from .paths import build_url, validate_binary_path


PDF_MEDIA_TYPE = "application/pdf"


@dataclass
class BinaryResult:
    status: int
    content: bytes
    content_type: str
    content_disposition: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def passthrough_headers(self) -> Dict[str, str]:
        headers = {}
        if self.content_disposition:
            headers["Content-Disposition"] = self.content_disposition
        return headers


class BinaryForwarder:
    """Fetches a binary resource from upstream and hands back the whole payload."""

    kind = "binary"

    def __init__(
        self,
        base_url: str,
        token_manager: TokenManager,
        client: httpx.AsyncClient,
        *,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_manager = token_manager
        self.metrics = metrics
        self.logger = get_logger("proxy.binary_forwarder")
        self._client = client

    async def forward(self, path: Optional[str]) -> BinaryResult:
        path = validate_binary_path(path)
        token = await self.token_manager.get_token()
        url = build_url(self.base_url, path)

        started = time.time()
        with trace_operation("upstream.forward_binary", upstream_path=path):
            try:
                response = await self._client.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Accept": PDF_MEDIA_TYPE,
                    },
                )
            except httpx.RequestError as exc:
                self.logger.error("Upstream binary request failed", url=url, error=str(exc))
                raise UpstreamTransportError(
                    f"Upstream request failed: {exc}",
                    details={"url": url},
                ) from exc

        if self.metrics:
            self.metrics.record_upstream_request(self.kind, response.status_code, time.time() - started)

        if not response.is_success:
            self.logger.warning("Upstream binary request not OK", url=url, status_code=response.status_code)
            return BinaryResult(
                status=response.status_code,
                content=response.content,
                content_type=response.headers.get("content-type", "text/plain"),
            )

        self.logger.info("Upstream binary response", url=url, size=len(response.content))
        return BinaryResult(
            status=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type") or PDF_MEDIA_TYPE,
            content_disposition=response.headers.get("content-disposition"),
        )
