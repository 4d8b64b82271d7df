"""
Proxy service: forwards browser requests to the TopTex API with a server-side token.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from fastapi import Query
from fastapi.responses import FileResponse, PlainTextResponse, Response
from pydantic import BaseModel

from shared.base_service import BaseService
from shared.config import ProxyConfig
from shared.errors import ProxyException

from .auth.token_manager import TokenManager
from .forwarding.binary import BinaryForwarder
from .forwarding.forwarder import JsonForwarder
from .forwarding.paths import BINARY_ENDPOINT, PROXY_ENDPOINT


STATIC_DIR = Path(__file__).parent / "static"


class ProxyRequest(BaseModel):
    """Body of POST /api/proxy."""

    method: Optional[str] = None
    path: Optional[str] = None
    query: Optional[Dict[str, Any]] = None
    body: Any = None


class ProxyService(BaseService):
    """Proxy service implementation."""

    def __init__(self, config: Optional[ProxyConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__("proxy", config)
        self.client = httpx.AsyncClient(
            timeout=self.config.upstream_timeout,
            follow_redirects=True,
            transport=transport,
        )
        self.token_manager = TokenManager(
            self.config.base_url,
            self.config.api_key,
            self.config.auth_body,
            self.client,
            metrics=self.metrics,
        )
        self.json_forwarder = JsonForwarder(
            self.config.base_url,
            self.token_manager,
            self.client,
            api_key=self.config.api_key,
            metrics=self.metrics,
        )
        self.binary_forwarder = BinaryForwarder(
            self.config.base_url,
            self.token_manager,
            self.client,
            metrics=self.metrics,
        )

        self._setup_proxy_routes()

        self.app.state.proxy_service = self

    async def on_shutdown(self) -> None:
        await self.client.aclose()
        await super().on_shutdown()

    def _setup_proxy_routes(self):
        """Set up proxy-specific routes."""

        @self.app.get("/", include_in_schema=False)
        async def index():
            """Request composer UI."""
            return FileResponse(STATIC_DIR / "index.html", media_type="text/html")

        @self.app.post(PROXY_ENDPOINT)
        async def proxy(request: ProxyRequest):
            """Forward a JSON call; non-2xx upstream answers come back as data."""
            result = await self.json_forwarder.forward(
                request.method,
                request.path,
                request.query,
                request.body,
            )
            return result.to_dict()

        @self.app.get(BINARY_ENDPOINT)
        async def pdf(path: str = Query(default="")):
            """Relay a PDF resource as raw bytes."""
            try:
                result = await self.binary_forwarder.forward(path)
            except ProxyException as exc:
                self.logger.error("Binary proxy error", code=exc.code, message=exc.message, details=exc.details)
                self.metrics.record_error(exc.code)
                return PlainTextResponse(exc.message, status_code=exc.status_code)

            if not result.ok:
                return PlainTextResponse(result.text, status_code=result.status)

            return Response(
                content=result.content,
                media_type=result.content_type,
                headers=result.passthrough_headers(),
            )


def create_app(config: Optional[ProxyConfig] = None,
               transport: Optional[httpx.AsyncBaseTransport] = None):
    """Create the FastAPI application."""
    return ProxyService(config, transport=transport).app


def run():
    """Console entry point."""
    ProxyService().run()


if __name__ == "__main__":
    run()
