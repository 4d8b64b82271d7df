"""
Mock TopTex API server providing the authenticate endpoint and a few /v3 resources.
"""

import secrets
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from shared.logging import get_logger


# Smallest well-formed PDF; padded to the requested size by the mock.
PDF_HEADER = b"%PDF-1.4\n1 0 obj<</Type/Catalog>>endobj\ntrailer<</Root 1 0 R>>\n%%EOF\n"


class MockTopTexServer:
    """Mock TopTex API implementation."""

    def __init__(self, api_key: str = "mock-api-key", port: int = 8090,
                 expires_in: Optional[Any] = 3600, token_field: str = "token",
                 pdf_size: int = 256 * 1024):
        self.api_key = api_key
        self.port = port
        self.expires_in = expires_in
        self.token_field = token_field
        self.pdf_size = pdf_size
        self.logger = get_logger("mock.toptex")
        self.app = FastAPI(title="Mock TopTex", version="1.0.0")

        self.issued_tokens: List[str] = []
        self.auth_requests: List[Dict[str, Any]] = []
        self.requests: List[Dict[str, Any]] = []

        self.products = [
            {"sku": "SKU123", "designation": "Classic T-shirt", "brand": "Kariban"},
            {"sku": "SKU456", "designation": "Hoodie", "brand": "Native Spirit"},
        ]
        self.orders: Dict[str, Dict[str, Any]] = {
            "123": {"id": "123", "status": "shipped", "lines": [{"sku": "SKU123", "quantity": 10}]},
        }

        self._setup_routes()

    def pdf_payload(self) -> bytes:
        if self.pdf_size <= len(PDF_HEADER):
            return PDF_HEADER
        return PDF_HEADER + b"%" * (self.pdf_size - len(PDF_HEADER))

    def _authorized(self, authorization: Optional[str]) -> bool:
        if not authorization or not authorization.startswith("Bearer "):
            return False
        return authorization[7:] in self.issued_tokens

    def _setup_routes(self):
        """Set up mock TopTex routes."""

        @self.app.middleware("http")
        async def record_request(request: Request, call_next):
            self.requests.append({
                "method": request.method,
                "path": request.url.path,
                "query": dict(request.query_params),
                "headers": dict(request.headers),
            })
            return await call_next(request)

        @self.app.post("/v3/authenticate")
        async def authenticate(request: Request, x_api_key: Optional[str] = Header(None)):
            """Issue a bearer token for a valid API key."""
            body = await request.json()
            self.auth_requests.append({"api_key": x_api_key, "body": body})
            if x_api_key != self.api_key:
                return PlainTextResponse("bad key", status_code=401)

            token = f"tok-{secrets.token_hex(8)}"
            self.issued_tokens.append(token)
            self.logger.info("Issued token", count=len(self.issued_tokens))
            payload: Dict[str, Any] = {self.token_field: token, "token_type": "Bearer"}
            if self.expires_in is not None:
                payload["expires_in"] = self.expires_in
            return payload

        @self.app.get("/v3/products")
        async def list_products(request: Request, authorization: Optional[str] = Header(None)):
            if not self._authorized(authorization):
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            sku = request.query_params.get("sku")
            items = [p for p in self.products if sku is None or p["sku"] == sku]
            return {"items": items, "total": len(items)}

        @self.app.get("/v3/orders/{order_id}")
        async def get_order(order_id: str, authorization: Optional[str] = Header(None)):
            if not self._authorized(authorization):
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            order = self.orders.get(order_id)
            if order is None:
                return JSONResponse({"error": "not found"}, status_code=404)
            return order

        @self.app.post("/v3/orders")
        async def create_order(request: Request, authorization: Optional[str] = Header(None)):
            if not self._authorized(authorization):
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            body = await request.json()
            order_id = str(len(self.orders) + 123)
            self.orders[order_id] = {"id": order_id, "status": "created", **body}
            return JSONResponse(self.orders[order_id], status_code=201)

        @self.app.get("/v3/invoices/{invoice_id}/pdf")
        async def invoice_pdf(invoice_id: str, authorization: Optional[str] = Header(None)):
            if not self._authorized(authorization):
                return PlainTextResponse("unauthorized", status_code=401)
            if invoice_id not in self.orders:
                return PlainTextResponse("invoice not found", status_code=404)
            return Response(
                content=self.pdf_payload(),
                media_type="application/pdf",
                headers={"Content-Disposition": f'attachment; filename="invoice-{invoice_id}.pdf"'},
            )


def create_app():
    """Create mock TopTex application."""
    server = MockTopTexServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8090)
