"""
Path validation and URL building shared by both forwarders.
"""

from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from shared.errors import InvalidPathError


API_PREFIX = "/v3/"
BINARY_SUFFIX = "/pdf"

PROXY_ENDPOINT = "/api/proxy"
BINARY_ENDPOINT = "/api/pdf"


def normalize_method(method: Optional[str]) -> str:
    return str(method or "GET").strip().upper()


def validate_json_path(path: Optional[str]) -> str:
    """Paths for the JSON forwarder: versioned, and not a PDF resource."""
    if not path or not str(path).startswith(API_PREFIX):
        raise InvalidPathError(
            f"path must start with {API_PREFIX} (e.g. /v3/invoices)",
            details={"path": path},
        )
    path = str(path)
    if path.endswith(BINARY_SUFFIX):
        raise InvalidPathError(
            f"Use {BINARY_ENDPOINT} for PDF endpoints",
            details={"path": path},
        )
    return path


def validate_binary_path(path: Optional[str]) -> str:
    path = str(path or "")
    if not path.startswith(API_PREFIX) or not path.endswith(BINARY_SUFFIX):
        raise InvalidPathError(
            f"Usage: {BINARY_ENDPOINT}?path=/v3/invoices/{{id}}/pdf",
            details={"path": path},
        )
    return path


def _query_value(value: Any) -> str:
    """Render one value the way a browser's URLSearchParams would."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(_query_value(item) for item in value)
    return str(value)


def build_query(query: Optional[Mapping[str, Any]]) -> str:
    """Encode a flat mapping, dropping keys whose value is empty or None.

    Unset optional filters must not reach upstream as empty constraints.
    """
    if not query or not isinstance(query, Mapping):
        return ""
    pairs = [
        (str(key), _query_value(value))
        for key, value in query.items()
        if value is not None and value != ""
    ]
    return urlencode(pairs)


def build_url(base_url: str, path: str, query: Optional[Mapping[str, Any]] = None) -> str:
    qs = build_query(query)
    url = f"{base_url.rstrip('/')}{path}"
    return f"{url}?{qs}" if qs else url
