"""
Unit tests for path validation and URL building.
"""

import pytest

from service_proxy.app.forwarding.paths import (
    build_query,
    build_url,
    normalize_method,
    validate_binary_path,
    validate_json_path,
)
from shared.errors import InvalidPathError


class TestPathContract:
    """Test cases for the /v3/ prefix and /pdf suffix rules."""

    @pytest.mark.parametrize("path", [None, "", "/v2/products", "v3/products", "/api/v3/x", "/v3"])
    def test_json_path_requires_prefix(self, path):
        with pytest.raises(InvalidPathError) as exc_info:
            validate_json_path(path)
        assert "/v3/" in exc_info.value.message
        assert exc_info.value.status_code == 400

    def test_json_path_rejects_pdf(self):
        with pytest.raises(InvalidPathError) as exc_info:
            validate_json_path("/v3/invoices/42/pdf")
        assert "/api/pdf" in exc_info.value.message

    def test_json_path_accepts_pdf_lookalikes(self):
        assert validate_json_path("/v3/orders/1/pdfpacking") == "/v3/orders/1/pdfpacking"

    @pytest.mark.parametrize("path", [None, "", "/v3/invoices/1", "/v2/invoices/1/pdf", "/v3/invoices/1/pdf/"])
    def test_binary_path_contract(self, path):
        with pytest.raises(InvalidPathError):
            validate_binary_path(path)

    def test_binary_path_valid(self):
        assert validate_binary_path("/v3/deliveries/9/pdf") == "/v3/deliveries/9/pdf"

    @pytest.mark.parametrize("method,expected", [(None, "GET"), ("", "GET"), ("post", "POST"), (" Patch ", "PATCH")])
    def test_normalize_method(self, method, expected):
        assert normalize_method(method) == expected


class TestQueryBuilding:
    """Test cases for query normalization."""

    def test_empty_and_null_values_are_omitted(self):
        assert build_query({"a": "", "b": "x", "c": None}) == "b=x"

    def test_zero_and_false_are_kept(self):
        assert build_query({"page": 0, "deleted": False}) == "page=0&deleted=false"

    def test_list_values_are_comma_joined(self):
        assert build_query({"sku": ["SKU1", "SKU2"], "ids": [1, 2]}) == "sku=SKU1%2CSKU2&ids=1%2C2"

    @pytest.mark.parametrize("value,expected", [(2.0, "2"), (2.5, "2.5"), (-3.0, "-3"), (7, "7")])
    def test_numbers_render_without_trailing_zero(self, value, expected):
        assert build_query({"n": value}) == f"n={expected}"

    def test_values_are_encoded(self):
        assert build_query({"q": "t-shirt & polo"}) == "q=t-shirt+%26+polo"

    @pytest.mark.parametrize("query", [None, {}, {"a": ""}])
    def test_no_query_string(self, query):
        assert build_url("https://api.example.test/", "/v3/products", query) == "https://api.example.test/v3/products"

    def test_build_url_with_query(self):
        url = build_url("https://api.example.test", "/v3/products", {"sku": "SKU123", "lang": ""})
        assert url == "https://api.example.test/v3/products?sku=SKU123"
