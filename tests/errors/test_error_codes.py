"""Tests for error registry, domain exceptions and response formatting."""

import pytest

from shopchat.errors import (
    AuthenticationError,
    DomainError,
    NotFoundError,
    PersistenceError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
    format_error_response,
    status_for,
)
from shopchat.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    get_error,
    get_errors_by_category,
)


class TestRegistry:

    def test_codes_match_keys(self):
        for key, error in ERROR_REGISTRY.items():
            assert error.code == key

    def test_category_prefixes(self):
        prefixes = {
            ErrorCategory.NOT_FOUND: "E-1",
            ErrorCategory.VALIDATION: "E-2",
            ErrorCategory.UPSTREAM: "E-3",
            ErrorCategory.PERSISTENCE: "E-4",
            ErrorCategory.AUTH: "E-5",
        }
        for category, prefix in prefixes.items():
            errors = get_errors_by_category(category)
            assert errors
            assert all(e.code.startswith(prefix) for e in errors)

    def test_unknown_code(self):
        assert get_error("E-9999") is None


class TestDomainErrors:

    @pytest.mark.parametrize(
        "error,code,status",
        [
            (NotFoundError("Product", "p1"), "E-1001", 404),
            (NotFoundError("Order", "o1"), "E-1002", 404),
            (NotFoundError("Store", "s1"), "E-1003", 404),
            (NotFoundError("Widget", "w1"), "E-1099", 404),
            (ValidationError("bad"), "E-2099", 400),
            (UpstreamError("woo", "boom"), "E-3001", 502),
            (UpstreamError("llm", "boom", code="E-3002"), "E-3002", 502),
            (UpstreamTimeoutError("shopify", 15), "E-3003", 504),
            (PersistenceError("locked"), "E-4001", 500),
            (AuthenticationError("nope", code="E-5001"), "E-5001", 401),
            (AuthenticationError("nope", code="E-5003"), "E-5003", 403),
            (AuthenticationError("nope", code="E-5004"), "E-5004", 429),
            (DomainError("unknown"), "E-4099", 500),
        ],
    )
    def test_codes_and_statuses(self, error, code, status):
        assert error.code == code
        assert status_for(error) == status

    def test_not_found_message(self):
        assert str(NotFoundError("Product", "p1")) == "Product 'p1' not found"

    def test_timeout_message(self):
        error = UpstreamTimeoutError("shopify", 15.0)

        assert error.source == "shopify"
        assert "15s" in str(error)
        assert isinstance(error, UpstreamError)


class TestFormatErrorResponse:

    def test_generic_message_and_details_outside_production(self):
        body = format_error_response(
            UpstreamError("woo", "500 Internal Server Error: db down"), include_details=True
        )

        assert body == {
            "error": "Failed to process chat request.",
            "error_code": "E-3001",
            "details": "500 Internal Server Error: db down",
        }

    def test_details_hidden_in_production(self):
        body = format_error_response(UpstreamError("woo", "secret detail"), include_details=False)

        assert body["details"] is None
        assert "secret detail" not in str(body)

    def test_details_are_sanitized(self):
        body = format_error_response(
            UpstreamError("woo", "failed with consumer_key=ck_0123456789abcdef"),
            include_details=True,
        )

        assert "ck_0123456789abcdef" not in body["details"]

    def test_validation_errors_listed(self):
        body = format_error_response(
            ValidationError("bad order", code="E-2002", errors=["items: required"]),
            include_details=False,
        )

        assert body["error_code"] == "E-2002"
        assert body["errors"] == ["items: required"]

    def test_non_domain_error(self):
        body = format_error_response(RuntimeError("kaboom"), include_details=False)

        assert body == {"error": "Internal server error.", "error_code": None, "details": None}

    def test_public_message_override(self):
        body = format_error_response(
            NotFoundError("Store", "x"), include_details=False, public_message="Store not found"
        )

        assert body["error"] == "Store not found"
