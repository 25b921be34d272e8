"""Tests for exceptions."""

import pytest
from streamfall.exceptions import (
    AuthError,
    ContentUnavailableError,
    NetworkError,
    NoCredentialError,
    NoMatchError,
    RateLimitedError,
    StreamfallError,
    UpstreamError,
)
from streamfall.models.enums import FailureKind

ALL_ERRORS = [
    NoCredentialError,
    AuthError,
    RateLimitedError,
    ContentUnavailableError,
    NetworkError,
    UpstreamError,
    NoMatchError,
]


class TestExceptionStatusCodes:
    """Tests for HTTP status codes on exceptions."""

    @pytest.mark.parametrize(
        ("exception_class", "expected_status"),
        [
            (StreamfallError, 500),
            (NoCredentialError, 401),
            (AuthError, 401),
            (RateLimitedError, 429),
            (ContentUnavailableError, 404),
            (NetworkError, 504),
            (UpstreamError, 502),
        ],
        ids=[
            "base",
            "no_credential",
            "auth",
            "rate_limited",
            "unavailable",
            "network",
            "upstream",
        ],
    )
    def test_exception_status_codes(
        self, exception_class: type[StreamfallError], expected_status: int
    ) -> None:
        """Each exception type should have the correct HTTP status code."""
        error = exception_class("test message")
        assert error.status_code == expected_status


class TestFailureKinds:
    """Tests for the failure kind carried by each exception."""

    @pytest.mark.parametrize(
        ("exception_class", "kind"),
        [
            (NoCredentialError, FailureKind.NO_CREDENTIAL),
            (AuthError, FailureKind.AUTH),
            (RateLimitedError, FailureKind.RATE_LIMITED),
            (ContentUnavailableError, FailureKind.CONTENT_UNAVAILABLE),
            (NetworkError, FailureKind.NETWORK),
            (UpstreamError, FailureKind.UPSTREAM),
            (NoMatchError, FailureKind.NO_MATCH),
        ],
    )
    def test_failure_kind(
        self, exception_class: type[StreamfallError], kind: FailureKind
    ) -> None:
        """Errors should tag results with their failure kind."""
        assert exception_class("x").failure_kind == kind


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize("exception_class", ALL_ERRORS)
    def test_catch_all_with_base_class(
        self, exception_class: type[StreamfallError]
    ) -> None:
        """Should be able to catch all errors with StreamfallError."""
        with pytest.raises(StreamfallError) as exc_info:
            raise exception_class("test message", provider="vk")
        assert exc_info.value.message == "test message"
        assert exc_info.value.provider == "vk"

    def test_rate_limit_retry_after(self) -> None:
        """Should keep the Retry-After hint."""
        assert RateLimitedError("x", retry_after=3.0).retry_after == 3.0

    @pytest.mark.parametrize(
        ("http_status", "expected"),
        [(503, True), (500, True), (400, False), (None, False)],
    )
    def test_upstream_server_error(
        self, http_status: int | None, expected: bool
    ) -> None:
        """Only 5xx responses count as server errors."""
        assert UpstreamError("x", http_status=http_status).is_server_error is expected
