from sagecore.core.errors import (
    ChatClientError,
    DecodingFailedError,
    HTTPStatusError,
    InvalidCredentialError,
    MissingCredentialError,
    NoConnectionError,
    RateLimitedError,
    RequestTimeoutError,
    UnexpectedShapeError,
    friendly_message,
)


def test_http_error_equality_uses_status_code_not_message():
    assert HTTPStatusError(500, "overloaded") == HTTPStatusError(500, None)
    assert HTTPStatusError(500) != HTTPStatusError(502)
    assert HTTPStatusError(400) != InvalidCredentialError()


def test_equality_ignores_detail_text():
    assert DecodingFailedError("bad json") == DecodingFailedError("missing field")
    assert UnexpectedShapeError("a") == UnexpectedShapeError("b")
    assert RateLimitedError(3.0) == RateLimitedError(None)
    assert NoConnectionError("dns") == NoConnectionError()
    assert RequestTimeoutError() != NoConnectionError()


def test_errors_are_hashable_by_kind():
    kinds = {MissingCredentialError(), MissingCredentialError(), HTTPStatusError(500, "x"), HTTPStatusError(500)}
    assert len(kinds) == 2


def test_every_kind_has_a_short_user_message():
    errors = [
        MissingCredentialError(),
        InvalidCredentialError(),
        RateLimitedError(),
        HTTPStatusError(503),
        NoConnectionError(),
        RequestTimeoutError(),
        DecodingFailedError("x"),
        UnexpectedShapeError("y"),
    ]
    for error in errors:
        assert isinstance(error, ChatClientError)
        message = friendly_message(error)
        assert message
        assert len(message) < 80
    assert len({error.kind for error in errors}) == len(errors)


def test_friendly_message_for_foreign_exception_is_generic():
    assert friendly_message(RuntimeError("boom")) == "Something went wrong. Please try again."


def test_rate_limited_carries_retry_after():
    error = RateLimitedError(12.0)
    assert error.retry_after == 12.0
    assert "2.5s" in str(RateLimitedError(2.5))
    assert "12" in str(error)
    assert RateLimitedError().retry_after is None
