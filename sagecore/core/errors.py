"""Project error hierarchy.

Every failure that leaves the chat client is one of the ``ChatClientError``
subclasses below. Equality compares the error kind (and the status code for
``HTTPStatusError``); free-form message text never takes part.
"""

from __future__ import annotations


class ChatClientError(Exception):
    """Base error."""

    kind = "error"
    user_message = "Something went wrong. Please try again."

    def _identity(self) -> tuple:
        return (self.kind,)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChatClientError):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())


class MissingCredentialError(ChatClientError):
    """No credential is stored, or the store could not be read."""

    kind = "missing_credential"
    user_message = "No API key found. Add one in Settings."

    def __init__(self) -> None:
        super().__init__("no API key available")


class InvalidCredentialError(ChatClientError):
    """The API rejected the credential (HTTP 401)."""

    kind = "invalid_credential"
    user_message = "Invalid API key. Check your key in Settings."

    def __init__(self) -> None:
        super().__init__("API key rejected")


class RateLimitedError(ChatClientError):
    """HTTP 429."""

    kind = "rate_limited"
    user_message = "Too many requests. Please wait a moment and try again."

    def __init__(self, retry_after: float | None = None) -> None:
        detail = f"rate limited, retry after {retry_after:g}s" if retry_after is not None else "rate limited"
        super().__init__(detail)
        self.retry_after = retry_after


class HTTPStatusError(ChatClientError):
    """Unexpected HTTP status. ``status_code`` is -1 for unclassified transport failures."""

    kind = "http_error"
    user_message = "Something went wrong. Please try again."

    def __init__(self, status_code: int, message: str | None = None) -> None:
        detail = f"server error {status_code}: {message}" if message else f"server error {status_code}"
        super().__init__(detail)
        self.status_code = status_code
        self.message = message

    def _identity(self) -> tuple:
        return (self.kind, self.status_code)


class NoConnectionError(ChatClientError):
    kind = "no_connection"
    user_message = "No internet connection."

    def __init__(self, detail: str = "no connection") -> None:
        super().__init__(detail)


class RequestTimeoutError(ChatClientError):
    kind = "timeout"
    user_message = "Request timed out. Please try again."

    def __init__(self, detail: str = "request timed out") -> None:
        super().__init__(detail)


class DecodingFailedError(ChatClientError):
    """The response body could not be decoded."""

    kind = "decoding_failed"
    user_message = "The server sent a response that could not be read."

    def __init__(self, detail: str) -> None:
        super().__init__(f"failed to decode response: {detail}")
        self.detail = detail


class UnexpectedShapeError(ChatClientError):
    """Valid payload in a shape the client does not understand."""

    kind = "unexpected_shape"
    user_message = "Unexpected response from server."

    def __init__(self, detail: str) -> None:
        super().__init__(f"unexpected response: {detail}")
        self.detail = detail


class TransportFailure(Exception):
    """Transport-level failure that is neither a timeout nor a lost connection.

    Internal to the transport/client seam; the client reports it as
    ``HTTPStatusError(-1, detail)``.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


def friendly_message(exc: BaseException) -> str:
    if isinstance(exc, ChatClientError):
        return exc.user_message
    return ChatClientError.user_message
