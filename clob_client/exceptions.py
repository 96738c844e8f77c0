"""
Custom exceptions for the CLOB client.

Provides typed exceptions so callers can tell caller mistakes, auth problems,
exchange rejections and network failures apart.
"""

from typing import Optional, Any


class ClobError(Exception):
    """Base exception for all CLOB client errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ClobError):
    """Caller input rejected before any network call."""

    def __init__(self, message: str, field: Optional[str] = None,
                 details: Optional[dict[str, Any]] = None):
        merged = dict(details or {})
        if field is not None:
            merged["field"] = field
        super().__init__(message, merged)
        self.field = field


class InvalidSideError(ValidationError):
    """Order side is neither BUY nor SELL."""

    def __init__(self, side: Any):
        super().__init__(f"Invalid order side: {side!r}", field="side",
                         details={"side": str(side)})
        self.side = side


class PriceOutOfRangeError(ValidationError):
    """Price lies outside [tick, 1 - tick]."""

    def __init__(self, message: str, price: Optional[Any] = None,
                 tick_size: Optional[Any] = None):
        super().__init__(message, field="price",
                         details={"price": str(price), "tick_size": str(tick_size)})
        self.price = price
        self.tick_size = tick_size


class UnsupportedTickSizeError(ClobError):
    """Tick size has no rounding policy."""

    def __init__(self, tick_size: Any):
        super().__init__(f"Unsupported tick size: {tick_size!r}",
                         {"tick_size": str(tick_size)})
        self.tick_size = tick_size


class UnsupportedChainError(ClobError):
    """Chain has no known exchange contract."""

    def __init__(self, chain_id: Any):
        super().__init__(f"Unsupported chain id: {chain_id!r}", {"chain_id": chain_id})
        self.chain_id = chain_id


class AuthError(ClobError):
    """Missing signer/credentials or signing failure."""
    pass


class InvalidSecretEncodingError(AuthError):
    """API secret is not valid base64url."""
    pass


class APIError(ClobError):
    """Exchange answered with a terminal non-2xx response."""

    def __init__(self, status_code: int, method: str, path: str, message: str):
        super().__init__(
            f"{method} {path} failed with status {status_code}: {message}",
            {"status_code": status_code, "method": method, "path": path},
        )
        self.status_code = status_code
        self.method = method
        self.path = path
        self.error_message = message


class TransportError(ClobError):
    """Network-level failure talking to the exchange."""
    pass


class RetryExhaustedError(TransportError):
    """Every attempt failed; wraps the last failure."""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(
            f"Request failed after {attempts} attempts: {last_error}",
            {"attempts": attempts, "last_error": type(last_error).__name__},
        )
        self.attempts = attempts
        self.last_error = last_error


class RequestCancelledError(ClobError):
    """Caller cancelled the request while it was waiting."""
    pass


class WebSocketError(ClobError):
    """Streaming client used after close."""
    pass
