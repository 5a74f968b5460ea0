"""
Market data error taxonomy.
"""

from typing import Optional


class MarketDataError(Exception):
    """Base exception for failures fetching or decoding market data."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.message = message
        self.provider = provider
        prefix = f"[{provider}] " if provider else ""
        super().__init__(f"{prefix}{message}")


class RateLimitedError(MarketDataError):
    """Provider answered HTTP 429."""

    def __init__(self, provider: Optional[str] = None, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__("Rate limit exceeded. Please try again later.", provider)


class BadServerResponseError(MarketDataError):
    """Provider answered with a non-2xx status other than 429."""

    def __init__(self, status_code: int, provider: Optional[str] = None):
        self.status_code = status_code
        super().__init__(f"Unexpected server response (code {status_code}).", provider)


class TransientNetworkError(MarketDataError):
    """Timeout, dropped connection, or no connectivity."""


class DecodeError(MarketDataError):
    """Response body was not the expected JSON shape."""


class NoDataAvailableError(MarketDataError):
    """Network, fallback provider, and cache all failed with no prior data."""

    def __init__(self, message: str = "No market data available.", provider: Optional[str] = None):
        super().__init__(message, provider)


def is_transient(error: BaseException) -> bool:
    """Whether an error should be retried with backoff."""
    return isinstance(error, TransientNetworkError)
