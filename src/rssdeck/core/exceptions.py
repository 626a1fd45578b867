"""Custom exceptions.

rssdeck uses a small hierarchy of exceptions:

Example:
    >>> from rssdeck.core.exceptions import FetchError, RssDeckError
    >>> err = FetchError("https://example.com/feed.xml", "boom", kind="network")
    >>> isinstance(err, RssDeckError)
    True
    >>> err.kind
    'network'
"""

from __future__ import annotations

from typing import Literal

FetchErrorKind = Literal["network", "status", "parse"]


class RssDeckError(Exception):
    """Base exception for rssdeck.

    Example:
        >>> from rssdeck.core.exceptions import RssDeckError
        >>> str(RssDeckError("something went wrong"))
        'something went wrong'
    """


class FetchError(RssDeckError):
    """Fetching or parsing one feed failed.

    Raised by feed sources and caught per feed by the refresh coordinator,
    so one failing feed never stops its siblings.

    Example:
        >>> from rssdeck.core.exceptions import FetchError
        >>> err = FetchError("https://example.com/x", "HTTP 404", kind="status", status_code=404)
        >>> err.status_code
        404
        >>> str(err)
        'https://example.com/x: HTTP 404'
    """

    def __init__(
        self,
        url: str,
        message: str,
        *,
        kind: FetchErrorKind,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.kind = kind
        self.status_code = status_code
        self.cause = cause


class StoreError(RssDeckError):
    """Storage operation failed.

    Example:
        >>> from rssdeck.core.exceptions import StoreError
        >>> err = StoreError("disk full", key="feed:https://example.com/x")
        >>> err.key
        'feed:https://example.com/x'
    """

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.cause = cause


class ConfigurationError(RssDeckError):
    """Configuration is invalid.

    Example:
        >>> from rssdeck.core.exceptions import ConfigurationError
        >>> raise ConfigurationError("unknown store scheme")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ConfigurationError: unknown store scheme
    """
