"""Core configuration, errors and orchestration.

Orchestration classes live in `rssdeck.core.coordinator` and
`rssdeck.core.deck`; they are re-exported from the top-level package.
"""

from rssdeck.core.exceptions import ConfigurationError, FetchError, RssDeckError, StoreError

__all__ = [
    "ConfigurationError",
    "FetchError",
    "RssDeckError",
    "StoreError",
]
