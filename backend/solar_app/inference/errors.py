"""Provider failure classes.

SDK exceptions are translated into these at the provider boundary so the
orchestrator can pick a recovery policy per class without knowing which
SDK raised them.
"""

from __future__ import annotations


class ProviderError(RuntimeError):
    """Base class for recoverable provider failures."""

    def __init__(self, message: str, provider: str = "", model: str = ""):
        super().__init__(message)
        self.provider = provider
        self.model = model


class ModelNotFoundError(ProviderError):
    """The model does not exist or is not enabled; skip to the next model."""


class RateLimitedError(ProviderError):
    """Quota or rate limit reached for this model."""


class ProviderTransportError(ProviderError):
    """Network failure or a 5xx/unexpected status from the provider."""


class EmptyResponseError(ProviderError):
    """The provider answered without any text content."""


class ProviderNotConfiguredError(ProviderError):
    """No credentials are configured for this provider."""
