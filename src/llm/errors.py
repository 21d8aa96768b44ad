# src/llm/errors.py
"""Provider error taxonomy.

Only TransientProviderError subclasses are retried. ProviderConfigError is
raised before any network I/O.
"""

from __future__ import annotations


class ProviderError(Exception):
    """Base class for all provider-call failures."""


class ProviderConfigError(ProviderError):
    """Provider selection or endpoint configuration is invalid."""


class TransientProviderError(ProviderError):
    """A failure worth another attempt."""


class ProviderConnectionError(TransientProviderError):
    """Could not reach the provider."""


class ProviderTimeoutError(TransientProviderError):
    """The call exceeded its local time ceiling."""


class ProviderHTTPError(TransientProviderError):
    """Provider answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body[:200]
        detail = f": {self.body}" if self.body else ""
        super().__init__(f"Provider returned HTTP {status_code}{detail}")


class ProviderResponseError(TransientProviderError):
    """Provider answered 2xx but the payload is malformed."""
