"""
Error taxonomy shared by the server and the chat client.

  ConfigurationError  missing credential, unknown provider, Stripe not set up
  UpstreamError       non-2xx from an LLM provider, the OMaa server or Stripe
  NetworkError        the request never got an HTTP answer
  PersistenceError    corrupt client storage (always recovered locally)

Nothing here is retried. Every error ends up as a visible message.
"""

from __future__ import annotations


class OmaaError(Exception):
    """Base class for all OMaa errors."""


class ConfigurationError(OmaaError):
    """Something needed to make the call is not configured."""


class UpstreamError(OmaaError):
    """An upstream API answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# Name used by the provider-adapter contract.
FailedRequest = UpstreamError


class NetworkError(OmaaError):
    """Transport failure: connect, read or timeout."""


class PersistenceError(OmaaError):
    """Stored client data could not be decoded."""
