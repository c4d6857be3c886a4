"""Error taxonomy shared by the clients, the relay and the routers."""
from typing import Optional


class RelayError(Exception):
    """Base class for every error the service raises on purpose."""


class ConfigurationError(RelayError):
    """A required setting is missing or a credential was rejected. Fatal at startup."""


class ValidationError(RelayError):
    """The client sent something we cannot relay (400)."""


class UpstreamError(RelayError):
    """GitHub or Telegram failed or answered with an error (500)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CleanupError(RelayError):
    """A staging file could not be removed. Logged, never surfaced."""
