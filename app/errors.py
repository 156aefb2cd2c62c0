"""
Exceptions raised by the relay.

Each exception carries the HTTP status code the API layer should answer with
when it escapes a request handler.
"""

from typing import Optional


class RelayError(Exception):
    """Base class for all relay errors."""

    status_code: int = 500
    default_detail: str = "Relay error"

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class ConfigurationError(RelayError):
    """A required startup parameter is missing or invalid."""

    default_detail = "Invalid relay configuration"


class SessionInitiationError(RelayError):
    """Ultravox refused the call or the join WebSocket could not be opened."""

    status_code = 502
    default_detail = "Failed to start Ultravox session"


class TransportError(RelayError):
    """The remote channel closed abnormally."""

    status_code = 502
    default_detail = "Ultravox connection failed"


class ChannelClosedError(TransportError):
    """A frame was sent on a channel that is not open."""

    default_detail = "Ultravox channel is not open"
