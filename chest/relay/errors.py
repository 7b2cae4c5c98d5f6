"""Relay session failures. None of these cross a task boundary."""


class RelayError(Exception):
    """Base class for relay session failures."""

    def __init__(self, relay_url: str, message: str):
        super().__init__(f"{relay_url}: {message}")
        self.relay_url = relay_url


class RelayConnectionError(RelayError):
    """Handshake, send or transport failure."""


class RelayProtocolError(RelayError):
    """Inbound frame that is not valid JSON or not a valid event."""


class RelayStateError(RelayError):
    """Operation not allowed in the session's current state."""
