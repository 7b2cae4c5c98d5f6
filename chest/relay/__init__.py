"""Relay connectivity: wire decoding, sessions and supervised reconnects."""

from chest.relay.errors import (
    RelayError, RelayConnectionError, RelayProtocolError, RelayStateError,
)
from chest.relay.protocol import parse_message
from chest.relay.session import RelaySession, RelayState
from chest.relay.supervisor import RelaySupervisor

__all__ = [
    "RelayError", "RelayConnectionError", "RelayProtocolError", "RelayStateError",
    "parse_message", "RelaySession", "RelayState", "RelaySupervisor",
]
