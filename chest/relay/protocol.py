"""
Relay wire protocol decoding.

Only frames shaped ["EVENT", <subscription id>, <event>] carry data for
the pipeline. EOSE, NOTICE, OK, CLOSED and other arrays are ignored. A
frame that is not JSON, or an EVENT whose body is not a valid event, is
a protocol error.
"""

import json
import logging
from typing import Optional, Tuple

from pydantic import ValidationError

from chest.schemas import NostrEvent
from .errors import RelayProtocolError

logger = logging.getLogger(__name__)

InboundEvent = Tuple[str, NostrEvent]


def parse_message(relay_url: str, text: str) -> Optional[InboundEvent]:
    """Decode one text frame into (subscription_id, event), or None to skip it."""
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise RelayProtocolError(relay_url, f"invalid JSON frame: {e}") from e

    if not isinstance(value, list) or len(value) < 3 or value[0] != "EVENT":
        if isinstance(value, list) and value:
            logger.debug(f"[relay] {relay_url} sent {value[0]!r} frame, ignoring")
        return None

    subscription_id = value[1]
    try:
        event = NostrEvent.model_validate(value[2])
    except ValidationError as e:
        raise RelayProtocolError(relay_url, f"malformed event body: {e.error_count()} error(s)") from e

    return str(subscription_id), event
