"""
backend/reception/services/events.py

Event emitter: pushes reception events to a Redis list for the notification
consumer (e-mail confirmations, admin alerts).

Queue:
- events:p2p: instant delivery (booking confirmations, cancellations)
"""

import json
import time
import logging

from redis.exceptions import RedisError

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a p2p event (instant delivery).

    Pushed to Redis list `events:p2p` for the consumer loop.
    Without a configured Redis the event is only logged.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    if redis_client is None:
        logger.debug(f"Redis not configured, event dropped: {event_type}")
        return

    try:
        redis_client.rpush(P2P_QUEUE, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except RedisError as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
