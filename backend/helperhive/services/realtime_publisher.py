"""
Fire-and-forget publishing of real-time booking events.

Delivery is at-most-once: failures are logged and never reach the caller.
"""

import json
import logging
from typing import Iterable

from ..core.broadcast import get_broadcast
from ..events.realtime_events import RealtimeEvent

logger = logging.getLogger(__name__)


async def publish_event(event: RealtimeEvent) -> bool:
    """Publish one event. Returns False when it could not be handed to the broadcaster."""
    try:
        broadcast = get_broadcast()
        await broadcast.publish(channel=event.channel, message=json.dumps(event.to_message()))
        logger.debug("[REALTIME] %s -> %s", event.type, event.channel)
        return True
    except RuntimeError as e:
        logger.warning("[REALTIME] Broadcast not initialized, dropping %s: %s", event.type, e)
    except Exception as e:
        logger.error("[REALTIME] Failed to publish %s to %s: %s", event.type, event.channel, e)
    return False


async def publish_events(events: Iterable[RealtimeEvent]) -> int:
    delivered = 0
    for event in events:
        if await publish_event(event):
            delivered += 1
    return delivered
