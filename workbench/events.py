"""Best-effort change notifications over a Redis stream."""
import json

import redis.asyncio as redis

from workbench.logging_config import get_logger
from workbench.utils import now_ms

logger = get_logger(__name__)

EVENTS_STREAM = "workbench:events:global"

# Global Redis client (initialized in main.py lifespan, None when disabled)
redis_client: redis.Redis | None = None


async def publish_event(event_type: str, data: dict):
    """Publish event to the global stream for dashboards and other listeners."""
    if redis_client is None:
        return
    try:
        logger.debug(f"Publishing Redis event: type={event_type}")
        event = {"type": event_type, **data, "timestamp": now_ms()}
        await redis_client.xadd(EVENTS_STREAM, {"data": json.dumps(event)})
    except Exception as e:
        logger.warning(f"Failed to publish {event_type} event: {e}")
