"""Change-event publisher for schedule and booking mutations.

Events are cache-invalidation hints for subscribers (dashboards, workers).
Consumers must refetch from the database; nothing relies on delivery.
"""

import json
import logging
from datetime import UTC, datetime
from uuid import UUID

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)


class ChangeEventPublisher:
    """Publishes table-level change events over Redis pub/sub."""

    SCHEDULES = "schedules"
    BOOKINGS = "schedule_students"

    def __init__(self, redis_url: str | None = None) -> None:
        self.redis_url = redis_url or settings.redis_url
        self._redis: redis.Redis | None = None

    async def get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    def channel_for(self, table: str) -> str:
        return f"{settings.change_events_channel_prefix}:{table}"

    async def publish(
        self,
        table: str,
        event: str,
        record_id: UUID,
        schedule_id: UUID | None = None,
    ) -> bool:
        """Publish a change event; returns False if it was not delivered."""
        if not settings.change_events_enabled:
            return False

        payload = {
            "table": table,
            "event": event,
            "id": str(record_id),
            "schedule_id": str(schedule_id) if schedule_id else None,
            "at": datetime.now(UTC).isoformat(),
        }
        try:
            client = await self.get_redis()
            await client.publish(self.channel_for(table), json.dumps(payload))
        except redis.RedisError as e:
            logger.warning(f"Change event {table}/{event} for {record_id} not published: {e}")
            return False
        return True

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


change_events = ChangeEventPublisher()
