import logging
from uuid import UUID

import redis.asyncio as redis

from marketplace.core.config import get_settings
from marketplace.schemas.notification import NotificationRecord

logger = logging.getLogger(__name__)


def channel_for(user_id: UUID) -> str:
    return f"notifications:{user_id}"


class RedisPushChannel:
    """Publishes notification records for the WebSocket gateway to fan out."""

    def __init__(self, redis_url: str = None):
        self._redis_url = redis_url or get_settings().REDIS_URL
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    async def publish(self, user_id: UUID, record: NotificationRecord) -> int:
        client = self._get_client()
        receivers = await client.publish(channel_for(user_id), record.model_dump_json())
        logger.debug(f"Published {record.type.value} to {receivers} subscribers of user {user_id}")
        return receivers

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
