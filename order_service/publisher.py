"""
Order Service — confirmation publisher

Publishes OrderConfirmation on a Redis Pub/Sub channel for downstream
consumers such as notification senders.

Pub/Sub is fire-and-forget: the publish returns once Redis accepted
the message, and subscribers that are down miss it.
"""

import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .events import OrderConfirmation
from .exceptions import ServiceError

logger = logging.getLogger(__name__)


class ConfirmationPublisher:
    def __init__(self, redis: aioredis.Redis, channel: str = "order_events"):
        self.redis = redis
        self.channel = channel

    async def publish_confirmation(self, confirmation: OrderConfirmation) -> None:
        payload = json.dumps(
            {
                "event_type": "OrderConfirmation",
                "data": confirmation.model_dump(mode="json"),
            },
            default=str,
        )
        try:
            receivers = await self.redis.publish(self.channel, payload)
        except RedisError as e:
            raise ServiceError("event-channel", str(e)) from e
        logger.info(
            "Published OrderConfirmation %s to %s (%s receivers)",
            confirmation.order_reference,
            self.channel,
            receivers,
        )
