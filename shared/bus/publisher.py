"""Event publishers for the message bus.

Wraps Redis pub/sub for publishing gripper telemetry and command results.
A publisher that cannot reach Redis logs a warning and reports itself as
disconnected; publishing then becomes a no-op returning False.

Usage:
    from shared.bus import EventPublisher, Topics

    pub = EventPublisher()
    await pub.connect()
    await pub.publish(Topics.GRIPPER_COMMAND_RESULT, response)
    await pub.close()

The synchronous variant is used from the telemetry publisher thread:

    pub = SyncEventPublisher("redis://localhost:6379")
    pub.connect()
    pub.publish(Topics.GRIPPER_JOINT_STATES, sample.to_message())
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import redis
import redis.asyncio as aioredis
from pydantic import BaseModel

from shared.config.service_registry import ServiceConfig

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_S = 2.0


def encode_payload(message: BaseModel | dict | str) -> str:
    """Serialise a bus message to the JSON text sent over Redis."""
    if isinstance(message, BaseModel):
        return message.model_dump_json()
    if isinstance(message, dict):
        return json.dumps(message)
    return str(message)


class EventPublisher:
    """Publishes events to the Redis message bus from asyncio code."""

    def __init__(self, redis_url: Optional[str] = None):
        self._redis_url = redis_url or ServiceConfig.REDIS_URL
        self._redis = None
        self._connected = False

    async def connect(self) -> bool:
        """Connect to Redis. Returns True if successful."""
        try:
            self._redis = aioredis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=CONNECT_TIMEOUT_S,
            )
            await self._redis.ping()
            self._connected = True
            logger.info("EventPublisher connected to Redis at %s", self._redis_url)
            return True
        except (redis.RedisError, OSError) as e:
            logger.warning("Failed to connect to Redis: %s; message bus disabled", e)
            self._connected = False
            return False

    async def publish(self, topic: str, message: BaseModel | dict | str) -> bool:
        """Publish a message to a topic.

        Args:
            topic: Topic name (e.g., 'gripper.command_result')
            message: Pydantic model, dict, or JSON string

        Returns:
            True if published successfully, False otherwise.
        """
        if not self._connected or self._redis is None:
            return False

        try:
            await self._redis.publish(topic, encode_payload(message))
            return True
        except (redis.RedisError, OSError) as e:
            logger.warning("Failed to publish to %s: %s", topic, e)
            return False

    async def close(self):
        """Close the Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected


class SyncEventPublisher:
    """Blocking event publisher for worker threads."""

    def __init__(self, redis_url: Optional[str] = None):
        self._redis_url = redis_url or ServiceConfig.REDIS_URL
        self._redis = None
        self._connected = False

    def connect(self) -> bool:
        """Connect to Redis. Returns True if successful."""
        try:
            self._redis = redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=CONNECT_TIMEOUT_S,
            )
            self._redis.ping()
            self._connected = True
            logger.info("SyncEventPublisher connected to Redis at %s", self._redis_url)
            return True
        except (redis.RedisError, OSError) as e:
            logger.warning("Failed to connect to Redis: %s; message bus disabled", e)
            self._connected = False
            return False

    def publish(self, topic: str, message: BaseModel | dict | str) -> bool:
        """Publish a message to a topic."""
        if not self._connected or self._redis is None:
            return False

        try:
            self._redis.publish(topic, encode_payload(message))
            return True
        except (redis.RedisError, OSError) as e:
            logger.warning("Failed to publish to %s: %s", topic, e)
            return False

    def close(self):
        """Close the Redis connection."""
        if self._redis:
            self._redis.close()
            self._redis = None
            self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected
