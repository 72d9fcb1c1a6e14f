from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis

from app.core.config import get_settings


class RedisClient:
    def __init__(self) -> None:
        settings = get_settings()
        self._client = redis.from_url(settings.redis_url, decode_responses=True)

    @property
    def client(self) -> redis.Redis:
        return self._client

    async def get_json(self, key: str) -> dict[str, Any] | None:
        value = await self._client.get(key)
        if not value:
            return None
        return json.loads(value)

    async def set_json(self, key: str, payload: dict[str, Any], ttl_seconds: int) -> None:
        await self._client.set(key, json.dumps(payload), ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)


redis_client = RedisClient()
