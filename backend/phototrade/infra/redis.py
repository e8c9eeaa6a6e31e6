"""Redis client construction.

The client lives on the application context; tests swap it for a FakeRedis
instance by building the context with their own client.
"""

from __future__ import annotations

import redis.asyncio as redis

from phototrade.settings import Settings


def create_client(config: Settings) -> redis.Redis:
	return redis.from_url(config.redis_url, decode_responses=True)


async def close_client(client: redis.Redis | None) -> None:
	if client is not None:
		await client.aclose()
