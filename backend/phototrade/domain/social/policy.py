"""Guard checks for friend requests."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

import asyncpg
import redis.asyncio as redis
from redis.exceptions import RedisError

from phototrade.domain.errors import Conflict, RateLimited, ValidationError
from phototrade.domain.social.models import FRIEND_REQUEST_RATE_KIND
from phototrade.infra import rate_limit

logger = logging.getLogger(__name__)

EDGE_EXISTS_SQL = """
SELECT 1 FROM friends
WHERE (user_id = $1 AND friend_id = $2) OR (user_id = $2 AND friend_id = $1)
LIMIT 1
"""


async def enforce_request_limit(client: redis.Redis, user_id: str, limit: int) -> None:
	try:
		allowed = await rate_limit.allow(client, FRIEND_REQUEST_RATE_KIND, user_id, limit=limit)
	except RedisError:
		# limiter outage must not block the graph
		logger.warning("friend rate limiter unavailable", exc_info=True)
		return
	if not allowed:
		raise RateLimited("friend_request_rate")


def guard_not_self(user_id: UUID | str, target_id: UUID | str) -> None:
	if str(user_id) == str(target_id):
		raise ValidationError("self_request", "Cannot add yourself")


async def lookup_user_id(conn: asyncpg.Connection, username: str) -> Optional[UUID]:
	value = await conn.fetchval("SELECT id FROM users WHERE username = $1", username)
	return UUID(str(value)) if value is not None else None


async def ensure_no_edge(conn: asyncpg.Connection, user_a: UUID, user_b: UUID) -> None:
	# either direction, either status
	if await conn.fetchval(EDGE_EXISTS_SQL, user_a, user_b):
		raise Conflict("already_requested", "Already sent request or already friends")
