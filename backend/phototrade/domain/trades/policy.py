"""Guard checks applied before a trade is written."""

from __future__ import annotations

import logging
from uuid import UUID

import redis.asyncio as redis
from redis.exceptions import RedisError

from phototrade.domain.errors import RateLimited, ValidationError
from phototrade.domain.photos.models import Photo
from phototrade.domain.trades.models import TRADE_PROPOSE_RATE_KIND
from phototrade.infra import rate_limit

logger = logging.getLogger(__name__)


async def enforce_proposal_limit(client: redis.Redis, user_id: str, limit: int) -> None:
	try:
		allowed = await rate_limit.allow(client, TRADE_PROPOSE_RATE_KIND, user_id, limit=limit)
	except RedisError:
		logger.warning("trade rate limiter unavailable", exc_info=True)
		return
	if not allowed:
		raise RateLimited("trade_proposal_rate")


def guard_not_self(from_user_id: UUID, to_user_id: UUID) -> None:
	if from_user_id == to_user_id:
		raise ValidationError("self_trade", "Cannot trade with yourself")


def guard_ownership(from_photo: Photo, from_user_id: UUID, to_photo: Photo, to_user_id: UUID) -> None:
	if from_photo.user_id != from_user_id or to_photo.user_id != to_user_id:
		raise ValidationError("photo_owner_mismatch", "Each photo must belong to its trading party")
