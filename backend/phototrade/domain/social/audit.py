"""Audit trail for friendship changes."""

from __future__ import annotations

import logging
from typing import Dict

import redis.asyncio as redis
from redis.exceptions import RedisError

from phototrade.domain.social.models import FRIEND_EVENTS_STREAM
from phototrade.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


async def log_friend_event(client: redis.Redis, event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **fields}
	try:
		await client.xadd(FRIEND_EVENTS_STREAM, payload)
	except RedisError:
		logger.warning("friend audit write failed", exc_info=True, extra={"event": event})


def inc_friend_op(action: str, result: str = "ok") -> None:
	obs_metrics.inc_friend_op(action, result)
