"""Audit trail and counters for trades."""

from __future__ import annotations

import logging
from typing import Dict

import redis.asyncio as redis
from redis.exceptions import RedisError

from phototrade.domain.trades.models import TRADE_EVENTS_STREAM
from phototrade.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


async def log_trade_event(client: redis.Redis, event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **fields}
	try:
		await client.xadd(TRADE_EVENTS_STREAM, payload)
	except RedisError:
		logger.warning("trade audit write failed", exc_info=True, extra={"event": event})


def inc_proposed() -> None:
	obs_metrics.inc_trade_proposed()


def inc_resolved(action: str, result: str) -> None:
	obs_metrics.inc_trade_resolved(action, result)
