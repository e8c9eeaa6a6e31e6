"""Process-wide collaborators handed to every service.

Built once in the FastAPI lifespan and stored on ``app.state.context``;
tests build their own with fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import asyncpg
import redis.asyncio as redis
import socketio

from phototrade.domain.photos.watermark import AssetDeriver
from phototrade.infra import postgres as pg
from phototrade.infra import redis as redis_infra
from phototrade.realtime.notifier import Notifier
from phototrade.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
	settings: Settings
	pool: asyncpg.pool.Pool
	redis: redis.Redis
	notifier: Notifier
	deriver: AssetDeriver


def build_deriver(config: Settings) -> AssetDeriver:
	root = Path(config.upload_root)
	return AssetDeriver(root / "originals", root / "protected", label=config.watermark_label)


async def create_context(
	config: Settings,
	*,
	notifier: Optional[Notifier] = None,
	server: Optional[socketio.AsyncServer] = None,
) -> AppContext:
	pool = await pg.create_pool(config)
	client = redis_infra.create_client(config)
	deriver = build_deriver(config)
	deriver.ensure_dirs()
	if notifier is None:
		notifier = Notifier(server, broadcast_fallback=config.notify_broadcast_fallback)
	logger.info("application context ready", extra={"upload_root": config.upload_root})
	return AppContext(settings=config, pool=pool, redis=client, notifier=notifier, deriver=deriver)


async def close_context(ctx: Optional[AppContext]) -> None:
	if ctx is None:
		return
	await redis_infra.close_client(ctx.redis)
	await pg.close_pool(ctx.pool)
