"""AsyncPG pool management for the backend."""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator

import asyncpg

from phototrade.domain.errors import StorageError
from phototrade.settings import Settings

logger = logging.getLogger(__name__)


async def create_pool(config: Settings) -> asyncpg.pool.Pool:
	# Force 127.0.0.1 instead of localhost to avoid IPv6 issues on Windows
	dsn = config.postgres_url.replace("localhost", "127.0.0.1")
	pool = await asyncpg.create_pool(
		dsn=dsn,
		min_size=config.postgres_min_pool_size,
		max_size=config.postgres_max_pool_size,
		command_timeout=config.postgres_command_timeout,
	)
	logger.info("postgres pool ready", extra={"max_size": config.postgres_max_pool_size})
	return pool


async def close_pool(pool: asyncpg.pool.Pool | None) -> None:
	if pool is not None:
		await pool.close()


@contextmanager
def storage_errors(reason: str = "database_error") -> Iterator[None]:
	"""Translate driver failures into ``StorageError``.

	Domain errors raised inside the block pass through untouched.
	"""
	try:
		yield
	except (asyncpg.PostgresError, asyncpg.InterfaceError, asyncio.TimeoutError) as exc:
		logger.error("storage failure", exc_info=True, extra={"reason": reason})
		raise StorageError(reason) from exc
