"""Idempotent DDL for the four PhotoTrade relations."""

from __future__ import annotations

import asyncpg

SCHEMA_STATEMENTS: tuple[str, ...] = (
	"""
	CREATE TABLE IF NOT EXISTS users (
		id UUID PRIMARY KEY,
		username TEXT NOT NULL UNIQUE,
		email TEXT NOT NULL UNIQUE,
		password_hash TEXT NOT NULL,
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS photos (
		id UUID PRIMARY KEY,
		user_id UUID NOT NULL REFERENCES users(id),
		filename TEXT NOT NULL,
		original_name TEXT NOT NULL,
		description TEXT,
		watermarked_filename TEXT,
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
	)
	""",
	"CREATE INDEX IF NOT EXISTS idx_photos_owner_created ON photos(user_id, created_at DESC)",
	"""
	CREATE TABLE IF NOT EXISTS trades (
		id UUID PRIMARY KEY,
		from_user_id UUID NOT NULL REFERENCES users(id),
		to_user_id UUID NOT NULL REFERENCES users(id),
		from_photo_id UUID NOT NULL REFERENCES photos(id),
		to_photo_id UUID NOT NULL REFERENCES photos(id),
		status TEXT NOT NULL DEFAULT 'pending'
			CHECK (status IN ('pending', 'accepted', 'declined')),
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		resolved_at TIMESTAMPTZ
	)
	""",
	"CREATE INDEX IF NOT EXISTS idx_trades_from_user ON trades(from_user_id, created_at DESC)",
	"CREATE INDEX IF NOT EXISTS idx_trades_to_user ON trades(to_user_id, created_at DESC)",
	"""
	CREATE TABLE IF NOT EXISTS friends (
		user_id UUID NOT NULL REFERENCES users(id),
		friend_id UUID NOT NULL REFERENCES users(id),
		status TEXT NOT NULL DEFAULT 'pending'
			CHECK (status IN ('pending', 'accepted')),
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		PRIMARY KEY (user_id, friend_id)
	)
	""",
)


async def ensure_schema(pool: asyncpg.pool.Pool) -> None:
	async with pool.acquire() as conn:
		async with conn.transaction():
			for statement in SCHEMA_STATEMENTS:
				await conn.execute(statement)
