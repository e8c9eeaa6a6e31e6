"""Friendship graph: symmetric requests stored as two mirrored rows."""

from __future__ import annotations

import logging
from typing import List
from uuid import UUID

import asyncpg

from phototrade.context import AppContext
from phototrade.domain.errors import Conflict, NotFound
from phototrade.domain.ids import as_uuid
from phototrade.domain.social import audit, policy
from phototrade.domain.social.schemas import FriendEventPayload, FriendOut
from phototrade.infra.auth import AuthenticatedUser
from phototrade.infra.postgres import storage_errors

logger = logging.getLogger(__name__)

_PAIR_CLAUSE = "((user_id = $1 AND friend_id = $2) OR (user_id = $2 AND friend_id = $1))"

INSERT_PAIR_SQL = """
INSERT INTO friends (user_id, friend_id, status)
VALUES ($1, $2, 'pending'), ($2, $1, 'pending')
"""

ACCEPT_PAIR_SQL = f"UPDATE friends SET status = 'accepted' WHERE {_PAIR_CLAUSE} AND status = 'pending'"

DELETE_PAIR_SQL = f"DELETE FROM friends WHERE {_PAIR_CLAUSE}"

ACCEPTED_PAIR_COUNT_SQL = f"SELECT COUNT(*) FROM friends WHERE {_PAIR_CLAUSE} AND status = 'accepted'"

LIST_FRIENDS_SQL = """
SELECT u.id, u.username, u.email
FROM friends f
JOIN users u ON u.id = f.friend_id
WHERE f.user_id = $1 AND f.status = 'accepted'
ORDER BY u.username
"""

LIST_INCOMING_SQL = """
SELECT u.id, u.username, u.email
FROM friends f
JOIN users u ON u.id = f.friend_id
WHERE f.user_id = $1 AND f.status = 'pending' AND u.id <> $1
ORDER BY u.username
"""


def _affected(status_tag: str) -> int:
	"""Row count from an asyncpg command tag such as ``UPDATE 2``."""
	try:
		return int(status_tag.rsplit(" ", 1)[-1])
	except (AttributeError, ValueError):
		return 0


def _friend_row(record) -> FriendOut:
	return FriendOut(id=record["id"], username=record["username"], email=record["email"])


async def are_friends_conn(conn: asyncpg.Connection, user_a: UUID, user_b: UUID) -> bool:
	return int(await conn.fetchval(ACCEPTED_PAIR_COUNT_SQL, user_a, user_b) or 0) == 2


class FriendshipService:
	def __init__(self, ctx: AppContext) -> None:
		self._ctx = ctx

	async def request_friend(self, requester: AuthenticatedUser, target_username: str) -> UUID:
		"""Open a pending relationship; returns the target's id."""
		requester_id = as_uuid(requester.id)
		await policy.enforce_request_limit(
			self._ctx.redis, requester.id, self._ctx.settings.friend_requests_per_minute
		)
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				target_id = await policy.lookup_user_id(conn, target_username)
				if target_id is None:
					audit.inc_friend_op("request", "not_found")
					raise NotFound("user_not_found", "User not found")
				policy.guard_not_self(requester_id, target_id)
				try:
					async with conn.transaction():
						await policy.ensure_no_edge(conn, requester_id, target_id)
						await conn.execute(INSERT_PAIR_SQL, requester_id, target_id)
				except asyncpg.UniqueViolationError:
					audit.inc_friend_op("request", "conflict")
					raise Conflict("already_requested", "Already sent request or already friends") from None
				except Conflict:
					audit.inc_friend_op("request", "conflict")
					raise
		audit.inc_friend_op("request")
		await audit.log_friend_event(
			self._ctx.redis, "request", {"user_id": str(requester_id), "friend_id": str(target_id)}
		)
		payload = FriendEventPayload(user_id=requester_id, friend_id=target_id)
		await self._ctx.notifier.emit_to_user(str(target_id), "friend_request", payload.wire())
		return target_id

	async def accept_friend(self, accepter: AuthenticatedUser, requester_id: UUID | str) -> bool:
		"""Flip both rows to accepted. Returns False when nothing was pending."""
		accepter_id = as_uuid(accepter.id)
		other_id = as_uuid(requester_id)
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				async with conn.transaction():
					changed = _affected(await conn.execute(ACCEPT_PAIR_SQL, accepter_id, other_id))
		if not changed:
			audit.inc_friend_op("accept", "noop")
			return False
		audit.inc_friend_op("accept")
		await audit.log_friend_event(
			self._ctx.redis, "accept", {"user_id": str(accepter_id), "friend_id": str(other_id)}
		)
		payload = FriendEventPayload(user_id=accepter_id, friend_id=other_id).wire()
		for user_id in (other_id, accepter_id):
			await self._ctx.notifier.emit_to_user(str(user_id), "friend_accepted", payload)
		return True

	async def decline_friend(self, accepter: AuthenticatedUser, requester_id: UUID | str) -> int:
		return await self._delete_pair(accepter, requester_id, action="decline")

	async def remove_friend(self, user: AuthenticatedUser, friend_id: UUID | str) -> int:
		return await self._delete_pair(user, friend_id, action="remove")

	async def _delete_pair(self, actor: AuthenticatedUser, other: UUID | str, *, action: str) -> int:
		actor_id = as_uuid(actor.id)
		other_id = as_uuid(other)
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				async with conn.transaction():
					removed = _affected(await conn.execute(DELETE_PAIR_SQL, actor_id, other_id))
		audit.inc_friend_op(action, "ok" if removed else "noop")
		if removed:
			await audit.log_friend_event(
				self._ctx.redis, action, {"user_id": str(actor_id), "friend_id": str(other_id)}
			)
		return removed

	async def list_friends(self, user: AuthenticatedUser) -> List[FriendOut]:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				rows = await conn.fetch(LIST_FRIENDS_SQL, as_uuid(user.id))
		return [_friend_row(row) for row in rows]

	async def list_incoming_requests(self, user: AuthenticatedUser) -> List[FriendOut]:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				rows = await conn.fetch(LIST_INCOMING_SQL, as_uuid(user.id))
		return [_friend_row(row) for row in rows]

	async def are_friends(self, user_a: UUID | str, user_b: UUID | str) -> bool:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				return await are_friends_conn(conn, as_uuid(user_a), as_uuid(user_b))
