"""Trade ledger: proposals and their one-shot resolution.

Resolution hinges on a single conditional UPDATE guarded by
``status = 'pending'``. Of any number of concurrent accept/decline calls on
the same trade exactly one gets a row back; the others fall through to a
diagnostic read and fail without touching photos. Accepting duplicates both
photos inside the same transaction as the status flip.
"""

from __future__ import annotations

import logging
from typing import List, NoReturn
from uuid import UUID, uuid4

import asyncpg

from phototrade.context import AppContext
from phototrade.domain.errors import Conflict, NotFound, PhotoTradeError, StorageError, Unauthorized
from phototrade.domain.ids import as_uuid
from phototrade.domain.photos.models import Photo
from phototrade.domain.photos.service import fetch_photo, insert_photo
from phototrade.domain.social.service import are_friends_conn
from phototrade.domain.trades import audit, policy
from phototrade.domain.trades.models import Trade, TradeStatus
from phototrade.domain.trades.schemas import AcceptResult, TradeEventPayload, TradeRow, TradeSummary
from phototrade.infra.auth import AuthenticatedUser
from phototrade.infra.postgres import storage_errors

logger = logging.getLogger(__name__)

INSERT_TRADE_SQL = """
INSERT INTO trades (id, from_user_id, to_user_id, from_photo_id, to_photo_id, status)
VALUES ($1, $2, $3, $4, $5, 'pending')
RETURNING *
"""

RESOLVE_TRADE_SQL = """
UPDATE trades
SET status = $3, resolved_at = NOW()
WHERE id = $1 AND to_user_id = $2 AND status = 'pending'
RETURNING *
"""

TRADE_STATE_SQL = "SELECT to_user_id, status FROM trades WHERE id = $1"

_ENRICHED_TRADE_SQL = """
SELECT t.*,
	fu.username AS from_username,
	tu.username AS to_username,
	fp.original_name AS from_photo_name,
	COALESCE(fp.watermarked_filename, fp.filename) AS from_photo_filename,
	tp.original_name AS to_photo_name,
	COALESCE(tp.watermarked_filename, tp.filename) AS to_photo_filename
FROM trades t
JOIN users fu ON fu.id = t.from_user_id
JOIN users tu ON tu.id = t.to_user_id
JOIN photos fp ON fp.id = t.from_photo_id
JOIN photos tp ON tp.id = t.to_photo_id
"""

LIST_TRADES_SQL = _ENRICHED_TRADE_SQL + """
WHERE t.from_user_id = $1 OR t.to_user_id = $1
ORDER BY t.created_at DESC
"""

GET_TRADE_SQL = _ENRICHED_TRADE_SQL + "WHERE t.id = $1"


def _record_to_row(record) -> TradeRow:
	trade = Trade.from_record(record)
	return TradeRow(
		**TradeSummary.from_trade(trade).model_dump(),
		from_username=record.get("from_username"),
		to_username=record.get("to_username"),
		from_photo_name=record.get("from_photo_name"),
		from_photo_filename=record.get("from_photo_filename"),
		to_photo_name=record.get("to_photo_name"),
		to_photo_filename=record.get("to_photo_filename"),
	)


async def _raise_resolve_failure(conn: asyncpg.Connection, trade_id: UUID, actor_id: UUID) -> NoReturn:
	# Runs after the conditional write found nothing, in the same transaction.
	state = await conn.fetchrow(TRADE_STATE_SQL, trade_id)
	if state is None:
		raise NotFound("trade_not_found", "Trade not found")
	if UUID(str(state["to_user_id"])) != actor_id:
		raise Unauthorized("not_recipient", "Only the recipient can resolve this trade")
	raise Conflict("trade_not_pending", "Trade has already been resolved")


async def _flip_status(conn: asyncpg.Connection, trade_id: UUID, actor_id: UUID, status: TradeStatus) -> Trade:
	record = await conn.fetchrow(RESOLVE_TRADE_SQL, trade_id, actor_id, status.value)
	if record is None:
		await _raise_resolve_failure(conn, trade_id, actor_id)
	return Trade.from_record(record)


async def _copy_photo(conn: asyncpg.Connection, source: Photo, new_owner: UUID) -> Photo:
	return await insert_photo(
		conn,
		new_owner,
		source.filename,
		source.original_name,
		source.description,
		source.watermarked_filename,
	)


class TradeService:
	def __init__(self, ctx: AppContext) -> None:
		self._ctx = ctx

	async def propose(
		self,
		proposer: AuthenticatedUser,
		to_user_id: UUID | str,
		from_photo_id: UUID | str,
		to_photo_id: UUID | str,
	) -> TradeSummary:
		from_id = as_uuid(proposer.id)
		to_id = as_uuid(to_user_id)
		policy.guard_not_self(from_id, to_id)
		await policy.enforce_proposal_limit(
			self._ctx.redis, proposer.id, self._ctx.settings.trade_proposals_per_minute
		)
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				async with conn.transaction():
					if not await conn.fetchval("SELECT 1 FROM users WHERE id = $1", to_id):
						raise NotFound("user_not_found", "User not found")
					from_photo = await fetch_photo(conn, from_photo_id)
					to_photo = await fetch_photo(conn, to_photo_id)
					if from_photo is None or to_photo is None:
						raise NotFound("photo_not_found", "Photo not found")
					policy.guard_ownership(from_photo, from_id, to_photo, to_id)
					if not await are_friends_conn(conn, from_id, to_id):
						raise Unauthorized("not_friends", "You can only trade with friends")
					record = await conn.fetchrow(
						INSERT_TRADE_SQL, uuid4(), from_id, to_id, from_photo.id, to_photo.id
					)
		trade = Trade.from_record(record)
		audit.inc_proposed()
		await audit.log_trade_event(
			self._ctx.redis,
			"proposed",
			{"trade_id": str(trade.id), "from_user_id": str(from_id), "to_user_id": str(to_id)},
		)
		await self._ctx.notifier.emit_addressed(
			str(to_id), "new_trade", TradeEventPayload.from_trade(trade).wire()
		)
		return TradeSummary.from_trade(trade)

	async def accept(self, trade_id: UUID | str, actor: AuthenticatedUser) -> AcceptResult:
		"""Flip to accepted and give each party a copy of the other's photo."""
		trade_uuid = as_uuid(trade_id)
		actor_id = as_uuid(actor.id)
		try:
			with storage_errors():
				async with self._ctx.pool.acquire() as conn:
					async with conn.transaction():
						trade = await _flip_status(conn, trade_uuid, actor_id, TradeStatus.ACCEPTED)
						from_photo = await fetch_photo(conn, trade.from_photo_id)
						to_photo = await fetch_photo(conn, trade.to_photo_id)
						if from_photo is None or to_photo is None:
							raise StorageError("photo_missing", "A traded photo no longer exists")
						proposer_copy = await _copy_photo(conn, to_photo, trade.from_user_id)
						recipient_copy = await _copy_photo(conn, from_photo, trade.to_user_id)
		except PhotoTradeError as exc:
			audit.inc_resolved("accept", exc.reason)
			raise
		audit.inc_resolved("accept", "ok")
		logger.info(
			"trade accepted",
			extra={"trade_id": str(trade.id), "proposer_copy": str(proposer_copy.id), "recipient_copy": str(recipient_copy.id)},
		)
		await self._after_resolution(trade, "trade_accepted")
		return AcceptResult(
			trade=TradeSummary.from_trade(trade),
			proposer_copy_id=proposer_copy.id,
			recipient_copy_id=recipient_copy.id,
		)

	async def decline(self, trade_id: UUID | str, actor: AuthenticatedUser) -> TradeSummary:
		trade_uuid = as_uuid(trade_id)
		actor_id = as_uuid(actor.id)
		try:
			with storage_errors():
				async with self._ctx.pool.acquire() as conn:
					async with conn.transaction():
						trade = await _flip_status(conn, trade_uuid, actor_id, TradeStatus.DECLINED)
		except PhotoTradeError as exc:
			audit.inc_resolved("decline", exc.reason)
			raise
		audit.inc_resolved("decline", "ok")
		await self._after_resolution(trade, "trade_declined")
		return TradeSummary.from_trade(trade)

	async def _after_resolution(self, trade: Trade, event: str) -> None:
		await audit.log_trade_event(
			self._ctx.redis,
			trade.status.value,
			{"trade_id": str(trade.id), "from_user_id": str(trade.from_user_id), "to_user_id": str(trade.to_user_id)},
		)
		payload = TradeEventPayload.from_trade(trade).wire()
		for user_id in (trade.from_user_id, trade.to_user_id):
			await self._ctx.notifier.emit_to_user(str(user_id), event, payload)

	async def get(self, trade_id: UUID | str, viewer: AuthenticatedUser) -> TradeRow:
		viewer_id = as_uuid(viewer.id)
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				record = await conn.fetchrow(GET_TRADE_SQL, as_uuid(trade_id))
		if record is None:
			raise NotFound("trade_not_found", "Trade not found")
		row = _record_to_row(record)
		# non-parties cannot learn the trade exists
		if viewer_id not in (row.from_user_id, row.to_user_id):
			raise NotFound("trade_not_found", "Trade not found")
		return row

	async def list_for_user(self, user: AuthenticatedUser) -> List[TradeRow]:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				rows = await conn.fetch(LIST_TRADES_SQL, as_uuid(user.id))
		return [_record_to_row(row) for row in rows]
