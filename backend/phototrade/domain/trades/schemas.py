"""Pydantic schemas for trade endpoints and socket payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from phototrade.domain.trades.models import Trade


class ProposeTradeRequest(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

	to_user_id: UUID
	from_photo_id: UUID
	to_photo_id: UUID


class TradeSummary(BaseModel):
	id: UUID
	from_user_id: UUID
	to_user_id: UUID
	from_photo_id: UUID
	to_photo_id: UUID
	status: Literal["pending", "accepted", "declined"]
	created_at: Optional[datetime] = None
	resolved_at: Optional[datetime] = None

	@classmethod
	def from_trade(cls, trade: Trade) -> "TradeSummary":
		return cls(
			id=trade.id,
			from_user_id=trade.from_user_id,
			to_user_id=trade.to_user_id,
			from_photo_id=trade.from_photo_id,
			to_photo_id=trade.to_photo_id,
			status=trade.status.value,
			created_at=trade.created_at,
			resolved_at=trade.resolved_at,
		)


class TradeRow(TradeSummary):
	"""Trade joined with display data for both parties and both photos."""

	from_username: Optional[str] = None
	to_username: Optional[str] = None
	from_photo_name: Optional[str] = None
	from_photo_filename: Optional[str] = None
	to_photo_name: Optional[str] = None
	to_photo_filename: Optional[str] = None


class AcceptResult(BaseModel):
	trade: TradeSummary
	proposer_copy_id: UUID
	recipient_copy_id: UUID


class TradeEventPayload(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

	trade_id: UUID
	from_user_id: UUID
	to_user_id: UUID

	@classmethod
	def from_trade(cls, trade: Trade) -> "TradeEventPayload":
		return cls(trade_id=trade.id, from_user_id=trade.from_user_id, to_user_id=trade.to_user_id)

	def wire(self) -> dict:
		return self.model_dump(mode="json", by_alias=True)
