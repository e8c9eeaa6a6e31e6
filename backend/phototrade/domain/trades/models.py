"""Domain models for the trade ledger."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID


class TradeStatus(str, Enum):
	"""pending is the only non-terminal state."""

	PENDING = "pending"
	ACCEPTED = "accepted"
	DECLINED = "declined"


TRADE_PROPOSE_RATE_KIND = "trade:propose"
TRADE_EVENTS_STREAM = "x:trades.events"


@dataclass(slots=True)
class Trade:
	id: UUID
	from_user_id: UUID
	to_user_id: UUID
	from_photo_id: UUID
	to_photo_id: UUID
	status: TradeStatus
	created_at: Optional[datetime] = None
	resolved_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record) -> "Trade":
		return cls(
			id=UUID(str(record["id"])),
			from_user_id=UUID(str(record["from_user_id"])),
			to_user_id=UUID(str(record["to_user_id"])),
			from_photo_id=UUID(str(record["from_photo_id"])),
			to_photo_id=UUID(str(record["to_photo_id"])),
			status=TradeStatus(record["status"]),
			created_at=record.get("created_at"),
			resolved_at=record.get("resolved_at"),
		)
