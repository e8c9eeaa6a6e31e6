"""Domain models for the friendship graph."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID


class FriendshipStatus(str, Enum):
	"""States of one directional friend row."""

	PENDING = "pending"
	ACCEPTED = "accepted"


FRIEND_REQUEST_RATE_KIND = "friend:request"
FRIEND_EVENTS_STREAM = "x:friendships.events"


@dataclass(slots=True)
class FriendEdge:
	"""One of the two mirrored rows that make up a relationship."""

	user_id: UUID
	friend_id: UUID
	status: FriendshipStatus
	created_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record) -> "FriendEdge":
		return cls(
			user_id=UUID(str(record["user_id"])),
			friend_id=UUID(str(record["friend_id"])),
			status=FriendshipStatus(record["status"]),
			created_at=record.get("created_at"),
		)
