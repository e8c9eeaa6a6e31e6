"""Domain models for user accounts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID


@dataclass(slots=True)
class User:
	id: UUID
	username: str
	email: str
	password_hash: str
	created_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record) -> "User":
		return cls(
			id=UUID(str(record["id"])),
			username=record["username"],
			email=record["email"],
			password_hash=record["password_hash"],
			created_at=record.get("created_at"),
		)
