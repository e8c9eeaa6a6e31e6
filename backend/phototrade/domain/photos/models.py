"""Domain models for stored photos."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

ALLOWED_CONTENT_PREFIX = "image/"


@dataclass(slots=True)
class Photo:
	"""A photo row. Immutable once written; trades duplicate it."""

	id: UUID
	user_id: UUID
	filename: str
	original_name: str
	description: Optional[str]
	watermarked_filename: Optional[str]
	created_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record) -> "Photo":
		return cls(
			id=UUID(str(record["id"])),
			user_id=UUID(str(record["user_id"])),
			filename=record["filename"],
			original_name=record["original_name"],
			description=record.get("description"),
			watermarked_filename=record.get("watermarked_filename"),
			created_at=record.get("created_at"),
		)

	@property
	def public_filename(self) -> str:
		"""Name safe to show outside the upload flow."""
		return self.watermarked_filename or self.filename
