"""Pydantic schemas for photo endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from phototrade.domain.photos.models import Photo


class PhotoOut(BaseModel):
	id: UUID
	user_id: UUID
	filename: str
	original_name: str
	description: Optional[str] = None
	created_at: Optional[datetime] = None

	@classmethod
	def from_photo(cls, photo: Photo) -> "PhotoOut":
		# raw filenames never leave the service
		return cls(
			id=photo.id,
			user_id=photo.user_id,
			filename=photo.public_filename,
			original_name=photo.original_name,
			description=photo.description,
			created_at=photo.created_at,
		)


class DefaultPhotosResult(BaseModel):
	added: list[UUID]
