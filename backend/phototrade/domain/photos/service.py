"""Asset store: photo rows plus the upload and derivation pipeline."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

import asyncpg
import ulid
from PIL import Image

from phototrade.context import AppContext
from phototrade.domain.errors import Conflict, DependencyFailure, NotFound, ValidationError
from phototrade.domain.ids import as_uuid
from phototrade.domain.photos.models import ALLOWED_CONTENT_PREFIX, Photo
from phototrade.infra.auth import AuthenticatedUser
from phototrade.infra.postgres import storage_errors
from phototrade.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

INSERT_PHOTO_SQL = """
INSERT INTO photos (id, user_id, filename, original_name, description, watermarked_filename)
VALUES ($1, $2, $3, $4, $5, $6)
RETURNING *
"""

SELECT_PHOTO_SQL = "SELECT * FROM photos WHERE id = $1"

LIST_OWNER_PHOTOS_SQL = "SELECT * FROM photos WHERE user_id = $1 ORDER BY created_at DESC"

COUNT_OWNER_PHOTOS_SQL = "SELECT COUNT(*) FROM photos WHERE user_id = $1"


async def insert_photo(
	conn: asyncpg.Connection,
	owner_id: UUID | str,
	filename: str,
	original_name: str,
	description: Optional[str],
	derived_filename: Optional[str],
) -> Photo:
	record = await conn.fetchrow(
		INSERT_PHOTO_SQL,
		uuid4(),
		as_uuid(owner_id),
		filename,
		original_name,
		description,
		derived_filename,
	)
	return Photo.from_record(record)


async def fetch_photo(conn: asyncpg.Connection, photo_id: UUID | str) -> Optional[Photo]:
	record = await conn.fetchrow(SELECT_PHOTO_SQL, as_uuid(photo_id))
	return Photo.from_record(record) if record else None


async def insert_default_photos(
	conn: asyncpg.Connection,
	owner_id: UUID | str,
	defaults: Sequence[Tuple[str, str, str]],
) -> List[Photo]:
	# Seeded files ship already public, so the raw name doubles as the derived one.
	return [
		await insert_photo(conn, owner_id, filename, original_name, description, filename)
		for filename, original_name, description in defaults
	]


def safe_original_name(name: Optional[str]) -> str:
	base = Path(name or "").name
	cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
	return cleaned or "photo"


def _write_bytes(path: Path, data: bytes) -> None:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_bytes(data)


class PhotoService:
	"""Photo metadata and uploads for a single application context."""

	def __init__(self, ctx: AppContext) -> None:
		self._ctx = ctx

	@property
	def max_upload_bytes(self) -> int:
		return self._ctx.settings.max_upload_bytes

	async def create_photo(
		self,
		owner_id: UUID | str,
		filename: str,
		original_name: str,
		description: Optional[str],
		derived_filename: Optional[str],
	) -> UUID:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				photo = await insert_photo(conn, owner_id, filename, original_name, description, derived_filename)
		return photo.id

	async def get_photo(self, photo_id: UUID | str) -> Photo:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				photo = await fetch_photo(conn, photo_id)
		if photo is None:
			raise NotFound("photo_not_found", "Photo not found")
		return photo

	async def list_photos_for_owner(self, owner_id: UUID | str) -> List[Photo]:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				rows = await conn.fetch(LIST_OWNER_PHOTOS_SQL, as_uuid(owner_id))
		return [Photo.from_record(row) for row in rows]

	async def add_default_photos(self, owner: AuthenticatedUser) -> List[Photo]:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				async with conn.transaction():
					count = await conn.fetchval(COUNT_OWNER_PHOTOS_SQL, as_uuid(owner.id))
					if count:
						raise Conflict("already_has_photos", "User already has photos")
					photos = await insert_default_photos(conn, owner.id, self._ctx.settings.default_photos)
		logger.info("default photos added", extra={"owner": owner.id, "count": len(photos)})
		return photos

	async def upload(
		self,
		owner: AuthenticatedUser,
		*,
		data: bytes,
		original_name: Optional[str],
		content_type: Optional[str],
		description: Optional[str] = None,
	) -> Photo:
		if not content_type or not content_type.lower().startswith(ALLOWED_CONTENT_PREFIX):
			obs_metrics.inc_photo_upload("rejected")
			raise ValidationError("not_an_image", "Only image files are allowed")
		if not data:
			obs_metrics.inc_photo_upload("rejected")
			raise ValidationError("empty_file", "Uploaded file is empty")
		if len(data) > self._ctx.settings.max_upload_bytes:
			obs_metrics.inc_photo_upload("rejected")
			raise ValidationError("file_too_large", "Uploaded file is too large")

		display_name = Path(original_name or "").name or "photo"
		username = owner.username or await self._username_for(owner.id)
		deriver = self._ctx.deriver
		raw_name = f"{ulid.new().str}-{safe_original_name(original_name)}"
		await asyncio.to_thread(_write_bytes, deriver.original_dir / raw_name, data)
		try:
			derived_name = await self._derive(raw_name, username)
			with storage_errors():
				async with self._ctx.pool.acquire() as conn:
					photo = await insert_photo(conn, owner.id, raw_name, display_name, description, derived_name)
		except Exception:
			# no row, no files
			await self._discard(raw_name)
			raise
		obs_metrics.inc_photo_upload("ok")
		return photo

	async def _derive(self, raw_name: str, username: str) -> str:
		try:
			return await asyncio.to_thread(self._ctx.deriver.derive, raw_name, username)
		except Image.DecompressionBombError as exc:
			obs_metrics.inc_photo_upload("rejected")
			raise ValidationError("image_too_large", "Image dimensions are too large") from exc
		except (OSError, ValueError) as exc:
			obs_metrics.inc_photo_upload("derivation_failed")
			logger.warning("derivation failed", exc_info=True, extra={"raw": raw_name})
			raise DependencyFailure("derivation_failed") from exc

	async def _discard(self, raw_name: str) -> None:
		deriver = self._ctx.deriver
		for path in (deriver.original_dir / raw_name, deriver.protected_dir / deriver.derived_name(raw_name)):
			await asyncio.to_thread(path.unlink, missing_ok=True)

	async def _username_for(self, user_id: str) -> str:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				username = await conn.fetchval("SELECT username FROM users WHERE id = $1", as_uuid(user_id))
		if username is None:
			raise NotFound("user_not_found", "User not found")
		return username
