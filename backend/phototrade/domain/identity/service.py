"""Identity store: registration, login and user lookups."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID, uuid4

import asyncpg

from phototrade.context import AppContext
from phototrade.domain.errors import Conflict, NotFound, Unauthorized
from phototrade.domain.identity.models import User
from phototrade.domain.identity.schemas import AuthResponse, LoginRequest, RegisterRequest, UserOut
from phototrade.domain.ids import as_uuid
from phototrade.domain.photos.service import insert_default_photos
from phototrade.infra import jwt as jwt_helper
from phototrade.infra.password import hash_password, verify_password
from phototrade.infra.postgres import storage_errors

logger = logging.getLogger(__name__)

INSERT_USER_SQL = """
INSERT INTO users (id, username, email, password_hash)
VALUES ($1, $2, $3, $4)
RETURNING *
"""


def _user_out(user: User) -> UserOut:
	return UserOut(id=user.id, username=user.username, email=user.email)


class IdentityService:
	def __init__(self, ctx: AppContext) -> None:
		self._ctx = ctx

	def _issue(self, user: User) -> AuthResponse:
		token = jwt_helper.encode_access(
			str(user.id),
			user.username,
			ttl_minutes=self._ctx.settings.access_ttl_minutes,
		)
		return AuthResponse(token=token, user=_user_out(user))

	async def register(self, payload: RegisterRequest) -> AuthResponse:
		"""Create the account and, when enabled, its starter photos atomically."""
		password_hash = hash_password(payload.password)
		email = str(payload.email).lower()
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				try:
					async with conn.transaction():
						record = await conn.fetchrow(
							INSERT_USER_SQL,
							uuid4(),
							payload.username,
							email,
							password_hash,
						)
						user = User.from_record(record)
						if self._ctx.settings.seed_default_photos:
							await insert_default_photos(conn, user.id, self._ctx.settings.default_photos)
				except asyncpg.UniqueViolationError:
					raise Conflict("username_or_email_taken", "Username or email already exists") from None
		logger.info("user registered", extra={"user_id": str(user.id)})
		return self._issue(user)

	async def login(self, payload: LoginRequest) -> AuthResponse:
		user = await self.get_by_username(payload.username)
		if user is None or not verify_password(user.password_hash, payload.password):
			raise Unauthorized("invalid_credentials", "Invalid username or password")
		return self._issue(user)

	async def get_by_username(self, username: str) -> Optional[User]:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				record = await conn.fetchrow("SELECT * FROM users WHERE username = $1", username)
		return User.from_record(record) if record else None

	async def get_user(self, user_id: UUID | str) -> User:
		with storage_errors():
			async with self._ctx.pool.acquire() as conn:
				record = await conn.fetchrow("SELECT * FROM users WHERE id = $1", as_uuid(user_id))
		if record is None:
			raise NotFound("user_not_found", "User not found")
		return User.from_record(record)

	async def profile(self, user_id: UUID | str) -> UserOut:
		return _user_out(await self.get_user(user_id))
