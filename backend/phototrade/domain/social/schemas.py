"""Pydantic schemas for friendship endpoints and socket payloads."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FriendRequestBody(_CamelModel):
	friend_username: Annotated[str, Field(min_length=1, max_length=30)]


class FriendIdBody(_CamelModel):
	friend_id: UUID


class FriendOut(BaseModel):
	id: UUID
	username: str
	email: str


class FriendEventPayload(_CamelModel):
	user_id: UUID
	friend_id: UUID

	def wire(self) -> dict:
		return self.model_dump(mode="json", by_alias=True)


class MessageOut(BaseModel):
	message: str
