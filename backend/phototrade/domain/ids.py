"""Identifier parsing shared by the services."""

from __future__ import annotations

from uuid import UUID

from phototrade.domain.errors import ValidationError


def as_uuid(value: UUID | str, reason: str = "invalid_id") -> UUID:
	if isinstance(value, UUID):
		return value
	try:
		return UUID(str(value))
	except (TypeError, ValueError, AttributeError):
		raise ValidationError(reason, "Malformed identifier") from None
