"""Typed failures shared by every PhotoTrade domain."""

from __future__ import annotations


class PhotoTradeError(Exception):
	"""Base class for domain errors.

	``kind`` is the machine-readable family, ``reason`` narrows it for clients
	and ``message`` is meant for humans.
	"""

	kind: str = "error"
	reason: str = "unknown"
	message: str = "Something went wrong"

	def __init__(self, reason: str | None = None, message: str | None = None) -> None:
		if reason:
			self.reason = reason
		if message:
			self.message = message
		super().__init__(self.reason)


class NotFound(PhotoTradeError):
	kind = "not_found"
	reason = "not_found"
	message = "The requested resource does not exist"


class Conflict(PhotoTradeError):
	kind = "conflict"
	reason = "conflict"
	message = "The request conflicts with the current state"


class Unauthorized(PhotoTradeError):
	kind = "unauthorized"
	reason = "forbidden"
	message = "You are not allowed to do that"


class ValidationError(PhotoTradeError):
	kind = "validation_error"
	reason = "invalid"
	message = "The request is invalid"


class StorageError(PhotoTradeError):
	kind = "storage_error"
	reason = "database_error"
	message = "Database error"


class DependencyFailure(PhotoTradeError):
	kind = "dependency_failure"
	reason = "dependency_failed"
	message = "Failed to process image"


class RateLimited(PhotoTradeError):
	kind = "rate_limited"
	reason = "rate_limited"
	message = "Too many requests, slow down"
