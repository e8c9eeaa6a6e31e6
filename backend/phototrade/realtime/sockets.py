"""Socket.IO namespace that registers client sessions with the notifier."""

from __future__ import annotations

import logging
from typing import Any, Optional

import socketio
from fastapi import HTTPException

from phototrade.infra.auth import AuthenticatedUser, bearer_from_header, verify_access_jwt
from phototrade.obs import metrics as obs_metrics
from phototrade.realtime.notifier import Notifier
from phototrade.settings import settings

logger = logging.getLogger(__name__)


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def _requested_user_id(payload: Any) -> Optional[str]:
	if isinstance(payload, dict):
		payload = payload.get("userId") or payload.get("user_id")
	if payload is None:
		return None
	text = str(payload).strip()
	return text or None


class TradeNamespace(socketio.AsyncNamespace):
	"""Keeps each connected client registered under its user id."""

	def __init__(self, notifier: Notifier) -> None:
		super().__init__(notifier.namespace)
		self._notifier = notifier
		self._sessions: dict[str, AuthenticatedUser] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		scope = environ.get("asgi.scope", environ)
		auth_payload = auth or {}
		token = auth_payload.get("token") or bearer_from_header(_header(scope, "authorization"))
		if token:
			try:
				user = verify_access_jwt(token)
			except HTTPException:
				raise ConnectionRefusedError("invalid_token")
			self._sessions[sid] = user
			self._notifier.join(user.id, sid)
		obs_metrics.socket_connected(self.namespace)
		logger.info("socket connected", extra={"sid": sid, "authenticated": bool(token)})

	async def on_join_user(self, sid: str, payload: Any = None) -> None:
		user_id = _requested_user_id(payload)
		if not user_id:
			await self.emit("join_error", {"reason": "missing_user_id"}, to=sid)
			return
		session_user = self._sessions.get(sid)
		if session_user is not None and session_user.id != user_id:
			await self.emit("join_error", {"reason": "forbidden"}, to=sid)
			return
		if session_user is None and not settings.is_dev():
			await self.emit("join_error", {"reason": "unauthenticated"}, to=sid)
			return
		self._notifier.join(user_id, sid)
		await self.emit("join_ack", {"ok": True, "userId": user_id}, to=sid)

	async def on_disconnect(self, sid: str, reason: Any = None) -> None:
		self._sessions.pop(sid, None)
		user_id = self._notifier.disconnect(sid)
		obs_metrics.socket_disconnected(self.namespace)
		logger.info("socket disconnected", extra={"sid": sid, "target": user_id})
