"""Best-effort fan-out of domain events to live Socket.IO sessions.

A user may hold several sessions at once (phone + tablet); every session
registered under the user's key receives the event. Delivery never raises:
a missed event is recovered by the client's next fetch.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Mapping, Optional

import socketio

from phototrade.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class Notifier:
	"""Process-wide registry of user id to delivery channels (socket sids)."""

	def __init__(
		self,
		server: Optional[socketio.AsyncServer] = None,
		*,
		namespace: str = "/",
		broadcast_fallback: bool = True,
	) -> None:
		self._server = server
		self._namespace = namespace
		self._broadcast_fallback = broadcast_fallback
		self._channels: dict[str, set[str]] = defaultdict(set)
		self._owners: dict[str, str] = {}

	@property
	def namespace(self) -> str:
		return self._namespace

	def attach(self, server: socketio.AsyncServer) -> None:
		self._server = server

	def join(self, user_id: str, sid: str) -> None:
		previous = self._owners.get(sid)
		if previous is not None and previous != user_id:
			self._drop(previous, sid)
		self._owners[sid] = user_id
		self._channels[user_id].add(sid)

	def disconnect(self, sid: str) -> Optional[str]:
		user_id = self._owners.pop(sid, None)
		if user_id is not None:
			self._drop(user_id, sid)
		return user_id

	def _drop(self, user_id: str, sid: str) -> None:
		sids = self._channels.get(user_id)
		if not sids:
			return
		sids.discard(sid)
		if not sids:
			del self._channels[user_id]

	def channels_for(self, user_id: str) -> frozenset[str]:
		return frozenset(self._channels.get(str(user_id), ()))

	async def emit_to_user(self, user_id: str, event: str, payload: Mapping[str, Any]) -> int:
		"""Deliver to every channel of ``user_id``; returns how many sends succeeded."""
		delivered = 0
		for sid in self.channels_for(str(user_id)):
			if await self._send(event, dict(payload), to=sid):
				delivered += 1
		if delivered == 0:
			logger.debug("no live channel for user", extra={"event": event, "target": str(user_id)})
		return delivered

	async def broadcast(self, event: str, payload: Mapping[str, Any]) -> bool:
		return await self._send(event, dict(payload), to=None)

	async def emit_addressed(self, user_id: str, event: str, payload: Mapping[str, Any]) -> int:
		"""Emit to the user, or broadcast when they have no tracked channel."""
		if self.channels_for(str(user_id)) or not self._broadcast_fallback:
			return await self.emit_to_user(user_id, event, payload)
		await self.broadcast(event, payload)
		return 0

	async def _send(self, event: str, payload: dict[str, Any], *, to: Optional[str]) -> bool:
		if self._server is None:
			return False
		try:
			await self._server.emit(event, payload, to=to, namespace=self._namespace)
		except Exception:
			obs_metrics.notify_failed(event)
			logger.warning("socket delivery failed", exc_info=True, extra={"event": event, "sid": to})
			return False
		obs_metrics.socket_event(self._namespace, event)
		return True
