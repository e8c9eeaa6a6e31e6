from unittest.mock import AsyncMock

import pytest
import socketio

from phototrade.infra import jwt as jwt_helper
from phototrade.realtime.notifier import Notifier
from phototrade.realtime.sockets import TradeNamespace
from phototrade.settings import settings


def _scope_with_authorization(token: str) -> dict:
	return {
		"headers": [(b"authorization", f"Bearer {token}".encode())],
	}


def _namespace():
	server = socketio.AsyncServer(async_mode="asgi")
	notifier = Notifier(server)
	namespace = TradeNamespace(notifier)
	server.register_namespace(namespace)
	namespace.emit = AsyncMock()
	return namespace, notifier


@pytest.mark.asyncio
async def test_connect_with_token_joins_user():
	namespace, notifier = _namespace()
	token = jwt_helper.encode_access("user-1", "alice")

	await namespace.trigger_event("connect", "sid-1", {"asgi.scope": _scope_with_authorization(token)})

	assert notifier.channels_for("user-1") == {"sid-1"}


@pytest.mark.asyncio
async def test_connect_with_auth_payload_token():
	namespace, notifier = _namespace()
	token = jwt_helper.encode_access("user-2", "bob")

	await namespace.on_connect("sid-2", {"asgi.scope": {"headers": []}}, {"token": token})

	assert notifier.channels_for("user-2") == {"sid-2"}


@pytest.mark.asyncio
async def test_connect_with_bad_token_refused():
	namespace, notifier = _namespace()
	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", {"asgi.scope": _scope_with_authorization("garbage")})
	assert notifier.channels_for("user-1") == frozenset()


@pytest.mark.asyncio
async def test_join_user_must_match_token():
	namespace, notifier = _namespace()
	token = jwt_helper.encode_access("user-1", "alice")
	await namespace.trigger_event("connect", "sid-1", {"asgi.scope": _scope_with_authorization(token)})

	await namespace.trigger_event("join_user", "sid-1", "user-9")

	assert notifier.channels_for("user-9") == frozenset()
	event, payload = namespace.emit.await_args.args[:2]
	assert event == "join_error"
	assert payload == {"reason": "forbidden"}


@pytest.mark.asyncio
async def test_tokenless_join_allowed_in_dev():
	namespace, notifier = _namespace()
	await namespace.trigger_event("connect", "sid-1", {"asgi.scope": {"headers": []}})

	await namespace.trigger_event("join_user", "sid-1", {"userId": "user-3"})

	assert notifier.channels_for("user-3") == {"sid-1"}
	assert namespace.emit.await_args.args[0] == "join_ack"


@pytest.mark.asyncio
async def test_tokenless_join_refused_outside_dev():
	namespace, notifier = _namespace()
	settings.environment = "production"
	await namespace.trigger_event("connect", "sid-1", {"asgi.scope": {"headers": []}})

	await namespace.trigger_event("join_user", "sid-1", "user-3")

	assert notifier.channels_for("user-3") == frozenset()
	assert namespace.emit.await_args.args[1] == {"reason": "unauthenticated"}


@pytest.mark.asyncio
async def test_disconnect_unregisters_channel():
	namespace, notifier = _namespace()
	await namespace.trigger_event("connect", "sid-1", {"asgi.scope": {"headers": []}})
	await namespace.trigger_event("join_user", "sid-1", "user-4")

	await namespace.trigger_event("disconnect", "sid-1")

	assert notifier.channels_for("user-4") == frozenset()
