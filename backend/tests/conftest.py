import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package and the shared fakes are importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
TESTS_ROOT = Path(__file__).resolve().parent
for _path in (BACKEND_ROOT, TESTS_ROOT):
	if str(_path) not in sys.path:
		sys.path.insert(0, str(_path))

# Keep the import-time static mount out of the working tree
os.environ.setdefault("UPLOAD_ROOT", tempfile.mkdtemp(prefix="phototrade-tests-"))

from fakes import FakeDatabase, FakePool  # noqa: E402
from phototrade.context import AppContext, build_deriver  # noqa: E402
from phototrade.main import app  # noqa: E402
from phototrade.realtime.notifier import Notifier  # noqa: E402
from phototrade.settings import settings  # noqa: E402


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	client = FakeRedis(decode_responses=True)
	try:
		yield client
	finally:
		await client.flushall()
		await client.aclose()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Most API tests authenticate via X-User-Id, which is only accepted in dev mode."""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest.fixture
def db():
	return FakeDatabase()


@pytest.fixture
def sio_server():
	server = MagicMock()
	server.emit = AsyncMock()
	return server


@pytest.fixture
def notifier(sio_server):
	return Notifier(sio_server, broadcast_fallback=True)


@pytest.fixture
def test_settings(tmp_path):
	return settings.model_copy(update={"upload_root": str(tmp_path / "uploads"), "environment": "dev"})


@pytest.fixture
def ctx(db, fake_redis, notifier, test_settings):
	deriver = build_deriver(test_settings)
	deriver.ensure_dirs()
	return AppContext(
		settings=test_settings,
		pool=FakePool(db),
		redis=fake_redis,
		notifier=notifier,
		deriver=deriver,
	)


def emitted(server, event):
	"""(payload, to) pairs the fake Socket.IO server sent for ``event``."""
	return [
		(call.args[1], call.kwargs.get("to"))
		for call in server.emit.await_args_list
		if call.args[0] == event
	]


@pytest.fixture
def emitted_events(sio_server):
	return lambda event: emitted(sio_server, event)


@pytest_asyncio.fixture
async def api_client(ctx):
	app.state.context = ctx
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		app.state.context = None
