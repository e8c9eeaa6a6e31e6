"""FastAPI application entrypoint.

Serve with ``uvicorn phototrade.main:socket_app`` so Socket.IO and HTTP share
one port.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

from phototrade.api import auth, friends, health, photos, trades
from phototrade.api.errors import install_error_handlers
from phototrade.api.middleware_request_id import RequestIdMiddleware
from phototrade.context import build_deriver, close_context, create_context
from phototrade.infra.schema import ensure_schema
from phototrade.obs import init as obs_init
from phototrade.realtime import Notifier, TradeNamespace
from phototrade.settings import settings

logger = logging.getLogger(__name__)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:8081", "http://localhost:19006"] if settings.is_dev() else []

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
notifier = Notifier(sio, broadcast_fallback=settings.notify_broadcast_fallback)
sio.register_namespace(TradeNamespace(notifier))


@asynccontextmanager
async def lifespan(app: FastAPI):
	ctx = await create_context(settings, notifier=notifier)
	await ensure_schema(ctx.pool)
	app.state.context = ctx
	logger.info("phototrade api started", extra={"environment": settings.environment})
	try:
		yield
	finally:
		app.state.context = None
		await close_context(ctx)


app = FastAPI(title="PhotoTrade API", lifespan=lifespan)
install_error_handlers(app)

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Only watermarked derivatives are served; raw uploads stay unmounted.
_deriver = build_deriver(settings)
_deriver.ensure_dirs()
app.mount("/uploads", StaticFiles(directory=str(_deriver.protected_dir), check_dir=True), name="uploads")

socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

# Ensure every request carries an X-Request-Id and make it available on request.state
app.add_middleware(RequestIdMiddleware)

app.include_router(health.router, prefix="/api", tags=["ops"])
app.include_router(auth.router, prefix="/api", tags=["identity"])
app.include_router(photos.router, prefix="/api", tags=["photos"])
app.include_router(friends.router, prefix="/api", tags=["friends"])
app.include_router(trades.router, prefix="/api", tags=["trades"])
