"""FastAPI dependencies resolving services from the application context."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from phototrade.context import AppContext
from phototrade.domain.identity.service import IdentityService
from phototrade.domain.photos.service import PhotoService
from phototrade.domain.social.service import FriendshipService
from phototrade.domain.trades.service import TradeService


def get_context(request: Request) -> AppContext:
	ctx = getattr(request.app.state, "context", None)
	if ctx is None:
		raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="context_unavailable")
	return ctx


def get_identity_service(ctx: AppContext = Depends(get_context)) -> IdentityService:
	return IdentityService(ctx)


def get_photo_service(ctx: AppContext = Depends(get_context)) -> PhotoService:
	return PhotoService(ctx)


def get_friendship_service(ctx: AppContext = Depends(get_context)) -> FriendshipService:
	return FriendshipService(ctx)


def get_trade_service(ctx: AppContext = Depends(get_context)) -> TradeService:
	return TradeService(ctx)
