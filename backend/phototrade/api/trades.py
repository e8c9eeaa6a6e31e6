"""Trade proposal and resolution endpoints."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from phototrade.api.deps import get_trade_service
from phototrade.domain.trades.schemas import AcceptResult, ProposeTradeRequest, TradeRow, TradeSummary
from phototrade.domain.trades.service import TradeService
from phototrade.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/trades")


@router.post("", response_model=TradeSummary)
async def propose_trade(
	payload: ProposeTradeRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	trades: TradeService = Depends(get_trade_service),
) -> TradeSummary:
	return await trades.propose(auth_user, payload.to_user_id, payload.from_photo_id, payload.to_photo_id)


@router.get("", response_model=List[TradeRow])
async def list_trades(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	trades: TradeService = Depends(get_trade_service),
) -> List[TradeRow]:
	return await trades.list_for_user(auth_user)


@router.get("/{trade_id}", response_model=TradeRow)
async def get_trade(
	trade_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	trades: TradeService = Depends(get_trade_service),
) -> TradeRow:
	return await trades.get(trade_id, auth_user)


@router.put("/{trade_id}/accept", response_model=AcceptResult)
async def accept_trade(
	trade_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	trades: TradeService = Depends(get_trade_service),
) -> AcceptResult:
	return await trades.accept(trade_id, auth_user)


@router.put("/{trade_id}/decline", response_model=TradeSummary)
async def decline_trade(
	trade_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	trades: TradeService = Depends(get_trade_service),
) -> TradeSummary:
	return await trades.decline(trade_id, auth_user)
