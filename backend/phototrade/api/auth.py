"""Registration, login and current-user endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from phototrade.api.deps import get_identity_service
from phototrade.domain.identity.schemas import AuthResponse, LoginRequest, RegisterRequest, UserOut
from phototrade.domain.identity.service import IdentityService
from phototrade.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter()


@router.post("/register", response_model=AuthResponse)
async def register(
	payload: RegisterRequest,
	identity: IdentityService = Depends(get_identity_service),
) -> AuthResponse:
	return await identity.register(payload)


@router.post("/login", response_model=AuthResponse)
async def login(
	payload: LoginRequest,
	identity: IdentityService = Depends(get_identity_service),
) -> AuthResponse:
	return await identity.login(payload)


@router.get("/me", response_model=UserOut)
async def me(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	identity: IdentityService = Depends(get_identity_service),
) -> UserOut:
	return await identity.profile(auth_user.id)
