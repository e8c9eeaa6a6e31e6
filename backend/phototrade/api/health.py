"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from phototrade.settings import settings

router = APIRouter()


@router.get("/health")
async def health() -> dict:
	return {"status": "OK", "message": "Photo Trading API is running", "service": settings.service_name}
