"""Photo upload, listing and trade-partner endpoints."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile

from phototrade.api.deps import get_friendship_service, get_photo_service
from phototrade.domain.photos.schemas import DefaultPhotosResult, PhotoOut
from phototrade.domain.photos.service import PhotoService
from phototrade.domain.social.schemas import FriendOut
from phototrade.domain.social.service import FriendshipService
from phototrade.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter()


@router.post("/photos", response_model=PhotoOut)
async def upload_photo(
	photo: UploadFile = File(...),
	description: Optional[str] = Form(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	photos: PhotoService = Depends(get_photo_service),
) -> PhotoOut:
	# one byte past the limit is enough to reject
	data = await photo.read(photos.max_upload_bytes + 1)
	stored = await photos.upload(
		auth_user,
		data=data,
		original_name=photo.filename,
		content_type=photo.content_type,
		description=description,
	)
	return PhotoOut.from_photo(stored)


@router.get("/photos", response_model=List[PhotoOut])
async def list_my_photos(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	photos: PhotoService = Depends(get_photo_service),
) -> List[PhotoOut]:
	return [PhotoOut.from_photo(photo) for photo in await photos.list_photos_for_owner(auth_user.id)]


@router.post("/photos/defaults", response_model=DefaultPhotosResult)
async def add_default_photos(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	photos: PhotoService = Depends(get_photo_service),
) -> DefaultPhotosResult:
	added = await photos.add_default_photos(auth_user)
	return DefaultPhotosResult(added=[photo.id for photo in added])


@router.get("/users/{user_id}/photos", response_model=List[PhotoOut])
async def list_user_photos(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	photos: PhotoService = Depends(get_photo_service),
) -> List[PhotoOut]:
	return [PhotoOut.from_photo(photo) for photo in await photos.list_photos_for_owner(user_id)]


@router.get("/users", response_model=List[FriendOut])
async def list_trade_partners(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	friends: FriendshipService = Depends(get_friendship_service),
) -> List[FriendOut]:
	return await friends.list_friends(auth_user)
