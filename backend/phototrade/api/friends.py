"""Friend request, acceptance and listing endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from phototrade.api.deps import get_friendship_service
from phototrade.domain.social.schemas import FriendIdBody, FriendOut, FriendRequestBody, MessageOut
from phototrade.domain.social.service import FriendshipService
from phototrade.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/friends")


@router.post("/request", response_model=MessageOut)
async def request_friend(
	payload: FriendRequestBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	friends: FriendshipService = Depends(get_friendship_service),
) -> MessageOut:
	await friends.request_friend(auth_user, payload.friend_username)
	return MessageOut(message="Friend request sent!")


@router.post("/accept", response_model=MessageOut)
async def accept_friend(
	payload: FriendIdBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	friends: FriendshipService = Depends(get_friendship_service),
) -> MessageOut:
	await friends.accept_friend(auth_user, payload.friend_id)
	return MessageOut(message="Friend request accepted!")


@router.post("/decline", response_model=MessageOut)
async def decline_friend(
	payload: FriendIdBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	friends: FriendshipService = Depends(get_friendship_service),
) -> MessageOut:
	await friends.decline_friend(auth_user, payload.friend_id)
	return MessageOut(message="Friend request declined/removed.")


@router.post("/remove", response_model=MessageOut)
async def remove_friend(
	payload: FriendIdBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	friends: FriendshipService = Depends(get_friendship_service),
) -> MessageOut:
	await friends.remove_friend(auth_user, payload.friend_id)
	return MessageOut(message="Friend removed.")


@router.get("", response_model=List[FriendOut])
async def list_friends(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	friends: FriendshipService = Depends(get_friendship_service),
) -> List[FriendOut]:
	return await friends.list_friends(auth_user)


@router.get("/requests", response_model=List[FriendOut])
async def list_friend_requests(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	friends: FriendshipService = Depends(get_friendship_service),
) -> List[FriendOut]:
	return await friends.list_incoming_requests(auth_user)
