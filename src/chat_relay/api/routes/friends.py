from fastapi import APIRouter, Depends

from chat_relay.api.dependencies import get_backend
from chat_relay.api.schemas import FriendRequest
from chat_relay.backend import ChatBackend
from chat_relay.directory.friends import FriendEntry

router = APIRouter(prefix="/api/friends", tags=["friends"])


@router.get("/{uid}")
async def list_friends(uid: str, backend: ChatBackend = Depends(get_backend)) -> list[FriendEntry]:
    return await backend.friends.list_friends(uid)


@router.get("/requests/{uid}")
async def list_requests(uid: str, backend: ChatBackend = Depends(get_backend)) -> list[FriendEntry]:
    return await backend.friends.list_requests(uid)


@router.post("/request", status_code=204)
async def send_request(payload: FriendRequest, backend: ChatBackend = Depends(get_backend)) -> None:
    await backend.friends.send_request(payload.from_id, payload.to_id)


@router.post("/accept", status_code=204)
async def accept_request(payload: FriendRequest, backend: ChatBackend = Depends(get_backend)) -> None:
    await backend.friends.accept_request(payload.from_id, payload.to_id)


@router.post("/reject", status_code=204)
async def reject_request(payload: FriendRequest, backend: ChatBackend = Depends(get_backend)) -> None:
    await backend.friends.reject_request(payload.from_id, payload.to_id)


@router.delete("/{uid}/{friend_id}", status_code=204)
async def remove_friend(uid: str, friend_id: str, backend: ChatBackend = Depends(get_backend)) -> None:
    await backend.friends.remove_friend(uid, friend_id)
