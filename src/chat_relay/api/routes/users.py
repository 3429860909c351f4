from fastapi import APIRouter, Depends

from chat_relay.api.dependencies import get_backend
from chat_relay.api.schemas import BioRequest, ProfileRequest, StatusRequest
from chat_relay.backend import ChatBackend
from chat_relay.data_models.user import UserProfile

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("")
async def list_users(backend: ChatBackend = Depends(get_backend)) -> list[UserProfile]:
    return await backend.users.get_all()


@router.get("/chatlist")
async def chat_list(backend: ChatBackend = Depends(get_backend)) -> dict:
    """Users offered when starting a new chat."""
    return await backend.users.list_for_chat()


@router.get("/{uid}")
async def get_user(uid: str, backend: ChatBackend = Depends(get_backend)) -> UserProfile:
    return await backend.users.require(uid)


@router.put("/{uid}/status", status_code=204)
async def update_status(uid: str, payload: StatusRequest, backend: ChatBackend = Depends(get_backend)) -> None:
    await backend.users.update_status(uid, payload.status)


@router.patch("/{uid}/bio", status_code=204)
async def update_bio(uid: str, payload: BioRequest, backend: ChatBackend = Depends(get_backend)) -> None:
    await backend.users.update_bio(uid, payload.bio)


@router.put("/{uid}/profile")
async def update_profile(uid: str, payload: ProfileRequest, backend: ChatBackend = Depends(get_backend)) -> UserProfile:
    return await backend.users.update_profile(uid, payload.first_name, payload.last_name, payload.avatar)


@router.delete("/{uid}", status_code=204)
async def delete_user(uid: str, backend: ChatBackend = Depends(get_backend)) -> None:
    await backend.users.delete(uid)
