from fastapi import APIRouter, Depends, Query

from chat_relay.api.dependencies import get_backend
from chat_relay.api.schemas import (
    CreateGroupRequest,
    CreateIndividualRequest,
    GroupUpdateRequest,
    HideChatRequest,
    RoleUpdateRequest,
    UserRef,
)
from chat_relay.backend import ChatBackend
from chat_relay.data_models.chat import Chat, individual_chat_id
from chat_relay.errors import NotFoundError

router = APIRouter(prefix="/api/chats", tags=["chats"])


@router.get("")
async def list_chats(backend: ChatBackend = Depends(get_backend)) -> list[Chat]:
    return await backend.chats.get_all()


@router.get("/{chat_id}")
async def get_chat(chat_id: str, backend: ChatBackend = Depends(get_backend)) -> Chat:
    chat = await backend.chats.get_by_id(chat_id)
    if chat is None:
        raise NotFoundError(f"Chat {chat_id} not found")
    return chat


@router.post("/create-individual")
async def create_individual(payload: CreateIndividualRequest, backend: ChatBackend = Depends(get_backend)) -> dict:
    existed = await backend.chats.get_by_id(individual_chat_id(payload.sender_id, payload.receiver_id)) is not None
    chat = await backend.chats.create_individual(payload.sender_id, payload.receiver_id, payload.message)
    return {"chatId": chat.id, "alreadyExists": existed}


@router.post("/create-group")
async def create_group(payload: CreateGroupRequest, backend: ChatBackend = Depends(get_backend)) -> Chat:
    return await backend.chats.create_group(
        payload.participants,
        payload.creator_id,
        payload.title,
        initial_message=payload.message,
        avatar=payload.avatar,
        description=payload.description,
    )


@router.patch("/{chat_id}")
async def update_group(
    chat_id: str, payload: GroupUpdateRequest, backend: ChatBackend = Depends(get_backend)
) -> Chat:
    return await backend.chats.update_group_info(
        chat_id, payload.requester_id, title=payload.title, description=payload.description, avatar=payload.avatar
    )


@router.patch("/{chat_id}/role")
async def update_role(chat_id: str, payload: RoleUpdateRequest, backend: ChatBackend = Depends(get_backend)) -> Chat:
    return await backend.chats.update_user_role(chat_id, payload.requester_id, payload.target_user_id, payload.role)


@router.delete("/{chat_id}/users/{user_id}")
async def remove_user(
    chat_id: str,
    user_id: str,
    requester_id: str = Query(alias="requesterId"),
    backend: ChatBackend = Depends(get_backend),
) -> dict:
    chat = await backend.chats.remove_user(chat_id, user_id, requester_id)
    return {"chatId": chat_id, "deleted": chat is None}


@router.post("/{chat_id}/users/{user_id}")
async def add_user(
    chat_id: str,
    user_id: str,
    requester_id: str = Query(alias="requesterId"),
    backend: ChatBackend = Depends(get_backend),
) -> Chat:
    return await backend.chats.add_user(chat_id, user_id, requester_id)


@router.delete("/group/{chat_id}", status_code=204)
async def delete_group(
    chat_id: str, requester_id: str = Query(alias="requesterId"), backend: ChatBackend = Depends(get_backend)
) -> None:
    await backend.chats.delete_group(chat_id, requester_id)


@router.delete("/{chat_id}", status_code=204)
async def delete_chat(
    chat_id: str,
    requester_id: str | None = Query(default=None, alias="requesterId"),
    backend: ChatBackend = Depends(get_backend),
) -> None:
    await backend.chats.delete_chat(chat_id, requester_id)


@router.put("/{chat_id}/read", status_code=204)
async def mark_read(chat_id: str, payload: UserRef, backend: ChatBackend = Depends(get_backend)) -> None:
    await backend.chats.mark_read(chat_id, payload.user_id)


@router.post("/{chat_id}/hide", status_code=204)
async def hide_chat(chat_id: str, payload: HideChatRequest, backend: ChatBackend = Depends(get_backend)) -> None:
    await backend.users.hide_chat(payload.user_id, chat_id, payload.pin)


@router.post("/{chat_id}/unhide", status_code=204)
async def unhide_chat(chat_id: str, payload: UserRef, backend: ChatBackend = Depends(get_backend)) -> None:
    await backend.users.unhide_chat(payload.user_id, chat_id)


@router.post("/{chat_id}/verify-pin")
async def verify_pin(chat_id: str, payload: HideChatRequest, backend: ChatBackend = Depends(get_backend)) -> dict:
    return {"valid": await backend.users.verify_pin(payload.user_id, chat_id, payload.pin)}
