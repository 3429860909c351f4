from fastapi import APIRouter, Depends

from chat_relay.api.dependencies import get_backend
from chat_relay.api.schemas import EditMessageRequest, SendMessageRequest
from chat_relay.backend import ChatBackend
from chat_relay.data_models.message import Message

router = APIRouter(prefix="/api/chats/{chat_id}/messages", tags=["messages"])


@router.get("")
async def list_messages(chat_id: str, backend: ChatBackend = Depends(get_backend)) -> list[Message]:
    return await backend.messages.list(chat_id)


@router.post("", status_code=201)
async def send_message(
    chat_id: str, payload: SendMessageRequest, backend: ChatBackend = Depends(get_backend)
) -> Message:
    return await backend.messages.append(chat_id, payload.sender, payload.content, payload.image)


@router.get("/{message_id}")
async def get_message(chat_id: str, message_id: str, backend: ChatBackend = Depends(get_backend)) -> Message:
    return await backend.messages.get_by_id(chat_id, message_id)


@router.patch("/{message_id}")
async def edit_message(
    chat_id: str, message_id: str, payload: EditMessageRequest, backend: ChatBackend = Depends(get_backend)
) -> Message:
    return await backend.messages.update(chat_id, message_id, payload.content)


@router.delete("/{message_id}")
async def delete_message(chat_id: str, message_id: str, backend: ChatBackend = Depends(get_backend)) -> Message:
    return await backend.messages.soft_delete(chat_id, message_id)
