from chat_relay.data_models.chat import Chat
from chat_relay.errors import NotFoundError
from chat_relay.store import paths
from chat_relay.store.base import TreeStore


async def load_chat(store: TreeStore, chat_id: str) -> Chat | None:
    chat = await store.get_typed(paths.chat_path(chat_id), Chat)
    if chat is not None:
        chat.id = chat_id
    return chat


async def require_chat(store: TreeStore, chat_id: str) -> Chat:
    chat = await load_chat(store, chat_id)
    if chat is None:
        raise NotFoundError(f"Chat {chat_id} not found")
    return chat
