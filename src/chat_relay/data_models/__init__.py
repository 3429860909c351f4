from chat_relay.data_models.chat import Chat, ChatSummary, ChatType, Role, individual_chat_id
from chat_relay.data_models.message import TOMBSTONE, Message
from chat_relay.data_models.user import HiddenChat, UserProfile

__all__ = [
    "TOMBSTONE",
    "Chat",
    "ChatSummary",
    "ChatType",
    "HiddenChat",
    "Message",
    "Role",
    "UserProfile",
    "individual_chat_id",
]
