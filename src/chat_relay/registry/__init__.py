from chat_relay.registry.chats import ChatRegistry
from chat_relay.registry.messages import MessageLog

__all__ = ["ChatRegistry", "MessageLog"]
