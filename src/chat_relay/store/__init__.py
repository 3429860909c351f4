from chat_relay.store.base import ChangeCallback, TreeStore
from chat_relay.store.in_memory import InMemoryTreeStore

__all__ = ["ChangeCallback", "InMemoryTreeStore", "TreeStore"]
