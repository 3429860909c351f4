"""
chat-relay: chat backend over a hierarchical tree store.

    from chat_relay.backend import ChatBackend
    from chat_relay.store import InMemoryTreeStore

    backend = ChatBackend.create(InMemoryTreeStore())
    chat = await backend.chats.create_individual("alice", "bob", "hi")
"""
