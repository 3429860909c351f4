from chat_relay.notifications.base import (
    CHATS_TOPIC,
    USERS_TOPIC,
    ChatsChanged,
    MessageChanged,
    Notifier,
    messages_topic,
)
from chat_relay.notifications.broadcaster import TopicBroadcaster

__all__ = [
    "CHATS_TOPIC",
    "USERS_TOPIC",
    "ChatsChanged",
    "MessageChanged",
    "Notifier",
    "TopicBroadcaster",
    "messages_topic",
]
