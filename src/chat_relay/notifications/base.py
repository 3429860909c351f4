"""
Change notification fan-out.

'Notifier' publishes payloads on named topics to whoever is subscribed at that
moment. Delivery is at most once: nothing is persisted or replayed, nothing is
acknowledged, and bursts are not coalesced.

Topics and their payloads:

    '/topic/chats'               - 'ChatsChanged' delta after a request-path
                                   mutation, or the full chat list from the
                                   change relay.
    '/topic/users'               - the full user list.
    '/topic/messages/{chatId}'   - 'MessageChanged' pointer; subscribers re-fetch.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CHATS_TOPIC = "/topic/chats"
USERS_TOPIC = "/topic/users"


def messages_topic(chat_id: str) -> str:
    return f"/topic/messages/{chat_id}"


class ChatsChanged(BaseModel):
    """Which fields of which chat changed."""

    model_config = ConfigDict(populate_by_name=True)

    chat_id: str = Field(alias="chatId")
    fields_updated: list[str] = Field(alias="fieldsUpdated")


class MessageChanged(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat_id: str = Field(alias="chatId")
    message_id: str = Field(alias="messageId")


class Notifier(ABC):
    @abstractmethod
    async def publish(self, topic: str, payload: Any) -> None:
        """Deliver 'payload' to the current subscribers of 'topic'; never raises on delivery failure."""
        pass
