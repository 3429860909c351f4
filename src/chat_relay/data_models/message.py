"""
Message records.

Messages live at 'chats/{chatId}/messages/{messageId}' and are never removed
individually: a deleted message keeps its id, sender and timestamp, has its
content replaced by 'TOMBSTONE' and its image cleared. Messages only disappear
together with their chat.
"""

from typing import Any

from pydantic import field_validator

from chat_relay.data_models.base import Record
from chat_relay.utils.time import to_timestamp

TOMBSTONE = "Message deleted"


class Message(Record):
    """A single chat message; 'image' is an opaque reference (URL or base64 payload)."""

    id: str = ""
    sender: str
    content: str = ""
    image: str | None = None
    timestamp: int
    read: bool = False
    deleted: bool = False

    @field_validator("timestamp", mode="before")
    @classmethod
    def _normalise_timestamp(cls, value: Any) -> Any:
        return to_timestamp(value)

    def tombstoned(self) -> "Message":
        return self.model_copy(update={"content": TOMBSTONE, "image": None, "deleted": True})
