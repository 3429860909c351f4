"""
Chat records and the per-user chat summary.

A chat lives at 'chats/{chatId}'. Individual chats have a deterministic id
built from the two participant ids ('individual_chat_id'), which makes their
creation idempotent. Group chats have a random id, a creator and a set of
admins; the creator is always an admin, whether or not it is listed.

'ChatSummary' is the denormalised view of a chat kept inside each participant's
profile at 'users/{userId}/chatUser/{chatId}'. It is what chat lists render
without loading the messages themselves.
"""

from enum import StrEnum
from typing import Any

from pydantic import Field, field_serializer, field_validator

from chat_relay.data_models.base import Record, keyed_map
from chat_relay.utils.time import to_timestamp


class ChatType(StrEnum):
    INDIVIDUAL = "individual"
    GROUP = "group"


class Role(StrEnum):
    ADMIN = "admin"
    MEMBER = "member"


def individual_chat_id(user_a: str, user_b: str) -> str:
    """Id of the one-to-one chat between two users; symmetric in its arguments."""
    return "_".join(sorted((user_a, user_b)))


class Chat(Record):
    """
    A chat record.

    'last_message_id' and 'last_timestamp' point at the newest message. They are
    written together with every append so that edits and deletions can tell
    whether they touch the message shown in the participants' summaries.
    """

    id: str = ""
    type: ChatType = ChatType.INDIVIDUAL
    participants: list[str] = Field(default_factory=list)
    name: str | None = None
    title: str | None = None
    description: str | None = None
    avatar: str | None = None
    creator_id: str | None = Field(default=None, alias="creator")
    admins: set[str] = Field(default_factory=set, alias="admin")
    last_message_id: str | None = Field(default=None, alias="lastMessageId")
    last_timestamp: int | None = Field(default=None, alias="lastTimestamp")

    @field_validator("participants", mode="before")
    @classmethod
    def _participants_from_tree(cls, value: Any) -> Any:
        # the tree store hands back sparse lists as index-keyed maps
        if isinstance(value, dict):
            return [v for _, v in sorted(value.items(), key=lambda item: int(item[0])) if v]
        if isinstance(value, list):
            return [v for v in value if v]
        return value

    @field_validator("admins", mode="before")
    @classmethod
    def _admins_from_tree(cls, value: Any) -> Any:
        value = keyed_map(value)
        if value is None:
            return set()
        if isinstance(value, dict):
            # current shape is {userId: true}; older data stored {randomKey: userId}
            return {key if item is True else item for key, item in value.items() if item}
        return value

    @field_serializer("admins")
    def _admins_to_list(self, admins: set[str]) -> list[str]:
        return sorted(admins)

    @property
    def is_group(self) -> bool:
        return self.type == ChatType.GROUP

    def is_admin(self, user_id: str) -> bool:
        return user_id == self.creator_id or user_id in self.admins

    def to_record(self) -> dict[str, Any]:
        record = super().to_record()
        record.pop("admin", None)
        if self.admins:
            record["admin"] = {user_id: True for user_id in sorted(self.admins)}
        return record


class ChatSummary(Record):
    """Per-user denormalised chat entry: display data, last message and unread count."""

    last_message: str | None = Field(default=None, alias="lastMessage")
    last_user: str | None = Field(default=None, alias="lastUser")
    timestamp: int | None = None
    unread_count: int = Field(default=0, ge=0, alias="unreadCount")
    title: str | None = None
    avatar: str | None = None
    type: ChatType | None = None
    name: str | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _normalise_timestamp(cls, value: Any) -> Any:
        return to_timestamp(value)
