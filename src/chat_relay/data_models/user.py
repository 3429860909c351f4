"""
User profile records.

A profile lives at 'users/{userId}' and embeds everything the clients need to
render a user's home screen: friendships, pending friend requests, PIN-locked
chats and one 'ChatSummary' per chat the user takes part in.
"""

from typing import Any, ClassVar

from pydantic import Field, field_validator

from chat_relay.data_models.base import Record, keyed_map
from chat_relay.data_models.chat import ChatSummary


class HiddenChat(Record):
    """
    PIN lock for a chat hidden from a user's chat list.

    'pin' holds a salted SHA-256 digest. Entries written before hashing was
    introduced have no 'salt' and keep the PIN in clear text.
    """

    pin: str
    salt: str | None = None


class UserProfile(Record):
    broadcast_exclude: ClassVar[set[str]] = {"hidden_chats"}

    id: str = ""
    username: str | None = None
    email: str | None = None
    status: str = "offline"
    avatar: str | None = None
    bio: str | None = None
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    friends: dict[str, str] = Field(default_factory=dict)
    friend_requests: dict[str, str] = Field(default_factory=dict, alias="friendRequests")
    hidden_chats: dict[str, HiddenChat] = Field(default_factory=dict, alias="hiddenChats")
    chat_user: dict[str, ChatSummary] = Field(default_factory=dict, alias="chatUser")

    @field_validator("friends", "friend_requests", "hidden_chats", "chat_user", mode="before")
    @classmethod
    def _maps_from_tree(cls, value: Any) -> Any:
        return keyed_map(value)

    @property
    def display_name(self) -> str:
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.username or self.email or self.id
