"""Request bodies. Clients send camelCase keys; Python code uses snake_case."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateIndividualRequest(Payload):
    sender_id: str
    receiver_id: str
    message: str


class CreateGroupRequest(Payload):
    creator_id: str
    title: str
    participants: list[str] = Field(default_factory=list)
    message: str | None = None
    avatar: str | None = None
    description: str | None = None


class GroupUpdateRequest(Payload):
    requester_id: str
    title: str | None = None
    description: str | None = None
    avatar: str | None = None


class RoleUpdateRequest(Payload):
    requester_id: str
    target_user_id: str
    role: str


class UserRef(Payload):
    user_id: str


class HideChatRequest(Payload):
    user_id: str
    pin: str


class SendMessageRequest(Payload):
    sender: str
    content: str = ""
    image: str | None = None


class EditMessageRequest(Payload):
    content: str


class StatusRequest(Payload):
    status: str


class BioRequest(Payload):
    bio: str | None = None


class ProfileRequest(Payload):
    first_name: str
    last_name: str
    avatar: str | None = None


class FriendRequest(Payload):
    from_id: str
    to_id: str


class CredentialsRequest(Payload):
    email: str
    password: str


class EmailRequest(Payload):
    email: str


class LogoutRequest(Payload):
    uid: str


class FederatedLoginRequest(Payload):
    id_token: str
