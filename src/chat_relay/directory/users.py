"""
User directory.

CRUD over the profiles stored at 'users/{userId}'. Profiles are created lazily:
by the registration flow on first sign-up or federated login
('initialize_if_missing'), or by the first explicit write to a user's status,
bio or profile fields.

Profile edits that change how a user is displayed are copied into the chat
summaries of their one-to-one chat partners, since those summaries carry the
partner's name and avatar.
"""

import asyncio
import hashlib
import hmac
import secrets
from typing import Any

from loguru import logger

from chat_relay.data_models.chat import Chat, ChatType
from chat_relay.data_models.user import HiddenChat, UserProfile
from chat_relay.errors import InvalidArgumentError, NotFoundError
from chat_relay.store import paths
from chat_relay.store.base import TreeStore

DEFAULT_USERNAME = "Unknown User"


def hash_pin(pin: str, salt: str) -> str:
    return hashlib.sha256((salt + pin).encode("utf-8")).hexdigest()


class UserDirectory:
    def __init__(self, store: TreeStore) -> None:
        self.store = store

    async def get_by_id(self, user_id: str) -> UserProfile | None:
        profile = await self.store.get_typed(paths.user_path(user_id), UserProfile)
        if profile is not None:
            profile.id = user_id
        return profile

    async def require(self, user_id: str) -> UserProfile:
        profile = await self.get_by_id(user_id)
        if profile is None:
            raise NotFoundError(f"User {user_id} not found")
        return profile

    async def get_by_ids(self, user_ids: list[str]) -> dict[str, UserProfile]:
        profiles = await asyncio.gather(*(self.get_by_id(user_id) for user_id in user_ids))
        return {profile.id: profile for profile in profiles if profile is not None}

    async def get_all(self) -> list[UserProfile]:
        profiles = await self.store.get_typed(paths.USERS, dict[str, UserProfile]) or {}
        for user_id, profile in profiles.items():
            profile.id = user_id
        return list(profiles.values())

    async def save(self, profile: UserProfile) -> UserProfile:
        """Create or fully replace a profile."""
        if not profile.id:
            raise InvalidArgumentError("User id is required")
        await self.store.set(paths.user_path(profile.id), profile)
        return profile

    async def initialize_if_missing(self, user_id: str, email: str | None, display_name: str | None) -> UserProfile:
        """
        Make sure a signed-up account has a profile.

        New profiles start 'offline' with the provider's display name as username,
        falling back to the email. Existing profiles only get their email synced.
        """
        profile = await self.get_by_id(user_id)
        if profile is None:
            profile = UserProfile(id=user_id, username=display_name or email or DEFAULT_USERNAME, email=email)
            await self.save(profile)
            logger.info(f"Created profile for user {user_id}")
            return profile

        if email and profile.email != email:
            await self.store.update(paths.user_path(user_id), {"email": email})
            profile.email = email
        logger.debug(f"Profile for user {user_id} already present")
        return profile

    async def update_status(self, user_id: str, status: str) -> None:
        if not status:
            raise InvalidArgumentError("Status is required")
        await self.store.update(paths.user_path(user_id), {"status": status})

    async def update_bio(self, user_id: str, bio: str | None) -> None:
        await self.store.update(paths.user_path(user_id), {"bio": bio or None})

    async def update_profile(
        self, user_id: str, first_name: str, last_name: str, avatar: str | None = None
    ) -> UserProfile:
        """Update name and avatar, then refresh the title shown in every one-to-one partner's summary."""
        fields: dict[str, Any] = {"firstName": first_name, "lastName": last_name}
        if avatar is not None:
            fields["avatar"] = avatar
        await self.store.update(paths.user_path(user_id), fields)
        profile = await self.require(user_id)

        updates: dict[str, Any] = {}
        for chat_id in profile.chat_user:
            chat = await self.store.get_typed(paths.chat_path(chat_id), Chat)
            if chat is None or chat.type != ChatType.INDIVIDUAL:
                continue
            for partner_id in chat.participants:
                if partner_id == user_id:
                    continue
                updates[f"{paths.summary_path(partner_id, chat_id)}/title"] = profile.display_name
                if avatar is not None:
                    updates[f"{paths.summary_path(partner_id, chat_id)}/avatar"] = avatar
        if updates:
            await self.store.patch(updates)
            logger.debug(f"Propagated profile of {user_id} into {len(updates)} summary field(s)")
        return profile

    async def delete(self, user_id: str) -> None:
        await self.store.delete(paths.user_path(user_id))
        logger.info(f"Deleted user {user_id}")

    async def hide_chat(self, user_id: str, chat_id: str, pin: str) -> None:
        if not pin:
            raise InvalidArgumentError("A PIN is required to hide a chat")
        salt = secrets.token_hex(16)
        await self.store.set(paths.hidden_chat_path(user_id, chat_id), HiddenChat(pin=hash_pin(pin, salt), salt=salt))

    async def unhide_chat(self, user_id: str, chat_id: str) -> None:
        await self.store.delete(paths.hidden_chat_path(user_id, chat_id))

    async def verify_pin(self, user_id: str, chat_id: str, pin: str) -> bool:
        hidden = await self.store.get_typed(paths.hidden_chat_path(user_id, chat_id), HiddenChat)
        if hidden is None:
            return False
        if hidden.salt is None:
            return hmac.compare_digest(hidden.pin.encode("utf-8"), pin.encode("utf-8"))
        return hmac.compare_digest(hidden.pin.encode("utf-8"), hash_pin(pin, hidden.salt).encode("utf-8"))

    async def list_for_chat(self) -> dict[str, Any]:
        users = [
            {"id": user.id, "username": user.username, "avatar": user.avatar, "status": user.status}
            for user in await self.get_all()
        ]
        return {"users": users, "count": len(users)}
