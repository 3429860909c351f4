"""
Chat registry.

Owns chat records, group membership and roles, and the per-participant
'ChatSummary' entries that mirror each chat into the users' profiles.

Creation and deletion are multi-step: the chat record, the summaries and the
first message are separate writes. Each step is grouped into a single patch
where possible, but nothing is rolled back when a later step fails; the
'SummaryReconciler' repairs summaries left behind by such failures.

Authorization rules for groups:

    - the creator is always an admin, whether or not listed in 'admin'
    - only the creator changes roles and deletes the group
    - the creator and admins edit group info and add members
    - the creator cannot be removed by anyone else; removing themself
      deletes the whole group
    - anyone may leave; the creator removes anyone, admins remove non-admins
"""

import asyncio
from typing import Any

from loguru import logger

from chat_relay.data_models.base import keyed_map
from chat_relay.data_models.chat import Chat, ChatSummary, ChatType, Role, individual_chat_id
from chat_relay.data_models.user import UserProfile
from chat_relay.directory.users import UserDirectory
from chat_relay.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from chat_relay.notifications.base import CHATS_TOPIC, USERS_TOPIC, ChatsChanged, Notifier
from chat_relay.registry.lookup import load_chat, require_chat
from chat_relay.registry.messages import MessageLog
from chat_relay.store import paths
from chat_relay.store.base import TreeStore
from chat_relay.utils.database import generate_uid

CREATED = "created"
DELETED = "deleted"


def _unique(user_ids: list[str]) -> list[str]:
    return list(dict.fromkeys(user_id for user_id in user_ids if user_id))


class ChatRegistry:
    def __init__(self, store: TreeStore, notifier: Notifier, users: UserDirectory, messages: MessageLog) -> None:
        self.store = store
        self.notifier = notifier
        self.users = users
        self.messages = messages
        self._creation_lock = asyncio.Lock()

    async def _publish(self, chat_id: str, fields: list[str]) -> None:
        await self.notifier.publish(CHATS_TOPIC, ChatsChanged(chat_id=chat_id, fields_updated=fields))

    async def get_all(self) -> list[Chat]:
        chats = await self.store.get_typed(paths.CHATS, dict[str, Chat]) or {}
        for chat_id, chat in chats.items():
            chat.id = chat_id
        return list(chats.values())

    async def get_by_id(self, chat_id: str) -> Chat | None:
        return await load_chat(self.store, chat_id)

    @staticmethod
    def summary_for(chat: Chat, owner_id: str, profiles: dict[str, UserProfile]) -> ChatSummary:
        """Display data of 'chat' as seen by 'owner_id': the partner for one-to-one chats, the group otherwise."""
        if chat.is_group:
            return ChatSummary(title=chat.title, avatar=chat.avatar, type=ChatType.GROUP, name=chat.title)

        partner_id = next((user_id for user_id in chat.participants if user_id != owner_id), owner_id)
        partner = profiles.get(partner_id)
        if partner is None:
            return ChatSummary(title=partner_id, type=ChatType.INDIVIDUAL, name=partner_id)
        return ChatSummary(
            title=partner.display_name,
            avatar=partner.avatar,
            type=ChatType.INDIVIDUAL,
            name=partner.username or partner.display_name,
        )

    async def create_individual(self, user_a: str, user_b: str, initial_message: str) -> Chat:
        """
        Return the one-to-one chat between 'user_a' and 'user_b', creating it if needed.

        Creation writes the chat and both summaries in one patch, then appends
        'initial_message' from 'user_a'. An existing chat is returned unchanged.
        """
        if not user_a or not user_b or not initial_message:
            raise InvalidArgumentError("Missing parameters")
        if user_a == user_b:
            raise InvalidArgumentError("An individual chat needs two different users")

        chat_id = individual_chat_id(user_a, user_b)
        async with self._creation_lock:
            existing = await load_chat(self.store, chat_id)
            if existing is not None:
                logger.debug(f"Individual chat {chat_id} already exists")
                return existing

            chat = Chat(id=chat_id, type=ChatType.INDIVIDUAL, participants=sorted((user_a, user_b)))
            profiles = await self.users.get_by_ids(chat.participants)
            updates: dict[str, Any] = {paths.chat_path(chat_id): chat}
            for user_id in chat.participants:
                updates[paths.summary_path(user_id, chat_id)] = self.summary_for(chat, user_id, profiles)
            await self.store.patch(updates)

        logger.info(f"Created individual chat {chat_id}")
        await self.messages.append(chat_id, user_a, initial_message)
        await self._publish(chat_id, [CREATED])
        return await require_chat(self.store, chat_id)

    async def create_group(
        self,
        participants: list[str],
        creator_id: str,
        title: str,
        initial_message: str | None = None,
        avatar: str | None = None,
        description: str | None = None,
    ) -> Chat:
        """
        Create a group chat in two patches: record and summaries first, then the first message.

        The creator is added to 'participants' if missing and becomes the only admin.
        """
        if not creator_id or not title:
            raise InvalidArgumentError("Creator and title are required")

        chat = Chat(
            id=generate_uid(),
            type=ChatType.GROUP,
            participants=_unique([creator_id, *participants]),
            title=title,
            name=title,
            description=description,
            avatar=avatar,
            creator_id=creator_id,
            admins={creator_id},
        )
        updates: dict[str, Any] = {paths.chat_path(chat.id): chat}
        for user_id in chat.participants:
            updates[paths.summary_path(user_id, chat.id)] = self.summary_for(chat, user_id, {})
        await self.store.patch(updates)
        logger.info(f"Created group {chat.id} with {len(chat.participants)} participant(s)")

        if initial_message:
            await self.messages.append(chat.id, creator_id, initial_message)
        await self._publish(chat.id, [CREATED])
        return await require_chat(self.store, chat.id)

    async def _require_group(self, chat_id: str) -> Chat:
        chat = await require_chat(self.store, chat_id)
        if not chat.is_group:
            raise InvalidArgumentError(f"Chat {chat_id} is not a group")
        return chat

    async def update_group_info(
        self,
        chat_id: str,
        requester_id: str,
        title: str | None = None,
        description: str | None = None,
        avatar: str | None = None,
    ) -> Chat:
        """Patch the given group fields; 'title' and 'avatar' are copied into every participant's summary."""
        chat = await self._require_group(chat_id)
        if not chat.is_admin(requester_id):
            logger.warning(f"User {requester_id} tried to edit group {chat_id} without being an admin")
            raise PermissionDeniedError("Only the creator or an admin can edit the group")

        fields = {
            key: value
            for key, value in {"title": title, "description": description, "avatar": avatar}.items()
            if value is not None
        }
        if not fields:
            raise InvalidArgumentError("Nothing to update")
        if "title" in fields:
            fields["name"] = fields["title"]
        await self.store.update(paths.chat_path(chat_id), fields)

        summary_updates: dict[str, Any] = {}
        for user_id in chat.participants:
            for key in ("title", "name", "avatar"):
                if key in fields:
                    summary_updates[f"{paths.summary_path(user_id, chat_id)}/{key}"] = fields[key]
        if summary_updates:
            await self.store.patch(summary_updates)

        await self._publish(chat_id, sorted(fields))
        return await require_chat(self.store, chat_id)

    async def update_user_role(self, chat_id: str, requester_id: str, target_id: str, role: str) -> Chat:
        chat = await self._require_group(chat_id)
        if requester_id != chat.creator_id:
            logger.warning(f"User {requester_id} tried to change roles in group {chat_id}")
            raise PermissionDeniedError("Only the creator can change roles")
        try:
            new_role = Role(role)
        except ValueError:
            raise InvalidArgumentError(f"Invalid role {role!r}") from None
        if target_id not in chat.participants:
            raise InvalidArgumentError(f"User {target_id} is not a participant of chat {chat_id}")

        if new_role == Role.ADMIN:
            await self.store.set(f"{paths.admin_path(chat_id)}/{target_id}", True)
        else:
            if target_id == chat.creator_id:
                raise InvalidArgumentError("The creator cannot be demoted")
            await self._drop_admin(chat_id, target_id)

        logger.info(f"User {target_id} is now {new_role} of group {chat_id}")
        await self._publish(chat_id, ["admin"])
        return await require_chat(self.store, chat_id)

    async def _drop_admin(self, chat_id: str, user_id: str) -> None:
        # matches both {userId: true} and legacy {randomKey: userId} entries
        raw = keyed_map(await self.store.get(paths.admin_path(chat_id)))
        if not isinstance(raw, dict):
            return
        stale = [key for key, value in raw.items() if key == user_id or value == user_id]
        if stale:
            await self.store.patch({f"{paths.admin_path(chat_id)}/{key}": None for key in stale})

    async def remove_user(self, chat_id: str, target_id: str, requester_id: str) -> Chat | None:
        """
        Remove 'target_id' from a group.

        Returns the updated chat, or 'None' when the creator removed themself
        and the whole group was deleted.
        """
        chat = await self._require_group(chat_id)
        if target_id not in chat.participants:
            raise NotFoundError(f"User {target_id} is not a participant of chat {chat_id}")

        if target_id == chat.creator_id:
            if requester_id != chat.creator_id:
                logger.warning(f"User {requester_id} tried to remove the creator of group {chat_id}")
                raise PermissionDeniedError("The creator cannot be removed")
            await self._cascade_delete(chat)
            return None

        allowed = (
            requester_id == target_id
            or requester_id == chat.creator_id
            or (chat.is_admin(requester_id) and not chat.is_admin(target_id))
        )
        if not allowed:
            logger.warning(f"User {requester_id} may not remove {target_id} from group {chat_id}")
            raise PermissionDeniedError("You cannot remove this user")

        await self.store.set(
            paths.participants_path(chat_id), [user_id for user_id in chat.participants if user_id != target_id]
        )
        await self.store.patch(
            {
                paths.summary_path(target_id, chat_id): None,
                paths.hidden_chat_path(target_id, chat_id): None,
            }
        )
        if target_id in chat.admins:
            await self._drop_admin(chat_id, target_id)

        logger.info(f"Removed {target_id} from group {chat_id}")
        await self._publish(chat_id, ["participants"])
        return await require_chat(self.store, chat_id)

    async def add_user(self, chat_id: str, new_user_id: str, requester_id: str) -> Chat:
        async with self.messages.lock(chat_id):
            chat = await self._require_group(chat_id)
            if not chat.is_admin(requester_id):
                logger.warning(f"User {requester_id} tried to add members to group {chat_id}")
                raise PermissionDeniedError("Only the creator or an admin can add members")
            if not new_user_id:
                raise InvalidArgumentError("User id is required")
            if new_user_id in chat.participants:
                raise InvalidArgumentError(f"User {new_user_id} is already a participant")

            summary = self.summary_for(chat, new_user_id, {})
            latest = await self.messages.latest(chat)
            if latest is not None:
                summary.last_message = latest.content
                summary.last_user = latest.sender
                summary.timestamp = latest.timestamp

            await self.store.patch(
                {
                    paths.participants_path(chat_id): [*chat.participants, new_user_id],
                    paths.summary_path(new_user_id, chat_id): summary,
                }
            )
        logger.info(f"Added {new_user_id} to group {chat_id}")
        await self._publish(chat_id, ["participants"])
        return await require_chat(self.store, chat_id)

    async def delete_group(self, chat_id: str, requester_id: str) -> None:
        chat = await self._require_group(chat_id)
        if requester_id != chat.creator_id:
            logger.warning(f"User {requester_id} tried to delete group {chat_id}")
            raise PermissionDeniedError("Only the creator can delete the group")
        await self._cascade_delete(chat)

    async def delete_chat(self, chat_id: str, requester_id: str | None = None) -> None:
        """Delete any chat. Without a requester there is no permission check; with one, groups are creator-only."""
        chat = await require_chat(self.store, chat_id)
        if requester_id is not None and chat.is_group and requester_id != chat.creator_id:
            logger.warning(f"User {requester_id} tried to delete group {chat_id}")
            raise PermissionDeniedError("Only the creator can delete the group")
        await self._cascade_delete(chat)

    async def _cascade_delete(self, chat: Chat) -> None:
        updates: dict[str, Any] = {paths.chat_path(chat.id): None}
        for user_id in chat.participants:
            updates[paths.summary_path(user_id, chat.id)] = None
            updates[paths.hidden_chat_path(user_id, chat.id)] = None
        await self.store.patch(updates)
        logger.info(f"Deleted chat {chat.id} and {len(chat.participants)} summary reference(s)")
        await self._publish(chat.id, [DELETED])

    async def mark_read(self, chat_id: str, user_id: str) -> None:
        """Zero the caller's unread count and republish the user list."""
        summary = paths.summary_path(user_id, chat_id)
        async with self.messages.lock(chat_id):
            if not await self.store.exists(summary):
                raise NotFoundError(f"Chat {chat_id} not found for user {user_id}")
            await self.store.update(summary, {"unreadCount": 0})
        await self.notifier.publish(USERS_TOPIC, await self.users.get_all())
