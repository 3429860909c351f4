"""
Per-chat message log.

Messages are appended under 'chats/{chatId}/messages'. Each chat record keeps a
pointer to its newest message ('lastMessageId', 'lastTimestamp') that is
written in the same patch as the message itself and as every participant's
summary update. Edits and deletions compare against that pointer to decide
whether the summaries, which display the newest message, have to change too.
Chats created before the pointer existed fall back to scanning their messages.

Within one process, writes to the same chat are serialised by a per-chat lock
so that the pointer read, the timestamp assignment and the patch happen as one
step. Nothing coordinates writers in different processes.
"""

import asyncio
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from loguru import logger

from chat_relay.data_models.chat import Chat
from chat_relay.data_models.message import TOMBSTONE, Message
from chat_relay.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from chat_relay.notifications.base import CHATS_TOPIC, ChatsChanged, MessageChanged, Notifier, messages_topic
from chat_relay.registry.lookup import load_chat, require_chat
from chat_relay.store import paths
from chat_relay.store.base import TreeStore
from chat_relay.utils.database import generate_uid
from chat_relay.utils.time import get_current_timestamp

SUMMARY_FIELDS = ["lastMessage", "lastUser", "timestamp"]

Rewrite = tuple[dict[str, Any], str]
"""Message fields to write and the text the summaries show if the message is the newest."""


def _sort_key(message: Message) -> tuple[int, str]:
    return message.timestamp, message.id


class MessageLog:
    def __init__(self, store: TreeStore, notifier: Notifier) -> None:
        self.store = store
        self.notifier = notifier
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def list(self, chat_id: str) -> list[Message]:
        """All messages of a chat, oldest first."""
        messages = await self.store.get_typed(paths.messages_path(chat_id), dict[str, Message])
        if messages is None:
            if not await self.store.exists(paths.chat_path(chat_id)):
                raise NotFoundError(f"Chat {chat_id} not found")
            return []
        for message_id, message in messages.items():
            message.id = message_id
        return sorted(messages.values(), key=_sort_key)

    async def get_by_id(self, chat_id: str, message_id: str) -> Message:
        message = await self.store.get_typed(paths.message_path(chat_id, message_id), Message)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found in chat {chat_id}")
        message.id = message_id
        return message

    async def latest(self, chat: Chat) -> Message | None:
        """Newest message of 'chat', following the pointer when there is one."""
        if chat.last_message_id:
            try:
                return await self.get_by_id(chat.id, chat.last_message_id)
            except NotFoundError:
                logger.warning(f"Chat {chat.id} points at missing message {chat.last_message_id}")
        messages = await self.list(chat.id)
        return messages[-1] if messages else None

    async def _is_latest(self, chat: Chat, message: Message) -> bool:
        latest = await self.latest(chat)
        return latest is not None and latest.id == message.id

    async def append(self, chat_id: str, sender: str, content: str, image: str | None = None) -> Message:
        """
        Add a message and refresh every participant's summary in one patch.

        Every participant except the sender gets their unread count incremented.
        """
        if not sender:
            raise InvalidArgumentError("Sender is required")
        if not content and not image:
            raise InvalidArgumentError("A message needs content or an image")

        async with self._locks[chat_id]:
            chat = await require_chat(self.store, chat_id)
            if sender not in chat.participants:
                raise PermissionDeniedError(f"User {sender} is not a participant of chat {chat_id}")

            timestamp = max(get_current_timestamp(), (chat.last_timestamp or 0) + 1)
            message = Message(id=generate_uid(), sender=sender, content=content or "", image=image, timestamp=timestamp)

            recipients = [user_id for user_id in chat.participants if user_id != sender]
            unread_counts = await asyncio.gather(
                *(self.store.get(f"{paths.summary_path(user_id, chat_id)}/unreadCount") for user_id in recipients)
            )

            updates: dict[str, Any] = {
                paths.message_path(chat_id, message.id): message,
                f"{paths.chat_path(chat_id)}/lastMessageId": message.id,
                f"{paths.chat_path(chat_id)}/lastTimestamp": timestamp,
            }
            for user_id in chat.participants:
                summary = paths.summary_path(user_id, chat_id)
                updates[f"{summary}/lastMessage"] = message.content
                updates[f"{summary}/lastUser"] = sender
                updates[f"{summary}/timestamp"] = timestamp
            for user_id, unread in zip(recipients, unread_counts):
                updates[f"{paths.summary_path(user_id, chat_id)}/unreadCount"] = int(unread or 0) + 1

            await self.store.patch(updates)

        logger.debug(f"Appended message {message.id} to chat {chat_id}")
        await self.notifier.publish(messages_topic(chat_id), MessageChanged(chat_id=chat_id, message_id=message.id))
        await self.notifier.publish(CHATS_TOPIC, ChatsChanged(chat_id=chat_id, fields_updated=SUMMARY_FIELDS))
        return message

    def lock(self, chat_id: str) -> asyncio.Lock:
        """Lock serialising writes to one chat's messages and summaries within this process."""
        return self._locks[chat_id]

    async def _rewrite(self, chat_id: str, message_id: str, edit: Callable[[Message], Rewrite | None]) -> Message:
        # 'edit' sees the message as stored under the lock; 'None' means nothing to write
        async with self._locks[chat_id]:
            chat = await require_chat(self.store, chat_id)
            message = await self.get_by_id(chat_id, message_id)
            rewrite = edit(message)
            if rewrite is None:
                return message
            fields, summary_text = rewrite
            is_latest = await self._is_latest(chat, message)

            updates = {f"{paths.message_path(chat_id, message_id)}/{key}": value for key, value in fields.items()}
            if is_latest:
                for user_id in chat.participants:
                    updates[f"{paths.summary_path(user_id, chat_id)}/lastMessage"] = summary_text
            await self.store.patch(updates)

        await self.notifier.publish(messages_topic(chat_id), MessageChanged(chat_id=chat_id, message_id=message_id))
        if is_latest:
            await self.notifier.publish(CHATS_TOPIC, ChatsChanged(chat_id=chat_id, fields_updated=["lastMessage"]))
        return await self.get_by_id(chat_id, message_id)

    async def update(self, chat_id: str, message_id: str, new_content: str) -> Message:
        """Edit a message's text; the summaries follow only if it is the newest message."""
        if not new_content:
            raise InvalidArgumentError("New content is required")

        def edit(message: Message) -> Rewrite:
            if message.deleted:
                raise InvalidArgumentError(f"Message {message_id} has been deleted")
            return {"content": new_content}, new_content

        return await self._rewrite(chat_id, message_id, edit)

    async def soft_delete(self, chat_id: str, message_id: str) -> Message:
        """Replace content with the tombstone and clear the image; the record itself stays."""

        def edit(message: Message) -> Rewrite | None:
            if message.deleted:
                return None
            tombstone = message.tombstoned()
            return {"content": tombstone.content, "image": tombstone.image, "deleted": tombstone.deleted}, TOMBSTONE

        return await self._rewrite(chat_id, message_id, edit)

    async def repair_pointer(self, chat_id: str) -> Message | None:
        """
        Point the chat record at its actual newest message; returns that message.

        The caller holds 'lock(chat_id)'.
        """
        chat = await load_chat(self.store, chat_id)
        if chat is None:
            return None
        messages = await self.list(chat_id)
        latest = messages[-1] if messages else None
        pointer = (latest.id, latest.timestamp) if latest else (None, None)
        if (chat.last_message_id, chat.last_timestamp) != pointer:
            await self.store.update(
                paths.chat_path(chat_id), {"lastMessageId": pointer[0], "lastTimestamp": pointer[1]}
            )
            logger.warning(f"Repaired last-message pointer of chat {chat_id}")
        return latest
