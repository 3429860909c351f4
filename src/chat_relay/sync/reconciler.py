"""
Summary reconciliation sweep.

Summary writes are best effort: a crash or a failed request between the
message write and the summary write, or a concurrent writer in another
process, can leave a participant's 'ChatSummary' stale or missing. The
reconciler recomputes summaries from the chats themselves:

    - the chat's last-message pointer is realigned with its newest message
    - every participant has a summary whose 'lastMessage', 'lastUser' and
      'timestamp' match that message
    - summaries of users who are no longer participants, or of chats that
      no longer exist, are removed

Unread counts are left alone; they cannot be recomputed from the chat.
"""

import asyncio
from typing import Any

from loguru import logger

from chat_relay.data_models.chat import Chat
from chat_relay.data_models.message import Message
from chat_relay.directory.users import UserDirectory
from chat_relay.registry.chats import ChatRegistry
from chat_relay.registry.lookup import load_chat
from chat_relay.registry.messages import MessageLog
from chat_relay.store import paths
from chat_relay.store.base import TreeStore


class SummaryReconciler:
    def __init__(self, store: TreeStore, chats: ChatRegistry, messages: MessageLog, users: UserDirectory) -> None:
        self.store = store
        self.chats = chats
        self.messages = messages
        self.users = users

    async def reconcile_chat(self, chat: Chat) -> int:
        """Repair the participants' summaries of one chat; returns the number of fields written."""
        async with self.messages.lock(chat.id):
            fresh = await load_chat(self.store, chat.id)
            if fresh is None:
                return 0
            latest = await self.messages.repair_pointer(fresh.id)
            updates = await self._summary_repairs(fresh, latest)
            if updates:
                await self.store.patch(updates)
                logger.warning(f"Repaired {len(updates)} stale summary entr(ies) of chat {fresh.id}")
        return len(updates)

    async def _summary_repairs(self, chat: Chat, latest: Message | None) -> dict[str, Any]:
        profiles = await self.users.get_by_ids(chat.participants)
        updates: dict[str, Any] = {}
        for user_id in chat.participants:
            summary_path = paths.summary_path(user_id, chat.id)
            profile = profiles.get(user_id)
            current = profile.chat_user.get(chat.id) if profile is not None else None

            if current is None:
                summary = self.chats.summary_for(chat, user_id, profiles)
                if latest is not None:
                    summary.last_message = latest.content
                    summary.last_user = latest.sender
                    summary.timestamp = latest.timestamp
                updates[summary_path] = summary
                continue

            if latest is None:
                continue
            expected = {"lastMessage": latest.content, "lastUser": latest.sender, "timestamp": latest.timestamp}
            actual = {"lastMessage": current.last_message, "lastUser": current.last_user, "timestamp": current.timestamp}
            for key, value in expected.items():
                if actual[key] != value:
                    updates[f"{summary_path}/{key}"] = value
        return updates

    async def _remove_if_orphaned(self, user_id: str, chat_id: str) -> bool:
        # decided on a fresh read; the sweep's snapshot may predate a create or an add
        async with self.messages.lock(chat_id):
            chat = await load_chat(self.store, chat_id)
            if chat is not None and user_id in chat.participants:
                return False
            await self.store.delete(paths.summary_path(user_id, chat_id))
        return True

    async def reconcile_all(self) -> int:
        """Sweep every chat and every profile; returns the number of writes issued."""
        chats = {chat.id: chat for chat in await self.chats.get_all()}
        repaired = 0
        for chat in chats.values():
            repaired += await self.reconcile_chat(chat)

        orphans = 0
        for profile in await self.users.get_all():
            for chat_id in profile.chat_user:
                chat = chats.get(chat_id)
                if chat is not None and profile.id in chat.participants:
                    continue
                if await self._remove_if_orphaned(profile.id, chat_id):
                    orphans += 1
        if orphans:
            logger.warning(f"Removed {orphans} orphaned summaries")
        repaired += orphans

        logger.info(f"Reconciled {len(chats)} chat(s), {repaired} write(s)")
        return repaired

    async def run_forever(self, interval: float) -> None:
        """Run 'reconcile_all' every 'interval' seconds until cancelled."""
        while True:
            try:
                await self.reconcile_all()
            except Exception:
                logger.exception("Summary reconciliation failed")
            await asyncio.sleep(interval)
