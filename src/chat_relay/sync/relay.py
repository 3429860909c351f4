"""
Push-based sync.

The relay listens on the 'chats' and 'users' branches of the tree store and
republishes the full chat list and the full user list whenever anything under
them changes, whether the write came from this process or from another client
of the same database. Listener failures are logged by the store and never
propagate back here.
"""

from typing import Any

from loguru import logger

from chat_relay.directory.users import UserDirectory
from chat_relay.notifications.base import CHATS_TOPIC, USERS_TOPIC, Notifier
from chat_relay.registry.chats import ChatRegistry
from chat_relay.store import paths
from chat_relay.store.base import TreeStore


class ChangeRelay:
    def __init__(self, store: TreeStore, notifier: Notifier, chats: ChatRegistry, users: UserDirectory) -> None:
        self.store = store
        self.notifier = notifier
        self.chats = chats
        self.users = users
        self.started = False

    async def start(self) -> None:
        if self.started:
            return
        self.started = True
        await self.store.listen(paths.CHATS, self._on_chats_changed)
        await self.store.listen(paths.USERS, self._on_users_changed)
        logger.info("Change relay started")

    async def _on_chats_changed(self, _: Any) -> None:
        await self.notifier.publish(CHATS_TOPIC, await self.chats.get_all())

    async def _on_users_changed(self, _: Any) -> None:
        await self.notifier.publish(USERS_TOPIC, await self.users.get_all())
