"""
Firebase Realtime Database backend for 'TreeStore'.

'firebase-admin' exposes a blocking client, so every call runs in a worker
thread via 'asyncio.to_thread'. Client errors surface as 'UpstreamError' with
the original exception chained.

Listeners use 'Reference.listen', which streams server-sent events on a
background thread. Each event is bridged back onto the event loop that
registered the listener, where the current value of the listened path is read
and handed to the callback. Registration failures are logged and leave that
listener inert; there is no automatic re-subscription.
"""

import asyncio
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin.exceptions import FirebaseError
from google.auth.exceptions import GoogleAuthError
from loguru import logger

from chat_relay.errors import UpstreamError
from chat_relay.store.base import ChangeCallback, TreeStore, to_plain
from chat_relay.utils.database import join_path

R = TypeVar("R")


def initialize_firebase_app(
    database_url: str | None = None, credentials_path: str | None = None, name: str = "chat-relay"
) -> firebase_admin.App:
    """Return the named Firebase app, initialising it on first use."""
    try:
        return firebase_admin.get_app(name)
    except ValueError:
        pass
    cred = credentials.Certificate(credentials_path) if credentials_path else credentials.ApplicationDefault()
    options = {"databaseURL": database_url} if database_url else {}
    logger.info(f"Initialising Firebase app {name!r} (database: {database_url or 'none'})")
    return firebase_admin.initialize_app(cred, options, name=name)


class FirebaseTreeStore(TreeStore):
    def __init__(self, app: firebase_admin.App) -> None:
        self.app = app
        self._registrations: list[Any] = []

    def _ref(self, path: str) -> db.Reference:
        return db.reference("/" + join_path(path), app=self.app)

    async def _call(self, action: str, path: str, fn: Callable[..., R], *args: Any) -> R:
        try:
            return await asyncio.to_thread(fn, *args)
        except (FirebaseError, GoogleAuthError, ValueError) as exc:
            raise UpstreamError(f"Tree store {action} failed at {path!r}: {exc}") from exc

    async def get(self, path: str) -> Any | None:
        return await self._call("get", path, self._ref(path).get)

    async def set(self, path: str, value: Any) -> None:
        ref = self._ref(path)
        plain = to_plain(value)
        if plain is None:
            await self._call("delete", path, ref.delete)
        else:
            await self._call("set", path, ref.set, plain)

    async def patch(self, updates: Mapping[str, Any]) -> None:
        if not updates:
            return
        body = {join_path(path): to_plain(value) for path, value in updates.items()}
        logger.debug(f"Patching {len(body)} path(s)")
        await self._call("patch", "/", self._ref("/").update, body)

    async def listen(self, path: str, on_change: ChangeCallback) -> None:
        loop = asyncio.get_running_loop()

        async def deliver() -> None:
            try:
                await on_change(await self.get(path))
            except Exception:
                logger.exception(f"Change listener on {path!r} failed")

        def on_event(event: db.Event) -> None:
            asyncio.run_coroutine_threadsafe(deliver(), loop)

        try:
            registration = await asyncio.to_thread(self._ref(path).listen, on_event)
        except Exception:
            logger.exception(f"Could not register listener on {path!r}")
            return
        self._registrations.append(registration)
        logger.info(f"Listening for changes on {path!r}")

    def close(self) -> None:
        for registration in self._registrations:
            registration.close()
        self._registrations.clear()
