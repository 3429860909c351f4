"""
Friendships and friend requests.

A request from A to B is stored on the receiver as
'users/B/friendRequests/A = "pending"'. Accepting it writes both friendship
entries and removes the request in one patch.
"""

import asyncio

from pydantic import BaseModel

from chat_relay.data_models.user import UserProfile
from chat_relay.directory.users import UserDirectory
from chat_relay.errors import InvalidArgumentError, NotFoundError
from chat_relay.store import paths
from chat_relay.store.base import TreeStore

PENDING = "pending"
ACTIVE = "active"


class FriendEntry(BaseModel):
    """A friend or a pending requester, with their resolved profile."""

    id: str
    status: str
    profile: UserProfile


class FriendDirectory:
    def __init__(self, store: TreeStore, users: UserDirectory) -> None:
        self.store = store
        self.users = users

    async def _resolve(self, statuses: dict[str, str]) -> list[FriendEntry]:
        ids = list(statuses)
        profiles = await asyncio.gather(*(self.users.get_by_id(user_id) for user_id in ids))
        return [
            FriendEntry(id=user_id, status=statuses[user_id], profile=profile)
            for user_id, profile in zip(ids, profiles)
            if profile is not None
        ]

    async def list_friends(self, user_id: str) -> list[FriendEntry]:
        friends = await self.store.get_typed(paths.friends_path(user_id), dict[str, str]) or {}
        return await self._resolve(friends)

    async def list_requests(self, user_id: str) -> list[FriendEntry]:
        requests = await self.store.get_typed(paths.friend_requests_path(user_id), dict[str, str]) or {}
        return await self._resolve({from_id: PENDING for from_id in requests})

    async def send_request(self, from_id: str, to_id: str) -> None:
        if not from_id or not to_id:
            raise InvalidArgumentError("Both sender and receiver are required")
        if from_id == to_id:
            raise InvalidArgumentError("Users cannot befriend themselves")
        await self.store.set(paths.friend_request_path(to_id, from_id), PENDING)

    async def accept_request(self, from_id: str, to_id: str) -> None:
        if not await self.store.exists(paths.friend_request_path(to_id, from_id)):
            raise NotFoundError(f"No pending friend request from {from_id} to {to_id}")
        await self.store.patch(
            {
                paths.friend_path(from_id, to_id): ACTIVE,
                paths.friend_path(to_id, from_id): ACTIVE,
                paths.friend_request_path(to_id, from_id): None,
            }
        )

    async def reject_request(self, from_id: str, to_id: str) -> None:
        await self.store.delete(paths.friend_request_path(to_id, from_id))

    async def remove_friend(self, user_id: str, friend_id: str) -> None:
        await self.store.patch({paths.friend_path(user_id, friend_id): None, paths.friend_path(friend_id, user_id): None})
