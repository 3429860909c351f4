"""
Tree store abstraction.

The system of record is a hierarchical key-path database: every value is
addressed by a slash-separated path ('chats/{chatId}/messages/{messageId}'),
writing 'None' to a path removes it, and empty branches do not exist. 'TreeStore'
is the pluggable interface over such a database; 'InMemoryTreeStore' and
'FirebaseTreeStore' are interchangeable at construction time, keeping the
registries and directories free of storage-specific code.

'patch' is the only grouping primitive: a map of full paths to new values
applied in one request. Backends try to apply it atomically but the remote
database makes no cross-path guarantee, so callers treat it as best effort.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar, get_origin

from pydantic import BaseModel, TypeAdapter

from chat_relay.data_models.base import Record, keyed_map
from chat_relay.utils.database import join_path

T = TypeVar("T")

ChangeCallback = Callable[[Any], Awaitable[None]]
"""Listener coroutine; receives the current value at the listened path ('None' if absent)."""


def to_plain(value: Any) -> Any:
    """Turn records and nested containers into plain JSON-compatible values."""
    if isinstance(value, Record):
        return value.to_record()
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True)
    if isinstance(value, Mapping):
        return {str(key): to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return [to_plain(item) for item in sorted(value)]
    return value


class TreeStore(ABC):
    """Abstract client for a key-path tree database."""

    @abstractmethod
    async def get(self, path: str) -> Any | None:
        """Return the plain value stored at 'path', or 'None' if nothing is there."""
        pass

    @abstractmethod
    async def set(self, path: str, value: Any) -> None:
        """Replace the whole subtree at 'path'. 'None' deletes it."""
        pass

    @abstractmethod
    async def patch(self, updates: Mapping[str, Any]) -> None:
        """Write several full paths in one request; 'None' values delete their path."""
        pass

    @abstractmethod
    async def listen(self, path: str, on_change: ChangeCallback) -> None:
        """Invoke 'on_change' with the current value at 'path' now and after every write under it.

        The subscription lasts for the lifetime of the store. A listener that
        raises is logged and stays registered.
        """
        pass

    async def get_typed(self, path: str, value_type: type[T] | Any) -> T | None:
        """Read 'path' and validate it into 'value_type' (a model or any pydantic-supported type)."""
        value = await self.get(path)
        if value is None:
            return None
        if get_origin(value_type) is dict:
            value = keyed_map(value)
        return TypeAdapter(value_type).validate_python(value)

    async def exists(self, path: str) -> bool:
        return await self.get(path) is not None

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        """Merge 'fields' into the node at 'path' without touching its other children."""
        if not fields:
            return
        await self.patch({join_path(path, key): value for key, value in fields.items()})

    async def delete(self, path: str) -> None:
        await self.set(path, None)

    def close(self) -> None:
        """Release listeners and connections; the default store holds none."""
