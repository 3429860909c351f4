"""
In-process tree store.

Mirrors the observable behaviour of the remote realtime database closely
enough for development and tests: lists are stored as index-keyed maps, maps
whose integer keys fill more than half of their range read back as lists,
empty branches are pruned, overlapping paths in one patch are rejected, and
listeners receive the current value of their path once on registration and
again after every write that touches it.
"""

import asyncio
import copy
from collections.abc import Mapping
from typing import Any

from loguru import logger

from chat_relay.store.base import ChangeCallback, TreeStore, to_plain
from chat_relay.utils.database import split_path


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (dict, list)) and not value)


def _to_tree(value: Any) -> Any:
    if isinstance(value, list):
        value = {str(index): item for index, item in enumerate(value)}
    if isinstance(value, dict):
        tree = {}
        for key, item in value.items():
            node = _to_tree(item)
            if not _is_empty(node):
                tree[str(key)] = node
        return tree
    return value


def _array_index(key: str) -> int | None:
    return int(key) if key.isdecimal() and key == str(int(key)) else None


def _from_tree(node: Any) -> Any:
    # integer keys read back as a list only when more than half of the slots up to the largest are filled
    if not isinstance(node, dict):
        return node
    indexes = [_array_index(key) for key in node]
    if node and None not in indexes and 2 * len(node) > max(indexes) + 1:
        values: list[Any] = [None] * (max(indexes) + 1)
        for index, item in zip(indexes, node.values()):
            values[index] = _from_tree(item)
        return values
    return {key: _from_tree(item) for key, item in node.items()}


def _overlaps(a: list[str], b: list[str]) -> bool:
    shortest = min(len(a), len(b))
    return a[:shortest] == b[:shortest]


class InMemoryTreeStore(TreeStore):
    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._root: dict[str, Any] = _to_tree(to_plain(initial or {}))
        self._listeners: list[tuple[list[str], ChangeCallback]] = []
        self._lock = asyncio.Lock()

    def _read(self, segments: list[str]) -> Any:
        node: Any = self._root
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def _write(self, segments: list[str], value: Any) -> None:
        if not segments:
            self._root = value if isinstance(value, dict) else {}
            return
        parents = [self._root]
        node = self._root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                if _is_empty(value):
                    return
                child = {}
                node[segment] = child
            node = child
            parents.append(node)

        if _is_empty(value):
            node.pop(segments[-1], None)
            # prune branches left empty, deepest first
            for depth in range(len(segments) - 1, 0, -1):
                if parents[depth]:
                    break
                parents[depth - 1].pop(segments[depth - 1], None)
        else:
            node[segments[-1]] = value

    async def get(self, path: str) -> Any | None:
        async with self._lock:
            node = self._read(split_path(path))
            return copy.deepcopy(_from_tree(node))

    async def set(self, path: str, value: Any) -> None:
        await self.patch({path: value})

    async def patch(self, updates: Mapping[str, Any]) -> None:
        writes = [(split_path(path), _to_tree(to_plain(value))) for path, value in updates.items()]
        for i, (first, _) in enumerate(writes):
            for second, _ in writes[i + 1 :]:
                if _overlaps(first, second):
                    raise ValueError(f"Overlapping paths in one patch: {'/'.join(first)!r}, {'/'.join(second)!r}")

        async with self._lock:
            for segments, value in writes:
                self._write(segments, value)
        logger.debug(f"Patched {len(writes)} path(s): {['/'.join(s) for s, _ in writes]}")

        await self._notify([segments for segments, _ in writes])

    async def listen(self, path: str, on_change: ChangeCallback) -> None:
        segments = split_path(path)
        self._listeners.append((segments, on_change))
        logger.info(f"Listening for changes on {path!r}")
        await self._deliver(segments, on_change)

    async def _notify(self, changed: list[list[str]]) -> None:
        for segments, on_change in list(self._listeners):
            if any(_overlaps(segments, written) for written in changed):
                await self._deliver(segments, on_change)

    async def _deliver(self, segments: list[str], on_change: ChangeCallback) -> None:
        try:
            await on_change(await self.get("/".join(segments)))
        except Exception:
            logger.exception(f"Change listener on {'/'.join(segments)!r} failed")
