"""
In-process topic broadcaster.

Subscribers are plain async send functions keyed by topic; the WebSocket
endpoint registers 'websocket.send_json' wrappers, tests register collectors.
A subscriber whose send fails is logged and dropped, the remaining
subscribers still receive the payload.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger
from pydantic import BaseModel

from chat_relay.data_models.base import Record
from chat_relay.notifications.base import Notifier

Subscriber = Callable[[str, Any], Awaitable[None]]


def _encode(payload: Any) -> Any:
    if isinstance(payload, Record):
        return payload.model_dump(by_alias=True, mode="json", exclude=payload.broadcast_exclude)
    if isinstance(payload, BaseModel):
        return payload.model_dump(by_alias=True, mode="json")
    if isinstance(payload, list):
        return [_encode(item) for item in payload]
    return payload


class TopicBroadcaster(Notifier):
    def __init__(self) -> None:
        self.topics: dict[str, list[Subscriber]] = {}

    def subscribe(self, topic: str, subscriber: Subscriber) -> None:
        subscribers = self.topics.setdefault(topic, [])
        if subscriber not in subscribers:
            subscribers.append(subscriber)

    def unsubscribe(self, topic: str, subscriber: Subscriber) -> None:
        subscribers = self.topics.get(topic)
        if subscribers and subscriber in subscribers:
            subscribers.remove(subscriber)
            if not subscribers:
                del self.topics[topic]

    def unsubscribe_all(self, subscriber: Subscriber) -> None:
        for topic in list(self.topics):
            self.unsubscribe(topic, subscriber)

    async def publish(self, topic: str, payload: Any) -> None:
        subscribers = list(self.topics.get(topic, []))
        if not subscribers:
            return
        message = _encode(payload)
        dead = []
        for subscriber in subscribers:
            try:
                await subscriber(topic, message)
            except Exception:
                logger.exception(f"Dropping subscriber on {topic!r} after failed delivery")
                dead.append(subscriber)
        for subscriber in dead:
            self.unsubscribe(topic, subscriber)
