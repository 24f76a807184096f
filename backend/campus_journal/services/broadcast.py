# real-time relay — fans small json events out to websocket subscribers of a channel
# at-most-once, unordered, unacknowledged. publish never waits on a subscriber.

import asyncio
import logging
from typing import Any, Optional, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)

COHORT_CHANNEL = "campus"


class Publisher(Protocol):
    """the capability handed to operations that announce events"""

    def publish(self, channel: str, event: str, data: dict[str, Any], exclude: Optional[WebSocket] = None) -> None:
        ...


class MoodBroadcaster:
    """in-process channel registry backed by websocket connections"""

    def __init__(self):
        self._channels: dict[str, set[WebSocket]] = {}
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, channel: str, websocket: WebSocket):
        self._channels.setdefault(channel, set()).add(websocket)
        logger.info(f"Subscriber joined channel {channel} ({len(self._channels[channel])} connected)")

    def unsubscribe(self, channel: str, websocket: WebSocket):
        subscribers = self._channels.get(channel)
        if not subscribers:
            return
        subscribers.discard(websocket)
        if not subscribers:
            del self._channels[channel]
        logger.info(f"Subscriber left channel {channel}")

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    def publish(self, channel: str, event: str, data: dict[str, Any], exclude: Optional[WebSocket] = None) -> None:
        """schedule delivery to every subscriber and return immediately"""
        message = {"event": event, "data": data}
        for websocket in list(self._channels.get(channel, ())):
            if websocket is exclude:
                continue
            task = asyncio.create_task(self._send(channel, websocket, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _send(self, channel: str, websocket: WebSocket, message: dict):
        try:
            await websocket.send_json(message)
        except Exception as e:
            # dead connection, drop it
            logger.warning(f"Dropping subscriber on channel {channel}: {e}")
            self.unsubscribe(channel, websocket)


# singleton instance
broadcaster = MoodBroadcaster()


async def get_broadcaster() -> MoodBroadcaster:
    """dependency injection for the real-time publisher"""
    return broadcaster
