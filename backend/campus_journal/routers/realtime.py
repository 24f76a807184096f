# realtime router — websocket relay for anonymous mood events
# subscribers of a channel get every event published to it; client frames are
# relayed to the channel's other subscribers

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from campus_journal.services.broadcast import MoodBroadcaster, get_broadcaster

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/realtime", tags=["realtime"])

# client frame type -> event name relayed to the other subscribers
RELAYED_EVENTS = {
    "mood-update": "mood-broadcast",
    "journal-shared": "journal-notification",
}


@router.websocket("/{channel}")
async def channel_socket(websocket: WebSocket, channel: str, publisher: MoodBroadcaster = Depends(get_broadcaster)):
    await websocket.accept()
    publisher.subscribe(channel, websocket)
    try:
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                logger.debug(f"Ignoring non-json frame on {channel}")
                continue
            if not isinstance(frame, dict):
                continue
            event = RELAYED_EVENTS.get(frame.get("type"))
            if event is None:
                logger.debug(f"Ignoring frame of type {frame.get('type')!r} on {channel}")
                continue
            data = {k: v for k, v in frame.items() if k != "type"}
            publisher.publish(channel, event, data, exclude=websocket)
    except WebSocketDisconnect:
        pass
    finally:
        publisher.unsubscribe(channel, websocket)
