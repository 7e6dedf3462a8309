"""
Realtime broadcast over WebSockets.

Clients join named rooms by sending {"event": "subscribe:<room>"} and then
receive every {"event", "data"} message emitted to that room.
"""

import logging
from typing import Any, Optional, Protocol

from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


LEADS_ROOM = "leads"
CAMPAIGNS_ROOM = "campaigns"
CALL_LOGS_ROOM = "call-logs"

ROOMS = (LEADS_ROOM, CAMPAIGNS_ROOM, CALL_LOGS_ROOM)


class Connection(Protocol):
    """Anything that can be sent a JSON message, such as a Starlette WebSocket."""

    async def send_json(self, data: Any) -> None: ...


class Broadcaster:
    """Room-based fan-out of realtime events."""

    def __init__(self):
        self.rooms: dict[str, set] = {room: set() for room in ROOMS}

    def subscribe(self, connection: Connection, room: str) -> bool:
        """Add a connection to a room. Unknown rooms are ignored."""
        if room not in self.rooms:
            logger.debug("Ignoring subscription to unknown room %r", room)
            return False
        self.rooms[room].add(connection)
        logger.debug("Client subscribed to %s", room)
        return True

    def unsubscribe(self, connection: Connection, room: str) -> None:
        self.rooms.get(room, set()).discard(connection)

    def disconnect(self, connection: Connection) -> None:
        """Remove a connection from every room."""
        for members in self.rooms.values():
            members.discard(connection)

    def subscribers(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    def handle_message(self, connection: Connection, message: Any) -> Optional[str]:
        """
        Apply a client control message.

        Returns:
            The room joined or left, or None if the message was not understood
        """
        if not isinstance(message, dict):
            return None
        event = message.get("event")
        if not isinstance(event, str) or ":" not in event:
            return None

        action, room = event.split(":", 1)
        if action == "subscribe" and self.subscribe(connection, room):
            return room
        if action == "unsubscribe" and room in self.rooms:
            self.unsubscribe(connection, room)
            return room
        return None

    async def emit(self, room: str, event: str, data: Any = None) -> int:
        """
        Send an event to every subscriber of a room.

        A connection whose send fails is dropped from all rooms and delivery
        continues to the rest.

        Returns:
            Number of connections that received the event
        """
        message = {"event": event, "data": jsonable_encoder(data)}
        delivered = 0

        for connection in list(self.rooms.get(room, ())):
            try:
                await connection.send_json(message)
                delivered += 1
            except Exception as e:
                logger.debug("Dropping client after failed send of %s: %s", event, e)
                self.disconnect(connection)

        return delivered

    # =========================================================================
    # Event helpers
    # =========================================================================

    async def emit_lead_update(self, event: str, data: Any) -> int:
        return await self.emit(LEADS_ROOM, f"lead:{event}", data)

    async def emit_campaign_update(self, event: str, data: Any) -> int:
        return await self.emit(CAMPAIGNS_ROOM, f"campaign:{event}", data)

    async def emit_call_log_update(self, event: str, data: Any) -> int:
        return await self.emit(CALL_LOGS_ROOM, f"callLog:{event}", data)

    async def emit_scraping_progress(self, data: Any) -> int:
        return await self.emit(LEADS_ROOM, "scraping:progress", data)

    async def emit_scraping_complete(self, data: Any) -> int:
        return await self.emit(LEADS_ROOM, "scraping:complete", data)


_broadcaster = Broadcaster()


def get_broadcaster() -> Broadcaster:
    """Get the process-wide broadcaster."""
    return _broadcaster
