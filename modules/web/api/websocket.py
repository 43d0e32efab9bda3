"""WebSocket API for real-time updates."""

import asyncio
import logging
from typing import List, Optional, Set
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from core.bus.event_bus import EventBus
from core.interfaces.events import Event, EventType
from core.models.team import TeamMember

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Manages WebSocket connections and broadcasts messages."""

    def __init__(self, name: str):
        """Initialize connection manager.

        Args:
            name: Channel name used in log messages
        """
        self.name = name
        self.active_connections: Set[WebSocket] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        """Set the loop that thread-side publishers schedule broadcasts on."""
        self._loop = loop

    async def connect(self, websocket: WebSocket):
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"[{self.name}] WebSocket connected. Total connections: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        """Remove a WebSocket connection."""
        self.active_connections.discard(websocket)
        logger.info(f"[{self.name}] WebSocket disconnected. Total connections: {len(self.active_connections)}")

    async def broadcast(self, message: dict):
        """Broadcast a message to all connected clients.

        Args:
            message: Message dictionary to broadcast
        """
        disconnected = set()
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.error(f"[{self.name}] Error sending to WebSocket: {e}")
                disconnected.add(connection)

        for connection in disconnected:
            self.disconnect(connection)

    def broadcast_threadsafe(self, message: dict) -> None:
        """Schedule a broadcast from any thread.

        Gateway change notifications arrive on whichever thread performed the
        write, so the send has to be handed over to the server loop.
        """
        if self._loop is None or self._loop.is_closed() or not self.active_connections:
            return
        asyncio.run_coroutine_threadsafe(self.broadcast(message), self._loop)


team_manager = ConnectionManager("team")
events_manager = ConnectionManager("events")

# Events forwarded to /ws/events clients
BROADCAST_EVENTS = [
    EventType.CAMERA_READY,
    EventType.CAMERA_FAILED,
    EventType.CAMERA_STOPPED,
    EventType.IMAGE_CAPTURED,
    EventType.CAPTURE_FAILED,
    EventType.IMAGE_UPLOADED,
    EventType.ANALYSIS_STATUS_CHANGED,
    EventType.ANALYSIS_COMPLETED,
    EventType.STORAGE_ERROR,
    EventType.STATUS_UPDATE_ERROR,
]


def event_to_dict(event: Event) -> dict:
    """Convert an Event to a dictionary for JSON serialization."""
    return {
        "type": event.type.value if isinstance(event.type, EventType) else str(event.type),
        "data": event.data,
        "source": event.source,
        "timestamp": event.timestamp,
    }


def roster_to_message(members: List[TeamMember]) -> dict:
    return {"type": "team_members", "members": [member.to_dict() for member in members]}


def broadcast_event(event: Event) -> None:
    """Event bus handler forwarding events to /ws/events clients."""
    events_manager.broadcast_threadsafe(event_to_dict(event))


def broadcast_roster(members: List[TeamMember]) -> None:
    """Roster listener pushing the refreshed list to /ws/team clients."""
    team_manager.broadcast_threadsafe(roster_to_message(members))


def setup_event_broadcasting(event_bus: EventBus, loop: asyncio.AbstractEventLoop) -> None:
    """Subscribe the event broadcaster to the bus.

    Args:
        event_bus: Event bus instance to subscribe to
        loop: Server event loop
    """
    team_manager.bind_loop(loop)
    events_manager.bind_loop(loop)
    for event_type in BROADCAST_EVENTS:
        event_bus.subscribe(event_type, broadcast_event)

    logger.info("Event broadcasting set up for WebSocket")


def teardown_event_broadcasting(event_bus: EventBus) -> None:
    for event_type in BROADCAST_EVENTS:
        event_bus.unsubscribe(event_type, broadcast_event)
    team_manager.bind_loop(None)
    events_manager.bind_loop(None)


async def _serve(websocket: WebSocket, manager: ConnectionManager, initial: Optional[dict] = None):
    await manager.connect(websocket)
    try:
        if initial is not None:
            await websocket.send_json(initial)

        # Keep connection alive and listen for client messages
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")

    except WebSocketDisconnect:
        manager.disconnect(websocket)
        logger.info("Client disconnected")
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        manager.disconnect(websocket)


@router.websocket("/team")
async def team_endpoint(websocket: WebSocket):
    """Live team roster.

    Sends the current roster on connect and a fresh copy after every change
    to the `team_members` collection.
    """
    roster = websocket.app.state.app_state.orchestrator.roster
    await _serve(websocket, team_manager, initial=roster_to_message(roster.members))


@router.websocket("/events")
async def events_endpoint(websocket: WebSocket):
    """Camera, upload and analysis events."""
    await _serve(websocket, events_manager)
