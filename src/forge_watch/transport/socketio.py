"""
Socket.IO connection to a LocalForge server.

The server speaks plain JSON payloads (no envelope). Reconnection is left to
python-socketio; every successful (re)connect is delivered to handlers as a
``connect`` event so the session view can re-issue join_session.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import socketio

from forge_watch.errors import TransportError
from forge_watch.models.events import TransportEvent

logger = logging.getLogger(__name__)

DEFAULT_SOCKETIO_PATH = "socket.io"

EventHandler = Callable[[str, Any], None]


class SocketIOTransport:
    def __init__(
        self,
        base_url: str,
        socketio_path: str = DEFAULT_SOCKETIO_PATH,
        transports: Optional[list[str]] = None,
        reconnection: bool = True,
        connect_timeout: float = 10.0,
    ):
        self._base_url = base_url
        self._socketio_path = socketio_path
        self._transports = transports or ["websocket", "polling"]
        self._reconnection = reconnection
        self._connect_timeout = connect_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._event_handlers: list[EventHandler] = []

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._sio.connected

    @property
    def sid(self) -> Optional[str]:
        return self._sio.sid if self._sio else None

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function."""
        self._event_handlers.append(handler)

        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    async def connect(self) -> None:
        if self._sio and self._sio.connected:
            return

        self._sio = socketio.AsyncClient(reconnection=self._reconnection)

        @self._sio.event
        async def connect() -> None:
            logger.info("Connected to %s (sid=%s)", self._base_url, self.sid)
            self._dispatch(TransportEvent.CONNECT, None)

        @self._sio.event
        async def disconnect(reason: str = "") -> None:
            self._dispatch(TransportEvent.DISCONNECT, reason)

        @self._sio.event
        async def connect_error(data: Any = None) -> None:
            self._dispatch(TransportEvent.CONNECT_ERROR, data)

        @self._sio.on("*")
        async def on_any(event: str, data: Any = None) -> None:
            self._dispatch(event, data)

        try:
            await self._sio.connect(
                self._base_url,
                transports=self._transports,
                socketio_path=self._socketio_path,
                wait_timeout=self._connect_timeout,
            )
        except socketio.exceptions.ConnectionError as e:
            self._sio = None
            raise TransportError(f"Failed to connect to {self._base_url}: {e}", code="connect_error")

    def emit(self, event_type: str, payload: dict[str, Any]) -> None:
        """Schedule an emit on the running loop. Failures are logged.

        Only the client's existence is checked: the connect handler runs
        before python-socketio marks the client connected, and joins are
        emitted from there.
        """
        if self._sio is None:
            raise TransportError(f"Cannot emit {event_type}: not connected", code="not_connected")
        sio = self._sio

        async def _do_emit() -> None:
            try:
                await sio.emit(event_type, payload)
            except Exception as e:
                logger.error("Emit failed for %s: %s", event_type, e)

        asyncio.get_running_loop().create_task(_do_emit())

    async def wait(self) -> None:
        """Block until the connection is closed for good."""
        if self._sio:
            await self._sio.wait()

    async def disconnect(self) -> None:
        if self._sio:
            await self._sio.disconnect()
            self._sio = None

    def _dispatch(self, event: str, data: Any) -> None:
        for handler in list(self._event_handlers):
            handler(event, data)
