"""
ForgeWatch / AsyncForgeWatch — watch a LocalForge agent session.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError

from forge_watch.clock import Clock, LoopClock
from forge_watch.config import Config
from forge_watch.errors import JoinError, TransportError
from forge_watch.interrupt import INTERRUPT_TIMEOUT_S
from forge_watch.models.agent import AgentState
from forge_watch.models.events import S2CEvent, TransportEvent
from forge_watch.projector import TICK_INTERVAL_S
from forge_watch.projects import ProjectsAPI
from forge_watch.renderer import Renderer
from forge_watch.transport.codec import decode_event, decode_snapshot
from forge_watch.transport.http import DEFAULT_BASE_URL, HttpClient
from forge_watch.transport.socketio import DEFAULT_SOCKETIO_PATH, SocketIOTransport
from forge_watch.view import ClientSessionView, SessionViewContext

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.05


class AsyncForgeWatch:
    """Async session watcher (primary)."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        renderer: Optional[Renderer] = None,
        *,
        socketio_path: str = DEFAULT_SOCKETIO_PATH,
        transports: Optional[list[str]] = None,
        join_timeout: float = 15.0,
        interrupt_timeout: float = INTERRUPT_TIMEOUT_S,
        tick_interval: float = TICK_INTERVAL_S,
        clock: Optional[Clock] = None,
    ):
        self._base_url = base_url
        self._socketio_path = socketio_path
        self._transports = transports
        self._join_timeout = join_timeout

        self.http = HttpClient(base_url=base_url)
        self.projects = ProjectsAPI(self.http)
        self.view = ClientSessionView(
            renderer,
            clock or LoopClock(),
            tick_interval=tick_interval,
            interrupt_timeout=interrupt_timeout,
        )

        self._transport: Optional[SocketIOTransport] = None
        self._remove_handler: Optional[Callable[[], None]] = None
        self._join_waiter: Optional[tuple[str, asyncio.Future]] = None

    @classmethod
    def from_config(cls, config: Config, renderer: Optional[Renderer] = None) -> "AsyncForgeWatch":
        return cls(
            config.base_url,
            renderer,
            socketio_path=config.socketio_path,
            join_timeout=config.join_timeout,
            interrupt_timeout=config.interrupt_timeout,
            tick_interval=config.tick_interval,
        )

    @property
    def connected(self) -> bool:
        return self._transport is not None and self._transport.connected

    @property
    def session_id(self) -> Optional[str]:
        return self.view.session_id

    @property
    def context(self) -> Optional[SessionViewContext]:
        return self.view.context

    @property
    def agent_state(self) -> AgentState:
        return self.view.agent_state

    async def __aenter__(self) -> "AsyncForgeWatch":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        if self._transport is not None:
            return
        self._transport = SocketIOTransport(
            base_url=self._base_url,
            socketio_path=self._socketio_path,
            transports=self._transports,
        )
        self._remove_handler = self._transport.add_event_handler(self._on_socket_event)
        self.view.set_emitter(self._transport.emit)
        try:
            await self._transport.connect()
        except TransportError:
            self._detach()
            raise

    async def disconnect(self) -> None:
        self.view.leave()
        self._fail_join(TransportError("Disconnected before the session was joined", code="not_connected"))
        if self._transport is not None:
            transport = self._transport
            await transport.disconnect()
            self._detach()

    async def close(self) -> None:
        await self.disconnect()
        await self.http.close()

    async def watch(
        self,
        project_id: Optional[str] = None,
        session_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> SessionViewContext:
        """Join a session and return its fresh view context.

        Without a session id the server's current project/session is used.
        """
        if session_id is None:
            listing = await self.projects.list()
            session_id = listing.current_session_id
            project_id = project_id or listing.current_project_id
            if not session_id:
                raise JoinError("The server has no current session. Pass a session id.")

        await self.connect()
        self._fail_join(JoinError(f"Join superseded by {session_id}", session_id))
        waiter: asyncio.Future = asyncio.get_running_loop().create_future()
        self._join_waiter = (session_id, waiter)
        self.view.request_join(project_id, session_id)
        try:
            return await asyncio.wait_for(waiter, timeout or self._join_timeout)
        except asyncio.TimeoutError:
            if self.view.expected_session_id == session_id:
                raise self.view.join_failed(session_id, "Timed out joining session")
            raise JoinError(f"Timed out joining session {session_id}", session_id)
        finally:
            if self._join_waiter is not None and self._join_waiter[1] is waiter:
                self._join_waiter = None

    async def switch(self, project_id: Optional[str], session_id: str, timeout: Optional[float] = None) -> SessionViewContext:
        """Leave the current session and join another."""
        return await self.watch(project_id, session_id, timeout)

    def interrupt(self) -> None:
        """Ask the server to stop the agent. Progress shows through the renderer."""
        self.view.request_interrupt()

    async def interrupt_and_wait(self, timeout: Optional[float] = None) -> None:
        """Interrupt and wait until the request completes, errors or times out locally."""
        self.interrupt()
        await self._wait_for(lambda: self.view.context is None or not self.view.context.interrupt.outstanding, timeout)

    def send_message(self, content: str) -> None:
        """Send a chat message to the joined session (fire-and-forget)."""
        self.view.send_message(content)

    async def clear_session(self, preserve_tasks: bool = False) -> SessionViewContext:
        """Clear the joined session on the server, then join it again."""
        ctx = self._require_session()
        project_id, session_id = ctx.project_id, ctx.session_id
        await self.projects.clear_session(session_id, preserve_tasks=preserve_tasks)
        self.view.clear_session_tools()
        return await self.watch(project_id, session_id)

    async def wait_idle(self, timeout: Optional[float] = None) -> AgentState:
        """Wait until the joined agent is idle."""
        self._require_session()
        await self._wait_for(lambda: self.view.context is not None and not self.view.agent_state.busy, timeout)
        return self.view.agent_state

    async def run_forever(self) -> None:
        """Process events until the connection closes for good."""
        if self._transport is None:
            raise TransportError("Not connected. Call connect() first.", code="not_connected")
        await self._transport.wait()

    # --- socket events ---

    def _on_socket_event(self, event: str, data: Any) -> None:
        if event == TransportEvent.CONNECT:
            if self.view.context is None and not self.view.joining:
                self.view.connected = True
            else:
                self.view.on_connect()
        elif event == TransportEvent.DISCONNECT:
            self.view.on_disconnect(data or "")
        elif event == TransportEvent.CONNECT_ERROR:
            self.view.on_connect_error(data)
        elif event == S2CEvent.SESSION_JOINED:
            self._session_joined(data)
        elif event == S2CEvent.SESSION_JOIN_ERROR:
            raw = data if isinstance(data, dict) else {}
            session_id = raw.get("sessionId")
            error = self.view.join_failed(session_id, raw.get("error") or "Unknown error")
            self._resolve_join(session_id, error=error)
        else:
            decoded = decode_event(event, data)
            if decoded is not None:
                self.view.handle_event(decoded.session_id, decoded)

    def _session_joined(self, data: Any) -> None:
        raw = data if isinstance(data, dict) else {}
        expected = self.view.expected_session_id
        if raw.get("sessionId") != (expected or self.view.session_id):
            logger.debug("Ignoring session_joined for %s (expected %s)", raw.get("sessionId"), expected)
            return
        try:
            snapshot = decode_snapshot(raw)
        except ValidationError as e:
            logger.error("Malformed session_joined payload: %s", e)
            error = self.view.join_failed(raw.get("sessionId"), "Malformed session data")
            self._resolve_join(raw.get("sessionId"), error=error)
            return
        ctx = self.view.join(snapshot)
        self._resolve_join(snapshot.session_id, ctx=ctx)

    def _resolve_join(
        self,
        session_id: Optional[str],
        ctx: Optional[SessionViewContext] = None,
        error: Optional[Exception] = None,
    ) -> None:
        if self._join_waiter is None:
            return
        waiting_for, waiter = self._join_waiter
        if session_id is not None and session_id != waiting_for:
            return
        self._join_waiter = None
        if waiter.done():
            return
        if error is not None:
            waiter.set_exception(error)
        else:
            waiter.set_result(ctx)

    def _fail_join(self, error: Exception) -> None:
        if self._join_waiter is not None:
            self._resolve_join(None, error=error)

    # --- helpers ---

    def _detach(self) -> None:
        if self._remove_handler is not None:
            self._remove_handler()
            self._remove_handler = None
        self.view.set_emitter(None)
        self._transport = None

    def _require_session(self) -> SessionViewContext:
        ctx = self.view.context
        if ctx is None:
            raise JoinError("No session joined. Call watch() first.")
        return ctx

    async def _wait_for(self, predicate: Callable[[], bool], timeout: Optional[float]) -> None:
        async def _poll() -> None:
            while not predicate():
                await asyncio.sleep(POLL_INTERVAL_S)

        await asyncio.wait_for(_poll(), timeout)


class ForgeWatch:
    """Sync wrapper around AsyncForgeWatch. Runs the event loop internally.

    Live updates are only processed while one of the blocking calls runs.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        self._async = AsyncForgeWatch(*args, **kwargs)
        self._loop = asyncio.new_event_loop()

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def projects(self) -> ProjectsAPI:
        return self._async.projects

    @property
    def view(self) -> ClientSessionView:
        return self._async.view

    @property
    def connected(self) -> bool:
        return self._async.connected

    @property
    def session_id(self) -> Optional[str]:
        return self._async.session_id

    def connect(self) -> None:
        self._run(self._async.connect())

    def disconnect(self) -> None:
        self._run(self._async.disconnect())

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()

    def list_projects(self) -> Any:
        return self._run(self._async.projects.list())

    def watch(self, project_id: Optional[str] = None, session_id: Optional[str] = None, **kwargs: Any) -> SessionViewContext:
        return self._run(self._async.watch(project_id, session_id, **kwargs))

    def switch(self, project_id: Optional[str], session_id: str) -> SessionViewContext:
        return self._run(self._async.switch(project_id, session_id))

    def interrupt(self, timeout: Optional[float] = None) -> None:
        """Interrupt and block until the request settles."""
        self._run(self._async.interrupt_and_wait(timeout))

    def send_message(self, content: str) -> None:
        async def _send() -> None:
            self._async.send_message(content)
            await asyncio.sleep(0)

        self._run(_send())

    def clear_session(self, preserve_tasks: bool = False) -> SessionViewContext:
        return self._run(self._async.clear_session(preserve_tasks))

    def wait_idle(self, timeout: Optional[float] = None) -> AgentState:
        return self._run(self._async.wait_idle(timeout))
