"""
Interrupt handshake — one outstanding cancellation request per session.

    Idle --request--> Requested --ack--> Acknowledged --complete/error--> Idle

A local timeout returns to Idle from any state when the server stays silent,
so the user gets control back even though the run may still be going on
server-side.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from forge_watch.clock import TimerGroup, TimerHandle
from forge_watch.errors import InterruptError, InterruptTimeout

logger = logging.getLogger(__name__)

INTERRUPT_TIMEOUT_S = 5.0


class InterruptState(str, Enum):
    IDLE = "idle"
    REQUESTED = "requested"
    ACKNOWLEDGED = "acknowledged"


class InterruptOutcome(str, Enum):
    COMPLETED = "completed"
    ERRORED = "errored"
    TIMED_OUT = "timed_out"


class InterruptCoordinator:
    def __init__(
        self,
        timers: TimerGroup,
        send: Callable[[str], None],
        on_change: Optional[Callable[["InterruptCoordinator"], None]] = None,
        on_error: Optional[Callable[[InterruptError], None]] = None,
        timeout_s: float = INTERRUPT_TIMEOUT_S,
    ):
        self._timers = timers
        self._send = send
        self._on_change = on_change
        self._on_error = on_error
        self._timeout_s = timeout_s
        self._timeout: Optional[TimerHandle] = None
        self.state = InterruptState.IDLE
        self.last_outcome: Optional[InterruptOutcome] = None
        self.session_id: Optional[str] = None

    @property
    def outstanding(self) -> bool:
        return self.state is not InterruptState.IDLE

    def request(self, session_id: str) -> None:
        """Ask the server to stop the session. Raises if one is already in flight.

        A TransportError from the sender propagates and leaves the state Idle.
        """
        if self.outstanding:
            raise InterruptError(
                f"Interrupt already {self.state.value} for session {self.session_id}",
                code="interrupt_pending",
            )
        self._send(session_id)
        logger.info("Interrupt requested for session %s", session_id)
        self.session_id = session_id
        self.state = InterruptState.REQUESTED
        self._timeout = self._timers.call_later(self._timeout_s, self._expire)
        self._changed()

    def acknowledge(self) -> None:
        if self.state is not InterruptState.REQUESTED:
            logger.debug("interrupt_acknowledged while %s, ignored", self.state.value)
            return
        self.state = InterruptState.ACKNOWLEDGED
        self._changed()

    def complete(self) -> bool:
        """Returns True if this finished our own request."""
        if not self.outstanding:
            return False
        self._finish(InterruptOutcome.COMPLETED)
        return True

    def error(self, message: str) -> None:
        # The server only sends interrupt_error to the socket that asked, so
        # it is surfaced even when no request is tracked here.
        if self.outstanding:
            self._finish(InterruptOutcome.ERRORED, notify=False)
        self._report(InterruptError(f"Could not interrupt: {message}"))
        self._changed()

    def reset(self) -> None:
        """Forget any request without reporting anything (join/leave)."""
        self._cancel_timeout()
        self.state = InterruptState.IDLE
        self.session_id = None

    def _expire(self) -> None:
        self._timeout = None
        if not self.outstanding:
            return
        logger.warning("No interrupt confirmation for session %s after %ss", self.session_id, self._timeout_s)
        self._finish(InterruptOutcome.TIMED_OUT, notify=False)
        self._report(InterruptTimeout(self._timeout_s))
        self._changed()

    def _finish(self, outcome: InterruptOutcome, notify: bool = True) -> None:
        self._cancel_timeout()
        self.state = InterruptState.IDLE
        self.last_outcome = outcome
        self.session_id = None
        if notify:
            self._changed()

    def _cancel_timeout(self) -> None:
        if self._timeout is not None:
            self._timeout.cancel()
            self._timeout = None

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self)

    def _report(self, error: InterruptError) -> None:
        if self._on_error is not None:
            self._on_error(error)
