"""
forge-watch error types — transport, join, server and interrupt failures.
"""

from typing import Any, Optional

# Server error messages that leave the session unusable until fixed externally.
CRITICAL_SERVER_ERRORS = {"API_KEY_MISSING"}


class ForgeWatchError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details

    @property
    def message(self) -> str:
        return str(self)


class TransportError(ForgeWatchError):
    """Disconnect or connect_error. Reconnection belongs to the transport."""

    def __init__(self, message: str, code: str = "transport_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class JoinError(ForgeWatchError):
    def __init__(self, message: str, session_id: Optional[str] = None):
        super().__init__("join_error", message, {"session_id": session_id} if session_id else None)
        self.session_id = session_id


class ServerError(ForgeWatchError):
    def __init__(self, message: str, critical: bool = False, details: Optional[dict[str, Any]] = None):
        super().__init__("server_error", message, details)
        self.critical = critical

    @classmethod
    def from_message(cls, message: str, details: Optional[dict[str, Any]] = None) -> "ServerError":
        return cls(message, critical=message in CRITICAL_SERVER_ERRORS, details=details)


class InterruptError(ForgeWatchError):
    def __init__(self, message: str, code: str = "interrupt_error"):
        super().__init__(code, message)


class InterruptTimeout(InterruptError):
    def __init__(self, timeout_s: float):
        super().__init__(
            f"No interrupt confirmation from server after {timeout_s:g}s; input restored locally",
            code="interrupt_timeout",
        )
        self.timeout_s = timeout_s
