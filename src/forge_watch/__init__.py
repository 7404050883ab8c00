"""
forge-watch — live session watcher for LocalForge agents.

Socket.IO + REST client that projects an agent session's tool calls, tasks,
cost and interrupt state onto a pluggable renderer.
"""

from forge_watch.client import ForgeWatch, AsyncForgeWatch
from forge_watch.projects import ProjectsAPI
from forge_watch.view import ClientSessionView, SessionViewContext
from forge_watch.renderer import Renderer, NullRenderer, DisplayStatus
from forge_watch.clock import Clock, LoopClock, ManualClock
from forge_watch.config import Config, load_config
from forge_watch.errors import (
    ForgeWatchError,
    TransportError,
    JoinError,
    ServerError,
    InterruptError,
    InterruptTimeout,
)
from forge_watch.models.events import C2SEvent, S2CEvent

__version__ = "0.1.0"
__all__ = [
    "ForgeWatch",
    "AsyncForgeWatch",
    "ProjectsAPI",
    "ClientSessionView",
    "SessionViewContext",
    "Renderer",
    "NullRenderer",
    "DisplayStatus",
    "Clock",
    "LoopClock",
    "ManualClock",
    "Config",
    "load_config",
    "ForgeWatchError",
    "TransportError",
    "JoinError",
    "ServerError",
    "InterruptError",
    "InterruptTimeout",
    "C2SEvent",
    "S2CEvent",
]
