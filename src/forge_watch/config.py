"""
Settings for forge-watch, read from ``~/.forgewatch/config.json``.

Environment overrides: ``FORGEWATCH_URL`` (full base URL) or
``LOCALFORGE_PORT`` (localhost on that port).
"""

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from forge_watch.interrupt import INTERRUPT_TIMEOUT_S
from forge_watch.projector import TICK_INTERVAL_S
from forge_watch.transport.http import DEFAULT_BASE_URL
from forge_watch.transport.socketio import DEFAULT_SOCKETIO_PATH

CONFIG_FILE = Path.home() / ".forgewatch" / "config.json"


class Config(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    socketio_path: str = DEFAULT_SOCKETIO_PATH
    join_timeout: float = Field(default=15.0, gt=0)
    interrupt_timeout: float = Field(default=INTERRUPT_TIMEOUT_S, gt=0)
    tick_interval: float = Field(default=TICK_INTERVAL_S, gt=0)


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    if environ.get("FORGEWATCH_URL"):
        return {"base_url": environ["FORGEWATCH_URL"]}
    if environ.get("LOCALFORGE_PORT"):
        return {"base_url": f"http://localhost:{environ['LOCALFORGE_PORT']}"}
    return {}


def load_config(path: Path = CONFIG_FILE, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> Config:
    """File, then environment, then explicit non-None overrides."""
    try:
        data = json.loads(path.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        data = {}
    if not isinstance(data, dict):
        data = {}
    data.update(_env_overrides(os.environ if environ is None else environ))
    data.update({k: v for k, v in overrides.items() if v is not None})
    return Config.model_validate(data)


def save_config(config: Config, path: Path = CONFIG_FILE) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(), indent=2))
