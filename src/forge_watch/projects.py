"""
Projects and sessions REST API.
"""

from __future__ import annotations

from typing import Any, Optional

from forge_watch.models.session import ProjectInfo, ProjectListing, SessionInfo
from forge_watch.transport.http import HttpClient


class ProjectsAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def list(self) -> ProjectListing:
        """All projects plus the server's current project/session ids."""
        return ProjectListing.model_validate(await self._http.get("/projects"))

    async def sessions(self, project_id: str) -> list[SessionInfo]:
        data = await self._http.get(f"/projects/{project_id}/sessions")
        return [SessionInfo.model_validate(s) for s in data or []]

    async def get_session(self, session_id: str) -> dict[str, Any]:
        """Raw persisted session document (messages, tool logs, tasks)."""
        return await self._http.get(f"/sessions/{session_id}")

    async def clear_session(self, session_id: str, preserve_tasks: bool = False) -> Any:
        params = {"preserveTasks": "true"} if preserve_tasks else None
        return await self._http.post(f"/sessions/{session_id}/clear", params=params)

    async def current(self) -> tuple[Optional[ProjectInfo], Optional[str]]:
        """The server's current project and session id, if any."""
        listing = await self.list()
        project = next((p for p in listing.projects if p.id == listing.current_project_id), None)
        return project, listing.current_session_id
