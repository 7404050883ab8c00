"""
Integration tests against a running LocalForge server.

Requires environment variables:
  FORGEWATCH_INTEGRATION  — set to run these tests
  FORGEWATCH_URL          — (optional) defaults to http://localhost:3826

The server must have a current project and session.

Run: FORGEWATCH_INTEGRATION=1 pytest tests/integration/ -v
"""

import os

import pytest

from forge_watch import AsyncForgeWatch, JoinError
from forge_watch.config import load_config

SKIP = not os.environ.get("FORGEWATCH_INTEGRATION")

pytestmark = pytest.mark.skipif(SKIP, reason="FORGEWATCH_INTEGRATION not set")


def make_client() -> AsyncForgeWatch:
    return AsyncForgeWatch.from_config(load_config())


class TestProjects:
    @pytest.mark.asyncio
    async def test_lists_projects_and_sessions(self):
        async with make_client() as client:
            listing = await client.projects.list()
            assert isinstance(listing.projects, list)
            if listing.current_project_id:
                sessions = await client.projects.sessions(listing.current_project_id)
                assert all(s.id for s in sessions)


class TestWatch:
    @pytest.mark.asyncio
    async def test_joins_current_session(self):
        async with make_client() as client:
            ctx = await client.watch()
            assert ctx.session_id == client.session_id
            assert client.connected
            projection = ctx.projection()
            assert projection.session_id == ctx.session_id

    @pytest.mark.asyncio
    async def test_rejoin_is_a_hard_reset(self):
        async with make_client() as client:
            first = await client.watch()
            second = await client.switch(first.project_id, first.session_id)
            assert first.active_timers == 0
            assert second is not first
            assert second.session_id == first.session_id

    @pytest.mark.asyncio
    async def test_unknown_session_fails_to_join(self):
        async with make_client() as client:
            with pytest.raises(JoinError):
                await client.watch(None, "no-such-session-id", timeout=5)
