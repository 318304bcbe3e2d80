"""Tests for MCP server tools."""

import asyncio

import pytest

from conftest import FakeDispatcher, ScriptedModel, kickoff_responses
from docpilot.config import Settings
from docpilot.runtime import create_runtime

KICKOFF = "this will be a project that will train local models for Forex trading"


@pytest.fixture(autouse=True)
def runtime(tmp_path, monkeypatch):
    """Replace the MCP server's runtime with one backed by a temp store."""
    import docpilot.mcp.server as server_mod

    workspace = tmp_path / "workspace"
    workspace.mkdir()
    settings = Settings(workspace_root=workspace, db_path=tmp_path / "sessions.db")
    rt = create_runtime(settings, model=ScriptedModel(), dispatcher=FakeDispatcher())
    monkeypatch.setattr(server_mod, "runtime", rt)
    yield rt
    rt.close()


def start_session(rt) -> dict:
    from docpilot.mcp.server import route_message

    rt.manager.pipeline.model.queue(*kickoff_responses())
    return asyncio.run(route_message(KICKOFF))


class TestMCPTools:
    def test_route_message_to_agent(self):
        from docpilot.mcp.server import route_message

        result = asyncio.run(route_message("hello there"))
        assert result["routedTo"] == "agent"
        assert result["response"] == "Agent response"
        assert result["shouldContinue"] is False

    def test_route_message_starts_session(self, runtime):
        result = start_session(runtime)

        assert result["routedTo"] == "conversation"
        assert result["sessionId"]
        assert result["documentPath"].endswith("forex-trading-trainer.md")

    def test_list_sessions(self, runtime):
        from docpilot.mcp.server import list_sessions

        assert list_sessions() == []
        start_session(runtime)

        results = list_sessions()
        assert len(results) == 1
        assert results[0]["title"] == "Forex Trading Trainer"
        assert results[0]["status"] == "active"
        assert list_sessions(status="closed") == []

    def test_get_session(self, runtime):
        from docpilot.mcp.server import get_session

        started = start_session(runtime)
        details = get_session(started["sessionId"])

        assert details["doc_type"] == "prd"
        assert details["history"][0]["utterance"] == KICKOFF

    def test_get_nonexistent(self):
        from docpilot.mcp.server import get_session

        assert "not found" in get_session("nonexistent")

    def test_close_session_clears_router(self, runtime):
        from docpilot.mcp.server import close_session, get_session

        started = start_session(runtime)
        result = close_session(started["sessionId"])

        assert result["status"] == "closed"
        assert not runtime.router.has_active_session()
        assert get_session(started["sessionId"])["status"] == "closed"
        assert "not found" in close_session("nonexistent")
