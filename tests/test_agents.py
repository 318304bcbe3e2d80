"""Tests for the agent catalogue and the model-backed dispatcher."""

import asyncio

import pytest

from conftest import ScriptedModel
from docpilot.agents.catalog import create_agent, get_agent, list_agents, list_user_agents, parse_agent
from docpilot.agents.dispatcher import AgentContext, ModelAgentDispatcher
from docpilot.errors import ModelCallError


@pytest.fixture
def agents_dir(tmp_path, monkeypatch):
    """Use a temp dir for user agents."""
    import docpilot.config as config

    agents = tmp_path / "agents"
    agents.mkdir()
    monkeypatch.setattr(config, "DOCPILOT_DIR", tmp_path)
    monkeypatch.setattr(config, "AGENTS_DIR", agents)
    return agents


@pytest.fixture
def sample_agent(tmp_path):
    agent_dir = tmp_path / "api-reviewer"
    agent_dir.mkdir()
    (agent_dir / "AGENT.md").write_text(
        "---\nname: api-reviewer\ndescription: Reviews API contracts\ncategory: review\n---\n"
        "# API Reviewer\nCheck every endpoint for error codes.\n"
    )
    return agent_dir


class TestParseAgent:
    def test_parse_valid(self, sample_agent):
        agent = parse_agent(sample_agent)
        assert agent is not None
        assert agent.name == "api-reviewer"
        assert agent.description == "Reviews API contracts"
        assert agent.category == "review"
        assert "Check every endpoint" in agent.content
        assert agent.display_name == "Api Reviewer"

    def test_parse_missing_file(self, tmp_path):
        assert parse_agent(tmp_path) is None

    def test_parse_no_frontmatter(self, tmp_path):
        agent_dir = tmp_path / "plain"
        agent_dir.mkdir()
        (agent_dir / "AGENT.md").write_text("# Just a prompt\nAnswer briefly.")
        agent = parse_agent(agent_dir)
        assert agent.name == "plain"
        assert agent.category == "uncategorized"
        assert agent.content.startswith("# Just a prompt")


class TestCatalog:
    def test_builtins_are_listed(self, agents_dir):
        names = {a.name for a in list_agents()}
        assert {
            "prd-creator",
            "requirements-gatherer",
            "solution-architect",
            "specification-writer",
            "brainstormer",
            "quality-reviewer",
        } <= names
        assert list_user_agents() == []

    def test_create_and_get(self, agents_dir):
        created = create_agent("api-reviewer", "Reviews API contracts", "review")

        assert (agents_dir / "review" / "api-reviewer" / "AGENT.md").exists()
        agent = get_agent("api-reviewer")
        assert agent is not None
        assert agent.category == "review"
        assert agent.path == created.path

    def test_user_agent_overrides_builtin(self, agents_dir):
        create_agent("prd-creator", "House PRD style", "authoring")

        agent = get_agent("prd-creator")
        assert agent.description == "House PRD style"
        assert agent.path is not None
        assert [a.name for a in list_agents()].count("prd-creator") == 1

    def test_unknown_agent(self, agents_dir):
        assert get_agent("nonexistent") is None


class TestModelAgentDispatcher:
    def test_uses_agent_prompt_as_system(self, agents_dir):
        model = ScriptedModel("  A PRD captures goals and metrics.  ")
        dispatcher = ModelAgentDispatcher(model)

        response = asyncio.run(
            dispatcher.handle_request(
                "what is a PRD?",
                AgentContext(agent_name="quality-reviewer", active_document="/ws/docs/prd/a.md"),
            )
        )

        assert response.content == "A PRD captures goals and metrics."
        assert response.agent_name == "quality-reviewer"
        assert model.calls == ["what is a PRD?"]
        assert "quality reviewer" in model.systems[0]
        assert "/ws/docs/prd/a.md" in model.systems[0]

    def test_unknown_agent_uses_default(self, agents_dir):
        model = ScriptedModel("answer")
        dispatcher = ModelAgentDispatcher(model, default_agent="brainstormer")

        response = asyncio.run(dispatcher.handle_request("hi", AgentContext(agent_name="nobody")))

        assert response.agent_name == "brainstormer"

    def test_missing_default_agent(self, agents_dir):
        dispatcher = ModelAgentDispatcher(ScriptedModel(), default_agent="nobody")
        with pytest.raises(LookupError):
            dispatcher.resolve("also-nobody")

    def test_model_failure_raises(self, agents_dir):
        dispatcher = ModelAgentDispatcher(ScriptedModel(ConnectionError("down")))
        with pytest.raises(ModelCallError):
            asyncio.run(dispatcher.handle_request("hi", AgentContext()))
