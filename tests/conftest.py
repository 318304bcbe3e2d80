"""Shared fixtures: deterministic stand-ins for the model and the agent dispatcher."""

import json

import pytest

from docpilot.agents.dispatcher import AgentContext, AgentResponse
from docpilot.config import RoutingPolicy
from docpilot.routing.classifier import IntentClassifier
from docpilot.routing.router import SessionRouter
from docpilot.sessions.manager import DocSessionManager
from docpilot.sessions.models import TurnContext
from docpilot.sessions.store import SessionStore


class ScriptedModel:
    """Answers prompts from a queue. Queued exceptions are raised instead."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[str] = []
        self.systems: list[str | None] = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def complete(self, prompt: str, *, system: str | None = None) -> str:
        self.calls.append(prompt)
        self.systems.append(system)
        if not self.responses:
            raise RuntimeError("no scripted response left")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeDispatcher:
    def __init__(self, content: str = "Agent response"):
        self.content = content
        self.calls: list[tuple[str, AgentContext]] = []

    async def handle_request(self, prompt: str, context: AgentContext) -> AgentResponse:
        self.calls.append((prompt, context))
        return AgentResponse(content=self.content, agent_name=context.agent_name)


def decision(action: str, confidence: float = 0.9, **extra) -> str:
    """Classifier output the way a model would write it."""
    payload = {"action": action, "confidence": confidence, "reason": f"test {action}"}
    payload.update(extra)
    return json.dumps(payload)


def revision(document: str, question: str) -> str:
    return f"---DOCUMENT---\n{document}\n---QUESTION---\n{question}"


def kickoff_responses(doc_type: str = "prd", title: str = "Forex Trading Trainer") -> list[str]:
    """Classification, draft and first question for one new session."""
    return [
        json.dumps({"docType": doc_type, "title": title}),
        f"# {title}\n\n## Overview\nInitial draft.",
        "What exchange pairs should the model target initially?",
    ]


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def ctx(workspace):
    return TurnContext(workspace_root=workspace, agent_name="prd-creator")


@pytest.fixture
def store(tmp_path):
    s = SessionStore(db_path=tmp_path / "sessions.db")
    yield s
    s.close()


@pytest.fixture
def model():
    return ScriptedModel()


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def policy():
    return RoutingPolicy()


@pytest.fixture
def manager(store, model, policy):
    m = DocSessionManager(store, model, policy=policy)
    yield m
    m.clear_all()


@pytest.fixture
def router(manager, model, dispatcher, policy):
    return SessionRouter(manager, IntentClassifier(model), dispatcher, policy=policy)
