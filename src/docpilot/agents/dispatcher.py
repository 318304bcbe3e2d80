"""Stateless agent dispatch for turns that are not document authoring."""

import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel

from docpilot.agents.catalog import Agent, get_agent
from docpilot.config import DEFAULT_AGENT
from docpilot.llm.base import LanguageModel, call_model

logger = logging.getLogger(__name__)


class AgentContext(BaseModel):
    """What an agent knows about the caller."""

    agent_name: str = DEFAULT_AGENT
    workspace_root: str = ""
    active_document: str | None = None


class AgentResponse(BaseModel):
    content: str = ""
    agent_name: str | None = None


class AgentDispatcher(Protocol):
    async def handle_request(self, prompt: str, context: AgentContext) -> AgentResponse: ...


class ModelAgentDispatcher:
    """Answers one-shot requests with the named agent's prompt as the system message."""

    def __init__(
        self,
        model: LanguageModel,
        default_agent: str = DEFAULT_AGENT,
        agents_dir: Path | None = None,
    ):
        self.model = model
        self.default_agent = default_agent
        self.agents_dir = agents_dir

    def resolve(self, name: str | None) -> Agent:
        agent = get_agent(name or self.default_agent, self.agents_dir)
        if agent is None:
            logger.info("Unknown agent %r, using %s", name, self.default_agent)
            agent = get_agent(self.default_agent, self.agents_dir)
        if agent is None:
            raise LookupError(f"No agent named {self.default_agent!r}")
        return agent

    async def handle_request(self, prompt: str, context: AgentContext) -> AgentResponse:
        agent = self.resolve(context.agent_name)
        system = agent.content
        if context.active_document:
            system += f"\n\nThe user is currently working on {context.active_document}."
        content = await call_model(self.model, prompt, system=system, purpose=f"agent {agent.name}")
        return AgentResponse(content=content.strip(), agent_name=agent.name)
