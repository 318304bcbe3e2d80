"""Wiring: build a router and its collaborators from settings."""

from dataclasses import dataclass

from docpilot.agents.dispatcher import AgentDispatcher, ModelAgentDispatcher
from docpilot.config import Settings
from docpilot.llm.base import LanguageModel
from docpilot.routing.classifier import IntentClassifier
from docpilot.routing.router import SessionRouter
from docpilot.sessions.manager import DocSessionManager
from docpilot.sessions.models import TurnContext
from docpilot.sessions.store import SessionStore


@dataclass
class Runtime:
    settings: Settings
    store: SessionStore
    manager: DocSessionManager
    router: SessionRouter

    def context(self) -> TurnContext:
        return TurnContext(
            workspace_root=self.settings.workspace_root,
            agent_name=self.settings.default_agent,
        )

    def close(self) -> None:
        self.store.close()


def create_runtime(
    settings: Settings,
    model: LanguageModel | None = None,
    dispatcher: AgentDispatcher | None = None,
    store: SessionStore | None = None,
) -> Runtime:
    """Assemble store, manager, classifier, dispatcher and router."""
    if model is None:
        from docpilot.llm.openai_model import OpenAIChatModel

        model = OpenAIChatModel.from_settings(settings)
    store = store or SessionStore(db_path=settings.db_path)
    manager = DocSessionManager(store, model, policy=settings.policy)
    router = SessionRouter(
        manager,
        IntentClassifier(model),
        dispatcher or ModelAgentDispatcher(model, default_agent=settings.default_agent),
        policy=settings.policy,
    )
    return Runtime(settings=settings, store=store, manager=manager, router=router)
