"""Session router: decides, per utterance, where a turn goes.

The router owns two things only: the pointer to the session currently being
talked about and the pending-confirmation slot. Both live in one tagged
state value, ``Idle | Active | PendingConfirmation``. Session records belong
to the DocSessionManager and stay retrievable by id whatever the router does.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal, Union, cast

from pydantic import BaseModel, ConfigDict, Field

from docpilot.agents.dispatcher import AgentContext, AgentDispatcher
from docpilot.config import RoutingPolicy
from docpilot.errors import DocpilotError, DraftingError, ModelCallError, PersistenceError
from docpilot.routing.classifier import IntentClassifier, RoutingAction, RoutingDecision
from docpilot.routing.heuristics import (
    Confirmation,
    is_completion,
    looks_like_kickoff,
    looks_like_revision,
    parse_confirmation,
)
from docpilot.sessions.manager import DocSessionManager
from docpilot.sessions.models import DOC_TYPE_META, DocType, DocumentSession, SessionResult, TurnContext

logger = logging.getLogger(__name__)

GENERIC_AGENT_FALLBACK = (
    "I wasn't able to produce an answer just now. Please try again in a moment, "
    "or describe a document you'd like to create."
)
CLASSIFIER_DOWN_RESPONSE = (
    "I couldn't work out how that message relates to your document because the language "
    "model is unavailable. Your document is unchanged and the session is still open, so "
    "just reply again to continue, or type `done` to finish."
)


@dataclass(frozen=True)
class Idle:
    """No session is being discussed. Remembers the last closed one for resumes."""

    last_closed_id: str | None = None


@dataclass(frozen=True)
class Active:
    session_id: str


@dataclass(frozen=True)
class PendingConfirmation:
    """An ambiguous switch waiting one turn for an explicit yes or no."""

    decision: RoutingDecision
    utterance: str
    previous: Union[Idle, Active]


RouterState = Union[Idle, Active, PendingConfirmation]


class RoutingResult(BaseModel):
    """What the caller gets back for every turn."""

    model_config = ConfigDict(populate_by_name=True)

    routed_to: Literal["agent", "conversation"] = Field(alias="routedTo")
    response: str
    should_continue: bool = Field(default=False, alias="shouldContinue")
    session_id: str | None = Field(default=None, alias="sessionId")
    document_path: str | None = Field(default=None, alias="documentPath")
    agent_name: str | None = Field(default=None, alias="agentName")
    error: str | None = None

    @classmethod
    def from_session(cls, result: SessionResult) -> "RoutingResult":
        return cls(
            routed_to="conversation",
            response=result.response,
            should_continue=result.should_continue,
            session_id=result.session_id,
            document_path=result.document_path,
            error=result.error,
        )


def confirmation_prompt(decision: RoutingDecision, current: DocumentSession | None) -> str:
    """Yes/no question shown while a switch is pending."""
    if decision.target_doc_type is not None:
        label = DOC_TYPE_META[decision.target_doc_type].doc_label
        target = f"a new {label}"
    else:
        target = "a new document"
    reason = f" ({decision.reason.rstrip('.')})" if decision.reason else ""
    if current is not None and current.is_active:
        keep = f"`no` to keep working on \"{current.title}\""
    else:
        keep = "`no` to cancel"
    return (
        f"It sounds like you want to start {target}{reason}.\n\n"
        f"Reply `yes` to start it, or {keep}."
    )


class SessionRouter:
    """Routes each utterance to a document session or a stateless agent.

    Turns are processed one at a time; a second concurrent call waits for the
    first to finish. State is only replaced after every awaited step of a
    turn has succeeded, so a cancelled turn leaves the previous state intact.
    """

    def __init__(
        self,
        manager: DocSessionManager,
        classifier: IntentClassifier,
        dispatcher: AgentDispatcher,
        policy: RoutingPolicy | None = None,
        resume_detector: Callable[[str], bool] = looks_like_revision,
    ):
        self.manager = manager
        self.classifier = classifier
        self.dispatcher = dispatcher
        self.policy = policy or RoutingPolicy()
        self.resume_detector = resume_detector
        self._state: RouterState = Idle()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> RouterState:
        return self._state

    @property
    def active_session_id(self) -> str | None:
        state = self._state
        if isinstance(state, PendingConfirmation):
            state = state.previous
        return state.session_id if isinstance(state, Active) else None

    @property
    def pending_decision(self) -> RoutingDecision | None:
        if isinstance(self._state, PendingConfirmation):
            return self._state.decision
        return None

    def has_active_session(self) -> bool:
        return self.active_session_id is not None

    def clear_active_session(self) -> None:
        """Drop the pointer. The session record itself is untouched."""
        if self._state != Idle():
            logger.info("Clearing router state %s", self._state)
        self._state = Idle()

    async def route_user_input(self, utterance: str, ctx: TurnContext) -> RoutingResult:
        """Handle one turn. Never raises for model, drafting or persistence failures."""
        async with self._lock:
            logger.info(
                "Routing input (%d chars), state=%s", len(utterance), type(self._state).__name__
            )
            try:
                return await self._route(utterance, ctx)
            except Exception as e:
                logger.exception("Unexpected routing failure")
                active = self.active_session_id
                return RoutingResult(
                    routed_to="conversation" if active else "agent",
                    response=GENERIC_AGENT_FALLBACK,
                    should_continue=active is not None,
                    session_id=active,
                    error=str(e),
                )

    async def attach_document(
        self,
        document_path: str | Path,
        ctx: TurnContext,
        doc_type: DocType | None = None,
        initial_input: str | None = None,
    ) -> RoutingResult:
        """Open a session on an existing document and make it the active one.

        On failure the router state is left as it was and the error is
        reported in the result.
        """
        async with self._lock:
            try:
                result = await self.manager.start_session_from_document(
                    document_path, ctx, doc_type=doc_type, initial_input=initial_input, agent_name=ctx.agent_name
                )
            except DocpilotError as e:
                logger.error("Could not attach %s: %s", document_path, e)
                active = self.active_session_id
                return RoutingResult(
                    routed_to="conversation",
                    response=f"I couldn't open `{document_path}`, so nothing was attached. Please try again.",
                    should_continue=active is not None,
                    session_id=active,
                    error=str(e),
                )
            self._state = Active(result.session_id)
            return RoutingResult.from_session(result)

    async def _route(self, utterance: str, ctx: TurnContext) -> RoutingResult:
        state = self._state

        if isinstance(state, PendingConfirmation):
            self._state = state.previous
            if parse_confirmation(utterance) is Confirmation.AFFIRMATIVE:
                logger.info("Pending %s confirmed", state.decision.action.value)
                return await self._start(state.utterance, ctx, state.decision.target_doc_type)
            logger.info("Pending %s discarded", state.decision.action.value)
            state = self._state

        if isinstance(state, Active):
            session = self.manager.get_session(state.session_id)
            if session is None:
                logger.warning("Active session %s no longer exists, cleaning up", state.session_id)
                state = self._state = Idle()
            elif not session.is_active:
                state = self._state = Idle(last_closed_id=session.id)
            else:
                if is_completion(utterance):
                    return self._close(session.id, utterance, ctx)
                return await self._route_active(session, utterance, ctx)

        return await self._route_idle(cast(Idle, state), utterance, ctx)

    async def _route_idle(self, state: Idle, utterance: str, ctx: TurnContext) -> RoutingResult:
        closed = self.manager.get_session(state.last_closed_id) if state.last_closed_id else None

        if closed is not None and not is_completion(utterance) and self.resume_detector(utterance):
            logger.info("Revision request after close, resuming %s", closed.id)
            return await self._continue(closed.id, utterance, ctx)

        if not looks_like_kickoff(utterance, self.policy.min_kickoff_words):
            return await self._to_agent(utterance, ctx)

        if closed is None:
            return await self._start(utterance, ctx)

        try:
            decision = await self.classifier.classify(utterance, closed)
        except ModelCallError as e:
            return await self._to_agent(utterance, ctx, error=str(e))
        return await self._apply(decision, closed, utterance, ctx)

    async def _route_active(self, session: DocumentSession, utterance: str, ctx: TurnContext) -> RoutingResult:
        try:
            decision = await self.classifier.classify(utterance, session)
        except ModelCallError as e:
            logger.warning("Intent classification failed, keeping session %s open", session.id)
            return RoutingResult(
                routed_to="conversation",
                response=CLASSIFIER_DOWN_RESPONSE,
                should_continue=True,
                session_id=session.id,
                document_path=session.document_path,
                error=str(e),
            )
        return await self._apply(decision, session, utterance, ctx)

    async def _apply(
        self,
        decision: RoutingDecision,
        session: DocumentSession,
        utterance: str,
        ctx: TurnContext,
    ) -> RoutingResult:
        logger.info(
            "Decision %s (confidence %.2f, confirm=%s): %s",
            decision.action.value,
            decision.confidence,
            decision.requires_confirmation,
            decision.reason,
        )
        if decision.action is RoutingAction.CONTINUE_DOC:
            return await self._continue(session.id, utterance, ctx)

        if decision.action is RoutingAction.START_NEW_DOC:
            ambiguous = (
                decision.requires_confirmation
                or decision.confidence < self.policy.confidence_threshold
            )
            if ambiguous:
                previous = self._state
                if isinstance(previous, PendingConfirmation):
                    previous = previous.previous
                self._state = PendingConfirmation(decision=decision, utterance=utterance, previous=previous)
                return RoutingResult(
                    routed_to="agent",
                    response=confirmation_prompt(decision, session),
                    should_continue=True,
                    agent_name=decision.target_agent,
                )
            return await self._start(utterance, ctx, decision.target_doc_type)

        return await self._to_agent(utterance, ctx, agent_name=decision.target_agent)

    async def _start(self, utterance: str, ctx: TurnContext, doc_type: DocType | None = None) -> RoutingResult:
        try:
            result = await self.manager.start_new_session(utterance, ctx, doc_type=doc_type)
        except (DraftingError, ModelCallError, PersistenceError) as e:
            logger.warning("Could not start a document session: %s", e)
            return await self._to_agent(utterance, ctx, error=str(e))
        self._state = Active(result.session_id)
        return RoutingResult.from_session(result)

    async def _continue(self, session_id: str, utterance: str, ctx: TurnContext) -> RoutingResult:
        try:
            result = await self.manager.continue_session(session_id, utterance, ctx)
        except PersistenceError as e:
            logger.error("Could not save document for session %s: %s", session_id, e)
            session = self.manager.get_session(session_id)
            return RoutingResult(
                routed_to="conversation",
                response="I couldn't save your document, so it was left as it was. Please try again.",
                should_continue=True,
                session_id=session_id,
                document_path=session.document_path if session else None,
                error=str(e),
            )
        if result.should_continue:
            self._state = Active(result.session_id)
        else:
            self._state = Idle(last_closed_id=result.session_id)
        return RoutingResult.from_session(result)

    def _close(self, session_id: str, utterance: str, ctx: TurnContext) -> RoutingResult:
        result = self.manager.close_session(session_id, ctx, utterance)
        self._state = Idle(last_closed_id=session_id)
        return RoutingResult.from_session(result)

    async def _to_agent(
        self,
        utterance: str,
        ctx: TurnContext,
        agent_name: str | None = None,
        error: str | None = None,
    ) -> RoutingResult:
        active = self.active_session_id
        session = self.manager.get_session(active) if active else None
        context = AgentContext(
            agent_name=agent_name or ctx.agent_name,
            workspace_root=str(ctx.workspace_root),
            active_document=session.document_path if session else None,
        )
        content = ""
        resolved_agent = context.agent_name
        try:
            response = await self.dispatcher.handle_request(utterance, context)
            content = (response.content or "").strip()
            resolved_agent = response.agent_name or resolved_agent
        except Exception as e:
            logger.warning("Agent %s failed: %s", context.agent_name, e)
            error = error or str(e)
        return RoutingResult(
            routed_to="agent",
            response=content or GENERIC_AGENT_FALLBACK,
            should_continue=active is not None,
            agent_name=resolved_agent,
            error=error,
        )
