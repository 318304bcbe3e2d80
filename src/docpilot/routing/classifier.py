"""LLM-backed intent classification for turns that touch a document session."""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from docpilot.llm.base import LanguageModel, call_model
from docpilot.llm.parsing import extract_json_object
from docpilot.sessions.models import DocType, DocumentSession

logger = logging.getLogger(__name__)


class RoutingAction(str, Enum):
    ROUTE_TO_AGENT = "route_to_agent"
    CONTINUE_DOC = "continue_doc"
    START_NEW_DOC = "start_new_doc"


class RoutingDecision(BaseModel):
    """Classifier verdict for one utterance."""

    model_config = ConfigDict(populate_by_name=True)

    action: RoutingAction
    confidence: float = 0.0
    reason: str = ""
    requires_confirmation: bool = Field(default=False, alias="requiresConfirmation")
    target_doc_type: DocType | None = Field(default=None, alias="targetDocType")
    target_agent: str | None = Field(default=None, alias="targetAgent")

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: object) -> float:
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.0
        if number != number:  # NaN
            return 0.0
        return min(1.0, max(0.0, number))

    @field_validator("target_doc_type", mode="before")
    @classmethod
    def _loose_doc_type(cls, value: object) -> DocType | None:
        return DocType.parse(value)

    @field_validator("requires_confirmation", mode="before")
    @classmethod
    def _loose_bool(cls, value: object) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in {"true", "yes", "1"}
        return bool(value)

    @field_validator("reason", mode="before")
    @classmethod
    def _reason_text(cls, value: object) -> str:
        return "" if value is None else str(value)

    @classmethod
    def safe_default(cls, reason: str) -> "RoutingDecision":
        """Never switch documents on instructions we could not read."""
        return cls(
            action=RoutingAction.ROUTE_TO_AGENT,
            confidence=0.0,
            reason=reason,
            requires_confirmation=False,
        )


_FIELD_ALIASES = {
    "requires_confirmation": "requiresConfirmation",
    "target_doc_type": "targetDocType",
    "target_agent": "targetAgent",
}


def decode_routing_decision(raw: str) -> RoutingDecision:
    """Decode classifier output, tolerating commentary and missing fields."""
    parsed = extract_json_object(raw)
    if parsed is None:
        logger.warning("Unparseable routing decision: %r", (raw or "")[:200])
        return RoutingDecision.safe_default("Classifier output could not be parsed")

    for snake, camel in _FIELD_ALIASES.items():
        if snake in parsed and camel not in parsed:
            parsed[camel] = parsed.pop(snake)
    action = parsed.get("action")
    if isinstance(action, str):
        parsed["action"] = action.strip().lower()

    try:
        decision = RoutingDecision.model_validate(parsed)
    except ValidationError as e:
        logger.warning("Invalid routing decision %r: %s", parsed, e.errors()[:1])
        return RoutingDecision.safe_default("Classifier output was not a valid decision")
    logger.debug("Decoded routing decision: %s", decision)
    return decision


INTENT_PROMPT = """You route messages in a document-authoring assistant.

{session_context}

Latest user message: "{utterance}"

Decide what the user wants:
- continue_doc: the message adds to, answers questions about, or asks to revise the document above
- start_new_doc: the message asks for a different, new document
- route_to_agent: the message is a general question or request unrelated to editing a document

Set requiresConfirmation to true whenever it is unclear whether the user wants to leave the current document.
Document types: prd, requirements, design, spec, brainstorm.
Agents: prd-creator, requirements-gatherer, solution-architect, specification-writer, brainstormer, quality-reviewer.

Respond with ONLY a JSON object:
{{"action": "continue_doc", "confidence": 0.9, "reason": "short explanation", "requiresConfirmation": false, "targetDocType": null, "targetAgent": null}}"""


def describe_session(session: DocumentSession | None, recent_turns: int = 3) -> str:
    """Session context block for the intent prompt."""
    if session is None:
        return "There is no current document."
    state = "currently open" if session.is_active else "recently finished (it can be reopened)"
    lines = [
        f"Current document ({state}): \"{session.title}\"",
        f"Type: {session.meta.doc_label}",
        f"Path: {session.document_path}",
    ]
    turns = session.turn_history[-recent_turns:]
    if turns:
        lines.append("Recent user messages:")
        lines.extend(f"- {t.utterance[:200]}" for t in turns)
    return "\n".join(lines)


class IntentClassifier:
    """Asks the model how an utterance relates to the current session."""

    def __init__(self, model: LanguageModel):
        self.model = model

    async def classify(self, utterance: str, session: DocumentSession | None) -> RoutingDecision:
        """One model call. Raises ModelCallError; bad output decodes to the safe default."""
        prompt = INTENT_PROMPT.format(session_context=describe_session(session), utterance=utterance)
        raw = await call_model(self.model, prompt, purpose="intent classification")
        return decode_routing_decision(raw)
