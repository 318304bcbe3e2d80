"""Document session data models."""

import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class DocType(str, Enum):
    PRD = "prd"
    REQUIREMENTS = "requirements"
    DESIGN = "design"
    SPEC = "spec"
    BRAINSTORM = "brainstorm"

    @classmethod
    def parse(cls, value: object, default: "DocType | None" = None) -> "DocType | None":
        """Decode a doc type from loose model or user text."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            key = _DOC_TYPE_ALIASES.get(key, key)
            try:
                return cls(key)
            except ValueError:
                pass
        return default


_DOC_TYPE_ALIASES = {
    "specification": "spec",
    "ideas": "brainstorm",
    "idea": "brainstorm",
    "requirement": "requirements",
    "product requirements document": "prd",
}


class DocTypeMeta(BaseModel):
    """Static facts about one document type."""

    agent_name: str
    agent_title: str
    folder: str
    doc_label: str
    system_prompt: str


_ONE_QUESTION = (
    "Each response should: (1) incorporate the user's latest input into the document, "
    "(2) ask exactly ONE focused follow-up question."
)

DOC_TYPE_META: dict[DocType, DocTypeMeta] = {
    DocType.PRD: DocTypeMeta(
        agent_name="prd-creator",
        agent_title="PRD Creator",
        folder="docs/prd",
        doc_label="Product Requirements Document (PRD)",
        system_prompt=(
            "You are a senior product manager specialising in Product Requirements Documents. "
            "Help the user develop a comprehensive PRD covering goals, target users, key features, "
            "success metrics and constraints. " + _ONE_QUESTION
        ),
    ),
    DocType.REQUIREMENTS: DocTypeMeta(
        agent_name="requirements-gatherer",
        agent_title="Requirements Gatherer",
        folder="docs/requirements",
        doc_label="Requirements Document",
        system_prompt=(
            "You are a senior business analyst specialising in requirements engineering. "
            "Cover functional and non-functional requirements, acceptance criteria, constraints "
            "and dependencies. " + _ONE_QUESTION
        ),
    ),
    DocType.DESIGN: DocTypeMeta(
        agent_name="solution-architect",
        agent_title="Solution Architect",
        folder="docs/design",
        doc_label="Design Document",
        system_prompt=(
            "You are a senior solution architect. Help the user write a Design Document covering "
            "architecture, component design, data flows, API contracts, technology choices and "
            "scalability. " + _ONE_QUESTION
        ),
    ),
    DocType.SPEC: DocTypeMeta(
        agent_name="specification-writer",
        agent_title="Specification Writer",
        folder="docs/spec",
        doc_label="Technical Specification",
        system_prompt=(
            "You are a senior technical writer specialising in implementation specifications. "
            "Cover implementation tasks, interfaces, data models, error handling and testing "
            "strategy. " + _ONE_QUESTION
        ),
    ),
    DocType.BRAINSTORM: DocTypeMeta(
        agent_name="brainstormer",
        agent_title="Brainstormer",
        folder="docs/ideas",
        doc_label="Idea Document",
        system_prompt=(
            "You are a creative brainstorming facilitator. Help the user shape their ideas into an "
            "Idea Document covering the concept, motivations, possible approaches, opportunities, "
            "risks and next steps. " + _ONE_QUESTION
        ),
    ),
}

_AGENT_DOC_TYPES = {meta.agent_name: doc_type for doc_type, meta in DOC_TYPE_META.items()}


def resolve_doc_type(
    template_id: str | None = None,
    agent_name: str | None = None,
    document_path: str | Path | None = None,
) -> DocType:
    """Pick a doc type from a template id, then the agent, then the path."""
    by_template = DocType.parse(template_id or "")
    if by_template:
        return by_template

    by_agent = _AGENT_DOC_TYPES.get((agent_name or "").lower())
    if by_agent:
        return by_agent

    normalized = "/" + str(document_path or "").replace("\\", "/").lower()
    for doc_type, meta in DOC_TYPE_META.items():
        if f"/{meta.folder}/" in normalized:
            return doc_type
    return DocType.PRD


def title_from_path(document_path: str | Path) -> str:
    """Turn ``docs/prd/forex-trainer.md`` into ``Forex Trainer``."""
    tokens = [t for t in re.split(r"[-_]+", Path(document_path).stem) if t]
    return " ".join(t[:1].upper() + t[1:] for t in tokens) or "Document"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class Turn(BaseModel):
    """One utterance and the response it produced."""

    utterance: str
    response: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DocumentSession(BaseModel):
    """One authored-document conversation bound to one document path."""

    model_config = ConfigDict(frozen=False)

    id: str = Field(default_factory=lambda: f"docsess_{uuid4().hex[:12]}")
    document_path: str = Field(description="Absolute path of the persisted document")
    doc_type: DocType
    title: str
    workspace_root: str = ""
    status: SessionStatus = SessionStatus.ACTIVE
    turn_history: list[Turn] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def meta(self) -> DocTypeMeta:
        return DOC_TYPE_META[self.doc_type]

    @property
    def agent_name(self) -> str:
        return self.meta.agent_name

    @property
    def turn_count(self) -> int:
        return len(self.turn_history)

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE


class TurnContext(BaseModel):
    """Per-turn caller context."""

    workspace_root: Path
    agent_name: str = "prd-creator"
    command: str | None = None

    def relative(self, path: str | Path) -> str:
        """Workspace-relative, forward-slash form of ``path`` for display."""
        p = Path(path)
        try:
            return p.relative_to(self.workspace_root).as_posix()
        except ValueError:
            return p.as_posix()


class SessionResult(BaseModel):
    """Outcome of one session operation."""

    session_id: str
    document_path: str
    response: str
    should_continue: bool = True
    error: str | None = None
