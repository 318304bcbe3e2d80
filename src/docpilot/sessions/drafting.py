"""Drafting pipeline: classify, draft, ask, revise.

Each step is one model call. Steps that have a safe fallback (classification,
follow-up questions) degrade quietly; drafting a brand-new document does not,
since a session without a draft would be an empty shell.
"""

import logging
from dataclasses import dataclass

from docpilot.config import RoutingPolicy
from docpilot.errors import DraftingError, ModelCallError
from docpilot.llm.base import LanguageModel, call_model
from docpilot.llm.parsing import extract_json_object
from docpilot.routing.heuristics import derive_title
from docpilot.sessions.models import DOC_TYPE_META, DocType, DocTypeMeta

logger = logging.getLogger(__name__)

DOCUMENT_MARKER = "---DOCUMENT---"
QUESTION_MARKER = "---QUESTION---"
REVISION_NOTES_HEADING = "## Revision Notes"

DEFAULT_FIRST_QUESTION = "What are the key objectives and success criteria for this project?"
DEFAULT_NEXT_QUESTION = "What else would you like to refine?"

CLASSIFY_PROMPT = """Classify the following user message into exactly one document type and extract a concise title.

Document types:
- prd: Product Requirements Document - new product/feature ideas, MVP definitions
- requirements: Requirements Document - functional/non-functional requirements, user stories
- design: Design Document - system architecture, component design, technology choices
- spec: Technical Specification - implementation tasks, interfaces, data models
- brainstorm: Idea / Brainstorming - exploratory ideas, concepts, not yet a formal doc type

User message: "{utterance}"

Respond with ONLY a JSON object like this (no markdown, no explanation):
{{"docType": "prd", "title": "Concise Title Here"}}"""

DRAFT_PROMPT = """The user wants to create a {doc_label} titled: "{title}".

Initial context from user:
{utterance}

Generate a comprehensive initial draft in Markdown. Use proper headings (##, ###).
Include all relevant sections for a {doc_label}. Where you lack information, use
"[TBD - see conversation]" as placeholder. Do NOT ask questions in the draft - just write the document."""

FIRST_QUESTION_PROMPT = """You just created an initial draft of a {doc_label} titled "{title}".

Here is the draft:
```
{draft}
```

Ask the single most important follow-up question to help refine this document.
Be specific - refer to the content of the draft. Output ONLY the question (no preamble, no options list)."""

REVISE_PROMPT = """You are refining a {doc_label} (turn {turn}).

--- CURRENT DOCUMENT ---
{document}
--- END DOCUMENT ---

User feedback / new information:
"{instruction}"

Instructions:
1. Produce a fully updated version of the document incorporating this feedback.
2. After updating, ask ONE focused follow-up question to further improve it.

Respond using EXACTLY this format (include the delimiter lines as shown):
{document_marker}
[full updated markdown document here]
{question_marker}
[one focused follow-up question here]"""


@dataclass
class Classification:
    doc_type: DocType
    title: str


@dataclass
class Revision:
    content: str | None
    next_question: str
    # unsent end of the document when the prompt carried only its head
    tail: str = ""


def decode_classification(raw: str, utterance: str) -> Classification:
    """Decode ``{"docType", "title"}``; unknown types fall back to prd."""
    parsed = extract_json_object(raw) or {}
    doc_type = DocType.parse(parsed.get("docType") or parsed.get("doc_type"), DocType.PRD)
    title = parsed.get("title")
    if not isinstance(title, str) or not title.strip():
        title = derive_title(utterance)
    return Classification(doc_type=doc_type, title=title.strip())


def decode_revision(raw: str) -> Revision:
    """Split delimited model output into document and question.

    Without both markers in order the whole text is taken as the question.
    """
    doc_index = raw.find(DOCUMENT_MARKER)
    q_index = raw.find(QUESTION_MARKER)
    if doc_index != -1 and q_index > doc_index:
        content = raw[doc_index + len(DOCUMENT_MARKER):q_index].strip()
        question = raw[q_index + len(QUESTION_MARKER):].strip()
        return Revision(content=content or None, next_question=question or DEFAULT_NEXT_QUESTION)
    return Revision(content=None, next_question=raw.strip() or DEFAULT_NEXT_QUESTION)


def append_revision_note(current: str, instruction: str, turn: int) -> str:
    """Record an instruction the model did not apply, so the document still changes."""
    note = f"- Turn {turn}: {instruction.strip()}"
    body = current.rstrip()
    if REVISION_NOTES_HEADING in body:
        return f"{body}\n{note}\n"
    return f"{body}\n\n{REVISION_NOTES_HEADING}\n\n{note}\n"


def split_for_context(current: str, limit: int) -> tuple[str, str]:
    """Split a document into the head sent to the model and the unsent tail.

    The cut falls on a line boundary at or before ``limit`` when one exists.
    """
    if len(current) <= limit:
        return current, ""
    cut = current.rfind("\n", 0, limit + 1) + 1 or limit
    return current[:cut], current[cut:]


def apply_revision(current: str, revision: Revision, instruction: str, turn: int) -> str:
    """Choose the next document content; never a no-op and never a truncation.

    When the model only saw the head of the document, its rewrite replaces
    that head and the unsent tail is kept after it.
    """
    head = current[: len(current) - len(revision.tail)] if revision.tail else current
    if revision.tail and not current.endswith(revision.tail):
        logger.warning("Document changed during revision; recording instruction only")
        return append_revision_note(current, instruction, turn)

    updated = (revision.content or "").strip()
    if not updated or updated == head.strip():
        return append_revision_note(current, instruction, turn)
    if head.strip() and len(updated) < len(head.strip()) // 2:
        logger.warning(
            "Revision shrank document from %d to %d chars; keeping current content",
            len(head),
            len(updated),
        )
        return append_revision_note(current, instruction, turn)
    if revision.tail:
        return f"{updated}\n{revision.tail.rstrip()}\n"
    return updated + "\n"


class DraftingPipeline:
    """Model-backed drafting steps for one document type at a time."""

    def __init__(self, model: LanguageModel, policy: RoutingPolicy | None = None):
        self.model = model
        self.policy = policy or RoutingPolicy()

    async def classify(self, utterance: str) -> Classification:
        try:
            raw = await call_model(
                self.model, CLASSIFY_PROMPT.format(utterance=utterance), purpose="classification"
            )
        except ModelCallError:
            logger.info("Classification unavailable, deriving title from utterance")
            return Classification(doc_type=DocType.PRD, title=derive_title(utterance))
        return decode_classification(raw, utterance)

    async def draft(self, classification: Classification, utterance: str) -> str:
        meta = DOC_TYPE_META[classification.doc_type]
        prompt = DRAFT_PROMPT.format(
            doc_label=meta.doc_label, title=classification.title, utterance=utterance
        )
        try:
            content = await call_model(self.model, prompt, system=meta.system_prompt, purpose="drafting")
        except ModelCallError as e:
            raise DraftingError(f"Could not draft {meta.doc_label}: {e}") from e
        content = content.strip()
        if not content:
            return f"# {classification.title}\n\n*[Initial draft - content pending user input]*\n"
        return content + "\n"

    async def first_question(self, meta: DocTypeMeta, title: str, draft: str) -> str:
        prompt = FIRST_QUESTION_PROMPT.format(
            doc_label=meta.doc_label,
            title=title,
            draft=draft[: self.policy.max_question_context_chars],
        )
        try:
            question = await call_model(self.model, prompt, system=meta.system_prompt, purpose="follow-up question")
        except ModelCallError:
            return DEFAULT_FIRST_QUESTION
        return question.strip() or DEFAULT_FIRST_QUESTION

    async def revise(self, meta: DocTypeMeta, current: str, instruction: str, turn: int) -> Revision:
        """One combined call: updated document plus next question.

        Raises ModelCallError; the caller decides how to degrade.
        """
        head, tail = split_for_context(current, self.policy.max_document_chars)
        excerpt = head
        if tail:
            excerpt = head + "\n\n[... document truncated for context ...]"
        prompt = REVISE_PROMPT.format(
            doc_label=meta.doc_label,
            turn=turn,
            document=excerpt,
            instruction=instruction,
            document_marker=DOCUMENT_MARKER,
            question_marker=QUESTION_MARKER,
        )
        raw = await call_model(self.model, prompt, system=meta.system_prompt, purpose="revision")
        revision = decode_revision(raw)
        revision.tail = tail
        return revision
