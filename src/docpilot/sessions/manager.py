"""Document session lifecycle: create, continue, close, resume."""

import logging
from pathlib import Path

from docpilot.config import RoutingPolicy
from docpilot.errors import ModelCallError
from docpilot.llm.base import LanguageModel
from docpilot.routing.heuristics import derive_title, is_completion
from docpilot.sessions.documents import DocumentWriter, slugify
from docpilot.sessions.drafting import Classification, DraftingPipeline, apply_revision
from docpilot.sessions.models import (
    DOC_TYPE_META,
    DocType,
    DocumentSession,
    SessionResult,
    SessionStatus,
    Turn,
    TurnContext,
    resolve_doc_type,
    title_from_path,
)
from docpilot.sessions.store import SessionStore

logger = logging.getLogger(__name__)

DONE_FOOTER = "---\n*Type `done` when you're satisfied with the document.*"


def _kickoff_response(agent_title: str, doc_label: str, rel_path: str, question: str) -> str:
    return (
        f"## {agent_title} - New {doc_label}\n\n"
        f"Created `{rel_path}` with an initial draft.\n\n"
        f"---\n\n"
        f"{question}\n\n"
        f"---\n"
        f"*Just reply to continue. Type `done` when you're happy with the document.*"
    )


def _fallback_response(rel_path: str) -> str:
    return (
        f"I couldn't reach the language model, so `{rel_path}` was left unchanged.\n\n"
        f"Your feedback is recorded in the session history. Reply again to retry, "
        f"or type `done` to finish.\n\n"
        f"*(Running in degraded mode until the model is available again.)*"
    )


class DocSessionManager:
    """Owns DocumentSession records and the documents they write.

    Callers hold session ids, never session objects: every operation reloads
    the record from the store, so losing a caller's pointer never orphans a
    session.
    """

    def __init__(
        self,
        store: SessionStore,
        model: LanguageModel,
        writer: DocumentWriter | None = None,
        policy: RoutingPolicy | None = None,
    ):
        self.store = store
        self.writer = writer or DocumentWriter()
        self.pipeline = DraftingPipeline(model, policy)
        # paths handed out but not yet registered in the store
        self._reserved: set[str] = set()

    def has_session(self, session_id: str) -> bool:
        return self.store.has_session(session_id)

    def get_session(self, session_id: str) -> DocumentSession | None:
        return self.store.get_session(session_id)

    def clear_all(self) -> None:
        """Forget every session record. Documents on disk are kept."""
        self.store.clear_all()

    def allocate_path(self, workspace_root: Path, folder: str, title: str) -> Path:
        """Reserve a document path no file, session or pending kickoff is using.

        The caller must ``release_path`` once the session is registered or
        creation has failed.
        """
        directory = Path(workspace_root) / folder
        slug = slugify(title)
        candidate = directory / f"{slug}.md"
        n = 2
        while self._path_taken(candidate):
            candidate = directory / f"{slug}-{n}.md"
            n += 1
        self._reserved.add(str(candidate))
        return candidate

    def release_path(self, path: Path) -> None:
        self._reserved.discard(str(path))

    def _path_taken(self, path: Path) -> bool:
        return (
            str(path) in self._reserved
            or self.writer.exists(path)
            or self.store.path_in_use(str(path))
        )

    async def start_new_session(
        self,
        utterance: str,
        ctx: TurnContext,
        doc_type: DocType | None = None,
    ) -> SessionResult:
        """Classify, draft, ask the first question, then persist and register.

        With ``doc_type`` given the classification call is skipped. Raises
        DraftingError if no draft could be produced; nothing is created then.
        """
        if doc_type is not None:
            classification = Classification(doc_type=doc_type, title=derive_title(utterance))
        else:
            classification = await self.pipeline.classify(utterance)
        meta = DOC_TYPE_META[classification.doc_type]

        draft = await self.pipeline.draft(classification, utterance)
        question = await self.pipeline.first_question(meta, classification.title, draft)

        path = self.allocate_path(ctx.workspace_root, meta.folder, classification.title)
        response = _kickoff_response(meta.agent_title, meta.doc_label, ctx.relative(path), question)
        session = DocumentSession(
            document_path=str(path),
            doc_type=classification.doc_type,
            title=classification.title,
            workspace_root=str(ctx.workspace_root),
            turn_history=[Turn(utterance=utterance, response=response)],
        )
        try:
            await self.writer.write(path, draft)
            self.store.create_session(session)
        finally:
            self.release_path(path)
        logger.info(
            "Started %s session %s at %s", classification.doc_type.value, session.id, path
        )
        return SessionResult(
            session_id=session.id,
            document_path=session.document_path,
            response=response,
            should_continue=True,
        )

    async def start_session_from_document(
        self,
        document_path: str | Path,
        ctx: TurnContext,
        doc_type: DocType | None = None,
        initial_input: str | None = None,
        agent_name: str | None = None,
    ) -> SessionResult:
        """Attach a session to an existing document instead of drafting one."""
        path = Path(document_path)
        if not path.is_absolute():
            path = Path(ctx.workspace_root) / path

        title = title_from_path(path)
        existing = await self.writer.read(path)
        if not existing.strip() and self.store.find_active_by_path(str(path)) is None:
            await self.writer.write(path, f"# {title}\n\n[Initial content pending refinement]\n")

        # lookup and insert run without an await between them
        session = self.store.find_active_by_path(str(path))
        if session is None:
            doc_type = doc_type or resolve_doc_type(agent_name=agent_name, document_path=path)
            session = self.store.create_session(
                DocumentSession(
                    document_path=str(path),
                    doc_type=doc_type,
                    title=title,
                    workspace_root=str(ctx.workspace_root),
                )
            )
            logger.info("Attached session %s to existing document %s", session.id, path)

        if initial_input and initial_input.strip():
            return await self.continue_session(session.id, initial_input.strip(), ctx)

        meta = session.meta
        content = await self.writer.read(path)
        question = await self.pipeline.first_question(meta, session.title, content)
        response = (
            f"## {meta.agent_title} - Continuing {meta.doc_label}\n\n"
            f"Attached to existing file `{ctx.relative(path)}`.\n\n"
            f"{question}\n\n{DONE_FOOTER}"
        )
        return SessionResult(
            session_id=session.id, document_path=session.document_path, response=response
        )

    async def continue_session(self, session_id: str, utterance: str, ctx: TurnContext) -> SessionResult:
        """Revise the document with one instruction and ask the next question.

        A closed session is reopened on the same path when the turn commits.
        A model failure leaves the document untouched and the session active.
        Persistence failures propagate as PersistenceError.
        """
        session = self.store.require_session(session_id)
        if is_completion(utterance):
            return self.close_session(session_id, ctx, utterance)
        if not session.is_active:
            session = self.store.find_active_by_path(session.document_path) or session

        rel_path = ctx.relative(session.document_path)
        current = await self.writer.read(session.document_path)
        turn = session.turn_count + 1

        try:
            revision = await self.pipeline.revise(session.meta, current, utterance, turn)
        except ModelCallError as e:
            logger.warning("Continuing session %s in degraded mode: %s", session.id, e)
            response = _fallback_response(rel_path)
            session = self._commit_turn(session, utterance, response)
            return SessionResult(
                session_id=session.id,
                document_path=session.document_path,
                response=response,
                should_continue=True,
                error=str(e),
            )

        content = apply_revision(current, revision, utterance, turn)
        await self.writer.write(session.document_path, content)

        response = (
            f"*Document updated* (`{rel_path}`, turn {turn})\n\n"
            f"{revision.next_question}\n\n{DONE_FOOTER}"
        )
        session = self._commit_turn(session, utterance, response)
        logger.info("Session %s revised (turn %d, %d chars)", session.id, turn, len(content))
        return SessionResult(
            session_id=session.id,
            document_path=session.document_path,
            response=response,
            should_continue=True,
        )

    def _commit_turn(self, session: DocumentSession, utterance: str, response: str) -> DocumentSession:
        """Record the turn, reopening the session first if it was closed."""
        if not session.is_active:
            session = self.resume_session(session.id)
        self.store.append_turn(session.id, Turn(utterance=utterance, response=response))
        return session

    def close_session(self, session_id: str, ctx: TurnContext, utterance: str = "done") -> SessionResult:
        """Mark a session closed. Its record and document stay queryable."""
        session = self.store.require_session(session_id)
        rel_path = ctx.relative(session.document_path)
        response = (
            f"Session complete. Your {session.meta.doc_label} is saved at `{rel_path}`.\n\n"
            f"You can:\n"
            f"- Open the file to review the final document\n"
            f"- Start a new session by describing your next project\n"
            f"- Ask for changes later (e.g. \"fix the issues found in the review\") to reopen it"
        )
        if session.is_active:
            self.store.set_status(session_id, SessionStatus.CLOSED)
            logger.info("Closed session %s", session_id)
        self.store.append_turn(session_id, Turn(utterance=utterance, response=response))
        return SessionResult(
            session_id=session_id,
            document_path=session.document_path,
            response=response,
            should_continue=False,
        )

    def resume_session(self, session_id: str) -> DocumentSession:
        """Reopen a closed session on the same document path.

        If another session already holds that path open, that session is
        returned instead so a path never has two active sessions.
        """
        session = self.store.require_session(session_id)
        if session.is_active:
            return session
        holder = self.store.find_active_by_path(session.document_path)
        if holder is not None:
            logger.info("Path %s already open in session %s", session.document_path, holder.id)
            return holder
        logger.info("Resuming session %s", session_id)
        return self.store.set_status(session_id, SessionStatus.ACTIVE)
