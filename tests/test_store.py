"""Tests for document session storage."""

from datetime import datetime, timedelta, timezone

import pytest

from docpilot.errors import SessionNotFoundError
from docpilot.sessions.models import DocType, DocumentSession, SessionStatus, Turn
from docpilot.sessions.store import SessionStore


@pytest.fixture
def sample_session():
    return DocumentSession(
        document_path="/ws/docs/prd/forex-trading-trainer.md",
        doc_type=DocType.PRD,
        title="Forex Trading Trainer",
        workspace_root="/ws",
        turn_history=[Turn(utterance="this will be a project", response="Created draft")],
    )


def make_session(title: str, workspace: str = "/ws", minutes_ago: int = 0, **kwargs) -> DocumentSession:
    when = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    return DocumentSession(
        document_path=f"{workspace}/docs/prd/{title.lower()}.md",
        doc_type=DocType.PRD,
        title=title,
        workspace_root=workspace,
        created_at=when,
        last_activity=when,
        **kwargs,
    )


class TestSessionStore:
    def test_create_and_get(self, store, sample_session):
        store.create_session(sample_session)

        retrieved = store.get_session(sample_session.id)
        assert retrieved is not None
        assert retrieved.title == "Forex Trading Trainer"
        assert retrieved.doc_type is DocType.PRD
        assert retrieved.status == SessionStatus.ACTIVE
        assert retrieved.turn_history[0].response == "Created draft"

    def test_get_nonexistent(self, store):
        assert store.get_session("nonexistent") is None
        assert not store.has_session("nonexistent")
        with pytest.raises(SessionNotFoundError):
            store.require_session("nonexistent")

    def test_list_most_recent_first(self, store):
        for i, minutes in enumerate([30, 5, 60]):
            store.create_session(make_session(f"S{i}", minutes_ago=minutes))

        assert [s.title for s in store.list_sessions()] == ["S1", "S0", "S2"]
        assert len(store.list_sessions(limit=2)) == 2

    def test_list_by_workspace_and_status(self, store):
        store.create_session(make_session("A", workspace="/one"))
        store.create_session(make_session("B", workspace="/two"))
        store.create_session(make_session("C", workspace="/one", status=SessionStatus.CLOSED))

        assert [s.title for s in store.list_sessions(workspace_root="/two")] == ["B"]
        closed = store.list_sessions(workspace_root="/one", status=SessionStatus.CLOSED)
        assert [s.title for s in closed] == ["C"]

    def test_append_turn_keeps_order(self, store, sample_session):
        store.create_session(sample_session)
        store.append_turn(sample_session.id, Turn(utterance="add risks", response="Updated"))
        store.append_turn(sample_session.id, Turn(utterance="done", response="Session complete"))

        history = store.get_session(sample_session.id).turn_history
        assert [t.utterance for t in history] == ["this will be a project", "add risks", "done"]

    def test_append_turn_marks_activity(self, store):
        old = store.create_session(make_session("Old", minutes_ago=60))
        store.create_session(make_session("Recent", minutes_ago=5))

        store.append_turn(old.id, Turn(utterance="add risks", response="Updated"))

        assert [s.title for s in store.list_sessions()] == ["Old", "Recent"]
        assert store.get_session(old.id).last_activity > old.last_activity

    def test_status_and_path_lookup(self, store, sample_session):
        store.create_session(sample_session)
        path = sample_session.document_path

        assert store.find_active_by_path(path).id == sample_session.id
        store.set_status(sample_session.id, SessionStatus.CLOSED)
        assert store.find_active_by_path(path) is None
        assert store.path_in_use(path)

    def test_set_status_unknown(self, store):
        with pytest.raises(SessionNotFoundError):
            store.set_status("nonexistent", SessionStatus.CLOSED)

    def test_delete_and_clear(self, store, sample_session):
        store.create_session(sample_session)
        store.create_session(make_session("Other"))

        assert store.delete_session(sample_session.id)
        assert not store.delete_session(sample_session.id)
        store.clear_all()
        assert store.list_sessions() == []

    def test_survives_reopen(self, tmp_path, sample_session):
        db = tmp_path / "nested" / "sessions.db"
        first = SessionStore(db_path=db)
        first.create_session(sample_session)
        first.close()

        second = SessionStore(db_path=db)
        try:
            assert second.get_session(sample_session.id).title == "Forex Trading Trainer"
        finally:
            second.close()
