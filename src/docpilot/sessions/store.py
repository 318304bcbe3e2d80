"""SQLite storage for document sessions and their turn history."""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from docpilot.config import DB_PATH
from docpilot.errors import SessionNotFoundError
from docpilot.sessions.models import DocType, DocumentSession, SessionStatus, Turn

SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    document_path TEXT NOT NULL,
    doc_type TEXT NOT NULL,
    title TEXT NOT NULL,
    workspace_root TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    last_activity TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sessions_path ON sessions(document_path);
CREATE INDEX IF NOT EXISTS idx_sessions_activity ON sessions(last_activity);

CREATE TABLE IF NOT EXISTS turns (
    session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
    seq INTEGER NOT NULL,
    utterance TEXT NOT NULL,
    response TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (session_id, seq)
);
"""


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """SQLite-backed document session storage."""

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path) if db_path else DB_PATH
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(SCHEMA)
        return self._conn

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def _row_to_session(self, row: sqlite3.Row, turns: list[Turn]) -> DocumentSession:
        return DocumentSession(
            id=row["id"],
            document_path=row["document_path"],
            doc_type=DocType(row["doc_type"]),
            title=row["title"],
            workspace_root=row["workspace_root"],
            status=SessionStatus(row["status"]),
            turn_history=turns,
            created_at=datetime.fromisoformat(row["created_at"]),
            last_activity=datetime.fromisoformat(row["last_activity"]),
        )

    def _load_turns(self, session_id: str) -> list[Turn]:
        rows = self._get_conn().execute(
            "SELECT utterance, response, created_at FROM turns WHERE session_id = ? ORDER BY seq",
            (session_id,),
        ).fetchall()
        return [
            Turn(
                utterance=r["utterance"],
                response=r["response"],
                created_at=datetime.fromisoformat(r["created_at"]),
            )
            for r in rows
        ]

    def create_session(self, session: DocumentSession) -> DocumentSession:
        """Insert a new session together with any turns it already carries."""
        conn = self._get_conn()
        with conn:
            conn.execute(
                """INSERT INTO sessions
                (id, document_path, doc_type, title, workspace_root, status, created_at, last_activity)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    session.id,
                    session.document_path,
                    session.doc_type.value,
                    session.title,
                    session.workspace_root,
                    session.status.value,
                    session.created_at.isoformat(),
                    session.last_activity.isoformat(),
                ),
            )
            for seq, turn in enumerate(session.turn_history):
                conn.execute(
                    "INSERT INTO turns (session_id, seq, utterance, response, created_at) VALUES (?, ?, ?, ?, ?)",
                    (session.id, seq, turn.utterance, turn.response, turn.created_at.isoformat()),
                )
        return session

    def get_session(self, session_id: str) -> DocumentSession | None:
        """Get a session by ID, closed sessions included."""
        row = self._get_conn().execute(
            "SELECT * FROM sessions WHERE id = ?", (session_id,)
        ).fetchone()
        return self._row_to_session(row, self._load_turns(session_id)) if row else None

    def require_session(self, session_id: str) -> DocumentSession:
        session = self.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def has_session(self, session_id: str) -> bool:
        row = self._get_conn().execute(
            "SELECT 1 FROM sessions WHERE id = ?", (session_id,)
        ).fetchone()
        return row is not None

    def list_sessions(
        self,
        workspace_root: str | None = None,
        status: SessionStatus | None = None,
        limit: int = 20,
    ) -> list[DocumentSession]:
        """List sessions, most recently active first."""
        sql = "SELECT * FROM sessions WHERE 1 = 1"
        params: list = []
        if workspace_root:
            sql += " AND workspace_root = ?"
            params.append(workspace_root)
        if status:
            sql += " AND status = ?"
            params.append(status.value)
        sql += " ORDER BY last_activity DESC LIMIT ?"
        params.append(limit)

        rows = self._get_conn().execute(sql, params).fetchall()
        return [self._row_to_session(r, self._load_turns(r["id"])) for r in rows]

    def find_active_by_path(self, document_path: str) -> DocumentSession | None:
        """The active session bound to a document path, if any."""
        row = self._get_conn().execute(
            "SELECT * FROM sessions WHERE document_path = ? AND status = ? LIMIT 1",
            (document_path, SessionStatus.ACTIVE.value),
        ).fetchone()
        return self._row_to_session(row, self._load_turns(row["id"])) if row else None

    def path_in_use(self, document_path: str) -> bool:
        row = self._get_conn().execute(
            "SELECT 1 FROM sessions WHERE document_path = ? LIMIT 1", (document_path,)
        ).fetchone()
        return row is not None

    def set_status(self, session_id: str, status: SessionStatus) -> DocumentSession:
        conn = self._get_conn()
        with conn:
            cursor = conn.execute(
                "UPDATE sessions SET status = ?, last_activity = ? WHERE id = ?",
                (status.value, _now().isoformat(), session_id),
            )
        if cursor.rowcount == 0:
            raise SessionNotFoundError(session_id)
        return self.require_session(session_id)

    def append_turn(self, session_id: str, turn: Turn) -> None:
        """Append one turn; history is never rewritten."""
        conn = self._get_conn()
        with conn:
            row = conn.execute(
                "SELECT COALESCE(MAX(seq) + 1, 0) AS next FROM turns WHERE session_id = ?",
                (session_id,),
            ).fetchone()
            conn.execute(
                "INSERT INTO turns (session_id, seq, utterance, response, created_at) VALUES (?, ?, ?, ?, ?)",
                (session_id, row["next"], turn.utterance, turn.response, turn.created_at.isoformat()),
            )
            conn.execute(
                "UPDATE sessions SET last_activity = ? WHERE id = ?",
                (turn.created_at.isoformat(), session_id),
            )

    def delete_session(self, session_id: str) -> bool:
        """Delete a session record by ID. The document file is left alone."""
        conn = self._get_conn()
        with conn:
            conn.execute("DELETE FROM turns WHERE session_id = ?", (session_id,))
            cursor = conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        return cursor.rowcount > 0

    def clear_all(self) -> None:
        """Drop every session record. Test and reset hook."""
        conn = self._get_conn()
        with conn:
            conn.execute("DELETE FROM turns")
            conn.execute("DELETE FROM sessions")
