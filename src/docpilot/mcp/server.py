"""MCP server exposing the session router as tools."""

from mcp.server.fastmcp import FastMCP

from docpilot.config import Settings
from docpilot.runtime import Runtime, create_runtime
from docpilot.sessions.models import DocumentSession, SessionStatus

mcp = FastMCP("docpilot")
runtime: Runtime | None = None


def get_runtime() -> Runtime:
    """Build the runtime on first use from environment settings."""
    global runtime
    if runtime is None:
        runtime = create_runtime(Settings.from_env())
    return runtime


def _session_summary(session: DocumentSession) -> dict:
    return {
        "id": session.id,
        "title": session.title,
        "doc_type": session.doc_type.value,
        "document_path": session.document_path,
        "status": session.status.value,
        "turns": session.turn_count,
        "last_activity": session.last_activity.isoformat(),
    }


@mcp.tool()
async def route_message(message: str) -> dict:
    """Send one user message through the document session router.

    The router decides whether the message continues the current document,
    starts a new one, needs a yes/no confirmation, or is answered by an agent.

    Args:
        message: The user's message, verbatim
    """
    rt = get_runtime()
    result = await rt.router.route_user_input(message, rt.context())
    return result.model_dump(by_alias=True)


@mcp.tool()
def list_sessions(status: str | None = None, limit: int = 20) -> list[dict]:
    """Browse recent document sessions in this workspace.

    Args:
        status: Optional - "active" or "closed"
        limit: Maximum results to return (default 20)
    """
    rt = get_runtime()
    sessions = rt.store.list_sessions(
        workspace_root=str(rt.settings.workspace_root),
        status=SessionStatus(status) if status else None,
        limit=limit,
    )
    return [_session_summary(s) for s in sessions]


@mcp.tool()
def get_session(session_id: str) -> dict | str:
    """Get a document session, including its turn history.

    Args:
        session_id: The session ID to retrieve
    """
    session = get_runtime().manager.get_session(session_id)
    if not session:
        return f"Session {session_id} not found"
    details = _session_summary(session)
    details["history"] = [
        {"utterance": t.utterance, "response": t.response, "created_at": t.created_at.isoformat()}
        for t in session.turn_history
    ]
    return details


@mcp.tool()
def close_session(session_id: str) -> dict | str:
    """Finish a document session. The document stays on disk and can be reopened.

    Args:
        session_id: The session ID to close
    """
    rt = get_runtime()
    if not rt.manager.has_session(session_id):
        return f"Session {session_id} not found"
    result = rt.manager.close_session(session_id, rt.context())
    if rt.router.active_session_id == session_id:
        rt.router.clear_active_session()
    return {"id": result.session_id, "status": "closed", "document_path": result.document_path}
