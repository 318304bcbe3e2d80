"""DocPilot CLI - author documents through conversation."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.table import Table

from docpilot import __version__
from docpilot.config import Settings, ensure_dirs

app = typer.Typer(
    name="docpilot",
    help="Write PRDs, requirements, designs and specs by talking to a model.",
    no_args_is_help=True,
)
sessions_app = typer.Typer(help="Inspect document sessions.")
agents_app = typer.Typer(help="Manage capability agents.")
mcp_app = typer.Typer(help="MCP server management.")

app.add_typer(sessions_app, name="sessions")
app.add_typer(agents_app, name="agents")
app.add_typer(mcp_app, name="mcp")

console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def version_callback(value: bool) -> None:
    if value:
        console.print(f"docpilot {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="Logging level (DEBUG, INFO, ...)")
    ] = None,
) -> None:
    """DocPilot - conversational document authoring."""
    ensure_dirs()
    configure_logging((log_level or Settings.from_env().log_level).upper())


# ── Chat ─────────────────────────────────────────────────────────


@app.command("chat")
def chat(
    workspace: Annotated[
        Path, typer.Option("--workspace", "-w", help="Workspace root for documents")
    ] = Path("."),
    agent: Annotated[
        Optional[str], typer.Option("--agent", "-a", help="Agent for non-document questions")
    ] = None,
    attach: Annotated[
        Optional[Path], typer.Option("--attach", help="Continue an existing document")
    ] = None,
) -> None:
    """Start an interactive authoring conversation."""
    from docpilot.runtime import create_runtime

    settings = Settings.from_env().model_copy(update={"workspace_root": workspace.resolve()})
    if agent:
        settings.default_agent = agent
    rt = create_runtime(settings)
    ctx = rt.context()

    async def loop() -> None:
        if attach is not None:
            result = await rt.router.attach_document(attach, ctx)
            console.print(Markdown(result.response))
        while True:
            try:
                utterance = console.input("[bold cyan]you>[/bold cyan] ")
            except (EOFError, KeyboardInterrupt):
                console.print()
                return
            if not utterance.strip():
                continue
            if utterance.strip() in {"/quit", "/exit"}:
                return
            result = await rt.router.route_user_input(utterance, ctx)
            label = "doc" if result.routed_to == "conversation" else result.agent_name or "agent"
            console.print(f"[dim]({label})[/dim]")
            console.print(Markdown(result.response))
            if result.error:
                console.print(f"[yellow]warning:[/yellow] {result.error}")

    try:
        asyncio.run(loop())
    finally:
        rt.close()


# ── Sessions commands ────────────────────────────────────────────


@sessions_app.command("list")
def sessions_list(
    status: Annotated[
        Optional[str], typer.Option("--status", "-s", help="Filter by status (active, closed)")
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-n")] = 20,
) -> None:
    """List recent document sessions."""
    from docpilot.sessions.models import SessionStatus
    from docpilot.sessions.store import SessionStore

    store = SessionStore(db_path=Settings.from_env().db_path)
    try:
        sessions = store.list_sessions(status=SessionStatus(status) if status else None, limit=limit)
    finally:
        store.close()

    if not sessions:
        console.print("[dim]No document sessions yet. Start one with:[/dim]")
        console.print("  docpilot chat")
        return

    table = Table(title="Document Sessions")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Title", style="green")
    table.add_column("Status")
    table.add_column("Path")

    for s in sessions:
        table.add_row(s.id, s.doc_type.value, s.title, s.status.value, s.document_path)

    console.print(table)


@sessions_app.command("show")
def sessions_show(
    session_id: Annotated[str, typer.Argument(help="Session ID to show")],
) -> None:
    """Show one session and its turn history."""
    from docpilot.sessions.store import SessionStore

    store = SessionStore(db_path=Settings.from_env().db_path)
    try:
        session = store.get_session(session_id)
    finally:
        store.close()

    if session is None:
        console.print(f"[red]Session not found:[/red] {session_id}")
        raise typer.Exit(1)

    console.print(f"[bold]{session.title}[/bold] ({session.meta.doc_label}, {session.status.value})")
    console.print(f"  {session.document_path}")
    for turn in session.turn_history:
        console.print(f"\n[cyan]you>[/cyan] {turn.utterance}")
        console.print(Markdown(turn.response))


# ── Agents commands ──────────────────────────────────────────────


@agents_app.command("list")
def agents_list() -> None:
    """List built-in and user-defined agents."""
    from docpilot.agents.catalog import list_agents

    table = Table(title="Agents")
    table.add_column("Category", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Description")

    for agent in list_agents():
        table.add_row(agent.category, agent.name, agent.description)

    console.print(table)


@agents_app.command("create")
def agents_create(
    name: Annotated[str, typer.Argument(help="Name for the new agent")],
    description: Annotated[str, typer.Option("--description", "-d", help="Agent description")] = "",
    category: Annotated[str, typer.Option("--category", "-c", help="Agent category")] = "uncategorized",
) -> None:
    """Create a new agent definition to edit."""
    from docpilot.agents.catalog import create_agent

    agent = create_agent(name, description, category)
    console.print(f"[green]Created agent:[/green] {agent.name}")
    console.print(f"  Edit: {agent.path / 'AGENT.md'}")


# ── MCP commands ─────────────────────────────────────────────────


@mcp_app.command("serve")
def mcp_serve() -> None:
    """Start the MCP server (stdio transport)."""
    from docpilot.mcp.server import mcp

    mcp.run()
