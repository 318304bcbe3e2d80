"""Configuration and directory management for DocPilot."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

DOCPILOT_DIR = Path.home() / ".docpilot"
AGENTS_DIR = DOCPILOT_DIR / "agents"
DB_PATH = DOCPILOT_DIR / "sessions.db"

DEFAULT_AGENT = "prd-creator"
DEFAULT_MODEL = "gpt-4o-mini"


def ensure_dirs() -> None:
    """Ensure the DocPilot directory structure exists."""
    DOCPILOT_DIR.mkdir(parents=True, exist_ok=True)
    AGENTS_DIR.mkdir(parents=True, exist_ok=True)


class RoutingPolicy(BaseModel):
    """Tunable thresholds used by the router, heuristics and drafting pipeline."""

    confidence_threshold: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="start_new_doc decisions below this confidence always require confirmation",
    )
    min_kickoff_words: int = Field(default=5, ge=1)
    max_document_chars: int = Field(default=6000, description="Document excerpt size sent with revisions")
    max_question_context_chars: int = Field(default=3000)


class Settings(BaseModel):
    """Runtime settings, usually read from the environment."""

    model_name: str = DEFAULT_MODEL
    api_key: str | None = None
    base_url: str | None = None
    timeout: float = 60.0
    max_retries: int = 2
    log_level: str = "WARNING"
    workspace_root: Path = Field(default_factory=Path.cwd)
    default_agent: str = DEFAULT_AGENT
    db_path: Path = DB_PATH
    policy: RoutingPolicy = Field(default_factory=RoutingPolicy)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from DOCPILOT_* and OPENAI_* environment variables."""
        env = os.environ
        policy = RoutingPolicy(
            confidence_threshold=float(env.get("DOCPILOT_CONFIDENCE_THRESHOLD", "0.75")),
            min_kickoff_words=int(env.get("DOCPILOT_MIN_KICKOFF_WORDS", "5")),
        )
        return cls(
            model_name=env.get("DOCPILOT_MODEL", DEFAULT_MODEL),
            api_key=env.get("OPENAI_API_KEY") or None,
            base_url=env.get("OPENAI_BASE_URL") or None,
            timeout=float(env.get("DOCPILOT_TIMEOUT", "60")),
            max_retries=int(env.get("DOCPILOT_MAX_RETRIES", "2")),
            log_level=env.get("DOCPILOT_LOG_LEVEL", "WARNING").upper(),
            workspace_root=Path(env.get("DOCPILOT_WORKSPACE", str(Path.cwd()))).resolve(),
            default_agent=env.get("DOCPILOT_AGENT", DEFAULT_AGENT),
            db_path=Path(env["DOCPILOT_DB"]) if env.get("DOCPILOT_DB") else DB_PATH,
            policy=policy,
        )
