"""Built-in capability agents shipped with DocPilot."""

from docpilot.sessions.models import DOC_TYPE_META

QUALITY_REVIEWER_PROMPT = """\
You are a meticulous quality reviewer for product and engineering documents.
Point out gaps, ambiguities, contradictions and missing acceptance criteria.
Group findings by severity and suggest a concrete fix for each one.
"""

BUILTIN_AGENTS: dict[str, dict[str, str]] = {
    meta.agent_name: {
        "description": f"Authors and answers questions about a {meta.doc_label}.",
        "category": "authoring",
        "content": meta.system_prompt,
    }
    for meta in DOC_TYPE_META.values()
}

BUILTIN_AGENTS["quality-reviewer"] = {
    "description": "Reviews documents and reports issues to fix.",
    "category": "review",
    "content": QUALITY_REVIEWER_PROMPT,
}
