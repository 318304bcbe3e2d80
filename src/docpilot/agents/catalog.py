"""Agent catalogue - built-in agents plus user agents from ~/.docpilot/agents/."""

from dataclasses import dataclass
from pathlib import Path

from docpilot import config
from docpilot.agents.builtin import BUILTIN_AGENTS


@dataclass
class Agent:
    """A capability agent: a named system prompt."""

    name: str
    description: str
    category: str
    content: str
    path: Path | None = None

    @property
    def display_name(self) -> str:
        return self.name.replace("-", " ").title()


AGENT_TEMPLATE = """---
name: {name}
description: {description}
category: {category}
---

# {title}

[Describe how this agent should answer requests]
"""


def split_frontmatter(raw: str) -> tuple[dict[str, str], str]:
    """Split ``key: value`` frontmatter between ``---`` fences from the body."""
    if not raw.startswith("---"):
        return {}, raw
    _, sep, rest = raw.partition("---")
    header, sep, body = rest.partition("---")
    if not sep:
        return {}, raw
    fields = {}
    for line in header.strip().splitlines():
        key, colon, value = line.partition(":")
        if colon:
            fields[key.strip()] = value.strip()
    return fields, body.strip()


def parse_agent(path: Path) -> Agent | None:
    """Parse ``<path>/AGENT.md``; the directory name is the default agent name."""
    agent_file = path / "AGENT.md"
    if not agent_file.is_file():
        return None

    fields, content = split_frontmatter(agent_file.read_text(encoding="utf-8"))
    return Agent(
        name=fields.get("name") or path.name,
        description=fields.get("description", ""),
        category=fields.get("category") or "uncategorized",
        content=content,
        path=path,
    )


def builtin_agents() -> list[Agent]:
    return [Agent(name=name, **fields) for name, fields in BUILTIN_AGENTS.items()]


def list_user_agents(agents_dir: Path | None = None) -> list[Agent]:
    """Agents defined on disk, either directly or inside category directories."""
    root = agents_dir or config.AGENTS_DIR
    if not root.is_dir():
        return []

    agents = []
    for item in sorted(root.iterdir()):
        if not item.is_dir():
            continue
        agent = parse_agent(item)
        if agent:
            agents.append(agent)
            continue
        for sub in sorted(item.iterdir()):
            if sub.is_dir():
                agent = parse_agent(sub)
                if agent:
                    agent.category = item.name
                    agents.append(agent)
    return agents


def list_agents(agents_dir: Path | None = None) -> list[Agent]:
    """All agents; user agents override built-ins with the same name."""
    by_name = {a.name: a for a in builtin_agents()}
    for agent in list_user_agents(agents_dir):
        by_name[agent.name] = agent
    return sorted(by_name.values(), key=lambda a: (a.category, a.name))


def get_agent(name: str, agents_dir: Path | None = None) -> Agent | None:
    for agent in list_agents(agents_dir):
        if agent.name == name:
            return agent
    return None


def create_agent(
    name: str,
    description: str = "",
    category: str = "uncategorized",
    agents_dir: Path | None = None,
) -> Agent:
    """Create a new agent definition on disk."""
    root = agents_dir or config.AGENTS_DIR
    dest = root / category / name
    dest.mkdir(parents=True, exist_ok=True)

    title = name.replace("-", " ").title()
    (dest / "AGENT.md").write_text(
        AGENT_TEMPLATE.format(name=name, description=description, category=category, title=title)
    )
    return parse_agent(dest)  # type: ignore[return-value]
