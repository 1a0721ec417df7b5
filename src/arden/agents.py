"""Registry of agents known to the Arden platform."""

import hashlib
from dataclasses import dataclass
from typing import Optional

from .models.event import AGENT_ID_PATTERN


class AgentIds:
    """Slug IDs for production agents."""

    AMP = "A-AMP"
    CURSOR = "A-CURSOR"
    CLAUDE_CODE = "A-CLAUDECODE"
    COPILOT = "A-COPILOT"
    WINDSURF = "A-WINDSURF"
    REPLIT = "A-REPLIT"
    CLINE = "A-CLINE"
    AIDER = "A-AIDER"
    DEVIN = "A-DEVIN"
    CODEGPT = "A-CODEGPT"
    LINDY = "A-LINDY"
    BOLT = "A-BOLT"
    LOVABLE = "A-LOVABLE"
    QODO = "A-QODO"
    CONTINUE = "A-CONTINUE"
    TRAE = "A-TRAE"
    V0 = "A-V0"
    ZENCODER = "A-ZENCODER"
    CODEWHISPERER = "A-CODEWISP"
    OPENDEVIN = "A-OPENDEV"
    INTELLICODE = "A-INTELLI"
    OPENCODE = "A-OPENCODE"


def wire_agent_id(agent_id: str) -> str:
    """Agent ID as sent in events.

    IDs that already match the hex format pass through unchanged. Slug IDs
    such as ``A-CLAUDECODE`` map to ``A-`` plus the first 8 hex digits of
    the SHA-256 of the upper-cased slug.
    """
    if AGENT_ID_PATTERN.fullmatch(agent_id):
        return agent_id
    digest = hashlib.sha256(agent_id.upper().encode("utf-8")).hexdigest()
    return f"A-{digest[:8].upper()}"


@dataclass(frozen=True)
class Agent:
    agent_id: str
    name: str

    @property
    def wire_id(self) -> str:
        return wire_agent_id(self.agent_id)


AGENTS: list[Agent] = [
    Agent(AgentIds.AMP, "Amp"),
    Agent(AgentIds.CURSOR, "Cursor"),
    Agent(AgentIds.CLAUDE_CODE, "Claude Code"),
    Agent(AgentIds.COPILOT, "GitHub Copilot"),
    Agent(AgentIds.WINDSURF, "Windsurf"),
    Agent(AgentIds.REPLIT, "Replit Agent"),
    Agent(AgentIds.CLINE, "Cline"),
    Agent(AgentIds.AIDER, "Aider"),
    Agent(AgentIds.DEVIN, "Devin AI"),
    Agent(AgentIds.CODEGPT, "CodeGPT"),
    Agent(AgentIds.LINDY, "Lindy"),
    Agent(AgentIds.BOLT, "Bolt"),
    Agent(AgentIds.LOVABLE, "Lovable"),
    Agent(AgentIds.QODO, "Qodo"),
    Agent(AgentIds.CONTINUE, "Continue"),
    Agent(AgentIds.TRAE, "Trae"),
    Agent(AgentIds.V0, "v0 by Vercel"),
    Agent(AgentIds.ZENCODER, "Zencoder"),
    Agent(AgentIds.CODEWHISPERER, "Amazon CodeWhisperer"),
    Agent(AgentIds.OPENDEVIN, "OpenDevin"),
    Agent(AgentIds.INTELLICODE, "IntelliCode"),
    Agent(AgentIds.OPENCODE, "OpenCode"),
]


def get_agent_by_id(agent_id: str) -> Optional[Agent]:
    return next((agent for agent in AGENTS if agent.agent_id == agent_id), None)


def get_agent_by_name(name: str) -> Optional[Agent]:
    return next((agent for agent in AGENTS if agent.name == name), None)


def all_agent_ids() -> list[str]:
    return [agent.agent_id for agent in AGENTS]


def is_valid_agent_id(agent_id: str) -> bool:
    """True if the slug ID belongs to a production agent."""
    return get_agent_by_id(agent_id) is not None
