"""Tests for the agent registry."""

import hashlib

from arden.agents import (
    AGENTS,
    AgentIds,
    all_agent_ids,
    get_agent_by_id,
    get_agent_by_name,
    is_valid_agent_id,
    wire_agent_id,
)
from arden.schema import validate_event


def test_registry_lookup():
    """Test lookups by slug and display name."""
    assert get_agent_by_id(AgentIds.CLAUDE_CODE).name == "Claude Code"
    assert get_agent_by_name("Amp").agent_id == AgentIds.AMP
    assert get_agent_by_id("A-NOPE") is None
    assert is_valid_agent_id(AgentIds.CURSOR)
    assert len(all_agent_ids()) == len(AGENTS) == 22


def test_wire_agent_id():
    """Test hex IDs pass through and slugs are hashed into the hex format."""
    assert wire_agent_id("A-1F2E") == "A-1F2E"

    expected = "A-" + hashlib.sha256(b"A-CLAUDECODE").hexdigest()[:8].upper()
    assert wire_agent_id(AgentIds.CLAUDE_CODE) == expected


def test_all_wire_ids_validate():
    """Test that every registry agent produces a valid, unique wire ID."""
    wire_ids = [agent.wire_id for agent in AGENTS]
    assert len(set(wire_ids)) == len(wire_ids)
    for wire_id in wire_ids:
        validate_event({"agent": wire_id, "time": 0})
