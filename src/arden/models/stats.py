"""Pydantic models for the read-only stats API."""

from typing import Optional

from pydantic import BaseModel, Field


class AgentInfo(BaseModel):
    """An agent as listed by the stats API."""

    id: int
    name: str
    slug: str
    agent_id: str
    website_url: Optional[str] = None
    logo_url: Optional[str] = None
    is_active: bool = True
    created_at: str
    updated_at: Optional[str] = None


class AgentsPage(BaseModel):
    """One page of the agent listing."""

    agents: list[AgentInfo] = Field(default_factory=list)
    total_count: int = 0
    limit: int = 50
    offset: int = 0


class LeaderboardEntry(BaseModel):
    """A ranked row in the agent leaderboard."""

    rank: int
    agent_id: str
    name: str
    slug: str
    runs: int
    change: int = 0
    spark_data: Optional[list[int]] = None


class Leaderboard(BaseModel):
    """Agent leaderboard for a period and data mode."""

    period: str
    mode: str
    data: list[LeaderboardEntry] = Field(default_factory=list)
