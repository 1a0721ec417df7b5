"""Read-only client for the Arden agents and leaderboard API."""

from typing import Optional

import requests

from .config import DEFAULT_HOST
from .models.stats import AgentsPage, Leaderboard

PERIODS = {
    "7d": "7_days",
    "30d": "30_days",
    "today": "today",
}

MODES = ("real", "simulated", "both")


class StatsClient:
    """Client for the public stats endpoints.

    Network errors propagate as requests.RequestException.
    """

    def __init__(self, host: Optional[str] = None, timeout: float = 30.0):
        self.host = (host or DEFAULT_HOST).rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, params: dict) -> dict:
        response = requests.get(
            f"{self.host}/{path}",
            params=params,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def list_agents(self, limit: int = 50, offset: int = 0) -> AgentsPage:
        """Fetch one page of agents."""
        data = self._get("api/agents", {"limit": limit, "offset": offset})
        return AgentsPage.model_validate(data)

    def leaderboard(self, period: str = "7d", mode: str = "real") -> Leaderboard:
        """Fetch the agent leaderboard.

        Args:
            period: One of 7d, 30d, today (unknown values fall back to 7 days)
            mode: One of real, simulated, both

        Raises:
            ValueError: If mode is not recognised
        """
        if mode not in MODES:
            raise ValueError(f"Invalid mode '{mode}'. Must be one of: {', '.join(MODES)}")
        data = self._get(
            "api/leaderboards/agents",
            {"period": PERIODS.get(period, "7_days"), "mode": mode},
        )
        return Leaderboard.model_validate(data)
