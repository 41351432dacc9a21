"""
Sportradar NBA API (v5) client.

Every endpoint path is built per call: the daily schedule and season rankings
depend on the current date, so they are never cached across calls.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional

from ..base import UpstreamError
from ..http import BaseAPIClient

DEFAULT_BASE_URL = "https://api.sportradar.us/nba"
DEFAULT_VERSION = "v5"
HIERARCHY_PATH = "/league/hierarchy.json"


def schedule_path(day: date) -> str:
    return f"/games/{day.year}/{day.month}/{day.day}/schedule.json"


def rankings_path(season_year: int) -> str:
    return f"/seasons/{season_year}/REG/rankings.json"


def boxscore_path(game_id: str) -> str:
    return f"/games/{game_id}/boxscore.json"


def profile_path(team_id: str) -> str:
    return f"/teams/{team_id}/profile.json"


class SportradarNBAClient(BaseAPIClient):
    """Client for the Sportradar NBA feeds; the API key travels as the ``api_key`` query parameter."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        access_level: str = "trial",
        language: str = "en",
        version: str = DEFAULT_VERSION,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
        **kwargs: Any,
    ) -> None:
        params = {"api_key": api_key} if api_key else {}
        super().__init__(
            base_url=f"{base_url.rstrip('/')}/{access_level}/{version}/{language}",
            timeout=timeout,
            default_headers={"Accept": "application/json"},
            default_params=params,
            **kwargs,
        )
        self.api_key = api_key

    def _get_mapping(self, path: str, *, required: str) -> Mapping[str, Any]:
        payload = self._get_json(path)
        if not isinstance(payload, Mapping) or not isinstance(payload.get(required), list):
            raise UpstreamError(f"Unexpected Sportradar payload for {path}: missing '{required}' list.")
        return payload

    def fetch_daily_schedule(self, day: date) -> Mapping[str, Any]:
        """Return the schedule for ``day`` (``{"games": [...]}``)."""

        return self._get_mapping(schedule_path(day), required="games")

    def fetch_rankings(self, season_year: int) -> Mapping[str, Any]:
        """Return regular-season rankings grouped by conference and division."""

        return self._get_mapping(rankings_path(season_year), required="conferences")

    def fetch_boxscore(self, game_id: str) -> Mapping[str, Any]:
        payload = self._get_json(boxscore_path(game_id))
        if not isinstance(payload, Mapping):
            raise UpstreamError(f"Unexpected Sportradar boxscore payload for game {game_id}.")
        return payload

    def fetch_team_profile(self, team_id: str) -> Mapping[str, Any]:
        return self._get_mapping(profile_path(team_id), required="players")

    def fetch_league_hierarchy(self) -> Mapping[str, Any]:
        return self._get_mapping(HIERARCHY_PATH, required="conferences")
