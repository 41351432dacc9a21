"""
Static NBA team reference data.

The reference (conferences -> divisions -> teams) maps the aliases users speak
to Sportradar team ids. It is read once per file and kept as an immutable
tuple for the lifetime of the process.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..base import UpstreamError
from ..lookup import iter_nested, normalise
from .client import SportradarNBAClient

_TEAMS_PACKAGE = "thingpedia_devices.resources.teams"
_TEAMS_FILE = "nba.json"
_LEVELS = ("conferences", "divisions", "teams")


@dataclass(frozen=True, slots=True)
class TeamReference:
    id: str
    alias: str
    market: str
    name: str
    conference: str
    division: str

    @property
    def full_name(self) -> str:
        return f"{self.market} {self.name}"


def parse_team_reference(payload: Any) -> Tuple[TeamReference, ...]:
    """Flatten a hierarchy payload into :class:`TeamReference` records."""

    teams: List[TeamReference] = []
    for (conference, division), team in iter_nested(payload, *_LEVELS):
        if not team.get("id") or not team.get("alias"):
            continue
        teams.append(
            TeamReference(
                id=str(team["id"]),
                alias=str(team["alias"]),
                market=str(team.get("market", "")),
                name=str(team.get("name", "")),
                conference=str(conference.get("name", "")),
                division=str(division.get("name", "")),
            )
        )
    return tuple(teams)


@lru_cache(maxsize=None)
def load_team_reference(path: Optional[Path] = None) -> Tuple[TeamReference, ...]:
    """Load the packaged reference, or ``path`` when given. Results are cached per path."""

    if path is None:
        text = resources.files(_TEAMS_PACKAGE).joinpath(_TEAMS_FILE).read_text(encoding="utf-8")
    else:
        text = Path(path).read_text(encoding="utf-8")
    return parse_team_reference(json.loads(text))


def find_team(teams: Iterable[TeamReference], alias: str) -> Optional[TeamReference]:
    wanted = normalise(alias)
    for team in teams:
        if normalise(team.alias) == wanted:
            return team
    return None


def _serialise(payload: Any) -> Dict[str, Any]:
    conferences = []
    for conference in payload.get("conferences") or []:
        divisions = []
        for division in conference.get("divisions") or []:
            teams = [
                {key: team.get(key) for key in ("id", "alias", "market", "name")}
                for team in division.get("teams") or []
                if isinstance(team, dict)
            ]
            divisions.append({"name": division.get("name"), "alias": division.get("alias"), "teams": teams})
        conferences.append({"name": conference.get("name"), "alias": conference.get("alias"), "divisions": divisions})
    return {"league": payload.get("league"), "conferences": conferences}


def sync_team_reference(client: SportradarNBAClient, path: Path) -> int:
    """Rebuild a reference file from the league hierarchy endpoint; returns the team count."""

    payload = client.fetch_league_hierarchy()
    teams = parse_team_reference(payload)
    if not teams:
        raise UpstreamError("League hierarchy contained no teams.")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(_serialise(payload), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    return len(teams)
