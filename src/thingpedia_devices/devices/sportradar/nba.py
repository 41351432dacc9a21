"""
Sportradar NBA channel (``us.sportradar``).

Queries follow the same shape: fetch today's schedule, pick the first game
involving the requested team alias, describe its status with
:data:`GAME_STATUS_MESSAGES` and, for some statuses, follow up with a second
request (rankings or box score) whose parameters come from the first.
"""

from __future__ import annotations

import time
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from babel import Locale, UnknownLocaleError
from babel.dates import format_skeleton, format_time

from ...config import DEFAULT_LOCALE, SecretsBundle, load_secrets
from ...core.context import Platform
from ..base import BaseDevice, DeviceEngine, Entity, NotFoundError, OutputRecord, UpstreamError, query
from ..lookup import StatusMessages, dig, find_first, find_nested, normalise
from .client import SportradarNBAClient
from .teams import TeamReference, find_team, load_team_reference

NO_GAMES_MESSAGE = "No NBA Games Found"
INVALID_TEAM_MESSAGE = "Invalid Team Input"

GAME_STATUS_MESSAGES = StatusMessages(
    {
        None: "There is no {team} game today. I can notify you when there is a game if you want?",
        "scheduled": "Next game {away} @ {home} at {time}",
        "inprogress": "Game update for {away} @ {home}: {away_points} - {home_points}",
        "halftime": "Half-time for {away} @ {home}: {away_points} - {home_points}",
        "complete": "The game is complete and statistics are being reviewed",
        "closed": "Final score for {away} @ {home}: {away_points} - {home_points}",
        "canceled": "The game has been canceled",
        "delayed": "The game has been delayed",
        "unnecessary": "The game was scheduled to occur, but is now deemed unnecessary",
        "if_necessary": "The game will be scheduled if necessary",
        "postponed": "The game has been postponed",
        "time-tbd": "The game has been scheduled but the time has yet to be announced",
        "created": "The game has just began and information is being logged",
    }
)
BOXSCORE_STATUSES = frozenset({"closed", "halftime", "inprogress"})
QUARTERS = 4


def _team_entity(team: Any) -> Entity:
    alias = dig(team, "alias", "")
    name = dig(team, "name")
    return Entity(value=str(alias).lower(), display=name if isinstance(name, str) else None)


def _points(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def _babel_locale(tag: str) -> Locale:
    try:
        return Locale.parse(tag.replace("_", "-"), sep="-")
    except (UnknownLocaleError, ValueError, TypeError):
        return Locale.parse(DEFAULT_LOCALE, sep="-")


def format_local_time(scheduled: Optional[str], platform: Platform) -> str:
    """
    Render an ISO-8601 instant in the platform timezone and locale.

    The numeric date and medium time are joined with the locale's medium
    date-time pattern: ``10/19/2026, 7:30:00 PM`` for ``en-US``,
    ``20/10/2026, 00:30:00`` for ``en-GB``, ``20.10.2026, 01:30:00`` for
    ``de-DE``. Unknown locales fall back to ``en-US``.
    """

    if not scheduled:
        return ""
    try:
        instant = datetime.fromisoformat(scheduled)
    except ValueError:
        return scheduled
    zone = platform.tzinfo
    local = instant.astimezone(zone) if instant.tzinfo else instant.replace(tzinfo=zone)
    locale = _babel_locale(platform.locale)
    day = format_skeleton("yMd", local, tzinfo=zone, locale=locale)
    clock = format_time(local, format="medium", tzinfo=zone, locale=locale)
    pattern = locale.datetime_formats.get("medium") or "{1}, {0}"
    rendered = str(pattern).replace("{1}", day).replace("{0}", clock)
    # CLDR separates the day period with narrow no-break spaces
    return rendered.replace("\u202f", " ").replace("\u00a0", " ")


class NBASportradarDevice(BaseDevice):
    """
    NBA schedule, score, ranking and roster lookups.

    Parameters
    ----------
    client:
        Preconfigured API client. Built from ``[sportradar]`` settings (or an
        ``api_key`` in the device state) when omitted.
    teams:
        Team reference; defaults to the packaged ``nba.json`` or
        ``[sportradar].teams_path``.
    secondary_fetch_delay:
        Seconds to pause before a chained rankings/box score request. The pause
        is optional and defaults to the ``[sportradar]`` setting (``0``).
    clock:
        Returns "now"; defaults to the platform clock.
    """

    kind = "us.sportradar"

    def __init__(
        self,
        engine: DeviceEngine,
        state: Optional[Mapping[str, Any]] = None,
        *,
        client: Optional[SportradarNBAClient] = None,
        teams: Optional[Sequence[TeamReference]] = None,
        secrets: Optional[SecretsBundle] = None,
        secondary_fetch_delay: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(engine, state or {"kind": self.kind})
        if client is None or teams is None or secondary_fetch_delay is None:
            secrets = secrets or load_secrets(strict=False)
        if client is None:
            settings = secrets.sportradar
            client = SportradarNBAClient(
                self.state.get("api_key") or settings.api_key,
                access_level=settings.access_level,
                language=settings.language,
                timeout=secrets.http.timeout,
                max_attempts=secrets.http.max_attempts,
            )
        self.client = client
        self.teams: Sequence[TeamReference] = teams if teams is not None else load_team_reference(secrets.sportradar.teams_path)
        self.secondary_fetch_delay = secondary_fetch_delay if secondary_fetch_delay is not None else secrets.sportradar.secondary_fetch_delay
        self._clock = clock or self.platform.now
        self._sleep = sleep

    @property
    def unique_id(self) -> str:
        return self.kind

    @property
    def name(self) -> str:
        return "Sport Radar NBA Channel"

    @property
    def description(self) -> str:
        return "The NBA Channel for Sport Radar"

    def _today(self) -> date:
        return self._clock().date()

    def _require_team(self, alias: str) -> TeamReference:
        team = find_team(self.teams, alias)
        if team is None:
            raise NotFoundError(INVALID_TEAM_MESSAGE)
        return team

    def _fetch_games(self) -> List[Mapping[str, Any]]:
        try:
            schedule = self.client.fetch_daily_schedule(self._today())
        except UpstreamError as exc:
            raise UpstreamError(NO_GAMES_MESSAGE) from exc
        return [game for game in schedule["games"] if isinstance(game, Mapping)]

    def _find_game(self, alias: str) -> Optional[Mapping[str, Any]]:
        return find_first(self._fetch_games(), alias, "home.alias", "away.alias")

    def _pause(self) -> None:
        if self.secondary_fetch_delay > 0:
            self.logger.debug("Pausing before chained request", extra={"delay": self.secondary_fetch_delay})
            self._sleep(self.secondary_fetch_delay)

    def _describe(self, game: Optional[Mapping[str, Any]], team_display: str) -> Optional[str]:
        status = game.get("status") if game else None
        message = GAME_STATUS_MESSAGES.render(
            status,
            team=team_display,
            away=dig(game, "away.name", ""),
            home=dig(game, "home.name", ""),
            away_points=_points(dig(game, "away_points")),
            home_points=_points(dig(game, "home_points")),
            time=format_local_time(dig(game, "scheduled"), self.platform),
        )
        if message is None:
            self.logger.info("No message for game status", extra={"status": status})
        return message

    @query("get_todays_games")
    def get_todays_games(self) -> List[OutputRecord]:
        return [
            {
                "home_team": _team_entity(game.get("home")),
                "home_score": game.get("home_points"),
                "away_team": _team_entity(game.get("away")),
                "away_score": game.get("away_points"),
                "result": game.get("status"),
            }
            for game in self._fetch_games()
        ]

    @query("get_team")
    def get_team(self, team: Any) -> List[OutputRecord]:
        entity = Entity.coerce(team)
        reference = self._require_team(entity.value)
        game = self._find_game(entity.value)
        message = self._describe(game, entity.display or reference.full_name)
        if message is None:
            return []

        self._pause()
        rankings = self.get_rankings(reference.full_name)
        return [
            {
                "result": message,
                "divisionPos": rankings.get("division"),
                "divisionName": rankings.get("divisionName"),
                "conferencePos": rankings.get("conference"),
                "conferenceName": rankings.get("conferenceName"),
            }
        ]

    def get_rankings(self, full_name: str) -> Dict[str, Any]:
        """
        Return the ``rank`` block of the team named ``"<market> <name>"`` plus
        its ``divisionName`` and ``conferenceName``.
        """

        payload = self.client.fetch_rankings(self._today().year)
        wanted = normalise(full_name)
        match = find_nested(
            payload,
            ("conferences", "divisions", "teams"),
            lambda team: normalise(f"{team.get('market', '')} {team.get('name', '')}") == wanted,
        )
        if match is None:
            raise NotFoundError(INVALID_TEAM_MESSAGE)
        (conference, division), team = match
        rank = team.get("rank")
        ranking: Dict[str, Any] = dict(rank) if isinstance(rank, Mapping) else {}
        ranking["divisionName"] = division.get("name")
        ranking["conferenceName"] = conference.get("name")
        return ranking

    @query("get_boxscore")
    def get_boxscore(self, team: Any) -> List[OutputRecord]:
        """Box score for live or finished games; every other status, ``complete`` included, is reported as ``[{"status_message": ...}]``."""

        entity = Entity.coerce(team)
        reference = self._require_team(entity.value)
        game = self._find_game(entity.value)
        status = game.get("status") if game else None

        if game is not None and status in BOXSCORE_STATUSES:
            self._pause()
            boxscore = self.client.fetch_boxscore(str(game.get("id")))
            return [self._project_boxscore(game, boxscore, status)]

        message = self._describe(game, entity.display or reference.full_name)
        return [{"status_message": message}] if message is not None else []

    def _project_boxscore(self, game: Mapping[str, Any], boxscore: Mapping[str, Any], status: str) -> OutputRecord:
        record: OutputRecord = {}
        for side in ("home", "away"):
            record[f"{side}_team"] = _team_entity(game.get(side))
            record[f"{side}_score"] = game.get(f"{side}_points")
            for quarter in range(QUARTERS):
                points = dig(boxscore, (side, "scoring", quarter, "points"))
                record[f"{side}_quarter{quarter + 1}"] = points if isinstance(points, (int, float)) else 0
            leader = dig(boxscore, (side, "leaders", "points", 0, "full_name"))
            if not isinstance(leader, str):
                self.logger.debug("Box score has no points leader", extra={"side": side})
                leader = ""
            record[f"{side}_leading_scorer"] = leader
        record["status_message"] = f"Game Status: {status}"
        return record

    @query("get_roster")
    def get_roster(self, team: Any) -> List[OutputRecord]:
        reference = self._require_team(Entity.coerce(team).value)
        profile = self.client.fetch_team_profile(reference.id)

        players = [
            f"{player.get('primary_position') or player.get('position') or 'NA'}: {player.get('full_name', '')}"
            for player in profile.get("players") or []
            if isinstance(player, Mapping)
        ]
        members = sorted(players, key=str.casefold)
        for coach in profile.get("coaches") or []:
            if isinstance(coach, Mapping) and coach.get("position") == "Head Coach":
                members.append(f"Head Coach: {coach.get('full_name', '')}")
        return [{"member": member} for member in members]
