from __future__ import annotations

from datetime import date, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock, call
from zoneinfo import ZoneInfo

import pytest

from thingpedia_devices.core import Platform
from thingpedia_devices.devices.base import Entity, NotFoundError, UpstreamError
from thingpedia_devices.devices.sportradar import NBASportradarDevice, SportradarNBAClient, load_team_reference
from thingpedia_devices.devices.sportradar.client import schedule_path
from thingpedia_devices.devices.sportradar.nba import format_local_time

TODAY = datetime(2026, 10, 19, 21, 0, tzinfo=ZoneInfo("America/New_York"))
LAKERS_ID = "583ecae2-fb46-11e1-82cb-f4ce4684ea4c"


def _game(status, *, home_points=101, away_points=99, **extra):
    return {
        "id": "game-1",
        "status": status,
        "scheduled": "2026-10-19T23:30:00+00:00",
        "home": {"alias": "BOS", "name": "Celtics"},
        "away": {"alias": "LAL", "name": "Lakers"},
        "home_points": home_points,
        "away_points": away_points,
        **extra,
    }


RANKINGS = {
    "season": {"year": 2026},
    "conferences": [
        {
            "name": "EASTERN CONFERENCE",
            "divisions": [{"name": "Atlantic", "teams": [{"market": "Boston", "name": "Celtics", "rank": {"conference": 1, "division": 1}}]}],
        },
        {
            "name": "WESTERN CONFERENCE",
            "divisions": [{"name": "Pacific", "teams": [{"market": "Los Angeles", "name": "Lakers", "rank": {"conference": 5, "division": 2}}]}],
        },
    ],
}


@pytest.fixture()
def nba_engine():
    return SimpleNamespace(platform=Platform(locale="en-US", timezone="America/New_York"), devices=MagicMock())


@pytest.fixture()
def client():
    client = MagicMock(spec=SportradarNBAClient)
    client.fetch_daily_schedule.return_value = {"games": [_game("closed")]}
    client.fetch_rankings.return_value = RANKINGS
    return client


@pytest.fixture()
def sleep():
    return MagicMock()


@pytest.fixture()
def device(nba_engine, client, sleep):
    return NBASportradarDevice(
        nba_engine,
        client=client,
        teams=load_team_reference(),
        secondary_fetch_delay=0,
        clock=lambda: TODAY,
        sleep=sleep,
    )


def test_identity(device):
    assert device.unique_id == "us.sportradar"
    assert device.name == "Sport Radar NBA Channel"
    assert device.description == "The NBA Channel for Sport Radar"


def test_schedule_path_is_stable_and_unpadded():
    day = date(2026, 1, 5)

    assert schedule_path(day) == schedule_path(day) == "/games/2026/1/5/schedule.json"


def test_get_team_closed_game_merges_rankings(device, client):
    result = device.get_team({"value": "lal", "display": "Lakers"})

    assert result == [
        {
            "result": "Final score for Lakers @ Celtics: 99 - 101",
            "divisionPos": 2,
            "divisionName": "Pacific",
            "conferencePos": 5,
            "conferenceName": "WESTERN CONFERENCE",
        }
    ]
    client.fetch_daily_schedule.assert_called_once_with(date(2026, 10, 19))
    client.fetch_rankings.assert_called_once_with(2026)


def test_alias_lookup_is_case_insensitive(device):
    assert device.get_team("LAL") == device.get_team("lal")
    assert device.get_team(Entity("lal", "Lakers"))[0]["result"].startswith("Final score")


def test_unknown_team_raises_not_found(device, client):
    with pytest.raises(NotFoundError, match="Invalid Team Input"):
        device.get_team("xyz")
    with pytest.raises(NotFoundError):
        device.get_boxscore("xyz")
    with pytest.raises(NotFoundError):
        device.get_roster("xyz")
    client.fetch_daily_schedule.assert_not_called()
    client.fetch_team_profile.assert_not_called()


def test_unmapped_status_returns_empty(device, client):
    client.fetch_daily_schedule.return_value = {"games": [_game("flagged")]}

    assert device.get_team("lal") == []
    assert device.get_boxscore("lal") == []
    client.fetch_rankings.assert_not_called()


def test_schedule_failure_raises_upstream_error(device, client):
    cause = UpstreamError("HTTP 500 error for GET /games/2026/10/19/schedule.json")
    client.fetch_daily_schedule.side_effect = cause

    with pytest.raises(UpstreamError, match="No NBA Games Found") as excinfo:
        device.get_team("lal")

    assert excinfo.value.__cause__ is cause
    client.fetch_rankings.assert_not_called()


def test_rankings_failure_yields_no_partial_record(device, client):
    client.fetch_rankings.side_effect = UpstreamError("HTTP 404")

    with pytest.raises(UpstreamError):
        device.get_team("lal")


def test_no_game_today_uses_team_display(device, client):
    client.fetch_daily_schedule.return_value = {"games": []}

    result = device.get_team({"value": "lal", "display": "Lakers"})

    assert result[0]["result"] == "There is no Lakers game today. I can notify you when there is a game if you want?"
    assert result[0]["conferenceName"] == "WESTERN CONFERENCE"


def test_no_game_without_display_uses_full_name(device, client):
    client.fetch_daily_schedule.return_value = {"games": [{**_game("closed"), "home": {"alias": "NYK", "name": "Knicks"}}]}

    result = device.get_team("lal")

    assert result[0]["result"].startswith("Final score for Lakers @ Knicks")
    assert device.get_team("bos")[0]["result"].startswith("There is no Boston Celtics game today")


def test_first_matching_game_wins(device, client):
    client.fetch_daily_schedule.return_value = {
        "games": [_game("inprogress", home_points=50, away_points=48), _game("closed")],
    }

    assert device.get_team("lal")[0]["result"] == "Game update for Lakers @ Celtics: 48 - 50"


def test_scheduled_game_time_in_platform_timezone(device, client):
    client.fetch_daily_schedule.return_value = {"games": [_game("scheduled")]}

    assert device.get_team("bos")[0]["result"] == "Next game Lakers @ Celtics at 10/19/2026, 7:30:00 PM"


def test_format_local_time_en_gb():
    platform = Platform(locale="en-GB", timezone="Europe/London")

    assert format_local_time("2026-10-19T23:30:00Z", platform) == "20/10/2026, 00:30:00"


def test_format_local_time_de_de():
    platform = Platform(locale="de-DE", timezone="Europe/Berlin")

    assert format_local_time("2026-10-19T23:30:00Z", platform) == "20.10.2026, 01:30:00"
    assert format_local_time(None, platform) == ""


def test_format_local_time_unknown_locale_uses_en_us():
    platform = Platform(locale="xx-YY", timezone="America/New_York")

    assert format_local_time("2026-10-19T23:30:00Z", platform) == "10/19/2026, 7:30:00 PM"
    assert format_local_time("not a date", platform) == "not a date"


def test_today_is_read_from_clock_on_every_call(nba_engine, client, sleep):
    now = [datetime(2026, 10, 19, 23, 59, tzinfo=ZoneInfo("America/New_York"))]
    device = NBASportradarDevice(nba_engine, client=client, teams=load_team_reference(), secondary_fetch_delay=0, clock=lambda: now[0], sleep=sleep)

    device.get_todays_games()
    now[0] += timedelta(minutes=2)
    device.get_todays_games()

    assert client.fetch_daily_schedule.call_args_list == [call(date(2026, 10, 19)), call(date(2026, 10, 20))]


def test_secondary_fetch_delay_is_configurable(nba_engine, client, sleep):
    device = NBASportradarDevice(nba_engine, client=client, teams=load_team_reference(), secondary_fetch_delay=1.5, clock=lambda: TODAY, sleep=sleep)

    device.get_team("lal")

    sleep.assert_called_once_with(1.5)


def test_zero_delay_does_not_sleep(device, sleep):
    device.get_team("lal")

    sleep.assert_not_called()


def test_get_rankings_unknown_team(device):
    with pytest.raises(NotFoundError):
        device.get_rankings("Seattle SuperSonics")


def test_get_todays_games(device, client):
    client.fetch_daily_schedule.return_value = {"games": [_game("closed"), _game("scheduled", home_points=None, away_points=None)]}

    games = device.invoke_query("get_todays_games")

    assert games[0] == {
        "home_team": Entity("bos", "Celtics"),
        "home_score": 101,
        "away_team": Entity("lal", "Lakers"),
        "away_score": 99,
        "result": "closed",
    }
    assert games[1]["result"] == "scheduled"
    assert games[1]["home_score"] is None


def test_get_todays_games_failure(device, client):
    client.fetch_daily_schedule.side_effect = UpstreamError("down")

    with pytest.raises(UpstreamError, match="No NBA Games Found"):
        device.get_todays_games()


def test_boxscore_for_game_in_progress(device, client):
    client.fetch_daily_schedule.return_value = {"games": [_game("inprogress", home_points=45, away_points=50)]}
    client.fetch_boxscore.return_value = {
        "home": {"scoring": [{"number": 1, "points": 20}, {"number": 2, "points": 25}], "leaders": {"points": [{"full_name": "Jayson Tatum"}]}},
        "away": {"scoring": [{"number": 1, "points": 30}, {"number": 2, "points": 20}], "leaders": {}},
    }

    result = device.invoke_query("get_boxscore", {"team": {"value": "lal", "display": "Lakers"}})

    assert result == [
        {
            "home_team": Entity("bos", "Celtics"),
            "home_score": 45,
            "home_quarter1": 20,
            "home_quarter2": 25,
            "home_quarter3": 0,
            "home_quarter4": 0,
            "home_leading_scorer": "Jayson Tatum",
            "away_team": Entity("lal", "Lakers"),
            "away_score": 50,
            "away_quarter1": 30,
            "away_quarter2": 20,
            "away_quarter3": 0,
            "away_quarter4": 0,
            "away_leading_scorer": "",
            "status_message": "Game Status: inprogress",
        }
    ]
    client.fetch_boxscore.assert_called_once_with("game-1")


def test_boxscore_for_scheduled_game_reports_status(device, client):
    client.fetch_daily_schedule.return_value = {"games": [_game("scheduled")]}

    assert device.get_boxscore("lal") == [{"status_message": "Next game Lakers @ Celtics at 10/19/2026, 7:30:00 PM"}]
    client.fetch_boxscore.assert_not_called()


def test_boxscore_without_game(device, client):
    client.fetch_daily_schedule.return_value = {"games": []}

    assert device.get_boxscore({"value": "lal", "display": "Lakers"}) == [
        {"status_message": "There is no Lakers game today. I can notify you when there is a game if you want?"}
    ]


def test_boxscore_for_postponed_game(device, client):
    client.fetch_daily_schedule.return_value = {"games": [_game("postponed")]}

    assert device.get_boxscore("lal") == [{"status_message": "The game has been postponed"}]


def test_boxscore_for_complete_game_reports_status(device, client):
    client.fetch_daily_schedule.return_value = {"games": [_game("complete")]}

    assert device.get_boxscore("lal") == [{"status_message": "The game is complete and statistics are being reviewed"}]
    client.fetch_boxscore.assert_not_called()


def test_roster_sorted_with_head_coach_last(device, client):
    client.fetch_team_profile.return_value = {
        "players": [
            {"full_name": "LeBron James", "primary_position": "SF"},
            {"full_name": "Anthony Davis", "primary_position": "PF"},
            {"full_name": "Bronny James", "position": "G"},
        ],
        "coaches": [
            {"full_name": "JJ Redick", "position": "Head Coach"},
            {"full_name": "Scott Brooks", "position": "Assistant Coach"},
        ],
    }

    roster = device.get_roster("LAL")

    assert roster == [
        {"member": "G: Bronny James"},
        {"member": "PF: Anthony Davis"},
        {"member": "SF: LeBron James"},
        {"member": "Head Coach: JJ Redick"},
    ]
    client.fetch_team_profile.assert_called_once_with(LAKERS_ID)


def test_client_builds_versioned_urls(monkeypatch):
    requested = []

    def fake_get_json(self, url, **kwargs):
        requested.append(url)
        return {"games": [], "conferences": [], "players": []}

    monkeypatch.setattr(SportradarNBAClient, "_get_json", fake_get_json, raising=False)
    client = SportradarNBAClient("secret-key")

    client.fetch_daily_schedule(date(2026, 10, 9))
    client.fetch_rankings(2026)
    client.fetch_team_profile(LAKERS_ID)
    client.fetch_league_hierarchy()

    assert client.base_url == "https://api.sportradar.us/nba/trial/v5/en"
    assert client.default_params == {"api_key": "secret-key"}
    assert requested == [
        "/games/2026/10/9/schedule.json",
        "/seasons/2026/REG/rankings.json",
        f"/teams/{LAKERS_ID}/profile.json",
        "/league/hierarchy.json",
    ]


def test_client_rejects_unexpected_payload(monkeypatch):
    monkeypatch.setattr(SportradarNBAClient, "_get_json", lambda self, url, **kwargs: {"message": "Not Authorized"}, raising=False)

    with pytest.raises(UpstreamError, match="games"):
        SportradarNBAClient("secret-key").fetch_daily_schedule(date(2026, 10, 19))


def test_device_builds_client_from_settings(nba_engine):
    from thingpedia_devices.config import parse_secrets

    secrets = parse_secrets({"sportradar": {"api_key": "from-settings", "access_level": "production", "secondary_fetch_delay": 2}})

    device = NBASportradarDevice(nba_engine, secrets=secrets)

    assert device.client.base_url == "https://api.sportradar.us/nba/production/v5/en"
    assert device.client.default_params == {"api_key": "from-settings"}
    assert device.secondary_fetch_delay == 2.0
    assert len(device.teams) == 30
