from __future__ import annotations

import pytest

from thingpedia_devices.devices.lookup import StatusMessages, dig, find_first, find_nested, iter_nested, normalise

GAMES = [
    {"id": "g1", "home": {"alias": "BOS"}, "away": {"alias": "LAL"}},
    {"id": "g2", "home": {"alias": "LAL"}, "away": {"alias": "GSW"}},
    {"id": "g3", "home": {"alias": "NYK"}, "away": {"alias": "MIA"}},
]

RANKINGS = {
    "conferences": [
        {
            "name": "EASTERN CONFERENCE",
            "divisions": [
                {"name": "Atlantic", "teams": [{"market": "Boston", "name": "Celtics"}, {"market": "New York", "name": "Knicks"}]},
            ],
        },
        {
            "name": "WESTERN CONFERENCE",
            "divisions": [
                {"name": "Pacific", "teams": [{"market": "Los Angeles", "name": "Lakers"}]},
            ],
        },
    ]
}


def test_normalise_is_case_and_whitespace_insensitive():
    assert normalise(" LAL ") == normalise("lal") == "lal"
    assert normalise(None) == ""


def test_find_first_matches_case_insensitively():
    assert find_first(GAMES, "LAL", "home.alias", "away.alias") is find_first(GAMES, "lal", "home.alias", "away.alias")


def test_find_first_returns_first_match_in_upstream_order():
    match = find_first(GAMES, "lal", "home.alias", "away.alias")

    assert match["id"] == "g1"


def test_find_first_without_match_or_identifier():
    assert find_first(GAMES, "xyz", "home.alias", "away.alias") is None
    assert find_first(GAMES, "", "home.alias") is None


def test_dig_follows_mappings_and_indices():
    payload = {"home": {"scoring": [{"points": 20}, {"points": 31}]}}

    assert dig(payload, ("home", "scoring", 1, "points")) == 31
    assert dig(payload, "home.scoring.0.points") == 20
    assert dig(payload, ("home", "scoring", 3, "points"), 0) == 0
    assert dig(payload, "away.scoring", "missing") == "missing"
    assert dig(None, "anything") is None


def test_iter_nested_preserves_insertion_order():
    leaves = [(tuple(parent["name"] for parent in parents), f"{team['market']} {team['name']}") for parents, team in iter_nested(RANKINGS, "conferences", "divisions", "teams")]

    assert leaves == [
        (("EASTERN CONFERENCE", "Atlantic"), "Boston Celtics"),
        (("EASTERN CONFERENCE", "Atlantic"), "New York Knicks"),
        (("WESTERN CONFERENCE", "Pacific"), "Los Angeles Lakers"),
    ]


def test_find_nested_returns_parents_and_leaf():
    (conference, division), team = find_nested(RANKINGS, ("conferences", "divisions", "teams"), lambda team: team["name"] == "Lakers")

    assert conference["name"] == "WESTERN CONFERENCE"
    assert division["name"] == "Pacific"
    assert team["market"] == "Los Angeles"
    assert find_nested(RANKINGS, ("conferences", "divisions", "teams"), lambda team: False) is None


def test_status_messages_render_and_unmapped():
    messages = StatusMessages({None: "No {team} game", "closed": "Final {away} @ {home}"})

    assert messages.render(None, team="Lakers") == "No Lakers game"
    assert messages.render("closed", away="Lakers", home="Celtics", extra="ignored") == "Final Lakers @ Celtics"
    assert messages.render("flagged") is None
    assert "closed" in messages
    assert "flagged" not in messages


def test_status_messages_are_read_only():
    messages = StatusMessages({"closed": "Final"})

    with pytest.raises(TypeError):
        messages.templates["closed"] = "changed"
