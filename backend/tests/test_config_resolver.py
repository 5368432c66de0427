import pytest

from livescore.exceptions import ConfigError
from livescore.services.config_resolver import (
    config_gate,
    first_side,
    resolve,
    resolve_config,
)

CRICKET = {
    "totalOvers": 20,
    "maxOversPerBowler": 4,
    "rosters": {"home": ["h1", "h2"], "away": ["a1", "a2"]},
}


@pytest.mark.parametrize(
    "sport, toss, expected",
    [
        ("badminton", {"winner": "home", "decision": "serve"}, "home"),
        ("badminton", {"winner": "home", "decision": "receive"}, "away"),
        ("volleyball", {"winner": "away", "decision": "court_side"}, "home"),
        ("cricket", {"winner": "away", "decision": "bat"}, "away"),
        ("cricket", {"winner": "away", "decision": "bowl"}, "home"),
        ("futsal", {"winner": "home", "decision": "side"}, "away"),
        ("chess", {"winner": "away", "decision": "white"}, "away"),
    ],
)
def test_first_side_from_toss(sport, toss, expected):
    assert first_side(sport, toss) == expected


@pytest.mark.parametrize(
    "toss",
    [None, {}, {"winner": "A", "decision": "serve"}, {"winner": "home", "decision": "bat"}],
)
def test_invalid_toss(toss):
    with pytest.raises(ConfigError):
        first_side("badminton", toss)


def test_unknown_sport():
    with pytest.raises(ConfigError) as exc:
        resolve_config("curling", {})
    assert exc.value.code == "config_error"
    assert exc.value.status_code == 422


@pytest.mark.parametrize(
    "sport, raw",
    [
        ("badminton", {"gamesToWin": 4}),
        ("badminton", {"pointsToWin": 25}),
        ("badminton", {"gameTypes": ["mixed"]}),
        ("table_tennis", {"setsToWin": 5}),
        ("table_tennis", {"pointsToWin": 15}),
        ("volleyball", {"numberOfSets": 4}),
        ("volleyball", {"setsToWin": True}),
        ("cricket", {"maxOversPerBowler": 2}),
        ("cricket", {**CRICKET, "totalOvers": 0}),
        ("cricket", {**CRICKET, "maxOversPerBowler": 0}),
        ("cricket", {**CRICKET, "rosters": {"home": ["h1", "h1"], "away": ["a1", "a2"]}}),
        ("chess", {"boards": "four"}),
    ],
)
def test_invalid_configs(sport, raw):
    with pytest.raises(ConfigError):
        resolve_config(sport, raw)


def test_defaults():
    assert resolve_config("badminton", {}) == {
        "gamesToWin": 2,
        "totalGames": 3,
        "pointsToWin": 21,
        "cap": 30,
        "periodTypes": [],
    }
    assert resolve_config("table_tennis", {})["totalSets"] == 3
    assert resolve_config("volleyball", {})["setsToWin"] == 2
    assert resolve_config("futsal", {}) == {"allowExtraTime": True, "allowPenalties": True}
    assert resolve_config("chess", {}) == {"boards": 4}


def test_first_game_type_overrides_list():
    config = resolve_config(
        "badminton", {"gameTypes": ["singles", "doubles"], "firstGameType": "doubles"}
    )
    assert config["periodTypes"] == ["doubles", "doubles"]


def test_resolve_is_pure():
    raw = dict(CRICKET)
    toss = {"winner": "home", "decision": "bowl"}

    first = resolve("cricket", raw, toss)
    second = resolve("cricket", raw, toss)

    assert first == second
    assert first is not second
    assert raw == CRICKET
    assert first["strikingSide"] == "away"
    assert first["rosters"] == CRICKET["rosters"]
    assert first["completed"] is False


def test_config_gate():
    assert config_gate("cricket", None) is True
    assert config_gate("cricket", dict(CRICKET)) is True
    assert config_gate("cricket", {**CRICKET, "toss": {"winner": "home", "decision": "bat"}}) is False
    assert config_gate("cricket", {"toss": {"winner": "home", "decision": "bat"}}) is True
    assert config_gate("badminton", {"toss": {"winner": "home", "decision": "serve"}}) is False
