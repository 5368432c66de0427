import pytest

from livescore.exceptions import IllegalTransition
from livescore.scoring import apply_event, badminton, scoring_gates
from livescore.services.config_resolver import resolve

ALL_SINGLES = {"gameTypes": ["singles", "singles", "singles"]}


def _start(config=None, toss=None):
    return resolve(
        "badminton",
        ALL_SINGLES if config is None else config,
        toss or {"winner": "home", "decision": "serve"},
    )


def _play(state, *sides):
    for side in sides:
        state = apply_event(state, {"type": "POINT", "by": side})
    return state


def test_game_wins_at_21_with_two_point_margin():
    state = _play(_start(), *["home"] * 21)

    assert state["periods"][0]["winner"] == "home"
    assert (state["periods"][0]["home"], state["periods"][0]["away"]) == (21, 0)
    assert state["currentPeriodIndex"] == 1


def test_requires_two_point_gap_and_caps_at_30():
    state = _play(_start(), *["home", "away"] * 29)
    assert (state["periods"][0]["home"], state["periods"][0]["away"]) == (29, 29)
    assert state["periods"][0]["winner"] is None

    state = _play(state, "home")

    assert state["periods"][0]["winner"] == "home"
    assert (state["periods"][0]["home"], state["periods"][0]["away"]) == (30, 29)
    assert state["currentPeriodIndex"] == 1


@pytest.mark.parametrize("points_to_win, cap", [(11, 15), (15, 19)])
def test_short_games_cap_below_30(points_to_win, cap):
    state = _start({**ALL_SINGLES, "pointsToWin": points_to_win})
    assert state["config"]["cap"] == cap

    state = _play(state, *["home", "away"] * (cap - 1), "away")

    assert state["periods"][0]["winner"] == "away"
    assert state["periods"][0]["away"] == cap


def test_server_keeps_serve_until_losing_a_rally():
    state = _start()
    assert state["servingSide"] == "home"
    state = _play(state, "home")
    assert state["servingSide"] == "home"
    state = _play(state, "away")
    assert state["servingSide"] == "away"
    state = _play(state, "away")
    assert state["servingSide"] == "away"


def test_receive_decision_gives_opponent_first_serve():
    state = _start(toss={"winner": "home", "decision": "receive"})
    assert state["servingSide"] == "away"


def test_game_winner_serves_first_in_next_game():
    state = _start(toss={"winner": "away", "decision": "serve"})
    state = _play(state, *["home"] * 21)
    assert state["servingSide"] == "home"
    assert state["periods"][1]["firstServer"] == "home"


def test_best_of_three_halts_after_two_wins():
    state = _play(_start(), *["home"] * 42)

    assert state["completed"] is True
    assert state["winnerSide"] == "home"
    assert state["margin"] == "2-0"
    with pytest.raises(IllegalTransition):
        _play(state, "home")


def test_three_games_to_win_plays_up_to_five():
    state = _start({"gamesToWin": 3, "gameTypes": ["doubles"] * 5})
    assert state["config"]["totalGames"] == 5
    state = _play(state, *["home"] * 21, *["away"] * 21, *["home"] * 21, *["away"] * 21)
    assert state["currentPeriodIndex"] == 4
    state = _play(state, *["away"] * 21)
    assert state["winnerSide"] == "away"
    assert state["margin"] == "3-2"


def test_unset_game_type_blocks_scoring_until_selected():
    state = _start({"firstGameType": "doubles"})
    assert state["pendingPeriodTypeSelection"] is False
    assert state["periods"][0]["type"] == "doubles"

    state = _play(state, *["home"] * 21)
    assert state["pendingPeriodTypeSelection"] is True
    assert scoring_gates(state)["periodTypePending"] is True
    assert state["periods"][1]["type"] is None

    with pytest.raises(IllegalTransition) as exc:
        _play(state, "home")
    assert "singles or doubles" in str(exc.value)

    state = apply_event(state, {"type": "SELECT_TYPE", "periodType": "singles"})
    assert state["pendingPeriodTypeSelection"] is False
    assert state["periods"][1]["type"] == "singles"
    state = _play(state, "away")
    assert state["periods"][1]["away"] == 1


def test_first_game_without_type_starts_pending():
    state = _start({})
    assert state["pendingPeriodTypeSelection"] is True
    with pytest.raises(IllegalTransition):
        _play(state, "home")


def test_game_type_locked_once_points_are_scored():
    state = _play(_start(), "home")
    with pytest.raises(IllegalTransition):
        apply_event(state, {"type": "SELECT_TYPE", "periodType": "doubles"})


def test_invalid_event_is_rejected():
    with pytest.raises(IllegalTransition):
        badminton.apply({"type": "POINT", "by": "A"}, _start())


def test_summary_reports_games_and_current_points():
    state = _play(_start(), *["home"] * 21, "away")
    data = badminton.summary(state)

    assert data["games"] == {"home": 1, "away": 0}
    assert data["points"] == {"home": 0, "away": 1}
    assert data["type"] == "singles"


def test_adjust_cannot_push_a_game_past_the_cap():
    with pytest.raises(IllegalTransition):
        apply_event(_start(), {"type": "ADJUST", "by": "home", "delta": 40})

    state = _play(_start(), *["home", "away"] * 29)
    state = apply_event(state, {"type": "ADJUST", "by": "home", "delta": 1})

    assert state["periods"][0]["winner"] == "home"
    assert state["periods"][0]["home"] == 30
    assert state["currentPeriodIndex"] == 1


def test_adjust_to_winning_score_closes_the_game_without_moving_serve():
    state = _start(toss={"winner": "away", "decision": "serve"})
    state = apply_event(state, {"type": "ADJUST", "by": "home", "delta": 21})

    assert state["periods"][0]["winner"] == "home"
    # the next game opens with its winner serving
    assert state["servingSide"] == "home"
