"""Team chess scoring engine.

A match is a fixed number of boards played at the same time. Colours
alternate from board to board, starting with the toss winner's choice on
board 1. A win is worth one point and a draw half a point to each side.
"""

from typing import Dict, Optional

from ..exceptions import IllegalTransition
from . import common

SPORT = "chess"

RESULTS = {
    "1-0": (1.0, 0.0),
    "0-1": (0.0, 1.0),
    "½-½": (0.5, 0.5),
}
RESULT_ALIASES = {"1/2-1/2": "½-½", "draw": "½-½"}


def init_state(config: Dict, first_side: str, rosters: Optional[Dict] = None) -> Dict:
    """Initialise the boards with ``first_side`` playing white on board 1."""
    boards = []
    white = first_side
    for number in range(1, config["boards"] + 1):
        boards.append(
            {"board": number, "home": 0, "away": 0, "result": None, "white": white}
        )
        white = common.other(white)
    return common.base_state(SPORT, config, boards, first_side, rosters)


def points(state: Dict) -> Dict[str, float]:
    total = {"home": 0.0, "away": 0.0}
    for board in state["periods"]:
        for side in common.SIDES:
            total[side] += board[side]
    return total


def _result(event: Dict, state: Dict) -> Dict:
    number = common.require_int(event.get("board"), "board", minimum=1)
    if number > len(state["periods"]):
        raise IllegalTransition(f"board {number} does not exist")
    result = RESULT_ALIASES.get(event.get("result"), event.get("result"))
    if result not in RESULTS:
        raise IllegalTransition("'result' must be one of 1-0, 0-1, ½-½")

    board = state["periods"][number - 1]
    if board["result"] is not None:
        raise IllegalTransition(f"board {number} is already decided")
    board["home"], board["away"] = RESULTS[result]
    board["result"] = result

    pending = [i for i, b in enumerate(state["periods"]) if b["result"] is None]
    if pending:
        state["currentPeriodIndex"] = pending[0]
        return state

    total = points(state)
    home, away = total["home"], total["away"]
    margin = f"{common.format_points(home)}-{common.format_points(away)}"
    if home == away:
        return common.complete(state, "tie", margin)
    return common.complete(state, "home" if home > away else "away", margin)


def apply(event: Dict, state: Dict) -> Dict:
    """Apply a board ``RESULT`` event to ``state`` in place and return it."""
    common.ensure_live(state)
    if event.get("type") != "RESULT":
        raise IllegalTransition(f"invalid chess event '{event.get('type')}'")
    return _result(event, state)


def summary(state: Dict) -> Dict:
    return {
        "boards": [
            {"board": b["board"], "white": b["white"], "result": b["result"]}
            for b in state["periods"]
        ],
        "points": points(state),
        "completed": state["completed"],
        "winnerSide": state["winnerSide"],
        "margin": state["margin"],
    }
