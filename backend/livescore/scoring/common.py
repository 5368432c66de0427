"""Primitives shared by the per-sport scoring engines.

Every engine keeps its whole match in one JSON-serialisable dict so a
snapshot can be persisted and reloaded without loss. The shared keys are
``sport``, ``config``, ``periods``, ``currentPeriodIndex``, ``servingSide``,
``completed``, ``winnerSide``, ``margin``, ``pendingPeriodTypeSelection`` and
``rosters``.
"""

from typing import Callable, Dict, List, Optional

from ..exceptions import IllegalTransition

SIDES = ("home", "away")
PERIOD_TYPES = ("singles", "doubles")


def other(side: str) -> str:
    return "away" if side == "home" else "home"


def require_side(value, field: str = "by") -> str:
    if value not in SIDES:
        raise IllegalTransition(f"'{field}' must be 'home' or 'away'")
    return value


def require_int(value, field: str, *, minimum: Optional[int] = None) -> int:
    # bool is a subclass of int
    if isinstance(value, bool) or not isinstance(value, int):
        raise IllegalTransition(f"'{field}' must be an integer")
    if minimum is not None and value < minimum:
        raise IllegalTransition(f"'{field}' must be >= {minimum}")
    return value


def ensure_live(state: Dict) -> None:
    if state.get("completed"):
        raise IllegalTransition("match is already completed")


def base_state(
    sport: str,
    config: Dict,
    periods: List[Dict],
    first_side: str,
    rosters: Optional[Dict] = None,
) -> Dict:
    rosters = rosters or {}
    return {
        "sport": sport,
        "config": dict(config),
        "periods": periods,
        "currentPeriodIndex": 0,
        "servingSide": first_side,
        "completed": False,
        "winnerSide": None,
        "margin": None,
        "pendingPeriodTypeSelection": False,
        "rosters": {side: list(rosters.get(side) or []) for side in SIDES},
    }


def current_period(state: Dict) -> Dict:
    return state["periods"][state["currentPeriodIndex"]]


def complete(state: Dict, winner: str, margin: Optional[str]) -> Dict:
    state["completed"] = True
    state["winnerSide"] = winner
    state["margin"] = margin
    state["pendingPeriodTypeSelection"] = False
    return state


def format_points(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


# ---------------------------------------------------------------------------
# Set/game based sports (volleyball, badminton, table tennis)
# ---------------------------------------------------------------------------


def new_set(first_server: str, period_type: Optional[str] = None, *, typed: bool = False) -> Dict:
    period = {"home": 0, "away": 0, "winner": None, "firstServer": first_server}
    if typed:
        period["type"] = period_type
    return period


def configured_type(state: Dict, index: int) -> Optional[str]:
    types = state["config"].get("periodTypes") or []
    if index < len(types) and types[index] in PERIOD_TYPES:
        return types[index]
    return None


def sets_won(state: Dict) -> Dict[str, int]:
    won = {"home": 0, "away": 0}
    for period in state["periods"]:
        if period.get("winner") in SIDES:
            won[period["winner"]] += 1
    return won


def period_winner(
    period: Dict, threshold: int, *, win_by: int = 2, cap: Optional[int] = None
) -> Optional[str]:
    """Return the side that has taken ``period`` or ``None`` while it is live.

    A side wins on reaching ``threshold`` with a ``win_by`` lead, or on
    reaching ``cap`` regardless of the lead.
    """
    for side in SIDES:
        mine, theirs = period[side], period[other(side)]
        if cap is not None and mine >= cap and mine > theirs:
            return side
        if mine >= threshold and mine - theirs >= win_by:
            return side
    return None


def ensure_type_selected(state: Dict) -> None:
    if state.get("pendingPeriodTypeSelection"):
        raise IllegalTransition("select singles or doubles before scoring this period")


def select_period_type(state: Dict, event: Dict) -> Dict:
    period_type = event.get("periodType")
    if period_type not in PERIOD_TYPES:
        raise IllegalTransition("'periodType' must be 'singles' or 'doubles'")
    period = current_period(state)
    if not state.get("pendingPeriodTypeSelection") and (period["home"] or period["away"]):
        raise IllegalTransition("period type cannot change once scoring has started")
    period["type"] = period_type
    state["pendingPeriodTypeSelection"] = False
    return state


def adjust_score(state: Dict, event: Dict, settle: Callable[[Dict], bool]) -> Dict:
    """Correct the current period's score without rotating serve.

    A negative delta never goes below zero and never decides the period. A
    positive delta is added one point at a time through ``settle``, the same
    win check a rally point goes through; a correction that would carry on
    past the point where the period is decided is rejected.
    """
    side = require_side(event.get("by"))
    delta = require_int(event.get("delta"), "delta")
    if delta == 0:
        raise IllegalTransition("'delta' must not be zero")
    period = current_period(state)
    if delta < 0:
        period[side] = max(0, period[side] + delta)
        return state
    for remaining in range(delta, 0, -1):
        period[side] += 1
        if settle(state):
            if remaining > 1:
                raise IllegalTransition(
                    "adjustment goes past the end of the period; "
                    f"at most {delta - remaining + 1} point(s) can be added"
                )
            break
    return state


def set_server(state: Dict, event: Dict) -> Dict:
    state["servingSide"] = require_side(event.get("side"), "side")
    return state


def close_set(
    state: Dict,
    winner: str,
    periods_to_win: int,
    next_first_server: str,
    *,
    typed: bool = False,
) -> Dict:
    """Freeze the current set and either finish the match or open the next set."""
    current_period(state)["winner"] = winner
    won = sets_won(state)
    if won[winner] >= periods_to_win:
        return complete(state, winner, f"{won[winner]}-{won[other(winner)]}")

    index = state["currentPeriodIndex"] + 1
    period_type = configured_type(state, index) if typed else None
    state["periods"].append(new_set(next_first_server, period_type, typed=typed))
    state["currentPeriodIndex"] = index
    state["servingSide"] = next_first_server
    state["pendingPeriodTypeSelection"] = typed and period_type is None
    return state


def set_summary(state: Dict) -> Dict:
    period = current_period(state)
    return {
        "points": {side: period[side] for side in SIDES},
        "sets": sets_won(state),
        "periods": [
            {"home": p["home"], "away": p["away"], "winner": p.get("winner")}
            for p in state["periods"]
        ],
        "servingSide": state["servingSide"],
        "completed": state["completed"],
        "winnerSide": state["winnerSide"],
        "margin": state["margin"],
    }
