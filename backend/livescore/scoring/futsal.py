"""Futsal scoring engine.

Two halves, then optional extra time and a penalty shoot-out when the
score is level. Periods end on an explicit ``END_PERIOD`` event.
"""

from typing import Dict, Optional

from ..exceptions import IllegalTransition
from . import common

SPORT = "futsal"

FIRST_HALF = "first_half"
SECOND_HALF = "second_half"
EXTRA_TIME = "extra_time"
PENALTIES = "penalties"


def _period(name: str) -> Dict:
    return {"name": name, "home": 0, "away": 0}


def init_state(config: Dict, first_side: str, rosters: Optional[Dict] = None) -> Dict:
    """Initialise futsal state with ``first_side`` kicking off."""
    state = common.base_state(SPORT, config, [_period(FIRST_HALF)], first_side, rosters)
    state["kickOff"] = first_side
    state["goals"] = []
    return state


def totals(state: Dict) -> Dict[str, int]:
    """Goals per side, not counting the shoot-out."""
    result = {"home": 0, "away": 0}
    for period in state["periods"]:
        if period["name"] == PENALTIES:
            continue
        for side in common.SIDES:
            result[side] += period[side]
    return result


def _goal(event: Dict, state: Dict) -> Dict:
    side = common.require_side(event.get("by"))
    minute = event.get("minute")
    if minute is not None:
        common.require_int(minute, "minute", minimum=0)
    period = common.current_period(state)
    period[side] += 1
    state["goals"].append(
        {
            "side": side,
            "playerId": event.get("playerId"),
            "minute": minute,
            "period": period["name"],
        }
    )
    return state


def _cancel_goal(event: Dict, state: Dict) -> Dict:
    side = common.require_side(event.get("by"))
    period = common.current_period(state)
    for index in range(len(state["goals"]) - 1, -1, -1):
        goal = state["goals"][index]
        if goal["side"] == side and goal["period"] == period["name"]:
            del state["goals"][index]
            period[side] = max(0, period[side] - 1)
            return state
    raise IllegalTransition(f"no {side} goal to cancel in this period")


def _advance(state: Dict, name: str) -> Dict:
    state["periods"].append(_period(name))
    state["currentPeriodIndex"] += 1
    if name == SECOND_HALF:
        state["servingSide"] = common.other(state["kickOff"])
    elif name == EXTRA_TIME:
        state["servingSide"] = state["kickOff"]
    return state


def _finish(state: Dict) -> Dict:
    score = totals(state)
    home, away = score["home"], score["away"]
    winner = "home" if home > away else "away"
    return common.complete(state, winner, f"{max(home, away)}-{min(home, away)}")


def _end_period(event: Dict, state: Dict) -> Dict:
    cfg = state["config"]
    name = common.current_period(state)["name"]
    score = totals(state)
    level = score["home"] == score["away"]

    if name == FIRST_HALF:
        return _advance(state, SECOND_HALF)

    if name == SECOND_HALF:
        if not level:
            return _finish(state)
        if cfg.get("allowExtraTime"):
            return _advance(state, EXTRA_TIME)
        if cfg.get("allowPenalties"):
            return _advance(state, PENALTIES)
        return common.complete(state, "tie", None)

    if name == EXTRA_TIME:
        if not level:
            return _finish(state)
        if cfg.get("allowPenalties"):
            return _advance(state, PENALTIES)
        return common.complete(state, "tie", None)

    shootout = common.current_period(state)
    if shootout["home"] == shootout["away"]:
        raise IllegalTransition("penalty shoot-out cannot end level")
    winner = "home" if shootout["home"] > shootout["away"] else "away"
    return common.complete(
        state,
        winner,
        f"{score['home']}-{score['away']} ({shootout['home']}-{shootout['away']} on penalties)",
    )


_HANDLERS = {
    "GOAL": _goal,
    "CANCEL_GOAL": _cancel_goal,
    "END_PERIOD": _end_period,
}


def apply(event: Dict, state: Dict) -> Dict:
    """Apply a futsal event to ``state`` in place and return it."""
    common.ensure_live(state)
    handler = _HANDLERS.get(event.get("type"))
    if handler is None:
        raise IllegalTransition(f"invalid futsal event '{event.get('type')}'")
    return handler(event, state)


def summary(state: Dict) -> Dict:
    return {
        "period": common.current_period(state)["name"],
        "score": totals(state),
        "penalties": next(
            (
                {"home": p["home"], "away": p["away"]}
                for p in state["periods"]
                if p["name"] == PENALTIES
            ),
            None,
        ),
        "goals": list(state["goals"]),
        "completed": state["completed"],
        "winnerSide": state["winnerSide"],
        "margin": state["margin"],
    }
