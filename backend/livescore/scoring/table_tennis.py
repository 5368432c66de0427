"""Table tennis scoring engine.

Rally-point scoring to 11 (or 21) points with a win-by-2 requirement and no
cap. Serve changes every two points until both players reach deuce, then
every point. The first server alternates from set to set.
"""

from typing import Dict, Optional

from ..exceptions import IllegalTransition
from . import common
from .rotation import first_server_of_next_period, next_server

SPORT = "table_tennis"


def init_state(config: Dict, first_side: str, rosters: Optional[Dict] = None) -> Dict:
    """Initialise scoreboard state for table tennis."""
    state = common.base_state(SPORT, config, [], first_side, rosters)
    first_type = common.configured_type(state, 0)
    state["periods"].append(common.new_set(first_side, first_type, typed=True))
    state["pendingPeriodTypeSelection"] = first_type is None
    return state


def _point(event: Dict, state: Dict) -> Dict:
    side = common.require_side(event.get("by"))
    common.ensure_type_selected(state)

    common.current_period(state)[side] += 1
    state["servingSide"] = next_server(SPORT, state, side)
    _settle(state)
    return state


def _settle(state: Dict) -> bool:
    """Close the current set if it has been won."""
    cfg = state["config"]
    period = common.current_period(state)
    winner = common.period_winner(period, cfg["pointsToWin"])
    if not winner:
        return False
    common.close_set(
        state,
        winner,
        cfg["setsToWin"],
        first_server_of_next_period(SPORT, period, winner),
        typed=True,
    )
    return True


def _adjust(event: Dict, state: Dict) -> Dict:
    common.ensure_type_selected(state)
    return common.adjust_score(state, event, _settle)


_HANDLERS = {
    "POINT": _point,
    "ADJUST": _adjust,
    "SET_SERVER": lambda event, state: common.set_server(state, event),
    "SELECT_TYPE": lambda event, state: common.select_period_type(state, event),
}


def apply(event: Dict, state: Dict) -> Dict:
    """Apply a table tennis event to ``state`` in place and return it."""
    common.ensure_live(state)
    handler = _HANDLERS.get(event.get("type"))
    if handler is None:
        raise IllegalTransition(f"invalid table tennis event '{event.get('type')}'")
    return handler(event, state)


def summary(state: Dict) -> Dict:
    data = common.set_summary(state)
    data["type"] = common.current_period(state).get("type")
    return data
