"""Volleyball scoring engine.

Rally scoring to 25 points with a win-by-2 requirement; the deciding set is
played to 15. Both sides must field exactly ``rosterSize`` players before any
point can be scored.
"""

from typing import Dict, Optional

from ..exceptions import IllegalTransition
from . import common
from .rotation import first_server_of_next_period, next_server

SPORT = "volleyball"


def init_state(config: Dict, first_side: str, rosters: Optional[Dict] = None) -> Dict:
    """Initialise scoreboard state for volleyball."""
    return common.base_state(
        SPORT, config, [common.new_set(first_side)], first_side, rosters
    )


def set_threshold(state: Dict, index: int) -> int:
    cfg = state["config"]
    if index == cfg["totalSets"] - 1:
        return cfg["decidingSetPoints"]
    return cfg["pointsToWin"]


def roster_complete(state: Dict) -> bool:
    size = state["config"]["rosterSize"]
    return all(len(state["rosters"][side]) == size for side in common.SIDES)


def _point(event: Dict, state: Dict) -> Dict:
    side = common.require_side(event.get("by"))
    if not roster_complete(state):
        raise IllegalTransition(
            f"both teams need exactly {state['config']['rosterSize']} players before scoring"
        )

    common.current_period(state)[side] += 1
    state["servingSide"] = next_server(SPORT, state, side)
    _settle(state)
    return state


def _settle(state: Dict) -> bool:
    period = common.current_period(state)
    winner = common.period_winner(period, set_threshold(state, state["currentPeriodIndex"]))
    if not winner:
        return False
    common.close_set(
        state,
        winner,
        state["config"]["setsToWin"],
        first_server_of_next_period(SPORT, period, winner),
    )
    return True


def _set_roster(event: Dict, state: Dict) -> Dict:
    side = common.require_side(event.get("side"), "side")
    player_ids = event.get("playerIds")
    if not isinstance(player_ids, list) or not all(
        isinstance(pid, str) and pid for pid in player_ids
    ):
        raise IllegalTransition("'playerIds' must be a list of player ids")
    if len(set(player_ids)) != len(player_ids):
        raise IllegalTransition("roster contains duplicate players")
    if len(player_ids) > state["config"]["rosterSize"]:
        raise IllegalTransition(
            f"roster cannot exceed {state['config']['rosterSize']} players"
        )
    state["rosters"][side] = list(player_ids)
    return state


def _add_player(event: Dict, state: Dict) -> Dict:
    side = common.require_side(event.get("side"), "side")
    player_id = event.get("playerId")
    if not isinstance(player_id, str) or not player_id:
        raise IllegalTransition("'playerId' is required")
    roster = state["rosters"][side]
    if player_id in roster:
        raise IllegalTransition(f"player '{player_id}' is already on the roster")
    if len(roster) >= state["config"]["rosterSize"]:
        raise IllegalTransition(
            f"roster already has {state['config']['rosterSize']} players"
        )
    roster.append(player_id)
    return state


_HANDLERS = {
    "POINT": _point,
    "ADJUST": lambda event, state: common.adjust_score(state, event, _settle),
    "SET_SERVER": lambda event, state: common.set_server(state, event),
    "SET_ROSTER": _set_roster,
    "ADD_PLAYER": _add_player,
}


def apply(event: Dict, state: Dict) -> Dict:
    """Apply a volleyball event to ``state`` in place and return it."""
    common.ensure_live(state)
    handler = _HANDLERS.get(event.get("type"))
    if handler is None:
        raise IllegalTransition(f"invalid volleyball event '{event.get('type')}'")
    return handler(event, state)


def gates(state: Dict) -> Dict:
    return {"rosterIncomplete": not state["completed"] and not roster_complete(state)}


def summary(state: Dict) -> Dict:
    return common.set_summary(state)
