"""Scoring engines for the various sports.

Each engine module exposes ``init_state``, ``apply`` and ``summary`` and
stores the whole match in a plain dict tagged by ``sport``. ``apply_event``
dispatches on that tag and never mutates the caller's state.
"""

import copy
from typing import Dict, Optional

from ..exceptions import ConfigError, IllegalTransition
from . import badminton, chess, cricket, futsal, table_tennis, volleyball

ENGINES = {
    "cricket": cricket,
    "volleyball": volleyball,
    "badminton": badminton,
    "table_tennis": table_tennis,
    "futsal": futsal,
    "chess": chess,
}


def engine_for(sport: Optional[str]):
    try:
        return ENGINES[sport]
    except KeyError:
        raise ConfigError(f"unsupported sport '{sport}'") from None


def apply_event(state: Dict, event: Dict) -> Dict:
    """Return the state that results from applying ``event`` to ``state``.

    Raises ``IllegalTransition`` when the event is not valid right now; the
    input state is left untouched either way.
    """
    if not isinstance(event, dict) or not isinstance(event.get("type"), str):
        raise IllegalTransition("event must be an object with a 'type'")
    engine = engine_for(state.get("sport"))
    return engine.apply(event, copy.deepcopy(state))


def summary(state: Dict) -> Dict:
    return engine_for(state.get("sport")).summary(state)


def scoring_gates(state: Optional[Dict]) -> Dict:
    """Conditions that currently block scoring, for the UI to surface."""
    gates = {
        "tossPending": state is None,
        "periodTypePending": False,
        "rosterIncomplete": False,
        "bowlerRequired": False,
        "strikerRequired": False,
        "completed": False,
    }
    if state is None:
        return gates
    gates["periodTypePending"] = bool(state.get("pendingPeriodTypeSelection"))
    gates["completed"] = bool(state.get("completed"))
    extra = getattr(engine_for(state.get("sport")), "gates", None)
    if extra is not None:
        gates.update(extra(state))
    return gates


__all__ = [
    "ENGINES",
    "apply_event",
    "badminton",
    "chess",
    "cricket",
    "engine_for",
    "futsal",
    "scoring_gates",
    "summary",
    "table_tennis",
    "volleyball",
]
