"""Serve and strike rotation rules.

All functions are pure: they read the score after the point has been
applied and return who acts next.
"""

from typing import Dict, Optional, Tuple

from .common import current_period, other


def volleyball_server(state: Dict, scoring_side: str) -> str:
    # Rally point scoring: the serve always follows the point.
    return scoring_side


def badminton_server(state: Dict, scoring_side: str) -> str:
    server = state["servingSide"]
    if server != scoring_side:
        return scoring_side
    return server


def in_deuce(state: Dict) -> bool:
    period = current_period(state)
    deuce_at = state["config"]["pointsToWin"] - 1
    return period["home"] >= deuce_at and period["away"] >= deuce_at


def table_tennis_server(state: Dict, scoring_side: str) -> str:
    """Serve changes every two points, and every point once both sides reach deuce."""
    period = current_period(state)
    server = state["servingSide"]
    total = period["home"] + period["away"]
    if in_deuce(state) or total % 2 == 0:
        return other(server)
    return server


_SERVERS = {
    "volleyball": volleyball_server,
    "badminton": badminton_server,
    "table_tennis": table_tennis_server,
}


def next_server(sport: str, state: Dict, scoring_side: str) -> str:
    try:
        policy = _SERVERS[sport]
    except KeyError:
        raise ValueError(f"no serve rotation for sport '{sport}'") from None
    return policy(state, scoring_side)


def first_server_of_next_period(sport: str, finished: Dict, winner: str) -> str:
    """Who serves first once ``finished`` has been decided."""
    if sport == "table_tennis":
        return other(finished["firstServer"])
    # Badminton game winners and volleyball set winners keep the serve.
    return winner


def next_strike(
    striker: Optional[str],
    non_striker: Optional[str],
    runs_run: int,
    over_complete: bool,
) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(striker, non_striker)`` after a delivery.

    Odd runs swap ends and the end of an over swaps again. The two swaps
    compose, so an odd-run sixth ball leaves the pair where it started.
    """
    if runs_run % 2 == 1:
        striker, non_striker = non_striker, striker
    if over_complete:
        striker, non_striker = non_striker, striker
    return striker, non_striker
