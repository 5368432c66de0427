"""Turn stored pre-match configuration and the toss into an initial state."""

import logging
from typing import Any, Dict, List, Optional

from ..exceptions import ConfigError
from ..scoring import badminton, engine_for
from ..scoring.common import PERIOD_TYPES, SIDES, other

logger = logging.getLogger(__name__)

# Periods to win -> periods in the match.
PERIOD_COUNTS = {2: 3, 3: 5}
TABLE_TENNIS_PERIOD_COUNTS = {2: 3, 3: 5, 4: 7}
VOLLEYBALL_SETS = {3: 2, 5: 3}

VOLLEYBALL_POINTS = 25
VOLLEYBALL_DECIDING_SET_POINTS = 15
VOLLEYBALL_ROSTER_SIZE = 7
TABLE_TENNIS_POINTS = (11, 21)
MIN_CRICKET_ROSTER = 2

TOSS_DECISIONS = {
    "volleyball": ("serve", "receive", "court_side"),
    "badminton": ("serve", "receive", "court_side"),
    "table_tennis": ("serve", "receive", "court_side"),
    "cricket": ("bat", "bowl"),
    "futsal": ("kick_off", "side"),
    "chess": ("white", "black"),
}
# Decisions that put the toss winner first to act.
WINNER_ACTS_FIRST = ("serve", "bat", "kick_off", "white")


def _int_field(raw: Dict, key: str, default: Optional[int] = None) -> int:
    value = raw.get(key, default)
    if value is None:
        raise ConfigError(f"'{key}' is required")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{key}' must be an integer")
    return value


def _choice(raw: Dict, key: str, allowed, default: Optional[int] = None) -> int:
    value = _int_field(raw, key, default)
    if value not in allowed:
        options = ", ".join(str(v) for v in sorted(allowed))
        raise ConfigError(f"'{key}' must be one of {options}")
    return value


def _period_types(raw: Dict, key: str, first_key: str) -> List[Optional[str]]:
    types = list(raw.get(key) or [])
    first = raw.get(first_key)
    if first is not None:
        if types:
            types[0] = first
        else:
            types = [first]
    for value in types:
        if value is not None and value not in PERIOD_TYPES:
            raise ConfigError(f"'{key}' entries must be 'singles' or 'doubles'")
    return types


def _rosters(raw: Dict) -> Dict[str, List[str]]:
    rosters = raw.get("rosters") or {}
    if not isinstance(rosters, dict):
        raise ConfigError("'rosters' must map 'home' and 'away' to player ids")
    resolved = {}
    for side in SIDES:
        players = rosters.get(side) or []
        if not isinstance(players, list) or not all(
            isinstance(pid, str) and pid for pid in players
        ):
            raise ConfigError(f"'{side}' roster must be a list of player ids")
        if len(set(players)) != len(players):
            raise ConfigError(f"'{side}' roster contains duplicate players")
        resolved[side] = list(players)
    return resolved


def _cricket(raw: Dict, rosters: Dict) -> Dict:
    total_overs = _int_field(raw, "totalOvers")
    if total_overs <= 0:
        raise ConfigError("'totalOvers' must be greater than 0")
    max_overs = _int_field(raw, "maxOversPerBowler")
    if max_overs < 1:
        raise ConfigError("'maxOversPerBowler' must be at least 1")
    recommended = total_overs // 5
    if max_overs > recommended:
        logger.warning(
            "maxOversPerBowler=%s exceeds the recommended %s for a %s-over match",
            max_overs,
            recommended,
            total_overs,
        )
    for side in SIDES:
        if len(rosters[side]) < MIN_CRICKET_ROSTER:
            raise ConfigError(
                f"'{side}' roster needs at least {MIN_CRICKET_ROSTER} players"
            )
    return {"totalOvers": total_overs, "maxOversPerBowler": max_overs}


def _volleyball(raw: Dict, rosters: Dict) -> Dict:
    if raw.get("numberOfSets") is not None and raw.get("setsToWin") is None:
        sets_to_win = VOLLEYBALL_SETS[_choice(raw, "numberOfSets", VOLLEYBALL_SETS)]
    else:
        sets_to_win = _choice(raw, "setsToWin", PERIOD_COUNTS, 2)
    for side in SIDES:
        if len(rosters[side]) > VOLLEYBALL_ROSTER_SIZE:
            raise ConfigError(
                f"'{side}' roster cannot exceed {VOLLEYBALL_ROSTER_SIZE} players"
            )
    return {
        "setsToWin": sets_to_win,
        "totalSets": PERIOD_COUNTS[sets_to_win],
        "pointsToWin": VOLLEYBALL_POINTS,
        "decidingSetPoints": VOLLEYBALL_DECIDING_SET_POINTS,
        "rosterSize": VOLLEYBALL_ROSTER_SIZE,
    }


def _badminton(raw: Dict, rosters: Dict) -> Dict:
    games_to_win = _choice(raw, "gamesToWin", PERIOD_COUNTS, 2)
    points_to_win = _choice(raw, "pointsToWin", badminton.POINT_CAPS, 21)
    return {
        "gamesToWin": games_to_win,
        "totalGames": PERIOD_COUNTS[games_to_win],
        "pointsToWin": points_to_win,
        "cap": badminton.POINT_CAPS[points_to_win],
        "periodTypes": _period_types(raw, "gameTypes", "firstGameType"),
    }


def _table_tennis(raw: Dict, rosters: Dict) -> Dict:
    sets_to_win = _choice(raw, "setsToWin", TABLE_TENNIS_PERIOD_COUNTS, 2)
    points_to_win = _choice(raw, "pointsToWin", TABLE_TENNIS_POINTS, 11)
    return {
        "setsToWin": sets_to_win,
        "totalSets": TABLE_TENNIS_PERIOD_COUNTS[sets_to_win],
        "pointsToWin": points_to_win,
        "periodTypes": _period_types(raw, "setTypes", "firstSetType"),
    }


def _futsal(raw: Dict, rosters: Dict) -> Dict:
    return {
        "allowExtraTime": bool(raw.get("allowExtraTime", True)),
        "allowPenalties": bool(raw.get("allowPenalties", True)),
    }


def _chess(raw: Dict, rosters: Dict) -> Dict:
    boards = _int_field(raw, "boards", 4)
    if boards < 1:
        raise ConfigError("'boards' must be at least 1")
    return {"boards": boards}


_CONFIG_RESOLVERS = {
    "cricket": _cricket,
    "volleyball": _volleyball,
    "badminton": _badminton,
    "table_tennis": _table_tennis,
    "futsal": _futsal,
    "chess": _chess,
}


def resolve_config(sport: str, raw_config: Optional[Dict[str, Any]]) -> Dict:
    """Validate ``raw_config`` and return the normalised, immutable config."""
    engine_for(sport)
    raw = raw_config or {}
    if not isinstance(raw, dict):
        raise ConfigError("configuration must be an object")
    return _CONFIG_RESOLVERS[sport](raw, _rosters(raw))


def first_side(sport: str, toss: Optional[Dict[str, Any]]) -> str:
    """Side that acts first: server, batting side, kick-off side or white."""
    if not toss:
        raise ConfigError("toss result is required before scoring can start")
    winner = toss.get("winner")
    decision = toss.get("decision")
    if winner not in SIDES:
        raise ConfigError("toss winner must be 'home' or 'away'")
    allowed = TOSS_DECISIONS[sport]
    if decision not in allowed:
        raise ConfigError(f"toss decision must be one of {', '.join(allowed)}")
    return winner if decision in WINNER_ACTS_FIRST else other(winner)


def resolve(
    sport: str, raw_config: Optional[Dict[str, Any]], toss: Optional[Dict[str, Any]]
) -> Dict:
    """Build the initial scoring state for a match. Pure; raises ``ConfigError``."""
    engine = engine_for(sport)
    config = resolve_config(sport, raw_config)
    side = first_side(sport, toss)
    state = engine.init_state(config, side, _rosters(raw_config or {}))
    logger.debug("resolved %s match config %s with %s acting first", sport, config, side)
    return state


def config_gate(sport: str, record: Optional[Dict[str, Any]]) -> bool:
    """Return ``True`` while toss or configuration is incomplete."""
    if not record or not record.get("toss"):
        return True
    try:
        resolve_config(sport, record)
        first_side(sport, record.get("toss"))
    except ConfigError:
        return True
    return False
