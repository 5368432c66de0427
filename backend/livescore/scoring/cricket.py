"""Cricket scoring engine.

Limited-overs, two innings. The caller selects the striker, non-striker and
bowler explicitly; the engine never picks players itself. Wides and no-balls
add runs without counting towards the over, byes and leg-byes count as legal
balls. Completing an over swaps strike, retires the bowler for the next over
and requires a fresh bowler selection.
"""

import logging
from typing import Dict, List, Optional

from ..exceptions import IllegalTransition
from . import common
from .rotation import next_strike

logger = logging.getLogger(__name__)

SPORT = "cricket"

BALLS_PER_OVER = 6
MAX_WICKETS = 10
MAX_RUNS_OFF_BAT = 6

EXTRA_KINDS = ("wide", "noBall", "bye", "legBye")
ILLEGAL_EXTRAS = ("wide", "noBall")
WICKET_KINDS = (
    "bowled",
    "caught",
    "lbw",
    "run_out",
    "stumped",
    "hit_wicket",
    "retired_out",
    "obstructing_the_field",
)
# Dismissals not credited to the bowler.
NON_BOWLER_WICKETS = ("run_out", "retired_out", "obstructing_the_field")


def _new_innings(batting_side: str) -> Dict:
    return {
        "battingSide": batting_side,
        "bowlingSide": common.other(batting_side),
        "runs": 0,
        "wickets": 0,
        "balls": 0,
        "extras": {kind: 0 for kind in EXTRA_KINDS},
        "batters": {},
        "bowlers": {},
        "endReason": None,
    }


def init_state(config: Dict, first_side: str, rosters: Optional[Dict] = None) -> Dict:
    """Initialise scoreboard state with ``first_side`` batting."""
    state = common.base_state(SPORT, config, [_new_innings(first_side)], first_side, rosters)
    state["servingSide"] = common.other(first_side)
    state.update(
        {
            "strikingSide": first_side,
            "striker": None,
            "nonStriker": None,
            "bowler": None,
            "lastBowler": None,
            "bowlerRequired": True,
            "target": None,
            "lastDelivery": None,
        }
    )
    return state


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def innings(state: Dict) -> Dict:
    return common.current_period(state)


def all_out_at(state: Dict, batting_side: str) -> int:
    return min(MAX_WICKETS, len(state["rosters"][batting_side]) - 1)


def bowler_limit_balls(state: Dict) -> int:
    return state["config"]["maxOversPerBowler"] * BALLS_PER_OVER


def selectable_bowlers(state: Dict) -> List[str]:
    """Bowlers that may take the next over."""
    if state["completed"]:
        return []
    inn = innings(state)
    limit = bowler_limit_balls(state)
    return [
        pid
        for pid in state["rosters"][inn["bowlingSide"]]
        if pid != state["lastBowler"]
        and inn["bowlers"].get(pid, {}).get("balls", 0) < limit
    ]


def available_batters(state: Dict) -> List[str]:
    """Batters that are not out and not already at the crease."""
    if state["completed"]:
        return []
    inn = innings(state)
    at_crease = {state["striker"], state["nonStriker"]}
    return [
        pid
        for pid in state["rosters"][inn["battingSide"]]
        if pid not in at_crease and not inn["batters"].get(pid, {}).get("isOut")
    ]


def overs_text(balls: int) -> str:
    return f"{balls // BALLS_PER_OVER}.{balls % BALLS_PER_OVER}"


def strike_rate(runs: int, balls: int) -> float:
    """Runs per hundred balls faced."""
    return round(runs * 100 / balls, 2) if balls else 0.0


def per_over(runs: int, balls: int) -> float:
    """Runs per six legal balls; used for both run rate and economy."""
    return round(runs * BALLS_PER_OVER / balls, 2) if balls else 0.0


def required_run_rate(state: Dict) -> Optional[float]:
    """Run rate the chasing side needs, ``None`` outside a live chase."""
    if state["completed"] or state["target"] is None:
        return None
    inn = innings(state)
    balls_left = state["config"]["totalOvers"] * BALLS_PER_OVER - inn["balls"]
    return per_over(max(0, state["target"] - inn["runs"]), balls_left)


def innings_status(inn: Dict) -> str:
    reason = inn["endReason"]
    overs = overs_text(inn["balls"])
    if reason is None:
        return "In progress"
    if reason == "all_out":
        return f"All out for {inn['runs']} ({overs} overs)"
    if reason == "overs":
        return f"{inn['runs']}/{inn['wickets']} ({overs} overs)"
    if reason == "target":
        return f"Target chased in {overs} overs"
    if reason == "declared":
        return f"Declared at {inn['runs']}/{inn['wickets']} ({overs} overs)"
    return "Innings complete"


def scorecard(inn: Dict) -> Dict:
    return {
        "batting": [
            {
                "playerId": pid,
                "runs": stats["runs"],
                "balls": stats["balls"],
                "strikeRate": strike_rate(stats["runs"], stats["balls"]),
                "isOut": stats["isOut"],
            }
            for pid, stats in inn["batters"].items()
        ],
        "bowling": [
            {
                "playerId": pid,
                "overs": overs_text(stats["balls"]),
                "runs": stats["runs"],
                "wickets": stats["wickets"],
                "economy": per_over(stats["runs"], stats["balls"]),
            }
            for pid, stats in inn["bowlers"].items()
        ],
    }


# ---------------------------------------------------------------------------
# Selections
# ---------------------------------------------------------------------------


def _player_id(event: Dict) -> str:
    player_id = event.get("playerId")
    if not isinstance(player_id, str) or not player_id:
        raise IllegalTransition("'playerId' is required")
    return player_id


def _innings_started(inn: Dict) -> bool:
    return bool(inn["balls"] or inn["runs"] or inn["wickets"])


def _select_batter(state: Dict, event: Dict, slot: str, other_slot: str) -> Dict:
    player_id = _player_id(event)
    inn = innings(state)
    if player_id not in state["rosters"][inn["battingSide"]]:
        raise IllegalTransition(f"player '{player_id}' is not in the batting side")
    if inn["batters"].get(player_id, {}).get("isOut"):
        raise IllegalTransition(f"player '{player_id}' is already out")
    if state[other_slot] == player_id:
        raise IllegalTransition(f"player '{player_id}' is already at the crease")
    if state[slot] is not None and state[slot] != player_id and _innings_started(inn):
        raise IllegalTransition(f"{slot} is already selected")
    inn["batters"].setdefault(player_id, {"runs": 0, "balls": 0, "isOut": False})
    state[slot] = player_id
    return state


def _select_striker(event: Dict, state: Dict) -> Dict:
    return _select_batter(state, event, "striker", "nonStriker")


def _select_non_striker(event: Dict, state: Dict) -> Dict:
    return _select_batter(state, event, "nonStriker", "striker")


def _select_bowler(event: Dict, state: Dict) -> Dict:
    player_id = _player_id(event)
    inn = innings(state)
    if player_id not in state["rosters"][inn["bowlingSide"]]:
        raise IllegalTransition(f"player '{player_id}' is not in the bowling side")
    if inn["balls"] % BALLS_PER_OVER and not state["bowlerRequired"]:
        raise IllegalTransition("bowler cannot change during an over")
    if player_id == state["lastBowler"]:
        raise IllegalTransition("cannot bowl consecutive overs")
    if inn["bowlers"].get(player_id, {}).get("balls", 0) >= bowler_limit_balls(state):
        raise IllegalTransition(
            f"bowler has reached the limit of {state['config']['maxOversPerBowler']} overs"
        )
    inn["bowlers"].setdefault(player_id, {"balls": 0, "runs": 0, "wickets": 0})
    state["bowler"] = player_id
    state["bowlerRequired"] = False
    return state


# ---------------------------------------------------------------------------
# Deliveries
# ---------------------------------------------------------------------------


def _ensure_ready(state: Dict) -> None:
    if state["striker"] is None or state["nonStriker"] is None:
        raise IllegalTransition("select the striker and non-striker before the next ball")
    if state["bowlerRequired"] or state["bowler"] is None:
        raise IllegalTransition("select a bowler before the next ball")


def _deliver(
    state: Dict,
    *,
    team_runs: int,
    bat_runs: int,
    runs_run: int,
    legal: bool,
    faced: bool,
    bowler_runs: int,
    extra_type: Optional[str] = None,
    wicket_type: Optional[str] = None,
    out_batter: Optional[str] = None,
) -> Dict:
    inn = innings(state)
    striker, non_striker, bowler = state["striker"], state["nonStriker"], state["bowler"]
    batter = inn["batters"][striker]
    bowler_stats = inn["bowlers"][bowler]

    over_number = inn["balls"] // BALLS_PER_OVER + 1
    ball_number = inn["balls"] % BALLS_PER_OVER + (1 if legal else 0)

    inn["runs"] += team_runs
    batter["runs"] += bat_runs
    bowler_stats["runs"] += bowler_runs
    if extra_type:
        inn["extras"][extra_type] += team_runs - bat_runs
    if faced:
        batter["balls"] += 1
    if legal:
        inn["balls"] += 1
        bowler_stats["balls"] += 1

    if out_batter:
        inn["batters"][out_batter]["isOut"] = True
        inn["wickets"] += 1
        if wicket_type not in NON_BOWLER_WICKETS:
            bowler_stats["wickets"] += 1
        if out_batter == striker:
            state["striker"] = None
        else:
            state["nonStriker"] = None

    state["lastDelivery"] = {
        "inningsNumber": state["currentPeriodIndex"] + 1,
        "overNumber": over_number,
        "ballNumber": ball_number,
        "bowlerId": bowler,
        "striker": striker,
        "nonStriker": non_striker,
        "runsScored": team_runs,
        "extraType": extra_type,
        "extraRuns": team_runs - bat_runs if extra_type else 0,
        "isWicket": out_batter is not None,
        "wicketType": wicket_type,
        "dismissedBatter": out_batter,
    }

    over_complete = legal and inn["balls"] % BALLS_PER_OVER == 0
    state["striker"], state["nonStriker"] = next_strike(
        state["striker"], state["nonStriker"], runs_run, over_complete
    )
    if over_complete:
        state["lastBowler"] = bowler
        state["bowler"] = None
        state["bowlerRequired"] = True

    _check_innings_end(state)
    return state


def _runs(event: Dict, state: Dict) -> Dict:
    runs = common.require_int(event.get("runs"), "runs", minimum=0)
    if runs > MAX_RUNS_OFF_BAT:
        raise IllegalTransition(f"'runs' must be <= {MAX_RUNS_OFF_BAT}")
    _ensure_ready(state)
    return _deliver(
        state,
        team_runs=runs,
        bat_runs=runs,
        runs_run=runs,
        legal=True,
        faced=True,
        bowler_runs=runs,
    )


def _extra(event: Dict, state: Dict) -> Dict:
    kind = event.get("kind")
    if kind not in EXTRA_KINDS:
        raise IllegalTransition(f"'kind' must be one of {', '.join(EXTRA_KINDS)}")
    _ensure_ready(state)

    if kind in ILLEGAL_EXTRAS:
        # ``runs`` includes the one-run penalty for the wide or no-ball.
        runs = common.require_int(event.get("runs", 1), "runs", minimum=1)
        bat_runs = runs - 1 if kind == "noBall" and event.get("offBat") else 0
        return _deliver(
            state,
            team_runs=runs,
            bat_runs=bat_runs,
            runs_run=runs - 1,
            legal=False,
            faced=kind == "noBall",
            bowler_runs=runs,
            extra_type=kind,
        )

    runs = common.require_int(event.get("runs", 1), "runs", minimum=0)
    return _deliver(
        state,
        team_runs=runs,
        bat_runs=0,
        runs_run=runs,
        legal=True,
        faced=True,
        bowler_runs=0,
        extra_type=kind,
    )


def _wicket(event: Dict, state: Dict) -> Dict:
    kind = event.get("kind")
    if kind not in WICKET_KINDS:
        raise IllegalTransition(f"'kind' must be one of {', '.join(WICKET_KINDS)}")
    _ensure_ready(state)

    out_batter = state["striker"]
    dismissed = event.get("playerId")
    if dismissed is not None:
        if dismissed not in (state["striker"], state["nonStriker"]):
            raise IllegalTransition("dismissed batter must be at the crease")
        if dismissed != state["striker"] and kind != "run_out":
            raise IllegalTransition("only a run out can dismiss the non-striker")
        out_batter = dismissed

    return _deliver(
        state,
        team_runs=0,
        bat_runs=0,
        runs_run=0,
        legal=True,
        faced=True,
        bowler_runs=0,
        wicket_type=kind,
        out_batter=out_batter,
    )


def _end_innings(event: Dict, state: Dict) -> Dict:
    _finish_innings(state, "declared")
    return state


# ---------------------------------------------------------------------------
# Innings and match completion
# ---------------------------------------------------------------------------


def _check_innings_end(state: Dict) -> None:
    inn = innings(state)
    if state["currentPeriodIndex"] == 1 and inn["runs"] >= state["target"]:
        _finish_innings(state, "target")
    elif inn["wickets"] >= all_out_at(state, inn["battingSide"]):
        _finish_innings(state, "all_out")
    elif inn["balls"] >= state["config"]["totalOvers"] * BALLS_PER_OVER:
        _finish_innings(state, "overs")


def _finish_innings(state: Dict, reason: str) -> None:
    inn = innings(state)
    inn["endReason"] = reason
    logger.debug(
        "innings %s closed (%s) at %s/%s in %s overs",
        state["currentPeriodIndex"] + 1,
        reason,
        inn["runs"],
        inn["wickets"],
        overs_text(inn["balls"]),
    )

    if state["currentPeriodIndex"] == 0:
        batting = inn["bowlingSide"]
        state["periods"].append(_new_innings(batting))
        state["currentPeriodIndex"] = 1
        state["strikingSide"] = batting
        state["servingSide"] = common.other(batting)
        state["target"] = inn["runs"] + 1
        state.update(
            {
                "striker": None,
                "nonStriker": None,
                "bowler": None,
                "lastBowler": None,
                "bowlerRequired": True,
            }
        )
        return

    first, second = state["periods"]
    state["striker"] = state["nonStriker"] = state["bowler"] = None
    state["bowlerRequired"] = False
    if second["runs"] > first["runs"]:
        remaining = all_out_at(state, second["battingSide"]) - second["wickets"]
        common.complete(state, second["battingSide"], _plural(remaining, "wicket"))
    elif first["runs"] > second["runs"]:
        common.complete(
            state, first["battingSide"], _plural(first["runs"] - second["runs"], "run")
        )
    else:
        common.complete(state, "tie", None)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


_HANDLERS = {
    "SELECT_STRIKER": _select_striker,
    "SELECT_NON_STRIKER": _select_non_striker,
    "SELECT_BOWLER": _select_bowler,
    "RUNS": _runs,
    "EXTRA": _extra,
    "WICKET": _wicket,
    "END_INNINGS": _end_innings,
}


def apply(event: Dict, state: Dict) -> Dict:
    """Apply a cricket event to ``state`` in place and return it."""
    common.ensure_live(state)
    handler = _HANDLERS.get(event.get("type"))
    if handler is None:
        raise IllegalTransition(f"invalid cricket event '{event.get('type')}'")
    return handler(event, state)


def gates(state: Dict) -> Dict:
    live = not state["completed"]
    return {
        "bowlerRequired": live and (state["bowlerRequired"] or state["bowler"] is None),
        "strikerRequired": live and (state["striker"] is None or state["nonStriker"] is None),
        "selectableBowlers": selectable_bowlers(state),
        "availableBatters": available_batters(state),
    }


def summary(state: Dict) -> Dict:
    return {
        "innings": [
            {
                "battingSide": inn["battingSide"],
                "runs": inn["runs"],
                "wickets": inn["wickets"],
                "overs": overs_text(inn["balls"]),
                "runRate": per_over(inn["runs"], inn["balls"]),
                "extras": dict(inn["extras"]),
                "endReason": inn["endReason"],
                "status": innings_status(inn),
                **scorecard(inn),
            }
            for inn in state["periods"]
        ],
        "strikingSide": state["strikingSide"],
        "striker": state["striker"],
        "nonStriker": state["nonStriker"],
        "bowler": state["bowler"],
        "target": state["target"],
        "requiredRunRate": required_run_rate(state),
        "completed": state["completed"],
        "winnerSide": state["winnerSide"],
        "margin": state["margin"],
    }


def suggest_man_of_match(state: Dict) -> Optional[Dict]:
    """Pick the standout performer across both innings.

    Batters score their runs plus a tenth again when striking above 100.
    Bowlers score 30 a wicket plus 20 for an economy under 6. Players who
    neither faced nor bowled a ball are not considered; on a tie the first
    candidate found, batters before bowlers, is kept.
    """
    batting: Dict[str, Dict] = {}
    bowling: Dict[str, Dict] = {}
    for inn in state["periods"]:
        for pid, stats in inn["batters"].items():
            total = batting.setdefault(pid, {"runs": 0, "balls": 0})
            total["runs"] += stats["runs"]
            total["balls"] += stats["balls"]
        for pid, stats in inn["bowlers"].items():
            total = bowling.setdefault(pid, {"balls": 0, "runs": 0, "wickets": 0})
            for key in total:
                total[key] += stats[key]

    best: Optional[Dict] = None
    best_score = 0.0
    for pid, stats in batting.items():
        if not stats["balls"]:
            continue
        rate = strike_rate(stats["runs"], stats["balls"])
        score = stats["runs"] + (stats["runs"] * 0.1 if rate > 100 else 0)
        if score > best_score:
            best_score = score
            best = {
                "playerId": pid,
                "reason": f"{stats['runs']} runs off {stats['balls']} balls (SR: {rate:.2f})",
            }
    for pid, stats in bowling.items():
        if not stats["balls"]:
            continue
        economy = per_over(stats["runs"], stats["balls"])
        score = stats["wickets"] * 30 + (20 if economy < 6 else 0)
        if score > best_score:
            best_score = score
            best = {
                "playerId": pid,
                "reason": (
                    f"{stats['wickets']} wickets for {stats['runs']} runs "
                    f"(Economy: {economy:.2f})"
                ),
            }
    return best
