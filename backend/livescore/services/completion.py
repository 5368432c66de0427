import logging
from typing import Any, Dict

from ..exceptions import CompletionNotificationError
from .persistence import ScoreStore

logger = logging.getLogger(__name__)

COMPLETED_STATUS = "completed"


async def notify_completion(
    store: ScoreStore, match_id: str, final_state: Dict[str, Any]
) -> bool:
    """Record the result, then mark the match completed.

    Both steps are attempted in that order and each is best-effort: a failure
    is logged and never rolls back the completed score. Returns ``True`` when
    both succeeded.
    """

    delivered = True
    steps = (
        (
            "complete_match",
            lambda: store.complete_match(
                match_id, final_state, final_state.get("winnerSide")
            ),
        ),
        ("set_match_status", lambda: store.set_match_status(match_id, COMPLETED_STATUS)),
    )
    for name, step in steps:
        try:
            await step()
        except Exception as exc:  # completion side effects must not fail scoring
            error = CompletionNotificationError(f"{name} failed for match {match_id}: {exc}")
            logger.error("%s", error.detail, exc_info=(type(exc), exc, exc.__traceback__))
            delivered = False
    return delivered
