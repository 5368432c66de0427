import logging
import os

logger = logging.getLogger(__name__)


def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _env_number(name: str, default, cast=float):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("%s is not a valid number (got %r); using %r", name, raw, default)
        return default
    if value < 0:
        logger.warning("%s cannot be negative; using %r", name, default)
        return default
    return value


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

# Background snapshot saves are coalesced inside this window. A hard crash
# inside it loses the most recent transitions.
SCORE_SAVE_DEBOUNCE_SECONDS = _env_number("SCORE_SAVE_DEBOUNCE_SECONDS", 0.5)
UNDO_HISTORY_LIMIT = _env_number("UNDO_HISTORY_LIMIT", 10, int)
LIVE_MATCH_TTL_SECONDS = _env_number("LIVE_MATCH_TTL_SECONDS", 3600.0)
