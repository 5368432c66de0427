"""Internal application services."""

from .completion import notify_completion
from .config_resolver import config_gate, resolve, resolve_config
from .live import LiveMatch
from .persistence import ScoreStore, SqlScoreStore

__all__ = [
    "LiveMatch",
    "ScoreStore",
    "SqlScoreStore",
    "config_gate",
    "notify_completion",
    "resolve",
    "resolve_config",
]
