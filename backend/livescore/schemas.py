from typing import Any, Dict, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, model_validator, field_validator, ConfigDict

Side = Literal["home", "away"]

EVENT_TYPES = (
    "POINT",
    "ADJUST",
    "SET_SERVER",
    "SELECT_TYPE",
    "SET_ROSTER",
    "ADD_PLAYER",
    "SELECT_STRIKER",
    "SELECT_NON_STRIKER",
    "SELECT_BOWLER",
    "RUNS",
    "EXTRA",
    "WICKET",
    "END_INNINGS",
    "GOAL",
    "CANCEL_GOAL",
    "END_PERIOD",
    "RESULT",
)
EVENTS_REQUIRING_BY = ("POINT", "ADJUST", "GOAL", "CANCEL_GOAL")
EVENTS_REQUIRING_PLAYER = (
    "ADD_PLAYER",
    "SELECT_STRIKER",
    "SELECT_NON_STRIKER",
    "SELECT_BOWLER",
)

MATCH_STATUSES = ("scheduled", "live", "completed", "abandoned")


class SportOut(BaseModel):
    id: str
    name: str


class MatchCreate(BaseModel):
    sport: str
    id: Optional[str] = Field(default=None, min_length=1, max_length=100)
    homeName: Optional[str] = Field(default=None, max_length=200)
    awayName: Optional[str] = Field(default=None, max_length=200)

    model_config = ConfigDict(extra="forbid")

    @field_validator("id", mode="before")
    @classmethod
    def _validate_id(cls, value: Any) -> Any:
        if value is None:
            return value
        if not isinstance(value, str):
            raise TypeError("id must be a string")
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("id must not be empty")
        if any(ch.isspace() for ch in trimmed):
            raise ValueError("id must not contain whitespace")
        return trimmed

    @field_validator("homeName", "awayName", mode="before")
    @classmethod
    def _strip_names(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value


class MatchIdOut(BaseModel):
    """Schema returned after creating a match."""

    id: str


class MatchOut(BaseModel):
    """Detailed match information returned by the API."""

    id: str
    sport: str
    status: str
    homeName: Optional[str] = None
    awayName: Optional[str] = None
    winnerSide: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    createdAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None


class MatchConfigIn(BaseModel):
    config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("config")
    @classmethod
    def _reject_toss(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        if "toss" in value:
            raise ValueError("record the toss through the toss endpoint")
        return value


class MatchConfigOut(BaseModel):
    config: Optional[Dict[str, Any]] = None
    configPending: bool


class TossIn(BaseModel):
    winner: Side
    decision: Literal[
        "serve", "receive", "court_side", "bat", "bowl", "kick_off", "side", "white", "black"
    ]


class EventIn(BaseModel):
    """A scoring command. Sport specific fields are passed through as given."""

    type: Literal[EVENT_TYPES]  # type: ignore[valid-type]
    by: Optional[Side] = None
    side: Optional[Side] = None
    playerId: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="after")
    def _validate_required(cls, values):
        if values.type in EVENTS_REQUIRING_BY and values.by is None:
            raise ValueError(f"'by' is required for {values.type} events")
        if values.type in EVENTS_REQUIRING_PLAYER and not values.playerId:
            raise ValueError(f"'playerId' is required for {values.type} events")
        return values


class ScoreOut(BaseModel):
    """Current scoring state plus the gates that block scoring."""

    matchId: str
    state: Optional[Dict[str, Any]] = None
    summary: Optional[Dict[str, Any]] = None
    gates: Dict[str, Any]


class ScoreEventOut(BaseModel):
    """Represents an individual scoring event within a match."""

    id: str
    type: str
    payload: Dict[str, Any]
    createdAt: datetime


class MatchStatusIn(BaseModel):
    status: Literal[MATCH_STATUSES]  # type: ignore[valid-type]


class MatchStatusOut(BaseModel):
    id: str
    status: str


class ManOfMatchOut(BaseModel):
    """Suggested player of the match; ``None`` until someone has faced or bowled a ball."""

    matchId: str
    suggestion: Optional[Dict[str, str]] = None
