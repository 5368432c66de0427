from fastapi import HTTPException
from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class ScoringError(DomainException):
    """Base class for errors raised while configuring or scoring a match."""

    status_code_default = 400
    title_default = "Scoring error"
    code_default = "scoring_error"

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=self.status_code_default,
            title=self.title_default,
            detail=detail,
            code=self.code_default,
        )


class ConfigError(ScoringError):
    """Missing or invalid pre-match configuration; scoring must stay blocked."""

    status_code_default = 422
    title_default = "Match configuration incomplete"
    code_default = "config_error"


class IllegalTransition(ScoringError):
    """Command is not valid in the current state; the state is left untouched."""

    status_code_default = 409
    title_default = "Illegal scoring command"
    code_default = "illegal_transition"


class PersistenceError(ScoringError):
    status_code_default = 503
    title_default = "Score could not be saved"
    code_default = "persistence_error"


class CompletionNotificationError(ScoringError):
    status_code_default = 502
    title_default = "Match completion not delivered"
    code_default = "completion_notification_error"


class MatchNotFound(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Match not found",
            detail=f"match '{match_id}' not found",
            code="match_not_found",
        )


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc
