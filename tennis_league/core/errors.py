"""
Domain errors raised by the service layer.

The API layer maps these to HTTP responses through `status_code`, keeping a
stable machine-readable `code` for the client.
"""
from typing import Any, Optional


class LeagueError(Exception):
    """Base class for league rule violations."""

    status_code = 400
    code = "LEAGUE_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        data = {"error": self.message, "code": self.code}
        if self.details is not None:
            data["details"] = self.details
        return data


class ValidationError(LeagueError):
    status_code = 400
    code = "VALIDATION_FAILED"


class InvalidScopeError(ValidationError):
    code = "INVALID_SCOPE"


class NotFoundError(LeagueError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(LeagueError):
    status_code = 409
    code = "CONFLICT"
