"""
errors.py — Domain error taxonomy shared by every component.

Errors are carried as values inside Err results (see results.py) and only
become HTTP responses at the route boundary via ApiError.

Every error renders into the standard envelope:
    {"error": {"code": "...", "message": "...", "details": [{field, issue}]}}
"""
from __future__ import annotations

from typing import Any, Optional

from starlette.exceptions import HTTPException as StarletteHTTPException


class DomainError(Exception):
    """Base class. Subclasses pin the HTTP status and envelope code."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    # True when the component already wrote state that must survive the failure
    keeps_changes: bool = False

    def __init__(self, message: str, details: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []

    def as_http(self) -> "ApiError":
        return ApiError(self.status_code, self.code, self.message, self.details)


class ValidationError(DomainError):
    status_code = 400
    code = "VALIDATION_ERROR"


class MissingColumns(ValidationError):
    """Header lacks one or more required columns."""

    def __init__(self, columns: list[str]) -> None:
        self.columns = columns
        super().__init__(
            f"Missing required columns: {', '.join(columns)}",
            [{"field": col, "issue": "required column is missing"} for col in columns],
        )


class InvalidRows(ValidationError):
    """One or more data lines lack required values or hold values the tables cannot store."""

    def __init__(self, line_numbers: list[int], issues: Optional[dict[int, str]] = None) -> None:
        self.line_numbers = line_numbers
        issues = issues or {}
        super().__init__(
            "Rows with missing or invalid fields at lines: "
            + ", ".join(str(n) for n in line_numbers),
            [
                {"field": f"line {n}", "issue": issues.get(n, "missing required fields")}
                for n in line_numbers
            ],
        )


class AuthError(DomainError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(DomainError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(DomainError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(DomainError):
    status_code = 409
    code = "CONFLICT"


class IdentifierConflict(ConflictError):
    """A consultant identifier is already bound to a different real identity."""

    def __init__(self, consultant_ids: list[str], message: Optional[str] = None) -> None:
        self.consultant_ids = consultant_ids
        super().__init__(
            message
            or (
                "Consultant ID(s) already registered to another account: "
                + ", ".join(consultant_ids)
            ),
            [
                {"field": "consultant_id", "issue": f"{cid} is claimed by another account"}
                for cid in consultant_ids
            ],
        )


class UpstreamError(DomainError):
    status_code = 502
    code = "UPSTREAM_ERROR"
    keeps_changes = True


class ApiError(StarletteHTTPException):
    """HTTPException carrying the envelope code and details for the global handler."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.details = details or []
