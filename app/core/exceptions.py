# app/core/exceptions.py
"""
Error taxonomy shared by the core services and the HTTP layer.

Every error raised on purpose by the application derives from AppError and
carries the HTTP status it maps to; the handlers in app.main turn them into
JSON responses.
"""
import enum
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence

_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}
_VALUE_ERROR_PREFIX = "Value error, "


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class AppError(Exception):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(AppError):
    """Client-fixable input problems, reported field by field."""

    status_code = 400
    default_detail = "Validation errors"

    def __init__(self, errors: Iterable[FieldError], detail: Optional[str] = None):
        self.errors: List[FieldError] = list(errors)
        super().__init__(detail)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([FieldError(field, message)])

    @classmethod
    def from_pydantic(
        cls,
        errors: Sequence[Mapping[str, Any]],
        aliases: Optional[Mapping[str, str]] = None,
    ) -> "ValidationError":
        """Build field errors from pydantic's ``errors()`` list."""
        aliases = aliases or {}
        field_errors = []
        for error in errors:
            loc = [str(part) for part in error.get("loc", ())]
            if loc and loc[0] in _REQUEST_LOCATIONS:
                loc = loc[1:] or loc
            field = ".".join(loc) or "body"
            message = error.get("msg", "Invalid value")
            if message.startswith(_VALUE_ERROR_PREFIX):
                message = message[len(_VALUE_ERROR_PREFIX):]
            field_errors.append(FieldError(aliases.get(field, field), message))
        return cls(field_errors)


class AuthFailure(str, enum.Enum):
    NO_TOKEN = "no_token"
    EXPIRED = "expired"
    INVALID = "invalid"


_AUTH_MESSAGES = {
    AuthFailure.NO_TOKEN: "Access denied. No token provided.",
    AuthFailure.EXPIRED: "Token expired. Please log in again.",
    AuthFailure.INVALID: "Invalid token.",
}


class AuthError(AppError):
    status_code = 401

    def __init__(self, reason: AuthFailure):
        self.reason = reason
        super().__init__(_AUTH_MESSAGES[reason])
        if reason is AuthFailure.INVALID:
            self.status_code = 403


class NotFoundOrForbidden(AppError):
    # Missing rows and rows owned by someone else look the same
    status_code = 404
    default_detail = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_detail = "Resource already exists"


class StorageError(AppError):
    status_code = 500
    default_detail = "Internal server error"


class InvalidInput(AppError):
    status_code = 400
    default_detail = "Invalid input"


class CorruptCredential(AppError):
    status_code = 500
    default_detail = "Stored credential is malformed"


class TokenExpired(AppError):
    status_code = 401
    default_detail = "Token has expired"


class TokenInvalid(AppError):
    status_code = 403
    default_detail = "Invalid token"
