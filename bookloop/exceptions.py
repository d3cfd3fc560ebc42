"""Domain errors raised by the services and translated at the HTTP boundary."""

from typing import Any


class BookloopError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"status": "error", "message": self.message}


class ValidationFailure(BookloopError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list, message: str | None = None):
        super().__init__(message)
        self.errors = list(errors)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["errors"] = [{"field": e.field, "message": e.message} for e in self.errors]
        return payload


class MalformedIdentifier(BookloopError):
    status_code = 400
    default_message = "Invalid ID"


class AuthenticationRequired(BookloopError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationFailure(BookloopError):
    status_code = 403
    default_message = "Not authorized"


class NotFound(BookloopError):
    status_code = 404
    default_message = "Not found"
