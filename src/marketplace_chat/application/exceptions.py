from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    code = "app_error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    code = "not_found"


class ForbiddenError(AppError):
    code = "forbidden"


class ValidationError(AppError):
    code = "validation_error"


class UnauthenticatedError(AppError):
    code = "unauthenticated"


class PersistenceError(AppError):
    code = "persistence_error"
