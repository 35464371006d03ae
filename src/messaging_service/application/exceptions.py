from __future__ import annotations


class AppError(Exception):
    """Base application error. ``status_code`` is what the HTTP layer answers with."""

    status_code = 400

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    status_code = 404


class ValidationError(AppError):
    status_code = 422


class AuthenticationError(AppError):
    status_code = 401
