from __future__ import annotations

from typing import Any

from fastapi import HTTPException


class AppError(Exception):
    """Base for errors raised by the service layer.

    Routers turn these into HTTPException with a machine-readable code.
    """

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            detail["details"] = self.details
        return detail


class NotFoundError(AppError):
    code = "not_found"
    status_code = 404


class InvalidInputError(AppError):
    code = "invalid_input"
    status_code = 422


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


def to_http(e: AppError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_detail())
